"""Rule-based advisor -- keyword categories mapped to canned, templated replies.

No language model is involved. The lower-cased message is matched against an
ordered table of rules; the first rule whose trigger fires produces the reply.
Replies only vary with the AdvisorContext, so equal inputs give equal output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from core.models.advisor import AdvisorContext

logger = logging.getLogger(__name__)

GREETING_MAX_LENGTH = 20
GREETING_WORDS = ("hello", "hi", "hey", "help")


@dataclass(frozen=True)
class AdvisorRule:
    """One category: a trigger over the lower-cased message and a responder."""

    name: str
    matches: Callable[[str], bool]
    respond: Callable[[str, AdvisorContext], str]


def keywords(*words: str) -> Callable[[str], bool]:
    """Trigger that fires when any of `words` occurs as a substring."""
    def _matches(msg: str) -> bool:
        return any(word in msg for word in words)
    return _matches


def _is_greeting(msg: str) -> bool:
    stripped = msg.strip()
    if len(stripped) < GREETING_MAX_LENGTH:
        return True
    first_word = stripped.split()[0].strip("!,.?") if stripped else ""
    return first_word in GREETING_WORDS


def _name(ctx: AdvisorContext) -> str:
    return ctx.display_name or "there"


# ---------------------------------------------------------------------------
# Responders
# ---------------------------------------------------------------------------

def _portfolio(msg: str, ctx: AdvisorContext) -> str:
    holdings = ctx.portfolio_holding_symbols
    if not holdings:
        return (
            f"Hi {_name(ctx)}! I notice you haven't set up your portfolio yet. "
            "Head over to the Portfolio Analyzer to add your holdings, and I'll be able to "
            "provide personalized insights on your allocation, risk exposure, and "
            "diversification opportunities."
        )

    listed = ", ".join(holdings[:3]) + ("..." if len(holdings) > 3 else "")
    diversification = (
        "Consider adding more positions to reduce concentration risk."
        if len(holdings) < 5
        else "Good number of holdings for diversification."
    )
    if ctx.news_sentiment == "positive":
        sentiment = "News sentiment is positive — a good environment for growth stocks."
    elif ctx.news_sentiment == "negative":
        sentiment = "Negative news sentiment suggests caution. Consider defensive positions."
    else:
        sentiment = "Mixed sentiment — maintain balanced exposure."

    return (
        f"Based on your portfolio with {len(holdings)} holdings ({listed}), "
        "here are my observations:\n\n"
        f"• **Diversification**: {diversification}\n"
        f"• **Current Market Sentiment**: {sentiment}\n"
        "• **Recommendation**: Review your sector allocation and ensure no single position "
        "exceeds 25-30% of your portfolio."
    )


def _predictions(msg: str, ctx: AdvisorContext) -> str:
    accuracy = ctx.prediction_accuracy
    if accuracy > 0:
        acc_text = f"Your current prediction accuracy is {accuracy:.0f}%."
    else:
        acc_text = "You haven't made any predictions yet."

    if accuracy >= 60:
        verdict = "🎯 Great accuracy! You're demonstrating strong market intuition."
    elif accuracy > 0:
        verdict = "📊 Keep practicing — prediction accuracy improves with experience and analysis."
    else:
        verdict = "🚀 Start making predictions in the Stock Playground to track your performance."

    return (
        f"{acc_text}\n\n{verdict}\n\n"
        "Tips to improve:\n"
        "• Study technical indicators before predicting\n"
        "• Follow news sentiment for the stocks you're predicting\n"
        "• Look for momentum patterns in price history"
    )


def _news(msg: str, ctx: AdvisorContext) -> str:
    if ctx.news_sentiment == "positive":
        tone = "bullish"
        outlook = (
            "Positive news flow typically supports equity prices. Consider maintaining or "
            "slightly increasing equity exposure."
        )
    elif ctx.news_sentiment == "negative":
        tone = "bearish"
        outlook = (
            "Negative sentiment may create short-term volatility. Consider defensive "
            "positioning and stop-loss orders."
        )
    else:
        tone = "mixed"
        outlook = (
            "Neutral sentiment suggests a wait-and-see approach. Focus on quality holdings "
            "with strong fundamentals."
        )
    return (
        f"Current market intelligence shows {tone} sentiment in recent news.\n\n"
        f"**Market Outlook**: {outlook}\n\n"
        "Check the News Intelligence module for detailed sentiment analysis on specific stocks."
    )


def _diversification(msg: str, ctx: AdvisorContext) -> str:
    holdings = ctx.portfolio_holding_symbols
    if holdings:
        closing = f"For your current portfolio ({', '.join(holdings)}), focus on adding uncorrelated assets."
    else:
        closing = "Start building your portfolio with holdings from different sectors."
    return (
        "Diversification is one of the most powerful risk management tools. "
        "Here's a framework:\n\n"
        "**Asset Allocation**:\n"
        "• 60-70% Equities (across sectors)\n"
        "• 20-30% Fixed Income (bonds)\n"
        "• 5-10% Cash/Alternatives\n\n"
        "**Sector Diversification**: Spread across Technology, Healthcare, Financials, "
        "Consumer, Energy, and Utilities.\n\n"
        "**Geographic Diversification**: Consider international exposure (20-30% non-US).\n\n"
        f"{closing}"
    )


def _stop_loss(msg: str, ctx: AdvisorContext) -> str:
    holdings = ctx.portfolio_holding_symbols
    if holdings:
        closing = f"For your holdings like {holdings[0]}, review current prices and set appropriate stop levels."
    else:
        closing = "Apply stop-losses to all positions once you build your portfolio."
    return (
        "Stop-loss orders are essential for capital preservation. "
        "Here's how to use them effectively:\n\n"
        "**Setting Stop-Losses**:\n"
        "• **Fixed Stop**: Set 8-15% below your entry price\n"
        "• **Trailing Stop**: Move up with the price (e.g., 10% below peak)\n"
        "• **Volatility-Based**: Use 2x ATR below entry\n\n"
        "**Key Principles**:\n"
        "• Never move a stop-loss further away from entry\n"
        "• Set stops before entering a trade\n"
        "• Consider the stock's normal volatility range\n\n"
        f"{closing}"
    )


def _sector_rotation(msg: str, ctx: AdvisorContext) -> str:
    if ctx.news_sentiment == "positive":
        signal = (
            "Positive sentiment suggests mid-to-late cycle positioning. "
            "Consider Technology and Industrials."
        )
    else:
        signal = (
            "Defensive positioning may be warranted. Healthcare and Utilities tend to "
            "outperform in uncertain markets."
        )
    return (
        "Sector rotation is a strategy of moving investments between sectors based on "
        "economic cycles:\n\n"
        "**Economic Cycle Sectors**:\n"
        "• **Early Recovery**: Financials, Consumer Discretionary\n"
        "• **Mid Cycle**: Technology, Industrials, Materials\n"
        "• **Late Cycle**: Energy, Healthcare, Consumer Staples\n"
        "• **Recession**: Utilities, Healthcare, Consumer Staples\n\n"
        f"**Current Signal**: {signal}\n\n"
        "Monitor the News Intelligence module for sector-specific sentiment shifts."
    )


def _valuation(msg: str, ctx: AdvisorContext) -> str:
    return (
        "Valuation analysis helps identify whether stocks are fairly priced:\n\n"
        "**Key Metrics**:\n"
        "• **P/E Ratio**: Compare to industry average and historical range\n"
        "• **PEG Ratio**: P/E adjusted for growth (< 1 = potentially undervalued)\n"
        "• **P/B Ratio**: Price vs book value (< 1 = trading below assets)\n"
        "• **EV/EBITDA**: Enterprise value vs earnings (useful for comparing across "
        "capital structures)\n\n"
        "**Quick Framework**:\n"
        "1. Calculate intrinsic value using DCF analysis\n"
        "2. Compare P/E to sector peers\n"
        "3. Check if growth justifies the premium\n"
        "4. Look for margin of safety (buy at 20-30% discount)\n\n"
        "Use the Learning Module to deepen your fundamental analysis skills."
    )


def _investing(msg: str, ctx: AdvisorContext) -> str:
    return (
        f"Great question, {_name(ctx)}! Here are some key investment principles:\n\n"
        "**Core Principles**:\n"
        "• **Buy quality**: Focus on companies with strong moats and consistent earnings\n"
        "• **Diversify**: Never put all eggs in one basket\n"
        "• **Long-term mindset**: Time in the market beats timing the market\n"
        "• **Risk management**: Never risk more than you can afford to lose\n\n"
        "**Before Buying**:\n"
        "1. Understand the business model\n"
        "2. Check financial health (debt, cash flow)\n"
        "3. Assess competitive position\n"
        "4. Determine fair value\n"
        "5. Set entry/exit criteria\n\n"
        "Would you like specific advice on any of your current holdings?"
    )


def _crypto(msg: str, ctx: AdvisorContext) -> str:
    return (
        "**Cryptocurrency & Digital Assets:**\n\n"
        "**Risk Profile:** Extremely high volatility (50-80% annual swings common)\n\n"
        "**Key Considerations:**\n"
        "• Crypto markets operate 24/7, unlike traditional markets\n"
        "• Regulatory uncertainty remains a significant risk factor\n"
        "• Correlation with tech stocks has increased in recent years\n\n"
        "**If Considering Crypto Exposure:**\n"
        "• Limit to 1-5% of total portfolio for most investors\n"
        "• Bitcoin and Ethereum are considered lower risk within crypto\n"
        "• DeFi protocols carry smart contract and liquidity risks\n"
        "• Use dollar-cost averaging to reduce timing risk\n\n"
        "Would you like to discuss how crypto might fit into your overall asset allocation?"
    )


def _macro(msg: str, ctx: AdvisorContext) -> str:
    return (
        "**Macroeconomic Analysis:**\n\n"
        "**Impact on Asset Classes:**\n"
        "• **Rising rates:** Bonds fall, growth stocks hurt, banks benefit\n"
        "• **Falling rates:** Bonds rise, growth stocks rally, utilities outperform\n"
        "• **High inflation:** Real assets (commodities, real estate) outperform\n"
        "• **Recession fears:** Defensive sectors (healthcare, consumer staples) hold up\n\n"
        "**Portfolio Positioning:**\n"
        "• In high-rate environments, consider shorter-duration bonds\n"
        "• Value stocks tend to outperform growth during rate hikes\n"
        "• International diversification can reduce domestic macro risk\n\n"
        "How is your portfolio currently positioned relative to the macro environment?"
    )


def _dividends(msg: str, ctx: AdvisorContext) -> str:
    return (
        "**Dividend & Income Investing:**\n\n"
        "**Dividend Fundamentals:**\n"
        "• Dividend yield = Annual dividend / Stock price\n"
        "• Payout ratio = Dividends / Earnings (< 60% is sustainable)\n"
        "• Dividend growth rate matters more than current yield\n\n"
        "**Income Strategy:**\n"
        "• Reinvest dividends for compounding (DRIP)\n"
        "• Diversify across dividend-paying sectors\n"
        "• Avoid \"yield traps\" — high yields from falling stock prices\n\n"
        "Would you like recommendations for dividend stocks that complement your current holdings?"
    )


def _greeting(msg: str, ctx: AdvisorContext) -> str:
    return (
        f"Hello {_name(ctx)}! I'm your AI Financial Strategy Advisor. I can help you with:\n\n"
        "• 📊 **Portfolio Analysis** — Review your holdings and allocation\n"
        "• 📈 **Market Insights** — Interpret news sentiment and trends\n"
        "• 🎯 **Trading Strategy** — Improve your prediction accuracy\n"
        "• 🛡️ **Risk Management** — Stop-losses, diversification, hedging\n"
        "• 📚 **Financial Education** — Explain concepts and strategies\n\n"
        "What would you like to explore today? Try asking about your portfolio, market "
        "conditions, or specific investment strategies!"
    )


def _default(msg: str, ctx: AdvisorContext) -> str:
    topic = msg.strip()
    if len(topic) > 50:
        topic = topic[:50] + "..."
    holdings = ", ".join(ctx.portfolio_holding_symbols) or "none yet"
    return (
        "Great question! Let me provide a comprehensive financial perspective:\n\n"
        f"**Key Principles for \"{topic}\":**\n\n"
        "1. **Data-Driven Decisions:** Always base investment decisions on fundamental and "
        "technical analysis, not emotions\n"
        "2. **Risk-Adjusted Returns:** The goal isn't maximum returns, but optimal "
        "risk-adjusted returns for your situation\n"
        "3. **Diversification:** Spreading risk across uncorrelated assets reduces "
        "portfolio volatility\n"
        "4. **Time in Market:** Consistent long-term investing typically outperforms "
        "market timing\n"
        "5. **Continuous Learning:** Markets evolve — stay informed through our News "
        "Intelligence module\n\n"
        "**Your Context:**\n"
        f"• Holdings: {holdings}\n"
        f"• Prediction accuracy: {ctx.prediction_accuracy:.0f}%\n"
        f"• News sentiment: {ctx.news_sentiment}\n\n"
        "Would you like me to dive deeper into any specific aspect of this topic?"
    )


# Order matters: the first matching rule wins.
DEFAULT_RULES: tuple[AdvisorRule, ...] = (
    AdvisorRule("portfolio", keywords("portfolio", "holding", "allocation"), _portfolio),
    AdvisorRule("predictions", keywords("prediction", "accuracy", "trading"), _predictions),
    AdvisorRule("news", keywords("news", "sentiment", "market"), _news),
    AdvisorRule("diversification", keywords("diversif", "risk", "hedge"), _diversification),
    AdvisorRule("stop_loss", keywords("stop loss", "stop-loss", "cut loss"), _stop_loss),
    AdvisorRule("sector_rotation", keywords("sector", "rotation"), _sector_rotation),
    AdvisorRule("valuation", keywords("valuation", "p/e", "overvalued", "undervalued"), _valuation),
    AdvisorRule("investing", keywords("invest", "stock", "buy", "sell"), _investing),
    AdvisorRule("crypto", keywords("crypto", "bitcoin", "ethereum", "defi"), _crypto),
    AdvisorRule(
        "macro",
        keywords("inflation", "fed", "interest rate", "recession"),
        _macro,
    ),
    AdvisorRule("dividends", keywords("dividend", "income", "yield"), _dividends),
    AdvisorRule("greeting", _is_greeting, _greeting),
)

DEFAULT_RULE = AdvisorRule("default", lambda msg: True, _default)


class AdvisorEngine:
    """Evaluates an ordered rule table; stateless between calls."""

    def __init__(
        self,
        rules: tuple[AdvisorRule, ...] = DEFAULT_RULES,
        fallback: AdvisorRule = DEFAULT_RULE,
    ) -> None:
        self._rules = rules
        self._fallback = fallback

    @property
    def categories(self) -> list[str]:
        return [rule.name for rule in self._rules] + [self._fallback.name]

    def select(self, message: str) -> AdvisorRule:
        msg = (message or "").lower()
        for rule in self._rules:
            if rule.matches(msg):
                return rule
        return self._fallback

    def match_category(self, message: str) -> str:
        """Name of the rule that would answer `message`."""
        return self.select(message).name

    def respond(self, message: str, context: AdvisorContext | None = None) -> str:
        context = context or AdvisorContext()
        rule = self.select(message)
        logger.debug("Advisor matched category %s", rule.name)
        return rule.respond(message or "", context)


_default_engine = AdvisorEngine()


def generate_response(message: str, context: AdvisorContext | None = None) -> str:
    """Answer `message` with the default rule table."""
    return _default_engine.respond(message, context)
