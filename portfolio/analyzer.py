"""Portfolio analyzer -- values the saved portfolio at simulated live prices."""

from __future__ import annotations

import logging

from backend.queries import DataAccess
from core.models.backend import Holding, Portfolio
from core.models.portfolio import HoldingValuation, PortfolioAnalysis, RiskLevel
from market.dataset import normalize_symbol
from market.live_price import LivePriceGenerator

logger = logging.getLogger(__name__)

SECTOR_MAP: dict[str, str] = {
    "AAPL": "Technology",
    "MSFT": "Technology",
    "GOOGL": "Technology",
    "META": "Technology",
    "NVDA": "Technology",
    "AMZN": "Consumer",
    "TSLA": "Automotive",
    "NFLX": "Media",
    "JPM": "Finance",
    "BAC": "Finance",
    "GS": "Finance",
    "V": "Finance",
    "JNJ": "Healthcare",
    "PFE": "Healthcare",
    "UNH": "Healthcare",
    "XOM": "Energy",
    "CVX": "Energy",
    "WMT": "Retail",
    "TGT": "Retail",
}

OTHER_SECTOR = "Other"
DEFAULT_RISK_SCORE = 50

# upper bound (inclusive), label, description
RISK_BANDS: tuple[tuple[int, str, str], ...] = (
    (30, "Low", "Conservative portfolio with stable assets"),
    (60, "Moderate", "Balanced mix of growth and stability"),
    (80, "High", "Growth-oriented with higher volatility"),
)
TOP_RISK = ("Very High", "Aggressive portfolio, significant risk exposure")


def risk_level(score: int) -> RiskLevel:
    for upper, label, description in RISK_BANDS:
        if score <= upper:
            return RiskLevel(label=label, description=description)
    return RiskLevel(label=TOP_RISK[0], description=TOP_RISK[1])


def diversification_score(holding_count: int) -> int:
    return min(100, holding_count * 12)


def merge_holding(holdings: list[Holding], symbol: str, shares: float, avg_buy_price: float) -> list[Holding]:
    """Add a lot to a holdings list, returning a new list.

    An existing symbol keeps its position: shares are summed (rounded to a
    whole share) and the average price becomes the mean of the old and new
    prices.
    """
    if shares <= 0:
        raise ValueError("shares must be positive")
    if avg_buy_price <= 0:
        raise ValueError("avg_buy_price must be positive")

    key = normalize_symbol(symbol)
    updated = list(holdings)
    for i, holding in enumerate(updated):
        if holding.symbol == key:
            updated[i] = Holding(
                symbol=key,
                shares=round(holding.shares + shares),
                avg_buy_price=(holding.avg_buy_price + avg_buy_price) / 2,
            )
            return updated

    updated.append(Holding(symbol=key, shares=round(shares), avg_buy_price=avg_buy_price))
    return updated


class PortfolioAnalyzer:
    """Values holdings against the live price generator.

    Each analysis advances the live walk of every held symbol by one step,
    the same way any other price consumer does.
    """

    def __init__(self, generator: LivePriceGenerator) -> None:
        self._generator = generator

    def sector_of(self, symbol: str) -> str:
        key = normalize_symbol(symbol)
        if key in SECTOR_MAP:
            return SECTOR_MAP[key]
        return self._generator.dataset.sector_of(key) or OTHER_SECTOR

    def live_prices(self, symbols: list[str]) -> dict[str, float]:
        return {symbol: self._generator.next_price(symbol) for symbol in symbols}

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze(self, portfolio: Portfolio | None) -> PortfolioAnalysis:
        """Build a PortfolioAnalysis; a missing portfolio analyzes as empty."""
        portfolio = portfolio or Portfolio()
        prices = self.live_prices([h.symbol for h in portfolio.holdings])

        valuations: list[HoldingValuation] = []
        for holding in portfolio.holdings:
            live = prices.get(holding.symbol, holding.avg_buy_price)
            cost = holding.shares * holding.avg_buy_price
            value = holding.shares * live
            pnl = value - cost
            valuations.append(HoldingValuation(
                symbol=holding.symbol,
                shares=holding.shares,
                avg_buy_price=holding.avg_buy_price,
                live_price=live,
                sector=self.sector_of(holding.symbol),
                cost_basis=round(cost, 2),
                current_value=round(value, 2),
                pnl=round(pnl, 2),
                pnl_percent=round(pnl / cost * 100, 2) if cost else 0.0,
            ))

        total_value = sum(v.current_value for v in valuations)
        total_cost = sum(v.cost_basis for v in valuations)
        total_pnl = total_value - total_cost

        sectors: dict[str, float] = {}
        for v in valuations:
            v.allocation_percent = round(v.current_value / total_value * 100, 2) if total_value else 0.0
            sectors[v.sector] = sectors.get(v.sector, 0.0) + v.current_value

        sector_allocation = {
            sector: round(value / total_value * 100, 2) if total_value else 0.0
            for sector, value in sectors.items()
        }

        score = portfolio.risk_score
        return PortfolioAnalysis(
            holdings=valuations,
            total_value=round(total_value, 2),
            cost_basis=round(total_cost, 2),
            total_pnl=round(total_pnl, 2),
            total_pnl_percent=round(total_pnl / total_cost * 100, 2) if total_cost else 0.0,
            sector_allocation=sector_allocation,
            sector_count=len(sectors),
            diversification_score=diversification_score(len(valuations)),
            risk_score=score,
            risk_level=risk_level(score),
        )

    # ------------------------------------------------------------------
    # Backend-backed operations
    # ------------------------------------------------------------------

    async def analyze_saved(self, data: DataAccess) -> PortfolioAnalysis:
        """Analyze the caller's saved portfolio."""
        portfolio = await data.get_portfolio()
        return self.analyze(portfolio)

    async def add_holding(
        self,
        data: DataAccess,
        symbol: str,
        shares: float,
        avg_buy_price: float,
    ) -> Portfolio:
        """Merge a lot into the saved portfolio and save it back."""
        current = await data.get_portfolio() or Portfolio()
        holdings = merge_holding(current.holdings, symbol, shares, avg_buy_price)
        return await self._save(data, holdings, current.risk_score)

    async def remove_holding(self, data: DataAccess, symbol: str) -> Portfolio:
        current = await data.get_portfolio() or Portfolio()
        key = normalize_symbol(symbol)
        holdings = [h for h in current.holdings if h.symbol != key]
        return await self._save(data, holdings, current.risk_score)

    async def _save(self, data: DataAccess, holdings: list[Holding], risk_score: int) -> Portfolio:
        prices = self.live_prices([h.symbol for h in holdings])
        total = sum(h.shares * prices.get(h.symbol, h.avg_buy_price) for h in holdings)
        portfolio = Portfolio(total_value=round(total, 2), holdings=holdings, risk_score=risk_score)
        await data.save_portfolio(portfolio)
        logger.info("Portfolio saved: %d holdings, value %.2f", len(holdings), portfolio.total_value)
        return portfolio
