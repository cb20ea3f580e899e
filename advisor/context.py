"""Advisor context -- gathers the per-question inputs from the backend."""

from __future__ import annotations

import logging
from typing import Iterable

from backend.queries import DataAccess
from core.errors import BackendCallError, BackendUnavailableError
from core.models.advisor import AdvisorContext, SentimentLabel
from core.models.backend import NewsArticle

logger = logging.getLogger(__name__)

POSITIVE_THRESHOLD = 1.0
NEGATIVE_THRESHOLD = -1.0


def sentiment_label(articles: Iterable[NewsArticle]) -> SentimentLabel:
    """Label the mean article score: > 1 positive, < -1 negative."""
    scores = [article.score for article in articles]
    if not scores:
        return "neutral"
    mean = sum(scores) / len(scores)
    if mean > POSITIVE_THRESHOLD:
        return "positive"
    if mean < NEGATIVE_THRESHOLD:
        return "negative"
    return "neutral"


async def build_advisor_context(data: DataAccess | None) -> AdvisorContext:
    """Build a fresh context from portfolio, profile and news.

    Without a backend (or when it fails) the advisor still answers, with an
    empty context.
    """
    if data is None or not data.available:
        return AdvisorContext()

    try:
        portfolio = await data.get_portfolio()
        profile = await data.get_caller_user_profile()
        articles = await data.get_news_articles()
    except BackendUnavailableError:
        return AdvisorContext()
    except BackendCallError as exc:
        logger.warning("Advisor context unavailable, answering without it: %s", exc)
        return AdvisorContext()

    accuracy = profile.prediction_accuracy if profile else 0.0
    return AdvisorContext(
        portfolio_holding_symbols=portfolio.symbols if portfolio else [],
        prediction_accuracy=min(100.0, max(0.0, accuracy)),
        news_sentiment=sentiment_label(articles),
        display_name=profile.display_name if profile else "",
    )
