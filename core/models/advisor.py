"""Advisor context model -- the numeric/categorical inputs of a chat reply."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

SentimentLabel = Literal["positive", "negative", "neutral"]


class AdvisorContext(BaseModel):
    """Read-only aggregate computed fresh for every advisor call.

    Not persisted; built from whatever portfolio, profile and news data the
    backend returns at the time of the question.
    """

    portfolio_holding_symbols: list[str] = Field(default_factory=list)
    prediction_accuracy: float = Field(default=0.0, ge=0.0, le=100.0)
    news_sentiment: SentimentLabel = "neutral"
    display_name: str = ""


class AdvisorReply(BaseModel):
    """One answered chat message."""

    message: str
    category: str
    reply: str
    context: AdvisorContext
    recorded: bool = False
