"""Backend records -- the typed shapes exchanged over the RPC contract.

Field names are snake_case in Python and camelCase on the wire. Timestamps
are nanoseconds since the epoch, principals are opaque strings and backend
bigints map to plain ints.
"""

from __future__ import annotations

import time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Time = int
Principal = str
UserRole = Literal["admin", "user", "guest"]
AlertSeverity = Literal["high", "critical", "medium"]

URGENT_SEVERITIES: frozenset[str] = frozenset({"high", "critical"})


def now_ns() -> Time:
    """Current time in nanoseconds since the epoch."""
    return time.time_ns()


class BackendRecord(BaseModel):
    """Base for records that travel over the RPC boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Portfolio
# ---------------------------------------------------------------------------

class Holding(BackendRecord):
    symbol: str
    shares: int
    avg_buy_price: float


class Portfolio(BackendRecord):
    total_value: float = 0.0
    holdings: list[Holding] = Field(default_factory=list)
    risk_score: int = 50

    @property
    def symbols(self) -> list[str]:
        return [h.symbol for h in self.holdings]


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------

class Prediction(BackendRecord):
    """One round of the prediction playground.

    `result` holds the human-readable explanation of the round.
    """

    user: Principal
    stock_symbol: str
    direction: str
    ai_prediction: str
    actual_outcome: str
    result: str = ""

    @property
    def is_correct(self) -> bool:
        return self.direction == self.actual_outcome


class LeaderboardEntry(BackendRecord):
    display_name: str
    accuracy_rate: float


# ---------------------------------------------------------------------------
# User profile & learning
# ---------------------------------------------------------------------------

class QuizResult(BackendRecord):
    score: int
    taken_at: Time


class UserProfileInput(BackendRecord):
    display_name: str
    prediction_accuracy: float = 0.0
    portfolio_ref: int | None = None
    lessons_completed: int = 0


class UserProfileView(BackendRecord):
    display_name: str
    has_password: bool = False
    prediction_accuracy: float = 0.0
    portfolio_ref: int | None = None
    quiz_results: list[tuple[str, QuizResult]] = Field(default_factory=list)
    lessons_completed: int = 0


class LearningProgress(BackendRecord):
    last_updated: Time
    completed_lessons: int


class LearningProgressView(BackendRecord):
    scores: list[tuple[str, int]] = Field(default_factory=list)
    last_updated: Time
    completed_lessons: int


# ---------------------------------------------------------------------------
# Conversation & forum
# ---------------------------------------------------------------------------

class Message(BackendRecord):
    content: str
    sender: Principal
    timestamp: Time


class Conversation(BackendRecord):
    messages: list[Message] = Field(default_factory=list)
    last_updated: Time


class Post(BackendRecord):
    symbols: list[str] = Field(default_factory=list)
    content: str
    votes: int = 0
    author: Principal
    timestamp: Time


# ---------------------------------------------------------------------------
# News & alerts
# ---------------------------------------------------------------------------

class NewsArticle(BackendRecord):
    id: int = Field(alias="_id")
    title: str
    symbols: list[str] = Field(default_factory=list)
    date: Time
    market_impact: int = 0
    sentiment: str = "neutral"
    score: int = 0
    summary: str = ""


class Alert(BackendRecord):
    id: int
    sentiment_score: float
    headline: str
    related_symbols: list[str] = Field(default_factory=list)
    triggered_at: Time
    severity: AlertSeverity

    @property
    def is_urgent(self) -> bool:
        return self.severity in URGENT_SEVERITIES


class SummaryStatistics(BackendRecord):
    negative_count: int = 0
    positive_count: int = 0
    neutral_count: int = 0
    average_score: float = 0.0
