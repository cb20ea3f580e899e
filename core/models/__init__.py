"""Pydantic data models shared across all components."""

from core.models.advisor import AdvisorContext, AdvisorReply
from core.models.backend import (
    Alert,
    Conversation,
    Holding,
    LeaderboardEntry,
    LearningProgress,
    LearningProgressView,
    Message,
    NewsArticle,
    Portfolio,
    Post,
    Prediction,
    QuizResult,
    SummaryStatistics,
    UserProfileInput,
    UserProfileView,
)
from core.models.events import Event, EventTypes
from core.models.market import HistoricalBar, LiveQuote, MockStock, StockSummary
from core.models.portfolio import HoldingValuation, PortfolioAnalysis, RiskLevel

__all__ = [
    "AdvisorContext",
    "AdvisorReply",
    "Alert",
    "Conversation",
    "Event",
    "EventTypes",
    "HistoricalBar",
    "Holding",
    "HoldingValuation",
    "LeaderboardEntry",
    "LearningProgress",
    "LearningProgressView",
    "LiveQuote",
    "Message",
    "MockStock",
    "NewsArticle",
    "Portfolio",
    "PortfolioAnalysis",
    "Post",
    "Prediction",
    "QuizResult",
    "RiskLevel",
    "StockSummary",
    "SummaryStatistics",
    "UserProfileInput",
    "UserProfileView",
]
