"""Core protocols -- the extension points the rest of FinIQ is written against.

All protocols use Python's structural subtyping (typing.Protocol):
if your class has the right methods, it implements the protocol.
No inheritance required.
"""

from __future__ import annotations

from typing import Any, Callable, Coroutine, Protocol, runtime_checkable

from core.models.backend import (
    Alert,
    Conversation,
    LeaderboardEntry,
    LearningProgress,
    LearningProgressView,
    NewsArticle,
    Portfolio,
    Post,
    Prediction,
    Principal,
    SummaryStatistics,
    Time,
    UserProfileInput,
    UserProfileView,
    UserRole,
)
from core.models.events import Event


# ---------------------------------------------------------------------------
# 1. RandomSource -- injected randomness for price and history generation
# ---------------------------------------------------------------------------

@runtime_checkable
class RandomSource(Protocol):
    """Uniform pseudorandom numbers.

    Production wiring uses an entropy-seeded generator; tests substitute a
    seeded or scripted source to assert exact sequences.
    """

    def uniform(self, lo: float, hi: float) -> float:
        """Return a float drawn uniformly from [lo, hi]."""
        ...


# ---------------------------------------------------------------------------
# 2. EventBus -- in-process fan-out of events
# ---------------------------------------------------------------------------

@runtime_checkable
class EventBus(Protocol):
    """Publish/subscribe event bus.

    Default implementation: AsyncIOBus (in-process pub/sub).
    """

    async def publish(self, event: Event) -> None:
        """Publish an event to all subscribers of its type."""
        ...

    def subscribe(self, event_type: str, callback: Callable[[Event], Coroutine[Any, Any, None]]) -> None:
        """Register a callback for events of the given type."""
        ...

    def unsubscribe(self, event_type: str, callback: Callable[[Event], Coroutine[Any, Any, None]]) -> None:
        """Remove a previously registered callback."""
        ...


# ---------------------------------------------------------------------------
# 3. BackendInterface -- the external backend's RPC surface
# ---------------------------------------------------------------------------

@runtime_checkable
class BackendInterface(Protocol):
    """Typed view of the backend service's RPC methods.

    The backend itself is an opaque collaborator. Default implementation:
    HttpBackendClient (JSON-RPC over httpx). Each method name maps to the
    camelCase RPC method of the same name.
    """

    # -- queries --

    async def get_caller_user_profile(self) -> UserProfileView | None: ...

    async def get_caller_user_role(self) -> UserRole: ...

    async def get_conversation(self) -> Conversation | None: ...

    async def get_forum_posts(self, sort_by_votes: bool) -> list[Post]: ...

    async def get_learning_progress(self) -> LearningProgressView | None: ...

    async def get_market_alerts(self) -> list[Alert]: ...

    async def get_news_article(self, article_id: int) -> NewsArticle | None: ...

    async def get_news_articles(self) -> list[NewsArticle]: ...

    async def get_articles_by_date_range(self, start: Time, end: Time) -> list[NewsArticle]: ...

    async def get_articles_by_sentiment(self, sentiment: str) -> list[NewsArticle]: ...

    async def get_articles_by_symbol(self, symbol: str) -> list[NewsArticle]: ...

    async def get_portfolio(self) -> Portfolio | None: ...

    async def get_public_leaderboard(self) -> list[LeaderboardEntry]: ...

    async def get_public_market_alerts(self) -> list[Alert]: ...

    async def get_public_news_feed(self) -> list[NewsArticle]: ...

    async def get_public_stock_list(self) -> list[str]: ...

    async def get_sentiment_impact_timeline(self, symbol: str) -> list[tuple[Time, int]]: ...

    async def get_summary_statistics(self) -> SummaryStatistics: ...

    async def get_top_posts(self) -> list[Post]: ...

    async def get_user_predictions(self) -> list[Prediction]: ...

    async def get_user_profile(self, user: Principal) -> UserProfileView | None: ...

    async def is_caller_admin(self) -> bool: ...

    # -- mutations --

    async def add_news_article_with_score(self, article: NewsArticle) -> None: ...

    async def assign_caller_user_role(self, user: Principal, role: UserRole) -> None: ...

    async def create_post(self, content: str, symbols: list[str]) -> None: ...

    async def initialize_news_database(self) -> None: ...

    async def save_caller_user_profile(self, profile: UserProfileInput) -> None: ...

    async def save_learning_progress(self, progress: LearningProgress) -> None: ...

    async def save_portfolio(self, portfolio: Portfolio) -> None: ...

    async def send_message(self, content: str) -> None: ...

    async def set_user_password(self, password_hash: str) -> bool: ...

    async def submit_prediction(self, prediction: Prediction) -> None: ...

    async def upvote_post(self, index: int) -> None: ...

    async def verify_user_password(self, password_hash: str) -> bool: ...
