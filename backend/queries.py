"""RPC data-access layer -- cached reads and invalidating writes.

Every read is cached per query key until a write that affects it succeeds,
the entry's TTL runs out, or the caller asks for `refresh=True`. Writes
invalidate the affected reads and announce it on the bus.

Failures are never swallowed here: no session -> BackendUnavailableError,
backend or transport failure -> BackendCallError from the client.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from backend.cache import MISSING, QueryCache, QueryKey
from backend.session import BackendSession
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
from core.models.events import Event, EventTypes
from core.protocols import BackendInterface, EventBus

logger = logging.getLogger(__name__)

# -- Read names (first element of every query key) --

CURRENT_USER_PROFILE = "currentUserProfile"
CALLER_USER_ROLE = "callerUserRole"
IS_CALLER_ADMIN = "isCallerAdmin"
USER_PROFILE = "userProfile"
CONVERSATION = "conversation"
FORUM_POSTS = "forumPosts"
TOP_POSTS = "topPosts"
LEARNING_PROGRESS = "learningProgress"
PORTFOLIO = "portfolio"
USER_PREDICTIONS = "userPredictions"
PUBLIC_LEADERBOARD = "publicLeaderboard"
PUBLIC_STOCK_LIST = "publicStockList"
NEWS_ARTICLES = "newsArticles"
NEWS_ARTICLE = "newsArticle"
PUBLIC_NEWS_FEED = "publicNewsFeed"
ARTICLES_BY_DATE_RANGE = "articlesByDateRange"
ARTICLES_BY_SENTIMENT = "articlesBySentiment"
ARTICLES_BY_SYMBOL = "articlesBySymbol"
SUMMARY_STATISTICS = "summaryStatistics"
SENTIMENT_TIMELINE = "sentimentImpactTimeline"
MARKET_ALERTS = "marketAlerts"
PUBLIC_MARKET_ALERTS = "publicMarketAlerts"

NEWS_READS: tuple[str, ...] = (
    NEWS_ARTICLES,
    NEWS_ARTICLE,
    PUBLIC_NEWS_FEED,
    ARTICLES_BY_DATE_RANGE,
    ARTICLES_BY_SENTIMENT,
    ARTICLES_BY_SYMBOL,
    SUMMARY_STATISTICS,
    SENTIMENT_TIMELINE,
    MARKET_ALERTS,
    PUBLIC_MARKET_ALERTS,
)

# RPC method -> read names it invalidates on success
INVALIDATIONS: dict[str, tuple[str, ...]] = {
    "saveCallerUserProfile": (CURRENT_USER_PROFILE,),
    "setUserPassword": (CURRENT_USER_PROFILE,),
    "saveLearningProgress": (LEARNING_PROGRESS, CURRENT_USER_PROFILE),
    "submitPrediction": (USER_PREDICTIONS, CURRENT_USER_PROFILE, PUBLIC_LEADERBOARD),
    "savePortfolio": (PORTFOLIO, CURRENT_USER_PROFILE),
    "sendMessage": (CONVERSATION,),
    "createPost": (FORUM_POSTS, TOP_POSTS),
    "upvotePost": (FORUM_POSTS, TOP_POSTS),
    "addNewsArticleWithScore": NEWS_READS,
    "initializeNewsDatabase": NEWS_READS,
    "assignCallerUserRole": (CALLER_USER_ROLE, IS_CALLER_ADMIN, USER_PROFILE),
    "verifyUserPassword": (),
}


class DataAccess:
    """Typed, cached facade over the backend session.

    Usage:
        data = DataAccess(session, bus=bus)
        portfolio = await data.get_portfolio()
        await data.save_portfolio(portfolio)
        await data.get_portfolio()                 # re-fetched, reflects the save
        await data.get_news_articles(refresh=True)  # bypass the cache
    """

    def __init__(
        self,
        session: BackendSession,
        cache: QueryCache | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._session = session
        self._cache = cache or QueryCache()
        self._bus = bus

    @property
    def session(self) -> BackendSession:
        return self._session

    @property
    def available(self) -> bool:
        return self._session.available

    @property
    def cache(self) -> QueryCache:
        return self._cache

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _read(
        self,
        key: QueryKey,
        fetch: Callable[[BackendInterface], Awaitable[Any]],
        refresh: bool = False,
    ) -> Any:
        backend = self._session.require()
        if not refresh:
            cached = self._cache.get(key)
            if cached is not MISSING:
                return cached
        generation = self._cache.generation(key[0])
        value = await fetch(backend)
        if self._cache.generation(key[0]) == generation:
            self._cache.set(key, value)
        else:
            logger.debug("Not caching %s: invalidated while in flight", key[0])
        return value

    async def _write(
        self,
        method: str,
        call: Callable[[BackendInterface], Awaitable[Any]],
    ) -> Any:
        backend = self._session.require()
        result = await call(backend)

        names = INVALIDATIONS[method]
        if names:
            dropped = self._cache.invalidate(*names)
            logger.debug("%s invalidated %d cached reads", method, len(dropped))
            if self._bus is not None:
                await self._bus.publish(Event(
                    type=EventTypes.CACHE_INVALIDATED,
                    source="data_access",
                    payload={"method": method, "queries": list(names)},
                ))
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_caller_user_profile(self, refresh: bool = False) -> UserProfileView | None:
        return await self._read(
            (CURRENT_USER_PROFILE,), lambda b: b.get_caller_user_profile(), refresh
        )

    async def get_caller_user_role(self, refresh: bool = False) -> UserRole:
        return await self._read((CALLER_USER_ROLE,), lambda b: b.get_caller_user_role(), refresh)

    async def is_caller_admin(self, refresh: bool = False) -> bool:
        return await self._read((IS_CALLER_ADMIN,), lambda b: b.is_caller_admin(), refresh)

    async def get_user_profile(self, user: Principal, refresh: bool = False) -> UserProfileView | None:
        return await self._read((USER_PROFILE, user), lambda b: b.get_user_profile(user), refresh)

    async def get_conversation(self, refresh: bool = False) -> Conversation | None:
        return await self._read((CONVERSATION,), lambda b: b.get_conversation(), refresh)

    async def get_forum_posts(self, sort_by_votes: bool = False, refresh: bool = False) -> list[Post]:
        return await self._read(
            (FORUM_POSTS, sort_by_votes), lambda b: b.get_forum_posts(sort_by_votes), refresh
        )

    async def get_top_posts(self, refresh: bool = False) -> list[Post]:
        return await self._read((TOP_POSTS,), lambda b: b.get_top_posts(), refresh)

    async def get_learning_progress(self, refresh: bool = False) -> LearningProgressView | None:
        return await self._read((LEARNING_PROGRESS,), lambda b: b.get_learning_progress(), refresh)

    async def get_portfolio(self, refresh: bool = False) -> Portfolio | None:
        return await self._read((PORTFOLIO,), lambda b: b.get_portfolio(), refresh)

    async def get_user_predictions(self, refresh: bool = False) -> list[Prediction]:
        return await self._read((USER_PREDICTIONS,), lambda b: b.get_user_predictions(), refresh)

    async def get_public_leaderboard(self, refresh: bool = False) -> list[LeaderboardEntry]:
        return await self._read((PUBLIC_LEADERBOARD,), lambda b: b.get_public_leaderboard(), refresh)

    async def get_public_stock_list(self, refresh: bool = False) -> list[str]:
        return await self._read((PUBLIC_STOCK_LIST,), lambda b: b.get_public_stock_list(), refresh)

    async def get_news_articles(self, refresh: bool = False) -> list[NewsArticle]:
        return await self._read((NEWS_ARTICLES,), lambda b: b.get_news_articles(), refresh)

    async def get_news_article(self, article_id: int, refresh: bool = False) -> NewsArticle | None:
        return await self._read(
            (NEWS_ARTICLE, article_id), lambda b: b.get_news_article(article_id), refresh
        )

    async def get_public_news_feed(self, refresh: bool = False) -> list[NewsArticle]:
        return await self._read((PUBLIC_NEWS_FEED,), lambda b: b.get_public_news_feed(), refresh)

    async def get_articles_by_date_range(
        self, start: Time, end: Time, refresh: bool = False
    ) -> list[NewsArticle]:
        return await self._read(
            (ARTICLES_BY_DATE_RANGE, start, end),
            lambda b: b.get_articles_by_date_range(start, end),
            refresh,
        )

    async def get_articles_by_sentiment(self, sentiment: str, refresh: bool = False) -> list[NewsArticle]:
        return await self._read(
            (ARTICLES_BY_SENTIMENT, sentiment),
            lambda b: b.get_articles_by_sentiment(sentiment),
            refresh,
        )

    async def get_articles_by_symbol(self, symbol: str, refresh: bool = False) -> list[NewsArticle]:
        return await self._read(
            (ARTICLES_BY_SYMBOL, symbol), lambda b: b.get_articles_by_symbol(symbol), refresh
        )

    async def get_summary_statistics(self, refresh: bool = False) -> SummaryStatistics:
        return await self._read((SUMMARY_STATISTICS,), lambda b: b.get_summary_statistics(), refresh)

    async def get_sentiment_impact_timeline(
        self, symbol: str, refresh: bool = False
    ) -> list[tuple[Time, int]]:
        return await self._read(
            (SENTIMENT_TIMELINE, symbol),
            lambda b: b.get_sentiment_impact_timeline(symbol),
            refresh,
        )

    async def get_market_alerts(self, refresh: bool = False) -> list[Alert]:
        return await self._read((MARKET_ALERTS,), lambda b: b.get_market_alerts(), refresh)

    async def get_public_market_alerts(self, refresh: bool = False) -> list[Alert]:
        return await self._read(
            (PUBLIC_MARKET_ALERTS,), lambda b: b.get_public_market_alerts(), refresh
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def save_caller_user_profile(self, profile: UserProfileInput) -> None:
        await self._write("saveCallerUserProfile", lambda b: b.save_caller_user_profile(profile))

    async def set_user_password(self, password_hash: str) -> bool:
        return await self._write("setUserPassword", lambda b: b.set_user_password(password_hash))

    async def verify_user_password(self, password_hash: str) -> bool:
        return await self._write("verifyUserPassword", lambda b: b.verify_user_password(password_hash))

    async def save_learning_progress(self, progress: LearningProgress) -> None:
        await self._write("saveLearningProgress", lambda b: b.save_learning_progress(progress))

    async def submit_prediction(self, prediction: Prediction) -> None:
        await self._write("submitPrediction", lambda b: b.submit_prediction(prediction))

    async def save_portfolio(self, portfolio: Portfolio) -> None:
        await self._write("savePortfolio", lambda b: b.save_portfolio(portfolio))

    async def send_message(self, content: str) -> None:
        await self._write("sendMessage", lambda b: b.send_message(content))

    async def create_post(self, content: str, symbols: list[str]) -> None:
        await self._write("createPost", lambda b: b.create_post(content, symbols))

    async def upvote_post(self, index: int) -> None:
        await self._write("upvotePost", lambda b: b.upvote_post(index))

    async def add_news_article_with_score(self, article: NewsArticle) -> None:
        await self._write("addNewsArticleWithScore", lambda b: b.add_news_article_with_score(article))

    async def initialize_news_database(self) -> None:
        await self._write("initializeNewsDatabase", lambda b: b.initialize_news_database())

    async def assign_caller_user_role(self, user: Principal, role: UserRole) -> None:
        await self._write("assignCallerUserRole", lambda b: b.assign_caller_user_role(user, role))
