"""Backend RPC client -- calls the backend's JSON-RPC 2.0 endpoint via httpx.

No SDK dependency. Every method of BackendInterface maps to the camelCase
RPC method of the same name; positional arguments become the `params` list
and results are decoded into the typed records in core.models.backend.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from core.errors import BackendCallError
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

logger = logging.getLogger(__name__)

_PROFILE = TypeAdapter(UserProfileView | None)
_ROLE = TypeAdapter(UserRole)
_CONVERSATION = TypeAdapter(Conversation | None)
_POSTS = TypeAdapter(list[Post])
_PROGRESS = TypeAdapter(LearningProgressView | None)
_ALERTS = TypeAdapter(list[Alert])
_ARTICLE = TypeAdapter(NewsArticle | None)
_ARTICLES = TypeAdapter(list[NewsArticle])
_PORTFOLIO = TypeAdapter(Portfolio | None)
_LEADERBOARD = TypeAdapter(list[LeaderboardEntry])
_SYMBOLS = TypeAdapter(list[str])
_TIMELINE = TypeAdapter(list[tuple[int, int]])
_STATS = TypeAdapter(SummaryStatistics)
_PREDICTIONS = TypeAdapter(list[Prediction])
_BOOL = TypeAdapter(bool)


class HttpBackendClient:
    """Backend client for a JSON-RPC 2.0 over HTTP endpoint.

    Implements the BackendInterface protocol.
    """

    def __init__(
        self,
        url: str,
        token: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self._url

    async def call(self, method: str, *params: Any) -> Any:
        """Invoke one RPC method and return its raw `result`."""
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params),
        }
        logger.debug("RPC %s (%d params)", method, len(params))

        try:
            response = await self._client.post(self._url, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise BackendCallError(method, f"transport error: {exc}") from exc
        except ValueError as exc:
            raise BackendCallError(method, "response is not valid JSON") from exc

        if not isinstance(data, dict):
            raise BackendCallError(method, "malformed JSON-RPC response")

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise BackendCallError(
                    method,
                    str(error.get("message", "unknown error")),
                    code=error.get("code"),
                )
            raise BackendCallError(method, str(error))

        return data.get("result")

    async def _fetch(self, adapter: TypeAdapter, method: str, *params: Any) -> Any:
        raw = await self.call(method, *params)
        try:
            return adapter.validate_python(raw)
        except ValidationError as exc:
            raise BackendCallError(method, f"unexpected result shape: {exc}") from exc

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_caller_user_profile(self) -> UserProfileView | None:
        return await self._fetch(_PROFILE, "getCallerUserProfile")

    async def get_caller_user_role(self) -> UserRole:
        return await self._fetch(_ROLE, "getCallerUserRole")

    async def get_conversation(self) -> Conversation | None:
        return await self._fetch(_CONVERSATION, "getConversation")

    async def get_forum_posts(self, sort_by_votes: bool) -> list[Post]:
        return await self._fetch(_POSTS, "getForumPosts", sort_by_votes)

    async def get_learning_progress(self) -> LearningProgressView | None:
        return await self._fetch(_PROGRESS, "getLearningProgress")

    async def get_market_alerts(self) -> list[Alert]:
        return await self._fetch(_ALERTS, "getMarketAlerts")

    async def get_news_article(self, article_id: int) -> NewsArticle | None:
        return await self._fetch(_ARTICLE, "getNewsArticle", article_id)

    async def get_news_articles(self) -> list[NewsArticle]:
        return await self._fetch(_ARTICLES, "getNewsArticles")

    async def get_articles_by_date_range(self, start: Time, end: Time) -> list[NewsArticle]:
        return await self._fetch(_ARTICLES, "getArticlesByDateRange", start, end)

    async def get_articles_by_sentiment(self, sentiment: str) -> list[NewsArticle]:
        return await self._fetch(_ARTICLES, "getArticlesBySentiment", sentiment)

    async def get_articles_by_symbol(self, symbol: str) -> list[NewsArticle]:
        return await self._fetch(_ARTICLES, "getArticlesBySymbol", symbol)

    async def get_portfolio(self) -> Portfolio | None:
        return await self._fetch(_PORTFOLIO, "getPortfolio")

    async def get_public_leaderboard(self) -> list[LeaderboardEntry]:
        return await self._fetch(_LEADERBOARD, "getPublicLeaderboard")

    async def get_public_market_alerts(self) -> list[Alert]:
        return await self._fetch(_ALERTS, "getPublicMarketAlerts")

    async def get_public_news_feed(self) -> list[NewsArticle]:
        return await self._fetch(_ARTICLES, "getPublicNewsFeed")

    async def get_public_stock_list(self) -> list[str]:
        return await self._fetch(_SYMBOLS, "getPublicStockList")

    async def get_sentiment_impact_timeline(self, symbol: str) -> list[tuple[Time, int]]:
        return await self._fetch(_TIMELINE, "getSentimentImpactTimeline", symbol)

    async def get_summary_statistics(self) -> SummaryStatistics:
        return await self._fetch(_STATS, "getSummaryStatistics")

    async def get_top_posts(self) -> list[Post]:
        return await self._fetch(_POSTS, "getTopPosts")

    async def get_user_predictions(self) -> list[Prediction]:
        return await self._fetch(_PREDICTIONS, "getUserPredictions")

    async def get_user_profile(self, user: Principal) -> UserProfileView | None:
        return await self._fetch(_PROFILE, "getUserProfile", user)

    async def is_caller_admin(self) -> bool:
        return await self._fetch(_BOOL, "isCallerAdmin")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_news_article_with_score(self, article: NewsArticle) -> None:
        await self.call("addNewsArticleWithScore", article.to_wire())

    async def assign_caller_user_role(self, user: Principal, role: UserRole) -> None:
        await self.call("assignCallerUserRole", user, role)

    async def create_post(self, content: str, symbols: list[str]) -> None:
        await self.call("createPost", content, list(symbols))

    async def initialize_news_database(self) -> None:
        await self.call("initializeNewsDatabase")

    async def save_caller_user_profile(self, profile: UserProfileInput) -> None:
        await self.call("saveCallerUserProfile", profile.to_wire())

    async def save_learning_progress(self, progress: LearningProgress) -> None:
        await self.call("saveLearningProgress", progress.to_wire())

    async def save_portfolio(self, portfolio: Portfolio) -> None:
        await self.call("savePortfolio", portfolio.to_wire())

    async def send_message(self, content: str) -> None:
        await self.call("sendMessage", content)

    async def set_user_password(self, password_hash: str) -> bool:
        return await self._fetch(_BOOL, "setUserPassword", password_hash)

    async def submit_prediction(self, prediction: Prediction) -> None:
        await self.call("submitPrediction", prediction.to_wire())

    async def upvote_post(self, index: int) -> None:
        await self.call("upvotePost", index)

    async def verify_user_password(self, password_hash: str) -> bool:
        return await self._fetch(_BOOL, "verifyUserPassword", password_hash)
