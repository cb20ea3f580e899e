"""In-memory stand-ins for the backend, used across the test suite."""

from __future__ import annotations

from collections import Counter

from core.errors import BackendCallError
from core.models.backend import (
    Alert,
    Conversation,
    LeaderboardEntry,
    LearningProgress,
    LearningProgressView,
    Message,
    NewsArticle,
    Portfolio,
    Post,
    Prediction,
    SummaryStatistics,
    UserProfileInput,
    UserProfileView,
    now_ns,
)
from core.models.events import Event

PRINCIPAL = "aaaaa-aa"


class InMemoryBackend:
    """Implements BackendInterface over plain Python state.

    `calls` counts every method invocation by name; names listed in
    `fail` raise BackendCallError instead of running.
    """

    def __init__(self, principal: str = PRINCIPAL) -> None:
        self.principal = principal
        self.calls: Counter[str] = Counter()
        self.fail: set[str] = set()
        self.closed = False

        self.profile: UserProfileView | None = None
        self.role = "user"
        self.password_hash: str | None = None
        self.messages: list[Message] = []
        self.posts: list[Post] = []
        self.progress: LearningProgress | None = None
        self.portfolio: Portfolio | None = None
        self.predictions: list[Prediction] = []
        self.articles: list[NewsArticle] = []
        self.alerts: list[Alert] = []
        self.stock_list: list[str] = ["AAPL", "MSFT"]

    def _enter(self, name: str) -> None:
        self.calls[name] += 1
        if name in self.fail:
            raise BackendCallError(name, "injected failure")

    async def close(self) -> None:
        self.closed = True

    # -- queries --

    async def get_caller_user_profile(self) -> UserProfileView | None:
        self._enter("get_caller_user_profile")
        return self.profile

    async def get_caller_user_role(self) -> str:
        self._enter("get_caller_user_role")
        return self.role

    async def get_conversation(self) -> Conversation | None:
        self._enter("get_conversation")
        if not self.messages:
            return None
        return Conversation(messages=list(self.messages), last_updated=self.messages[-1].timestamp)

    async def get_forum_posts(self, sort_by_votes: bool) -> list[Post]:
        self._enter("get_forum_posts")
        if sort_by_votes:
            return sorted(self.posts, key=lambda p: p.votes, reverse=True)
        return sorted(self.posts, key=lambda p: p.timestamp, reverse=True)

    async def get_learning_progress(self) -> LearningProgressView | None:
        self._enter("get_learning_progress")
        if self.progress is None:
            return None
        return LearningProgressView(
            last_updated=self.progress.last_updated,
            completed_lessons=self.progress.completed_lessons,
        )

    async def get_market_alerts(self) -> list[Alert]:
        self._enter("get_market_alerts")
        return list(self.alerts)

    async def get_news_article(self, article_id: int) -> NewsArticle | None:
        self._enter("get_news_article")
        return next((a for a in self.articles if a.id == article_id), None)

    async def get_news_articles(self) -> list[NewsArticle]:
        self._enter("get_news_articles")
        return list(self.articles)

    async def get_articles_by_date_range(self, start: int, end: int) -> list[NewsArticle]:
        self._enter("get_articles_by_date_range")
        return [a for a in self.articles if start <= a.date <= end]

    async def get_articles_by_sentiment(self, sentiment: str) -> list[NewsArticle]:
        self._enter("get_articles_by_sentiment")
        return [a for a in self.articles if a.sentiment == sentiment]

    async def get_articles_by_symbol(self, symbol: str) -> list[NewsArticle]:
        self._enter("get_articles_by_symbol")
        return [a for a in self.articles if symbol in a.symbols]

    async def get_portfolio(self) -> Portfolio | None:
        self._enter("get_portfolio")
        return self.portfolio

    async def get_public_leaderboard(self) -> list[LeaderboardEntry]:
        self._enter("get_public_leaderboard")
        if not self.predictions or self.profile is None:
            return []
        correct = sum(1 for p in self.predictions if p.is_correct)
        return [LeaderboardEntry(
            display_name=self.profile.display_name,
            accuracy_rate=correct / len(self.predictions) * 100,
        )]

    async def get_public_market_alerts(self) -> list[Alert]:
        self._enter("get_public_market_alerts")
        return list(self.alerts)

    async def get_public_news_feed(self) -> list[NewsArticle]:
        self._enter("get_public_news_feed")
        return list(self.articles)

    async def get_public_stock_list(self) -> list[str]:
        self._enter("get_public_stock_list")
        return list(self.stock_list)

    async def get_sentiment_impact_timeline(self, symbol: str) -> list[tuple[int, int]]:
        self._enter("get_sentiment_impact_timeline")
        return [(a.date, a.score) for a in self.articles if symbol in a.symbols]

    async def get_summary_statistics(self) -> SummaryStatistics:
        self._enter("get_summary_statistics")
        scores = [a.score for a in self.articles]
        return SummaryStatistics(
            negative_count=sum(1 for a in self.articles if a.sentiment == "negative"),
            positive_count=sum(1 for a in self.articles if a.sentiment == "positive"),
            neutral_count=sum(1 for a in self.articles if a.sentiment == "neutral"),
            average_score=sum(scores) / len(scores) if scores else 0.0,
        )

    async def get_top_posts(self) -> list[Post]:
        self._enter("get_top_posts")
        return sorted(self.posts, key=lambda p: p.votes, reverse=True)[:5]

    async def get_user_predictions(self) -> list[Prediction]:
        self._enter("get_user_predictions")
        return list(self.predictions)

    async def get_user_profile(self, user: str) -> UserProfileView | None:
        self._enter("get_user_profile")
        return self.profile if user == self.principal else None

    async def is_caller_admin(self) -> bool:
        self._enter("is_caller_admin")
        return self.role == "admin"

    # -- mutations --

    async def add_news_article_with_score(self, article: NewsArticle) -> None:
        self._enter("add_news_article_with_score")
        self.articles.append(article)

    async def assign_caller_user_role(self, user: str, role: str) -> None:
        self._enter("assign_caller_user_role")
        if user == self.principal:
            self.role = role

    async def create_post(self, content: str, symbols: list[str]) -> None:
        self._enter("create_post")
        self.posts.append(Post(
            symbols=symbols, content=content, author=self.principal, timestamp=now_ns()
        ))

    async def initialize_news_database(self) -> None:
        self._enter("initialize_news_database")

    async def save_caller_user_profile(self, profile: UserProfileInput) -> None:
        self._enter("save_caller_user_profile")
        self.profile = UserProfileView(
            display_name=profile.display_name,
            has_password=self.password_hash is not None,
            prediction_accuracy=profile.prediction_accuracy,
            portfolio_ref=profile.portfolio_ref,
            lessons_completed=profile.lessons_completed,
        )

    async def save_learning_progress(self, progress: LearningProgress) -> None:
        self._enter("save_learning_progress")
        self.progress = progress

    async def save_portfolio(self, portfolio: Portfolio) -> None:
        self._enter("save_portfolio")
        self.portfolio = portfolio

    async def send_message(self, content: str) -> None:
        self._enter("send_message")
        self.messages.append(Message(content=content, sender=self.principal, timestamp=now_ns()))

    async def set_user_password(self, password_hash: str) -> bool:
        self._enter("set_user_password")
        self.password_hash = password_hash
        return True

    async def submit_prediction(self, prediction: Prediction) -> None:
        self._enter("submit_prediction")
        self.predictions.append(prediction)

    async def upvote_post(self, index: int) -> None:
        self._enter("upvote_post")
        post = self.posts[index]
        self.posts[index] = post.model_copy(update={"votes": post.votes + 1})

    async def verify_user_password(self, password_hash: str) -> bool:
        self._enter("verify_user_password")
        return self.password_hash == password_hash


class RecordingBus:
    """Collects published events instead of dispatching them."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    async def publish(self, event: Event) -> None:
        self.events.append(event)

    def subscribe(self, event_type, callback) -> None:
        pass

    def unsubscribe(self, event_type, callback) -> None:
        pass

    def of_type(self, event_type: str) -> list[Event]:
        return [e for e in self.events if e.type == event_type]
