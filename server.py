"""Lightweight aiohttp server -- the FinIQ HTTP API.

Exposes the demo market, live simulated prices, the advisor, the portfolio
analyzer, the prediction playground and the event stream.
No framework magic, no middleware stack.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING

from aiohttp import web

from core.errors import BackendCallError, BackendUnavailableError, UnknownSymbolError
from core.models.events import Event
from core.models.market import LiveQuote
from market.polling import DEFAULT_INTERVAL_MS, LivePriceSubscription
from market.predictions import prediction_accuracy

if TYPE_CHECKING:
    from advisor.service import AdvisorService
    from backend.queries import DataAccess
    from core.bus import AsyncIOBus
    from core.config import AppConfig
    from market.dataset import MarketDataset
    from market.live_price import LivePriceGenerator
    from market.playground import PlaygroundService
    from portfolio.analyzer import PortfolioAnalyzer

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def create_app(
    config: AppConfig,
    bus: AsyncIOBus,
    dataset: MarketDataset,
    generator: LivePriceGenerator,
    data: DataAccess,
    advisor: AdvisorService,
    playground: PlaygroundService,
    analyzer: PortfolioAnalyzer,
) -> web.Application:
    """Create and configure the aiohttp application."""
    app = web.Application()

    # Store references for route handlers
    app["config"] = config
    app["bus"] = bus
    app["dataset"] = dataset
    app["generator"] = generator
    app["data"] = data
    app["advisor"] = advisor
    app["playground"] = playground
    app["analyzer"] = analyzer

    # Register routes
    app.router.add_get("/health", handle_health)
    app.router.add_get("/stocks", handle_list_stocks)
    app.router.add_get("/stocks/{symbol}", handle_get_stock)
    app.router.add_get("/stocks/{symbol}/price", handle_get_price)
    app.router.add_get("/stocks/{symbol}/stream", handle_stream_prices)
    app.router.add_post("/advisor/chat", handle_advisor_chat)
    app.router.add_get("/portfolio/analysis", handle_portfolio_analysis)
    app.router.add_post("/playground/predictions", handle_play_prediction)
    app.router.add_get("/playground/predictions", handle_list_predictions)
    app.router.add_get("/forum/posts", handle_list_posts)
    app.router.add_post("/forum/posts", handle_create_post)
    app.router.add_post("/forum/posts/{index}/upvote", handle_upvote_post)
    app.router.add_get("/forum/top", handle_top_posts)
    app.router.add_get("/news", handle_news_feed)
    app.router.add_get(r"/news/{article_id:\d+}", handle_news_article)
    app.router.add_get("/news/timeline/{symbol}", handle_sentiment_timeline)
    app.router.add_get("/leaderboard", handle_leaderboard)
    app.router.add_get("/events", handle_stream_events)

    return app


def _backend_error(exc: Exception) -> web.Response:
    """Map data-access failures to HTTP status codes."""
    if isinstance(exc, BackendUnavailableError):
        return web.json_response({"error": str(exc)}, status=503)
    return web.json_response({"error": str(exc)}, status=502)


async def _read_json(request: web.Request, *fields: str) -> dict | web.Response:
    """Parse a JSON object body; an error response when invalid."""
    try:
        body = await request.json()
    except json.JSONDecodeError:
        return web.json_response({"error": "Invalid JSON"}, status=400)

    if not isinstance(body, dict):
        return web.json_response({"error": "JSON body must be an object"}, status=400)

    missing = [f for f in fields if not body.get(f)]
    if missing:
        return web.json_response(
            {"error": f"Missing required fields: {', '.join(missing)}"},
            status=400,
        )
    return body


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------

async def handle_health(request: web.Request) -> web.Response:
    """GET /health -- health check."""
    data: DataAccess = request.app["data"]
    dataset: MarketDataset = request.app["dataset"]
    return web.json_response({
        "status": "ok",
        "backend": data.available,
        "symbols": len(dataset),
    })


async def handle_list_stocks(request: web.Request) -> web.Response:
    """GET /stocks -- dataset summary without history."""
    dataset: MarketDataset = request.app["dataset"]
    return web.json_response([s.model_dump(mode="json") for s in dataset.summaries()])


async def handle_get_stock(request: web.Request) -> web.Response:
    """GET /stocks/{symbol} -- one stock with its daily history."""
    dataset: MarketDataset = request.app["dataset"]
    stock = dataset.get(request.match_info["symbol"])
    if stock is None:
        return web.json_response({"error": "Unknown symbol"}, status=404)
    return web.json_response(stock.model_dump(mode="json"))


async def handle_get_price(request: web.Request) -> web.Response:
    """GET /stocks/{symbol}/price -- next simulated live price.

    Symbols outside the dataset start from the default seed price.
    """
    generator: LivePriceGenerator = request.app["generator"]
    symbol = request.match_info["symbol"].upper()
    return web.json_response({
        "symbol": symbol,
        "price": generator.next_price(symbol),
        "known": symbol in generator.dataset,
    })


async def handle_stream_prices(request: web.Request) -> web.StreamResponse:
    """GET /stocks/{symbol}/stream -- Server-Sent Events stream of live quotes.

    Query params: interval (ms, default 3000), ticks (stop after N ticks).
    The subscription belongs to this connection and stops when it closes.
    """
    generator: LivePriceGenerator = request.app["generator"]

    try:
        interval_ms = int(request.query.get("interval", DEFAULT_INTERVAL_MS))
        max_ticks = int(request.query["ticks"]) if "ticks" in request.query else None
    except ValueError:
        return web.json_response({"error": "interval and ticks must be integers"}, status=400)
    if interval_ms <= 0:
        return web.json_response({"error": "interval must be positive"}, status=400)

    response = web.StreamResponse(status=200, reason="OK", headers=SSE_HEADERS)
    await response.prepare(request)

    queue: asyncio.Queue[LiveQuote] = asyncio.Queue()
    subscription = LivePriceSubscription(
        generator,
        request.match_info["symbol"],
        interval_ms=interval_ms,
        on_tick=queue.put,
    )

    try:
        quote = subscription.start()
        await response.write(f"event: quote\ndata: {quote.model_dump_json()}\n\n".encode())
        sent = 0
        while max_ticks is None or sent < max_ticks:
            quote = await queue.get()
            sent += 1
            await response.write(f"event: quote\ndata: {quote.model_dump_json()}\n\n".encode())
    except (asyncio.CancelledError, ConnectionResetError):
        pass
    finally:
        await subscription.aclose()
        logger.debug("Price stream closed for %s", subscription.symbol)

    return response


async def handle_advisor_chat(request: web.Request) -> web.Response:
    """POST /advisor/chat -- ask the rule-based advisor.

    Body: {"message": "How is my portfolio doing?"}
    """
    advisor: AdvisorService = request.app["advisor"]

    body = await _read_json(request, "message")
    if isinstance(body, web.Response):
        return body

    reply = await advisor.handle_message(str(body["message"]))
    return web.json_response(reply.model_dump(mode="json"))


async def handle_portfolio_analysis(request: web.Request) -> web.Response:
    """GET /portfolio/analysis -- the saved portfolio valued at live prices."""
    analyzer: PortfolioAnalyzer = request.app["analyzer"]
    data: DataAccess = request.app["data"]

    try:
        analysis = await analyzer.analyze_saved(data)
    except (BackendUnavailableError, BackendCallError) as exc:
        return _backend_error(exc)
    return web.json_response(analysis.model_dump(mode="json"))


async def handle_play_prediction(request: web.Request) -> web.Response:
    """POST /playground/predictions -- play one prediction round.

    Body: {"symbol": "AAPL", "direction": "Up"}
    """
    playground: PlaygroundService = request.app["playground"]

    body = await _read_json(request, "symbol", "direction")
    if isinstance(body, web.Response):
        return body

    try:
        played = await playground.play(str(body["symbol"]), str(body["direction"]))
    except UnknownSymbolError as exc:
        return web.json_response({"error": str(exc)}, status=404)
    except ValueError as exc:
        return web.json_response({"error": str(exc)}, status=400)

    return web.json_response(played.to_dict(), status=201)


async def handle_list_predictions(request: web.Request) -> web.Response:
    """GET /playground/predictions -- the caller's rounds and overall accuracy."""
    data: DataAccess = request.app["data"]

    try:
        predictions = await data.get_user_predictions()
    except (BackendUnavailableError, BackendCallError) as exc:
        return _backend_error(exc)
    return web.json_response({
        "accuracy": prediction_accuracy(predictions),
        "predictions": [p.model_dump(mode="json") for p in predictions],
    })


# ---------------------------------------------------------------------------
# Community: forum, news, leaderboard
# ---------------------------------------------------------------------------

async def handle_list_posts(request: web.Request) -> web.Response:
    """GET /forum/posts -- all posts, newest first or by votes with ?sort=votes."""
    data: DataAccess = request.app["data"]

    sort = request.query.get("sort", "recent")
    if sort not in ("recent", "votes"):
        return web.json_response({"error": "sort must be recent or votes"}, status=400)

    try:
        posts = await data.get_forum_posts(sort_by_votes=sort == "votes")
    except (BackendUnavailableError, BackendCallError) as exc:
        return _backend_error(exc)
    return web.json_response([p.model_dump(mode="json") for p in posts])


async def handle_create_post(request: web.Request) -> web.Response:
    """POST /forum/posts -- publish a post.

    Body: {"content": "AAPL looks strong", "symbols": ["AAPL"]}
    """
    data: DataAccess = request.app["data"]

    body = await _read_json(request, "content")
    if isinstance(body, web.Response):
        return body

    symbols = body.get("symbols", [])
    if not isinstance(symbols, list) or not all(isinstance(s, str) for s in symbols):
        return web.json_response({"error": "symbols must be a list of strings"}, status=400)

    try:
        await data.create_post(str(body["content"]), [s.upper() for s in symbols])
    except (BackendUnavailableError, BackendCallError) as exc:
        return _backend_error(exc)
    return web.json_response({"status": "created"}, status=201)


async def handle_upvote_post(request: web.Request) -> web.Response:
    """POST /forum/posts/{index}/upvote -- add one vote to a post."""
    data: DataAccess = request.app["data"]

    try:
        index = int(request.match_info["index"])
    except ValueError:
        return web.json_response({"error": "index must be an integer"}, status=400)

    try:
        posts = await data.get_forum_posts(refresh=True)
        if not 0 <= index < len(posts):
            return web.json_response({"error": "Unknown post"}, status=404)
        await data.upvote_post(index)
    except (BackendUnavailableError, BackendCallError) as exc:
        return _backend_error(exc)
    return web.json_response({"status": "upvoted", "index": index})


async def handle_top_posts(request: web.Request) -> web.Response:
    """GET /forum/top -- the most upvoted posts."""
    data: DataAccess = request.app["data"]

    try:
        posts = await data.get_top_posts()
    except (BackendUnavailableError, BackendCallError) as exc:
        return _backend_error(exc)
    return web.json_response([p.model_dump(mode="json") for p in posts])


async def handle_news_feed(request: web.Request) -> web.Response:
    """GET /news -- the public news feed."""
    data: DataAccess = request.app["data"]

    try:
        articles = await data.get_public_news_feed()
    except (BackendUnavailableError, BackendCallError) as exc:
        return _backend_error(exc)
    return web.json_response([a.model_dump(mode="json") for a in articles])


async def handle_news_article(request: web.Request) -> web.Response:
    """GET /news/{article_id} -- one article."""
    data: DataAccess = request.app["data"]

    try:
        article = await data.get_news_article(int(request.match_info["article_id"]))
    except (BackendUnavailableError, BackendCallError) as exc:
        return _backend_error(exc)
    if article is None:
        return web.json_response({"error": "Unknown article"}, status=404)
    return web.json_response(article.model_dump(mode="json"))


async def handle_sentiment_timeline(request: web.Request) -> web.Response:
    """GET /news/timeline/{symbol} -- (date, score) points for one symbol."""
    data: DataAccess = request.app["data"]
    symbol = request.match_info["symbol"].upper()

    try:
        timeline = await data.get_sentiment_impact_timeline(symbol)
    except (BackendUnavailableError, BackendCallError) as exc:
        return _backend_error(exc)
    return web.json_response({
        "symbol": symbol,
        "points": [{"date": date, "score": score} for date, score in timeline],
    })


async def handle_leaderboard(request: web.Request) -> web.Response:
    """GET /leaderboard -- public prediction accuracy ranking."""
    data: DataAccess = request.app["data"]

    try:
        entries = await data.get_public_leaderboard()
    except (BackendUnavailableError, BackendCallError) as exc:
        return _backend_error(exc)
    return web.json_response([e.model_dump(mode="json") for e in entries])


async def handle_stream_events(request: web.Request) -> web.StreamResponse:
    """GET /events -- Server-Sent Events stream for real-time updates.

    Subscribes to all events on the bus and streams them to the client.
    Query params: replay (send the last N events first), limit (close after
    N events in total).
    """
    bus: AsyncIOBus = request.app["bus"]

    try:
        replay = int(request.query.get("replay", 0))
        limit = int(request.query["limit"]) if "limit" in request.query else None
    except ValueError:
        return web.json_response({"error": "replay and limit must be integers"}, status=400)

    response = web.StreamResponse(status=200, reason="OK", headers=SSE_HEADERS)
    await response.prepare(request)

    queue: asyncio.Queue[Event] = asyncio.Queue()
    for event in bus.recent(limit=replay):
        queue.put_nowait(event)

    async def forward_event(event: Event) -> None:
        await queue.put(event)

    bus.subscribe("*", forward_event)
    logger.debug("Event stream opened (%d listener(s))", bus.subscriber_count("*"))

    sent = 0
    try:
        while limit is None or sent < limit:
            event = await queue.get()
            data = event.model_dump_json()
            await response.write(f"event: {event.type}\ndata: {data}\n\n".encode())
            sent += 1
    except (asyncio.CancelledError, ConnectionResetError):
        pass
    finally:
        bus.unsubscribe("*", forward_event)

    return response
