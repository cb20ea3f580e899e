import json

from aiohttp.test_utils import AioHTTPTestCase

from backend.session import BackendSession
from core.config import AppConfig
from core.models.backend import Holding, NewsArticle, Portfolio, Prediction, UserProfileView
from main import build_services
from server import create_app
from tests.fakes import PRINCIPAL, InMemoryBackend


def make_app(session: BackendSession):
    services = build_services(AppConfig(), session=session)
    return create_app(
        config=services.config,
        bus=services.bus,
        dataset=services.dataset,
        generator=services.generator,
        data=services.data,
        advisor=services.advisor,
        playground=services.playground,
        analyzer=services.analyzer,
    )


def sse_events(text: str) -> list[tuple[str, dict]]:
    events = []
    for block in text.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


class ServerTests(AioHTTPTestCase):
    async def get_application(self):
        self.backend = InMemoryBackend()
        return make_app(BackendSession(self.backend, principal=PRINCIPAL))

    async def test_health(self):
        resp = await self.client.get("/health")
        self.assertEqual(resp.status, 200)
        self.assertEqual(await resp.json(), {"status": "ok", "backend": True, "symbols": 12})

    async def test_list_stocks(self):
        resp = await self.client.get("/stocks")
        stocks = await resp.json()
        self.assertEqual(len(stocks), 12)
        self.assertEqual(stocks[0]["symbol"], "AAPL")
        self.assertNotIn("history", stocks[0])

    async def test_stock_detail(self):
        resp = await self.client.get("/stocks/aapl")
        self.assertEqual(resp.status, 200)
        stock = await resp.json()
        self.assertEqual(stock["symbol"], "AAPL")
        self.assertEqual(len(stock["history"]), 31)

    async def test_unknown_stock(self):
        resp = await self.client.get("/stocks/NOPE")
        self.assertEqual(resp.status, 404)
        self.assertEqual(await resp.json(), {"error": "Unknown symbol"})

    async def test_price_for_unknown_symbol_uses_default_seed(self):
        resp = await self.client.get("/stocks/zzz/price")
        self.assertEqual(await resp.json(), {"symbol": "ZZZ", "price": 100.0, "known": False})

    async def test_price_stream(self):
        resp = await self.client.get("/stocks/ZZZ/stream", params={"interval": "10", "ticks": "2"})
        self.assertEqual(resp.status, 200)
        self.assertTrue(resp.headers["Content-Type"].startswith("text/event-stream"))

        events = sse_events(await resp.text())

        self.assertEqual(len(events), 3)
        self.assertTrue(all(name == "quote" for name, _ in events))
        first = events[0][1]
        self.assertEqual(first["symbol"], "ZZZ")
        self.assertEqual(first["price"], 100.0)
        self.assertEqual(first["change_percent"], 0.0)
        self.assertTrue(all(q["session_open_price"] == 100.0 for _, q in events))

    async def test_price_stream_rejects_bad_interval(self):
        resp = await self.client.get("/stocks/ZZZ/stream", params={"interval": "fast"})
        self.assertEqual(resp.status, 400)
        resp = await self.client.get("/stocks/ZZZ/stream", params={"interval": "0"})
        self.assertEqual(resp.status, 400)

    async def test_advisor_chat(self):
        resp = await self.client.post("/advisor/chat", json={"message": "hi"})
        self.assertEqual(resp.status, 200)
        reply = await resp.json()
        self.assertEqual(reply["category"], "greeting")
        self.assertTrue(reply["reply"].startswith("Hello there!"))
        self.assertTrue(reply["recorded"])
        self.assertEqual([m.content for m in self.backend.messages], ["hi"])

    async def test_advisor_chat_validation(self):
        resp = await self.client.post("/advisor/chat", data="not json")
        self.assertEqual(resp.status, 400)
        resp = await self.client.post("/advisor/chat", json=["hi"])
        self.assertEqual(resp.status, 400)
        resp = await self.client.post("/advisor/chat", json={"message": ""})
        self.assertEqual(resp.status, 400)
        self.assertIn("message", (await resp.json())["error"])

    async def test_play_prediction(self):
        resp = await self.client.post("/playground/predictions", json={"symbol": "AAPL", "direction": "up"})
        self.assertEqual(resp.status, 201)
        played = await resp.json()
        self.assertEqual(played["symbol"], "AAPL")
        self.assertEqual(played["direction"], "Up")
        self.assertIn(played["outcome"]["outcome"], ("Up", "Down", "Flat"))
        self.assertTrue(played["recorded"])
        self.assertEqual(len(self.backend.predictions), 1)

    async def test_play_prediction_errors(self):
        resp = await self.client.post("/playground/predictions", json={"symbol": "NOPE", "direction": "Up"})
        self.assertEqual(resp.status, 404)
        resp = await self.client.post("/playground/predictions", json={"symbol": "AAPL", "direction": "sideways"})
        self.assertEqual(resp.status, 400)
        resp = await self.client.post("/playground/predictions", json={"symbol": "AAPL"})
        self.assertEqual(resp.status, 400)

    async def test_portfolio_analysis(self):
        self.backend.portfolio = Portfolio(holdings=[Holding(symbol="ZZZ", shares=3, avg_buy_price=50.0)])
        resp = await self.client.get("/portfolio/analysis")
        self.assertEqual(resp.status, 200)
        analysis = await resp.json()
        self.assertEqual(analysis["total_value"], 300.0)
        self.assertEqual(analysis["holdings"][0]["sector"], "Other")

    async def test_portfolio_analysis_backend_failure(self):
        self.backend.fail.add("get_portfolio")
        resp = await self.client.get("/portfolio/analysis")
        self.assertEqual(resp.status, 502)

    async def test_forum_post_and_upvote(self):
        resp = await self.client.post("/forum/posts", json={"content": "AAPL looks strong", "symbols": ["aapl"]})
        self.assertEqual(resp.status, 201)

        posts = await (await self.client.get("/forum/posts")).json()
        self.assertEqual(len(posts), 1)
        self.assertEqual(posts[0]["symbols"], ["AAPL"])
        self.assertEqual(posts[0]["votes"], 0)

        resp = await self.client.post("/forum/posts/0/upvote")
        self.assertEqual(resp.status, 200)

        posts = await (await self.client.get("/forum/posts", params={"sort": "votes"})).json()
        self.assertEqual(posts[0]["votes"], 1)
        top = await (await self.client.get("/forum/top")).json()
        self.assertEqual(top[0]["votes"], 1)

    async def test_forum_validation(self):
        resp = await self.client.post("/forum/posts/0/upvote")
        self.assertEqual(resp.status, 404)
        resp = await self.client.post("/forum/posts/first/upvote")
        self.assertEqual(resp.status, 400)
        resp = await self.client.post("/forum/posts", json={"symbols": ["AAPL"]})
        self.assertEqual(resp.status, 400)
        resp = await self.client.post("/forum/posts", json={"content": "hi", "symbols": "AAPL"})
        self.assertEqual(resp.status, 400)
        resp = await self.client.get("/forum/posts", params={"sort": "hot"})
        self.assertEqual(resp.status, 400)
        self.assertEqual(self.backend.calls["upvote_post"], 0)

    async def test_news_routes(self):
        self.backend.articles = [NewsArticle(id=7, title="Rates hold", symbols=["AAPL"], date=5, score=3)]

        feed = await (await self.client.get("/news")).json()
        self.assertEqual([a["id"] for a in feed], [7])

        resp = await self.client.get("/news/7")
        self.assertEqual((await resp.json())["title"], "Rates hold")
        resp = await self.client.get("/news/8")
        self.assertEqual(resp.status, 404)

        resp = await self.client.get("/news/timeline/aapl")
        self.assertEqual(await resp.json(), {"symbol": "AAPL", "points": [{"date": 5, "score": 3}]})

    async def test_leaderboard_and_accuracy(self):
        self.backend.profile = UserProfileView(display_name="Ana")
        self.backend.predictions = [
            Prediction(user=PRINCIPAL, stock_symbol="AAPL", direction="Up", ai_prediction="Down", actual_outcome="Up"),
            Prediction(user=PRINCIPAL, stock_symbol="MSFT", direction="Up", ai_prediction="Up", actual_outcome="Down"),
        ]

        resp = await self.client.get("/leaderboard")
        self.assertEqual(await resp.json(), [{"display_name": "Ana", "accuracy_rate": 50.0}])
        resp = await self.client.get("/playground/predictions")
        listing = await resp.json()
        self.assertEqual(listing["accuracy"], 50)
        self.assertEqual(len(listing["predictions"]), 2)

    async def test_event_stream_replays_recent_events(self):
        await self.client.post("/advisor/chat", json={"message": "hi"})

        resp = await self.client.get("/events", params={"replay": "5", "limit": "2"})
        events = sse_events(await resp.text())

        self.assertEqual([name for name, _ in events], ["cache.invalidated", "advisor.replied"])
        self.assertEqual(events[1][1]["payload"]["category"], "greeting")

    async def test_event_stream_rejects_bad_params(self):
        resp = await self.client.get("/events", params={"replay": "all"})
        self.assertEqual(resp.status, 400)


class OfflineServerTests(AioHTTPTestCase):
    async def get_application(self):
        return make_app(BackendSession())

    async def test_health_reports_no_backend(self):
        resp = await self.client.get("/health")
        self.assertFalse((await resp.json())["backend"])

    async def test_portfolio_analysis_unavailable(self):
        resp = await self.client.get("/portfolio/analysis")
        self.assertEqual(resp.status, 503)
        self.assertEqual(await resp.json(), {"error": "Backend actor not available"})

    async def test_advisor_works_offline(self):
        resp = await self.client.post("/advisor/chat", json={"message": "tell me about bitcoin"})
        reply = await resp.json()
        self.assertEqual(reply["category"], "crypto")
        self.assertFalse(reply["recorded"])

    async def test_community_routes_unavailable(self):
        for path in ("/forum/posts", "/forum/top", "/news", "/news/1", "/news/timeline/AAPL", "/leaderboard"):
            resp = await self.client.get(path)
            self.assertEqual(resp.status, 503, path)
        resp = await self.client.post("/forum/posts", json={"content": "hi"})
        self.assertEqual(resp.status, 503)
