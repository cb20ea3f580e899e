import json
import unittest

import httpx

from backend.client import HttpBackendClient
from backend.session import BackendSession
from core.config import BackendConfig
from core.errors import BackendCallError
from core.models.backend import Holding, NewsArticle, Portfolio

URL = "http://backend.test/rpc"


class HttpBackendClientTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.requests: list[httpx.Request] = []
        self.reply: dict | None = {"result": None}
        self.status = 200

    async def asyncTearDown(self):
        if hasattr(self, "client"):
            await self.client.close()

    def _handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)
        payload = {"jsonrpc": "2.0", "id": body["id"], **(self.reply or {})}
        return httpx.Response(self.status, json=payload)

    def make_client(self, token: str = "tok") -> HttpBackendClient:
        self.client = HttpBackendClient(URL, token=token, transport=httpx.MockTransport(self._handler))
        return self.client

    def sent(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)

    async def test_request_envelope(self):
        client = self.make_client()
        self.reply = {"result": []}

        await client.get_forum_posts(True)

        request = self.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), URL)
        self.assertEqual(request.headers["Authorization"], "Bearer tok")
        body = self.sent()
        self.assertEqual(body["jsonrpc"], "2.0")
        self.assertEqual(body["method"], "getForumPosts")
        self.assertEqual(body["params"], [True])

    async def test_no_token_no_auth_header(self):
        client = self.make_client(token="")
        await client.initialize_news_database()
        self.assertNotIn("Authorization", self.requests[0].headers)

    async def test_request_ids_increase(self):
        client = self.make_client()
        await client.send_message("a")
        await client.send_message("b")
        self.assertLess(self.sent(0)["id"], self.sent(1)["id"])

    async def test_decodes_camel_case_records(self):
        client = self.make_client()
        self.reply = {"result": {
            "totalValue": 1500.0,
            "holdings": [{"symbol": "AAPL", "shares": 10, "avgBuyPrice": 150.0}],
            "riskScore": 40,
        }}

        portfolio = await client.get_portfolio()

        self.assertEqual(portfolio.total_value, 1500.0)
        self.assertEqual(portfolio.holdings[0].avg_buy_price, 150.0)
        self.assertEqual(portfolio.risk_score, 40)

    async def test_null_optional_result(self):
        client = self.make_client()
        self.reply = {"result": None}
        self.assertIsNone(await client.get_caller_user_profile())

    async def test_news_article_id_alias(self):
        client = self.make_client()
        self.reply = {"result": [{
            "_id": 3, "title": "Chips rally", "symbols": ["NVDA"], "date": 10,
            "marketImpact": 2, "sentiment": "positive", "score": 4, "summary": "",
        }]}

        articles = await client.get_articles_by_symbol("NVDA")

        self.assertEqual(articles[0].id, 3)
        self.assertEqual(articles[0].market_impact, 2)
        self.assertEqual(self.sent()["params"], ["NVDA"])

    async def test_timeline_pairs(self):
        client = self.make_client()
        self.reply = {"result": [[1, 2], [3, -1]]}
        self.assertEqual(await client.get_sentiment_impact_timeline("AAPL"), [(1, 2), (3, -1)])

    async def test_records_are_sent_camel_case(self):
        client = self.make_client()
        await client.save_portfolio(Portfolio(
            total_value=10.0, holdings=[Holding(symbol="AAPL", shares=1, avg_buy_price=10.0)]
        ))
        param = self.sent()["params"][0]
        self.assertEqual(param["totalValue"], 10.0)
        self.assertEqual(param["riskScore"], 50)
        self.assertEqual(param["holdings"][0]["avgBuyPrice"], 10.0)

        await client.add_news_article_with_score(NewsArticle(id=9, title="t", date=1))
        self.assertEqual(self.sent()["params"][0]["_id"], 9)

    async def test_bool_results(self):
        client = self.make_client()
        self.reply = {"result": True}
        self.assertTrue(await client.verify_user_password("hash"))
        self.assertEqual(self.sent()["method"], "verifyUserPassword")

    async def test_rpc_error_raises_call_error(self):
        client = self.make_client()
        self.reply = {"error": {"code": -32000, "message": "Unauthorized"}}

        with self.assertRaises(BackendCallError) as ctx:
            await client.get_portfolio()

        self.assertEqual(ctx.exception.method, "getPortfolio")
        self.assertEqual(ctx.exception.code, -32000)
        self.assertIn("Unauthorized", str(ctx.exception))

    async def test_http_error_raises_call_error(self):
        client = self.make_client()
        self.status = 500
        with self.assertRaises(BackendCallError):
            await client.get_top_posts()

    async def test_transport_error_raises_call_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        self.client = HttpBackendClient(URL, transport=httpx.MockTransport(refuse))
        with self.assertRaises(BackendCallError) as ctx:
            await self.client.is_caller_admin()
        self.assertIsInstance(ctx.exception.__cause__, httpx.ConnectError)

    async def test_unexpected_shape_raises_call_error(self):
        client = self.make_client()
        self.reply = {"result": {"not": "a list"}}
        with self.assertRaises(BackendCallError):
            await client.get_news_articles()


class BackendSessionTests(unittest.IsolatedAsyncioTestCase):
    async def test_from_config_without_url(self):
        session = BackendSession.from_config(BackendConfig())
        self.assertFalse(session.available)

    async def test_from_config_with_url(self):
        session = BackendSession.from_config(
            BackendConfig(url=URL, token="t", principal="p-1", timeout="5s")
        )
        self.assertTrue(session.available)
        self.assertEqual(session.principal, "p-1")
        self.assertIsInstance(session.require(), HttpBackendClient)
        await session.close()
        self.assertFalse(session.available)


if __name__ == "__main__":
    unittest.main()
