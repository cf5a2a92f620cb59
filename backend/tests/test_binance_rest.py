"""Tests for the Binance REST client."""

import asyncio

import httpx
import pytest

from app.clients.binance_rest import BinanceRestClient, RateLimiter, parse_rest_klines


def kline_row(open_time_ms: int, o="100", h="101", l="99", c="100.5", v="10") -> list:
    """Helper to create a REST kline row (extra trailing fields like the exchange)."""
    return [open_time_ms, o, h, l, c, v, open_time_ms + 59_999, "1000", 12, "5", "500", "0"]


def make_client(handler) -> BinanceRestClient:
    return BinanceRestClient(
        base_url="https://api.test",
        calls_per_minute=60_000,
        transport=httpx.MockTransport(handler),
    )


class TestParseRestKlines:
    """Tests for positional row parsing."""

    def test_converts_fields(self):
        klines = parse_rest_klines("BTCUSDT", "1m", [kline_row(1_700_000_000_000)])

        assert len(klines) == 1
        k = klines[0]
        assert k.time == 1_700_000_000
        assert (k.open, k.high, k.low, k.close, k.volume) == (100.0, 101.0, 99.0, 100.5, 10.0)

    def test_filters_malformed_rows(self):
        data = [
            kline_row(0),
            kline_row(60_000, o="oops"),
            [120_000, "1"],
            kline_row(180_000, l="0"),
            kline_row(240_000, c="NaN"),
            "garbage",
            kline_row(300_000),
        ]

        klines = parse_rest_klines("BTCUSDT", "1m", data)

        assert [k.time for k in klines] == [0, 300]

    def test_rejects_non_list_body(self):
        with pytest.raises(ValueError):
            parse_rest_klines("BTCUSDT", "1m", {"code": -1121, "msg": "Invalid symbol."})


class TestFetchHistory:
    """Tests for fetch_history."""

    @pytest.mark.asyncio
    async def test_fetch_history_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[kline_row(i * 60_000) for i in range(3)])

        async with make_client(handler) as client:
            klines = await client.fetch_history("btcusdt", "1m", 3)

        assert seen["path"] == "/api/v3/klines"
        assert seen["params"] == {"symbol": "BTCUSDT", "interval": "1m", "limit": "3"}
        assert [k.time for k in klines] == [0, 60, 120]

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["limit"] = request.url.params["limit"]
            return httpx.Response(200, json=[])

        async with make_client(handler) as client:
            await client.fetch_history("BTCUSDT", "1m", 5000)

        assert seen["limit"] == "1000"

    @pytest.mark.asyncio
    async def test_result_never_exceeds_limit(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[kline_row(i * 60_000) for i in range(10)])

        async with make_client(handler) as client:
            klines = await client.fetch_history("BTCUSDT", "1m", 4)

        assert [k.time for k in klines] == [360, 420, 480, 540]

    @pytest.mark.asyncio
    async def test_http_error_returns_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"msg": "boom"})

        async with make_client(handler) as client:
            assert await client.fetch_history("BTCUSDT", "1m", 10) == []

    @pytest.mark.asyncio
    async def test_network_error_returns_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            assert await client.fetch_history("BTCUSDT", "1m", 10) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.InvalidURL("Invalid non-printable ASCII character in URL"), httpx.StreamError("stream consumed")],
    )
    async def test_non_http_httpx_errors_return_empty(self, error):
        def handler(request: httpx.Request) -> httpx.Response:
            raise error

        async with make_client(handler) as client:
            assert await client.fetch_history("BTCUSDT", "1m", 10) == []

    @pytest.mark.asyncio
    async def test_bad_json_returns_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>not json</html>")

        async with make_client(handler) as client:
            assert await client.fetch_history("BTCUSDT", "1m", 10) == []

    @pytest.mark.asyncio
    async def test_error_body_returns_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"code": -1121, "msg": "Invalid symbol."})

        async with make_client(handler) as client:
            assert await client.fetch_history("NOPE", "1m", 10) == []


class TestPopularSymbols:
    """Tests for fetch_popular_symbols."""

    @pytest.mark.asyncio
    async def test_sorted_by_quote_volume(self):
        tickers = [
            {"symbol": "ETHUSDT", "quoteVolume": "500"},
            {"symbol": "BTCUSDT", "quoteVolume": "900"},
            {"symbol": "ETHBTC", "quoteVolume": "99999"},
            {"symbol": "SOLUSDT", "quoteVolume": "700"},
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v3/ticker/24hr"
            return httpx.Response(200, json=tickers)

        async with make_client(handler) as client:
            symbols = await client.fetch_popular_symbols(quote_asset="USDT", limit=2)

        assert symbols == ["BTCUSDT", "SOLUSDT"]

    @pytest.mark.asyncio
    async def test_fallback_on_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with make_client(handler) as client:
            symbols = await client.fetch_popular_symbols()

        assert symbols == ["BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT"]

    @pytest.mark.asyncio
    async def test_fallback_on_invalid_url(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("Invalid URL")

        async with make_client(handler) as client:
            symbols = await client.fetch_popular_symbols()

        assert symbols == ["BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT"]


class TestRateLimiter:
    """Tests for RateLimiter."""

    @pytest.mark.asyncio
    async def test_acquire_spaces_calls(self):
        limiter = RateLimiter(calls_per_minute=1200)  # 50ms apart
        loop = asyncio.get_running_loop()

        start = loop.time()
        await limiter.acquire()
        await limiter.acquire()
        await limiter.acquire()

        assert loop.time() - start >= 0.09
