"""Binance REST API client for the historical bootstrap and watchlist."""

import asyncio
import logging
from typing import Any

import httpx

from app.config import get_settings
from core.models import Kline, KlineParseError, make_kline

logger = logging.getLogger(__name__)

# Exchange-side cap for /api/v3/klines
MAX_KLINES_LIMIT = 1000


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 1200):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


def parse_rest_klines(symbol: str, interval: str, data: Any) -> list[Kline]:
    """
    Convert positional REST rows into Klines.

    Rows that do not parse are dropped and logged; the rest are kept in
    exchange (oldest-first) order.
    """
    if not isinstance(data, list):
        raise KlineParseError(f"expected a list of rows, got {type(data).__name__}")

    klines: list[Kline] = []
    dropped = 0
    for item in data:
        try:
            if not isinstance(item, (list, tuple)) or len(item) < 6:
                raise KlineParseError(f"short row: {item!r}")
            klines.append(make_kline(*item[:6]))
        except KlineParseError as e:
            dropped += 1
            logger.warning(f"Dropping malformed kline for {symbol} {interval}: {e}")

    if dropped:
        logger.warning(f"Dropped {dropped}/{len(data)} klines for {symbol} {interval}")
    return klines


class BinanceRestClient:
    """Binance spot REST API client."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        calls_per_minute: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.binance_rest_url
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.rate_limiter = RateLimiter(calls_per_minute or settings.rest_calls_per_minute)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "BinanceRestClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.request(method, endpoint, params=params)
        response.raise_for_status()
        return response.json()

    async def fetch_history(
        self,
        symbol: str,
        interval: str,
        limit: int | None = None,
    ) -> list[Kline]:
        """
        Fetch the most recent K-lines for a symbol.

        Never raises: network errors, non-success responses and undecodable
        bodies are logged and yield an empty list, which callers treat as
        "no data yet".

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            interval: K-line interval (e.g., "5m", "1h")
            limit: Maximum number of K-lines (clamped to 1000)

        Returns:
            List of Kline objects, oldest first
        """
        if limit is None:
            limit = get_settings().history_limit
        params = {
            "symbol": symbol.upper(),
            "interval": interval,
            "limit": max(1, min(limit, MAX_KLINES_LIMIT)),
        }

        try:
            data = await self._request("GET", "/api/v3/klines", params)
            klines = parse_rest_klines(symbol, interval, data)
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            logger.error(f"Failed to fetch klines for {symbol} {interval}: {e}")
            return []
        except ValueError as e:
            logger.error(f"Failed to decode klines for {symbol} {interval}: {e}")
            return []

        logger.debug(f"Fetched {len(klines)} klines for {symbol} {interval}")
        return klines[-limit:] if limit > 0 else []

    async def fetch_popular_symbols(
        self,
        quote_asset: str | None = None,
        limit: int | None = None,
    ) -> list[str]:
        """
        Get the most traded symbols for a quote asset by 24h quote volume.

        Falls back to the configured symbol list on any failure.
        """
        settings = get_settings()
        quote_asset = quote_asset or settings.quote_asset
        limit = limit or settings.popular_symbols_limit

        try:
            data = await self._request("GET", "/api/v3/ticker/24hr")
            tickers = [
                t for t in data
                if isinstance(t, dict) and str(t.get("symbol", "")).endswith(quote_asset)
            ]
            tickers.sort(key=lambda t: float(t.get("quoteVolume", 0)), reverse=True)
            return [t["symbol"] for t in tickers[:limit]]
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, ValueError, TypeError) as e:
            logger.error(f"Failed to fetch popular symbols: {e}")
            return list(settings.fallback_symbols)
