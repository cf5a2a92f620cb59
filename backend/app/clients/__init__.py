"""Exchange clients."""

from app.clients.binance_rest import BinanceRestClient, RateLimiter, parse_rest_klines
from app.clients.binance_ws_kline import (
    BinanceKlineListener,
    PicowsKlineConnection,
    PicowsKlineConnector,
    StreamConnection,
    StreamConnector,
    parse_stream_message,
    stream_name,
)

__all__ = [
    "BinanceRestClient",
    "RateLimiter",
    "parse_rest_klines",
    "BinanceKlineListener",
    "PicowsKlineConnection",
    "PicowsKlineConnector",
    "StreamConnection",
    "StreamConnector",
    "parse_stream_message",
    "stream_name",
]
