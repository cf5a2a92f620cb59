"""Binance WebSocket client for real-time K-line data using picows.

One socket per stream (`{symbol}@kline_{interval}`); sharing a socket between
subscribers is the multiplexer's job.
"""

import logging
from typing import Any, Callable, Protocol

import orjson
from picows import ws_connect, WSFrame, WSTransport, WSListener, WSMsgType, WSCloseCode

from app.config import get_settings
from core.models import Kline, KlineParseError, make_kline

logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], None]
CloseHandler = Callable[[], None]


def stream_name(symbol: str, interval: str) -> str:
    """Binance stream name, also the multiplexer key."""
    return f"{symbol.lower()}@kline_{interval}"


def parse_stream_message(payload: bytes | str, expected_stream: str | None = None) -> Kline | None:
    """
    Decode one stream payload into a Kline.

    Returns:
        Kline, or None for frames that carry no kline (subscription acks)

    Raises:
        KlineParseError: undecodable JSON, missing/non-numeric fields,
            non-positive OHLC, or a kline for a different stream
    """
    try:
        data: Any = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise KlineParseError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise KlineParseError(f"unexpected payload type: {type(data).__name__}")

    # Combined-stream envelope
    if "stream" in data and isinstance(data.get("data"), dict):
        data = data["data"]

    if "result" in data or "k" not in data:
        return None

    k = data["k"]
    if not isinstance(k, dict):
        raise KlineParseError(f"kline object is not a mapping: {k!r}")

    if expected_stream is not None and "s" in data and "i" in k:
        actual = stream_name(str(data["s"]), str(k["i"]))
        if actual != expected_stream:
            raise KlineParseError(f"kline for {actual} on {expected_stream}")

    try:
        return make_kline(k["t"], k["o"], k["h"], k["l"], k["c"], k["v"])
    except KeyError as e:
        raise KlineParseError(f"missing field {e}") from e


class StreamConnection(Protocol):
    """Handle to one open live stream."""

    def close(self) -> None: ...


class StreamConnector(Protocol):
    """Opens a live stream and wires its frames and close event to handlers."""

    async def __call__(
        self,
        stream: str,
        on_message: MessageHandler,
        on_close: CloseHandler,
    ) -> StreamConnection: ...


class BinanceKlineListener(WSListener):
    """picows listener for a single Binance K-line stream."""

    def __init__(self, stream: str, on_message: MessageHandler, on_close: CloseHandler):
        self._stream = stream
        self._on_message = on_message
        self._on_close = on_close
        self._closed = False

    def on_ws_connected(self, transport: WSTransport):
        """Called when WebSocket connection is established."""
        logger.info(f"picows: K-line WebSocket connected: {self._stream}")

    def on_ws_disconnected(self, transport: WSTransport):
        """Called when WebSocket is disconnected."""
        logger.info(f"picows: K-line WebSocket closed: {self._stream}")
        if not self._closed:
            self._closed = True
            self._on_close()

    def on_ws_frame(self, transport: WSTransport, frame: WSFrame):
        """Called when a new frame is received."""
        if frame.msg_type == WSMsgType.TEXT:
            self._on_message(frame.get_payload_as_bytes())
        elif frame.msg_type == WSMsgType.PING:
            transport.send_pong(frame.get_payload_as_bytes())
        elif frame.msg_type == WSMsgType.CLOSE:
            transport.send_close(WSCloseCode.OK)
            transport.disconnect()


class PicowsKlineConnection:
    """Open picows stream."""

    def __init__(self, stream: str, transport: WSTransport):
        self.stream = stream
        self._transport = transport

    def close(self) -> None:
        """Disconnect the WebSocket."""
        self._transport.send_close(WSCloseCode.OK)
        self._transport.disconnect()


class PicowsKlineConnector:
    """StreamConnector for Binance spot K-line streams."""

    def __init__(self, base_url: str | None = None):
        self.base_url = (base_url or get_settings().binance_ws_url).rstrip("/")

    async def __call__(
        self,
        stream: str,
        on_message: MessageHandler,
        on_close: CloseHandler,
    ) -> PicowsKlineConnection:
        url = f"{self.base_url}/{stream}"
        logger.info(f"Connecting to {url}")
        transport, _ = await ws_connect(
            lambda: BinanceKlineListener(stream, on_message, on_close),
            url,
            enable_auto_ping=True,
            auto_ping_idle_timeout=30,
            auto_ping_reply_timeout=10,
        )
        return PicowsKlineConnection(stream, transport)
