"""Live K-line stream multiplexer.

Keeps at most one live connection per (symbol, interval) no matter how many
local consumers subscribe to it:

- First subscribe for a key opens the connection; later subscribes only add
  a callback.
- When the last subscriber of a key leaves, the connection, any in-flight
  connect attempt and any pending reconnect timer are torn down and the key
  is forgotten.
- An unexpected close (or failed connect) while subscribers remain schedules
  exactly one reconnect after a fixed delay, retried indefinitely.
- Each accepted message is fanned out to every subscriber of the key in
  arrival order. Malformed messages are logged and dropped; the connection
  stays open.

subscribe()/unsubscribe() may be called from any thread. The key map is
guarded by one lock; everything touching sockets and timers runs on the
event loop, which is either passed in or captured on the first subscribe
(that first call must then happen on the loop's thread).
"""

import asyncio
import inspect
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Awaitable, Callable, Union

from app.clients.binance_ws_kline import (
    PicowsKlineConnector,
    StreamConnection,
    StreamConnector,
    parse_stream_message,
    stream_name,
)
from app.config import get_settings
from core.models import Kline, KlineParseError
from core.subscriptions import SubscriberRegistry

logger = logging.getLogger(__name__)

KlineCallback = Callable[[Kline], Union[None, Awaitable[None]]]


class ConnectionState(str, Enum):
    """Lifecycle of one key's live connection."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    RECONNECT_PENDING = "reconnect_pending"


@dataclass
class StreamChannel:
    """Per-key state: subscribers plus the one connection serving them."""

    key: str
    subscribers: SubscriberRegistry[Kline]
    state: ConnectionState = ConnectionState.CLOSED
    connection: StreamConnection | None = None
    connect_task: asyncio.Task | None = None
    reconnect_handle: asyncio.TimerHandle | None = None
    disposed: bool = False
    messages: int = 0
    dropped: int = 0
    tasks: set[asyncio.Task] = field(default_factory=set)


class StreamMultiplexer:
    """Shares live K-line connections between any number of subscribers."""

    def __init__(
        self,
        connector: StreamConnector | None = None,
        reconnect_delay: float | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self._connector = connector or PicowsKlineConnector()
        self.reconnect_delay = (
            reconnect_delay if reconnect_delay is not None else get_settings().reconnect_delay
        )
        self._loop = loop
        self._lock = threading.Lock()
        self._channels: dict[str, StreamChannel] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def subscribe(
        self,
        symbol: str,
        interval: str,
        on_kline: KlineCallback,
    ) -> Callable[[], None]:
        """
        Subscribe to live K-lines for a symbol/interval.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            interval: K-line interval (e.g., "5m")
            on_kline: Called with each accepted Kline. Plain callbacks run
                inline on the event loop in subscription order, so a slow
                one delays the subscribers after it and the next message.
                A callback may instead return an awaitable, which is
                scheduled as a task and not awaited

        Returns:
            Function that removes this subscription (idempotent)
        """
        key = stream_name(symbol, interval)
        loop = self._get_loop()

        with self._lock:
            channel = self._channels.get(key)
            is_new = channel is None
            if is_new:
                channel = StreamChannel(key=key, subscribers=SubscriberRegistry(key))
                self._channels[key] = channel
            token = channel.subscribers.register(on_kline)

        if is_new:
            logger.info(f"Opening live stream {key}")
            self._run_on_loop(loop, self._open, channel)
        else:
            logger.debug(f"Reusing live stream {key} ({len(channel.subscribers)} subscribers)")

        return partial(self._unsubscribe, channel, token)

    def connection_state(self, symbol: str, interval: str) -> ConnectionState:
        with self._lock:
            channel = self._channels.get(stream_name(symbol, interval))
        return channel.state if channel else ConnectionState.CLOSED

    def subscriber_count(self, symbol: str, interval: str) -> int:
        with self._lock:
            channel = self._channels.get(stream_name(symbol, interval))
        return len(channel.subscribers) if channel else 0

    def active_streams(self) -> list[str]:
        with self._lock:
            return list(self._channels)

    def pending_reconnects(self) -> int:
        with self._lock:
            return sum(1 for c in self._channels.values() if c.reconnect_handle is not None)

    def stream_stats(self, symbol: str, interval: str) -> dict:
        """Get delivery counters for one stream (zeros if not subscribed)."""
        with self._lock:
            channel = self._channels.get(stream_name(symbol, interval))
        if channel is None:
            return {"subscribers": 0, "messages": 0, "dropped": 0, "state": ConnectionState.CLOSED}
        return {
            "subscribers": len(channel.subscribers),
            "messages": channel.messages,
            "dropped": channel.dropped,
            "state": channel.state,
        }

    async def close_all(self) -> None:
        """Tear down every stream and drop all subscribers."""
        with self._lock:
            channels = list(self._channels.values())
            self._channels.clear()

        for channel in channels:
            channel.disposed = True
            channel.subscribers.clear()
            self._teardown(channel)

        pending = [c.connect_task for c in channels if c.connect_task is not None]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Subscription bookkeeping (any thread)
    # ------------------------------------------------------------------

    def _unsubscribe(self, channel: StreamChannel, token: int) -> None:
        with self._lock:
            if not channel.subscribers.unregister(token):
                return
            if len(channel.subscribers) > 0:
                return
            channel.disposed = True
            if self._channels.get(channel.key) is channel:
                del self._channels[channel.key]

        logger.info(f"Last subscriber left, closing live stream {channel.key}")
        self._run_on_loop(self._get_loop(), self._teardown, channel)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @staticmethod
    def _run_on_loop(loop: asyncio.AbstractEventLoop, func: Callable, *args) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            func(*args)
        else:
            loop.call_soon_threadsafe(func, *args)

    # ------------------------------------------------------------------
    # Connection lifecycle (event loop only)
    # ------------------------------------------------------------------

    def _open(self, channel: StreamChannel) -> None:
        channel.reconnect_handle = None
        if channel.disposed or channel.connect_task is not None:
            return
        channel.state = ConnectionState.CONNECTING
        channel.connect_task = self._get_loop().create_task(self._connect(channel))

    async def _connect(self, channel: StreamChannel) -> None:
        try:
            connection = await self._connector(
                channel.key,
                partial(self._on_message, channel),
                partial(self._on_close, channel),
            )
        except asyncio.CancelledError:
            channel.connect_task = None
            raise
        except Exception as e:
            channel.connect_task = None
            logger.warning(f"Live stream {channel.key} connect failed: {e}")
            channel.state = ConnectionState.CLOSED
            self._schedule_reconnect(channel)
            return

        channel.connect_task = None
        if channel.disposed:
            connection.close()
            return
        if channel.reconnect_handle is not None:
            # Closed before the connect resumed; the reconnect is already queued
            logger.warning(f"Live stream {channel.key} closed while connecting")
            return

        channel.connection = connection
        channel.state = ConnectionState.OPEN
        logger.info(f"Live stream {channel.key} open")

    def _on_close(self, channel: StreamChannel) -> None:
        channel.connection = None
        channel.state = ConnectionState.CLOSED
        if channel.disposed:
            return
        logger.warning(f"Live stream {channel.key} closed unexpectedly")
        self._schedule_reconnect(channel)

    def _schedule_reconnect(self, channel: StreamChannel) -> None:
        if channel.disposed or channel.reconnect_handle is not None:
            return
        if len(channel.subscribers) == 0:
            return
        channel.state = ConnectionState.RECONNECT_PENDING
        channel.reconnect_handle = self._get_loop().call_later(
            self.reconnect_delay, self._open, channel
        )
        logger.info(f"Reconnecting live stream {channel.key} in {self.reconnect_delay} seconds...")

    def _teardown(self, channel: StreamChannel) -> None:
        if channel.reconnect_handle is not None:
            channel.reconnect_handle.cancel()
            channel.reconnect_handle = None
        if channel.connect_task is not None:
            channel.connect_task.cancel()
        if channel.connection is not None:
            connection, channel.connection = channel.connection, None
            try:
                connection.close()
            except Exception as e:
                logger.warning(f"Error closing live stream {channel.key}: {e}")
        channel.state = ConnectionState.CLOSED

    # ------------------------------------------------------------------
    # Delivery (event loop only)
    # ------------------------------------------------------------------

    def _on_message(self, channel: StreamChannel, payload: bytes) -> None:
        if channel.disposed:
            return
        try:
            kline = parse_stream_message(payload, expected_stream=channel.key)
        except KlineParseError as e:
            channel.dropped += 1
            logger.warning(f"Dropping malformed message on {channel.key}: {e}")
            return
        if kline is None:
            return

        channel.messages += 1
        channel.subscribers.deliver(kline, partial(self._invoke, channel))

    def _invoke(self, channel: StreamChannel, callback: KlineCallback, kline: Kline) -> None:
        result = callback(kline)
        if inspect.isawaitable(result):
            task = self._get_loop().create_task(self._safe_callback(channel.key, result))
            channel.tasks.add(task)
            task.add_done_callback(channel.tasks.discard)

    @staticmethod
    async def _safe_callback(key: str, awaitable: Awaitable[None]) -> None:
        """Safely await an async subscriber."""
        try:
            await awaitable
        except Exception as e:
            logger.error(f"Kline callback error on {key}: {e}")
