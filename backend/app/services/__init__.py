"""Business services."""

from app.services.stream_multiplexer import ConnectionState, StreamChannel, StreamMultiplexer
from app.services.chart_session import ChartSession, ChartUpdate

__all__ = [
    "ConnectionState",
    "StreamChannel",
    "StreamMultiplexer",
    "ChartSession",
    "ChartUpdate",
]
