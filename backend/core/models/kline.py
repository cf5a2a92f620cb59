"""K-line (candlestick) data models.

Kline uses @dataclass(slots=True) with float fields: it is created for every
stream message and read on every indicator recompute.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


class KlineParseError(ValueError):
    """Raised when a wire record cannot be turned into a valid Kline."""


@dataclass(slots=True)
class Kline:
    """One OHLCV bar.

    Uses float for all numeric values and Unix timestamp (seconds) for time.
    """

    time: float  # Bar open time, Unix seconds
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) candle."""
        return self.close < self.open

    @property
    def body_size(self) -> float:
        """Get the absolute size of the candle body."""
        return abs(self.close - self.open)

    @property
    def range_size(self) -> float:
        """Get the full range (high - low) of the candle."""
        return self.high - self.low

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low


def _to_float(value: Any, name: str) -> float:
    if isinstance(value, bool) or value is None:
        raise KlineParseError(f"field {name!r} is not numeric: {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise KlineParseError(f"field {name!r} is not numeric: {value!r}") from e
    if not math.isfinite(result):
        raise KlineParseError(f"field {name!r} is not finite: {value!r}")
    return result


def make_kline(
    open_time_ms: Any,
    open_: Any,
    high: Any,
    low: Any,
    close: Any,
    volume: Any,
) -> Kline:
    """
    Build a validated Kline from raw wire values.

    Both the REST rows and the stream envelopes carry numbers as strings,
    the open time in milliseconds.

    Raises:
        KlineParseError: missing/non-numeric/non-finite field or
            non-positive OHLC
    """
    kline = Kline(
        time=_to_float(open_time_ms, "t") / 1000,
        open=_to_float(open_, "o"),
        high=_to_float(high, "h"),
        low=_to_float(low, "l"),
        close=_to_float(close, "c"),
        volume=_to_float(volume, "v"),
    )
    if min(kline.open, kline.high, kline.low, kline.close) <= 0:
        raise KlineParseError(f"non-positive OHLC: {kline}")
    return kline


@dataclass
class KlineSeries:
    """Ordered kline sequence for one (symbol, interval).

    Append-only in time except for the trailing bar, which the live feed
    revises in place until the bucket closes.
    """

    symbol: str
    interval: str
    klines: list[Kline] = field(default_factory=list)
    max_size: int = 1000

    def bootstrap(self, klines: Iterable[Kline]) -> None:
        """Replace the whole series with a historical snapshot."""
        self.klines = list(klines)
        self._trim()

    def merge(self, kline: Kline) -> bool:
        """
        Merge a live bar into the series.

        Returns:
            True if the series changed, False if the bar was older than the
            trailing bar and got ignored
        """
        if self.klines:
            last_time = self.klines[-1].time
            if kline.time == last_time:
                self.klines[-1] = kline
                return True
            if kline.time < last_time:
                logger.debug(
                    f"Ignoring stale bar for {self.symbol} {self.interval}: "
                    f"{kline.time} < {last_time}"
                )
                return False

        self.klines.append(kline)
        self._trim()
        return True

    def matches(self, symbol: str, interval: str) -> bool:
        return self.symbol == symbol and self.interval == interval

    def _trim(self) -> None:
        if len(self.klines) > self.max_size:
            self.klines = self.klines[-self.max_size :]

    @property
    def last(self) -> Kline | None:
        return self.klines[-1] if self.klines else None

    def closes(self) -> list[float]:
        """Get list of close prices."""
        return [k.close for k in self.klines]

    def times(self) -> list[float]:
        return [k.time for k in self.klines]

    def __len__(self) -> int:
        return len(self.klines)
