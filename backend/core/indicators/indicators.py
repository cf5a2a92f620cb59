"""Technical indicators for signal generation.

Every function recomputes from the full input on each call; nothing is
carried between calls, so the same closes always produce the same floats.
Undefined values (not enough history yet) are returned as None.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from core.models import IndicatorConfig, KlineSeries


@dataclass(slots=True)
class IndicatorPoint:
    """Indicator value aligned with the bar at `time`."""

    time: float
    value: float | None


def _check_period(period: int) -> None:
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")


def _window_mean(closes: list[float], end: int, period: int) -> float:
    """Mean of closes[end-period+1 : end+1], summed newest first in one pass."""
    total = 0.0
    for j in range(period):
        total += closes[end - j]
    return total / period


def sma(values: Sequence[float], period: int) -> list[float | None]:
    """
    Calculate Simple Moving Average.

    Args:
        values: Sequence of price values
        period: SMA period

    Returns:
        List of SMA values (same length as input, None before index period-1)
    """
    _check_period(period)
    closes = np.asarray(values, dtype=np.float64).tolist()
    result: list[float | None] = [None] * len(closes)

    for i in range(period - 1, len(closes)):
        result[i] = _window_mean(closes, i, period)

    return result


def ema(values: Sequence[float], period: int) -> list[float | None]:
    """
    Calculate Exponential Moving Average.

    Seeded with the SMA of the first `period` values, then
    ema[i] = (value[i] - ema[i-1]) * 2/(period+1) + ema[i-1].

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        List of EMA values (same length as input, None before the seed)
    """
    _check_period(period)
    closes = np.asarray(values, dtype=np.float64).tolist()
    result: list[float | None] = [None] * len(closes)
    if len(closes) < period:
        return result

    multiplier = 2.0 / (period + 1)
    current = _window_mean(closes, period - 1, period)
    result[period - 1] = current

    for i in range(period, len(closes)):
        current = (closes[i] - current) * multiplier + current
        result[i] = current

    return result


def rsi(values: Sequence[float], period: int = 14) -> list[float | None]:
    """
    Calculate Wilder's Relative Strength Index.

    The seed averages are the mean gain/loss over the first `period` deltas.
    Smoothing then runs for every index from `period` onwards, including the
    delta at `period` itself. When the smoothed average loss is exactly zero
    the ratio RS (not RSI) is pinned to 100, so RSI reads 100 - 100/101.

    Args:
        values: Sequence of close prices
        period: RSI period

    Returns:
        List of RSI values in [0, 100] (None for indices < period, or for
        every index when fewer than period+1 values are given)
    """
    _check_period(period)
    closes = np.asarray(values, dtype=np.float64).tolist()
    result: list[float | None] = [None] * len(closes)
    if len(closes) < period + 1:
        return result

    avg_gain = 0.0
    avg_loss = 0.0
    for i in range(1, period + 1):
        change = closes[i] - closes[i - 1]
        if change > 0:
            avg_gain += change
        else:
            avg_loss += abs(change)
    avg_gain /= period
    avg_loss /= period

    for i in range(period, len(closes)):
        change = closes[i] - closes[i - 1]
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0

        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

        rs = 100.0 if avg_loss == 0 else avg_gain / avg_loss
        result[i] = 100.0 - 100.0 / (1.0 + rs)

    return result


def _align(series: KlineSeries, values: list[float | None]) -> list[IndicatorPoint]:
    return [IndicatorPoint(time=k.time, value=v) for k, v in zip(series.klines, values)]


def compute_sma(series: KlineSeries, period: int) -> list[IndicatorPoint]:
    """SMA of closes, one point per bar."""
    return _align(series, sma(series.closes(), period))


def compute_ema(series: KlineSeries, period: int) -> list[IndicatorPoint]:
    """EMA of closes, one point per bar."""
    return _align(series, ema(series.closes(), period))


def compute_rsi(series: KlineSeries, period: int = 14) -> list[IndicatorPoint]:
    """RSI of closes, one point per bar."""
    return _align(series, rsi(series.closes(), period))


def latest_value(points: Sequence[IndicatorPoint]) -> float | None:
    """Value of the last point, None when empty or undefined."""
    return points[-1].value if points else None


@dataclass(slots=True)
class IndicatorSnapshot:
    """Full indicator lines for one series plus their latest values."""

    sma: list[IndicatorPoint]
    ema_fast: list[IndicatorPoint]
    ema_slow: list[IndicatorPoint]
    rsi: list[IndicatorPoint]

    @property
    def latest_sma(self) -> float | None:
        return latest_value(self.sma)

    @property
    def latest_ema_fast(self) -> float | None:
        return latest_value(self.ema_fast)

    @property
    def latest_ema_slow(self) -> float | None:
        return latest_value(self.ema_slow)

    @property
    def latest_rsi(self) -> float | None:
        return latest_value(self.rsi)


class IndicatorCalculator:
    """Calculator for all indicators the scalping signal needs."""

    def __init__(self, config: IndicatorConfig | None = None):
        self.config = config or IndicatorConfig()

    def calculate_all(self, series: KlineSeries) -> IndicatorSnapshot:
        """
        Recompute every indicator over the whole series.

        Args:
            series: Current kline series

        Returns:
            IndicatorSnapshot with lines aligned to the series
        """
        closes = series.closes()
        return IndicatorSnapshot(
            sma=_align(series, sma(closes, self.config.sma_period)),
            ema_fast=_align(series, ema(closes, self.config.ema_fast_period)),
            ema_slow=_align(series, ema(closes, self.config.ema_slow_period)),
            rsi=_align(series, rsi(closes, self.config.rsi_period)),
        )
