"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    sma,
    ema,
    rsi,
    compute_sma,
    compute_ema,
    compute_rsi,
    latest_value,
    IndicatorPoint,
    IndicatorSnapshot,
    IndicatorCalculator,
)

__all__ = [
    "sma",
    "ema",
    "rsi",
    "compute_sma",
    "compute_ema",
    "compute_rsi",
    "latest_value",
    "IndicatorPoint",
    "IndicatorSnapshot",
    "IndicatorCalculator",
]
