"""Data models."""

from core.models.config import IndicatorConfig
from core.models.kline import Kline, KlineParseError, KlineSeries, make_kline
from core.models.signal import (
    LeveragedReturns,
    ScalpingSignal,
    SignalStrength,
    SignalType,
)

__all__ = [
    "IndicatorConfig",
    "Kline",
    "KlineParseError",
    "KlineSeries",
    "make_kline",
    "LeveragedReturns",
    "ScalpingSignal",
    "SignalStrength",
    "SignalType",
]
