"""EMA/RSI scalping strategy (advisory signals only)."""

from core.strategy.scalping.evaluator import (
    REASON_INSUFFICIENT_DATA,
    REASON_NO_SETUP,
    evaluate_signal,
)
from core.strategy.scalping.models import ScalpingConfig
from core.strategy.scalping.patterns import (
    is_bearish_engulfing,
    is_bullish_engulfing,
    is_hammer,
    is_shooting_star,
)

__all__ = [
    "REASON_INSUFFICIENT_DATA",
    "REASON_NO_SETUP",
    "evaluate_signal",
    "ScalpingConfig",
    "is_bearish_engulfing",
    "is_bullish_engulfing",
    "is_hammer",
    "is_shooting_star",
]
