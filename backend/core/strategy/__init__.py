"""Signal strategies.

Public API:
- evaluate_signal: Evaluate the EMA/RSI scalping setup on the latest bar
- ScalpingConfig: Thresholds and level percentages for the setup
"""

from core.strategy.scalping import ScalpingConfig, evaluate_signal

__all__ = [
    "ScalpingConfig",
    "evaluate_signal",
]
