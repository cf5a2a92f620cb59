"""Scalping strategy configuration."""

from pydantic import BaseModel


class ScalpingConfig(BaseModel):
    """Thresholds for the EMA/RSI/candle-pattern scalping setup."""

    min_bars: int = 3

    # RSI windows (inclusive)
    buy_rsi_low: float = 30.0
    buy_rsi_high: float = 45.0
    sell_rsi_low: float = 55.0
    sell_rsi_high: float = 70.0

    # Candle pattern shape
    max_body_to_range: float = 0.3
    min_wick_ratio: float = 2.0

    # Distance to the fast EMA, as a fraction of price
    ema_proximity: float = 0.01

    # Price levels, as fractions of the entry price
    stop_loss_pct: float = 0.01
    take_profit_1_pct: float = 0.008
    take_profit_2_pct: float = 0.012
    take_profit_3_pct: float = 0.018
