"""EMA/RSI scalping setup evaluation.

Trend filter:
- Uptrend:   price > EMA20 > EMA50
- Downtrend: price < EMA20 < EMA50

Uptrend rules (BUY):
- RSI pullback into [30, 45]              -> MODERATE
- Bullish engulfing on the last two bars  -> STRONG
- Hammer                                  -> keeps STRONG, else MODERATE
- Price within 1% of EMA20 (support)      -> upgrades an existing BUY to STRONG

Downtrend rules (SELL) mirror these with RSI in [55, 70], bearish engulfing,
shooting star and EMA20 resistance.

Levels are fixed percentages of the current close:
SL 1%, TP1 0.8%, TP2 1.2%, TP3 1.8%.

This module is pure business logic with no I/O dependencies. The signal is
advisory only.
"""

import logging
import math
from typing import Sequence

from core.models import Kline, ScalpingSignal, SignalStrength, SignalType
from core.strategy.scalping.models import ScalpingConfig
from core.strategy.scalping.patterns import (
    is_bearish_engulfing,
    is_bullish_engulfing,
    is_hammer,
    is_shooting_star,
)

logger = logging.getLogger(__name__)

REASON_INSUFFICIENT_DATA = "Insufficient data"
REASON_NO_SETUP = "No clear setup - wait for confirmation"

_DEFAULT_CONFIG = ScalpingConfig()


def _is_missing(value: float | None) -> bool:
    return value is None or math.isnan(value)


def evaluate_signal(
    klines: Sequence[Kline],
    ema20: float | None,
    ema50: float | None,
    rsi: float | None,
    interval: str,
    config: ScalpingConfig | None = None,
) -> ScalpingSignal:
    """
    Evaluate the scalping setup on the latest bar.

    Args:
        klines: Full series, oldest first
        ema20: Latest fast EMA value
        ema50: Latest slow EMA value
        rsi: Latest RSI value
        interval: Interval label of the series (e.g. "5m")
        config: Thresholds, defaults to ScalpingConfig()

    Returns:
        ScalpingSignal; NEUTRAL/WEAK with all levels at zero when there
        are fewer than 3 bars or an indicator is undefined
    """
    cfg = config or _DEFAULT_CONFIG

    if (
        len(klines) < cfg.min_bars
        or _is_missing(ema20)
        or _is_missing(ema50)
        or _is_missing(rsi)
    ):
        return ScalpingSignal(
            type=SignalType.NEUTRAL,
            strength=SignalStrength.WEAK,
            reasons=[REASON_INSUFFICIENT_DATA],
            interval=interval,
        )

    prev = klines[-2]
    curr = klines[-1]
    price = curr.close

    reasons: list[str] = []
    signal = SignalType.NEUTRAL
    strength = SignalStrength.WEAK

    is_uptrend = price > ema20 > ema50
    is_downtrend = price < ema20 < ema50
    near_ema20 = abs(price - ema20) / price < cfg.ema_proximity

    # Both blocks always run, uptrend first. The trend conditions exclude
    # each other, so at most one of them can contribute reasons.
    if is_uptrend:
        reasons.append("Uptrend: Price > EMA20 > EMA50")

        if cfg.buy_rsi_low <= rsi <= cfg.buy_rsi_high:
            reasons.append(f"RSI Pullback: {rsi:.1f}")
            signal = SignalType.BUY
            strength = SignalStrength.MODERATE

        if is_bullish_engulfing(prev, curr):
            reasons.append("Bullish Engulfing Pattern")
            signal = SignalType.BUY
            strength = SignalStrength.STRONG

        if is_hammer(curr, cfg.max_body_to_range, cfg.min_wick_ratio):
            reasons.append("Hammer Candle")
            signal = SignalType.BUY
            if strength != SignalStrength.STRONG:
                strength = SignalStrength.MODERATE

        if near_ema20:
            reasons.append("Price near EMA20 support")
            if signal == SignalType.BUY:
                strength = SignalStrength.STRONG

    if is_downtrend:
        reasons.append("Downtrend: Price < EMA20 < EMA50")

        if cfg.sell_rsi_low <= rsi <= cfg.sell_rsi_high:
            reasons.append(f"RSI Rejection: {rsi:.1f}")
            signal = SignalType.SELL
            strength = SignalStrength.MODERATE

        if is_bearish_engulfing(prev, curr):
            reasons.append("Bearish Engulfing Pattern")
            signal = SignalType.SELL
            strength = SignalStrength.STRONG

        if is_shooting_star(curr, cfg.max_body_to_range, cfg.min_wick_ratio):
            reasons.append("Shooting Star Candle")
            signal = SignalType.SELL
            if strength != SignalStrength.STRONG:
                strength = SignalStrength.MODERATE

        if near_ema20:
            reasons.append("Price near EMA20 resistance")
            if signal == SignalType.SELL:
                strength = SignalStrength.STRONG

    stop_loss = tp1 = tp2 = tp3 = 0.0
    if signal == SignalType.BUY:
        stop_loss = price * (1 - cfg.stop_loss_pct)
        tp1 = price * (1 + cfg.take_profit_1_pct)
        tp2 = price * (1 + cfg.take_profit_2_pct)
        tp3 = price * (1 + cfg.take_profit_3_pct)
    elif signal == SignalType.SELL:
        stop_loss = price * (1 + cfg.stop_loss_pct)
        tp1 = price * (1 - cfg.take_profit_1_pct)
        tp2 = price * (1 - cfg.take_profit_2_pct)
        tp3 = price * (1 - cfg.take_profit_3_pct)
    else:
        reasons.append(REASON_NO_SETUP)

    if signal != SignalType.NEUTRAL:
        logger.debug(f"{interval} {signal.value}/{strength.value} @ {price}: {reasons}")

    return ScalpingSignal(
        type=signal,
        strength=strength,
        reasons=reasons,
        entry_price=price,
        stop_loss=stop_loss,
        take_profit_1=tp1,
        take_profit_2=tp2,
        take_profit_3=tp3,
        interval=interval,
    )
