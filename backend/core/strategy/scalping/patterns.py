"""Two-bar candlestick patterns used as reversal cues."""

from core.models import Kline


def is_bullish_engulfing(prev: Kline, curr: Kline) -> bool:
    """Bearish bar followed by a bullish bar whose body engulfs it."""
    return (
        prev.is_bearish
        and curr.is_bullish
        and curr.open < prev.close
        and curr.close > prev.open
    )


def is_bearish_engulfing(prev: Kline, curr: Kline) -> bool:
    """Bullish bar followed by a bearish bar whose body engulfs it."""
    return (
        prev.is_bullish
        and curr.is_bearish
        and curr.open > prev.close
        and curr.close < prev.open
    )


def is_hammer(
    curr: Kline,
    max_body_to_range: float = 0.3,
    min_wick_ratio: float = 2.0,
) -> bool:
    """Bullish bar with a small body and a long lower wick."""
    return (
        curr.is_bullish
        and curr.close - curr.open <= curr.range_size * max_body_to_range
        and curr.open - curr.low > (curr.high - curr.close) * min_wick_ratio
    )


def is_shooting_star(
    curr: Kline,
    max_body_to_range: float = 0.3,
    min_wick_ratio: float = 2.0,
) -> bool:
    """Bearish bar with a small body and a long upper wick."""
    return (
        curr.is_bearish
        and curr.open - curr.close <= curr.range_size * max_body_to_range
        and curr.high - curr.open > (curr.close - curr.low) * min_wick_ratio
    )
