"""Indicator configuration models."""

from pydantic import BaseModel, Field


class IndicatorConfig(BaseModel):
    """Indicator periods recomputed on every series update."""

    sma_period: int = Field(default=20, gt=0)
    ema_fast_period: int = Field(default=20, gt=0)
    ema_slow_period: int = Field(default=50, gt=0)
    rsi_period: int = Field(default=14, gt=0)
