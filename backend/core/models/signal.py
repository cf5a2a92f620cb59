"""Scalping signal models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SignalType(str, Enum):
    """Advised trade direction."""

    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


class SignalStrength(str, Enum):
    """Signal conviction."""

    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"


class LeveragedReturns(BaseModel):
    """Percentage return of each price level at a given leverage."""

    model_config = ConfigDict(frozen=True)

    leverage: float
    stop_loss: float
    take_profit_1: float
    take_profit_2: float
    take_profit_3: float


class ScalpingSignal(BaseModel):
    """Advisory scalping signal with its full diagnostic trail."""

    model_config = ConfigDict(frozen=True)

    type: SignalType = SignalType.NEUTRAL
    strength: SignalStrength = SignalStrength.WEAK
    reasons: list[str] = Field(default_factory=list)
    entry_price: float = 0.0
    stop_loss: float = 0.0
    take_profit_1: float = 0.0
    take_profit_2: float = 0.0
    take_profit_3: float = 0.0
    interval: str = ""

    @property
    def is_actionable(self) -> bool:
        return self.type != SignalType.NEUTRAL

    def leveraged_returns(self, leverage: float = 10.0) -> LeveragedReturns:
        """
        Percentage return of every level relative to the entry price.

        Levels are zero for a neutral signal, so all returns are zero too.
        """

        def pct(level: float) -> float:
            if self.entry_price <= 0 or not self.is_actionable:
                return 0.0
            return (level - self.entry_price) / self.entry_price * 100 * leverage

        return LeveragedReturns(
            leverage=leverage,
            stop_loss=pct(self.stop_loss),
            take_profit_1=pct(self.take_profit_1),
            take_profit_2=pct(self.take_profit_2),
            take_profit_3=pct(self.take_profit_3),
        )
