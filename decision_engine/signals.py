"""Signal type shared by every indicator module."""

from dataclasses import dataclass
from enum import Enum


class Direction(str, Enum):
    """Direction a signal votes for."""

    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class Signal:
    """Output of one indicator module."""

    name: str
    direction: Direction
    strength: float  # 0.0 to 1.0
    weight: float  # module base weight
    detail: str = ""

    @classmethod
    def neutral(cls, name: str, weight: float, strength: float, detail: str) -> "Signal":
        """Build a NEUTRAL signal (used for insufficient data and no-setup cases)."""
        return cls(name=name, direction=Direction.NEUTRAL, strength=strength, weight=weight, detail=detail)

    @property
    def is_active(self) -> bool:
        return self.direction != Direction.NEUTRAL

    def describe(self) -> str:
        """Human-readable one-liner, e.g. ``[MACD_MOMENTUM] BUY (85%): ...``."""
        return f"[{self.name}] {self.direction.value} ({self.strength * 100:.0f}%): {self.detail}"
