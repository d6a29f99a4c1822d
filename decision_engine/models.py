"""Data models for the multi-signal decision engine."""

from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class Action(str, Enum):
    """Trading action emitted by the engine."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class DecisionState(str, Enum):
    """States of the decision orchestrator, in evaluation order."""

    CHECK_FUNDS = "CHECK_FUNDS"
    CHECK_SESSION_CAP = "CHECK_SESSION_CAP"
    CHECK_COOLDOWN = "CHECK_COOLDOWN"
    SCORE_SIGNALS = "SCORE_SIGNALS"
    EVALUATE_SELL = "EVALUATE_SELL"
    EVALUATE_BUY = "EVALUATE_BUY"
    SIZE_POSITION = "SIZE_POSITION"
    EMIT = "EMIT"


@dataclass(frozen=True)
class Candle:
    """One OHLC(V) bar."""

    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @classmethod
    def from_ohlcv(cls, row: List[float]) -> "Candle":
        """Build a candle from a ccxt row [ts, o, h, l, c, v]."""
        return cls(
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]) if len(row) > 5 and row[5] is not None else 0.0,
        )


@dataclass(frozen=True)
class MacdReading:
    """MACD triple plus histogram slope."""

    value: float
    signal: float
    histogram: float
    slope: float = 0.0


@dataclass(frozen=True)
class MarketSnapshot:
    """Immutable market statistics for one symbol at one evaluation instant."""

    symbol: str
    price: float
    change_1h: float = 0.0  # percent
    change_24h: float = 0.0
    change_7d: float = 0.0
    high_24h: float = 0.0
    low_24h: float = 0.0
    volume_24h: float = 0.0
    range_percent: float = 50.0  # price position inside the 24h range, 0-100
    volatility: float = 0.0  # 24h range as % of price
    volume_ratio: float = 0.0
    price_history: Optional[List[float]] = None  # oldest -> newest
    candles: Optional[List[Candle]] = None
    rsi: Optional[float] = None
    rsi_history: Optional[List[float]] = None
    macd: Optional[MacdReading] = None
    volume_history: Optional[List[float]] = None
    timestamp: Optional[int] = None  # Unix milliseconds

    def with_history(self, price_history: List[float]) -> "MarketSnapshot":
        """Return a copy carrying the given close-price history."""
        return replace(self, price_history=list(price_history))


PERSONALITY_ADJUSTMENTS: Dict[str, Dict[str, float]] = {
    "aggressive": {"aggression": 20, "timing_sensitivity": -15},
    "cautious": {"risk_tolerance": -20, "timing_sensitivity": 20},
    "calculating": {"pattern_recognition": 15, "ichimoku_mastery": 20, "timing_sensitivity": 25},
    "contrarian": {"contrarian_bias": 25, "smc_awareness": 20},
    "deceptive": {"contrarian_bias": 25, "smc_awareness": 20},
    "chaotic": {"timing_sensitivity": -30, "aggression": 10},
}


@dataclass(frozen=True)
class AgentTraits:
    """Agent trait vector, every value in [0, 100]."""

    # Core traits
    aggression: float = 50.0
    risk_tolerance: float = 50.0
    pattern_recognition: float = 65.0
    contrarian_bias: float = 30.0
    timing_sensitivity: float = 60.0
    # Skill traits
    ema_skill: float = 60.0
    smc_awareness: float = 50.0
    ichimoku_mastery: float = 45.0
    atr_discipline: float = 70.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentTraits":
        """
        Build traits from a mapping, ignoring unknown keys.

        Accepts both snake_case and camelCase keys (``riskTolerance``).

        Args:
            data: Trait mapping

        Returns:
            AgentTraits with missing values left at their defaults
        """
        names = {f: f for f in cls.__dataclass_fields__}
        for f in list(names):
            head, *rest = f.split("_")
            names[head + "".join(part.title() for part in rest)] = f
        values = {}
        for key, value in (data or {}).items():
            if key in names and value is not None:
                values[names[key]] = float(value)
        return cls(**values)

    def apply_personality(self, personality: Optional[str]) -> "AgentTraits":
        """
        Return traits adjusted for a personality archetype.

        Args:
            personality: Archetype name (aggressive, cautious, calculating,
                contrarian, deceptive, chaotic). Anything else is a no-op.

        Returns:
            New AgentTraits with each adjusted value clamped to [0, 100]
        """
        adjustments = PERSONALITY_ADJUSTMENTS.get((personality or "").lower())
        if not adjustments:
            return self
        changes = {
            name: max(0.0, min(100.0, getattr(self, name) + delta))
            for name, delta in adjustments.items()
        }
        return replace(self, **changes)


@dataclass(frozen=True)
class OpenPosition:
    """Open spot position held by an agent."""

    token: str
    quantity: float
    entry_price: Optional[float] = None
    entry_cost: Optional[float] = None


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Cash and open-position state supplied fresh for each evaluation."""

    cash_balance: float
    position_value: float = 0.0
    position: Optional[OpenPosition] = None


@dataclass(frozen=True)
class Decision:
    """Final engine output for one agent at one instant."""

    action: Action
    confidence: int
    suggested_amount: float  # % of available capital, 0-100
    reasoning: str
    technical_analysis: str = ""
    risk_assessment: str = ""
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    trade_amount: float = 0.0  # quote currency, BUY only
    regime: Optional[str] = None
    trend_regime: Optional[str] = None
    market_structure: Optional[str] = None
    active_signals: List[str] = field(default_factory=list)
    confluence_score: float = 0.0
    terminal_state: DecisionState = DecisionState.EMIT
    symbol: Optional[str] = None
    timestamp: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        data = asdict(self)
        data["action"] = self.action.value
        data["terminal_state"] = self.terminal_state.value
        return data
