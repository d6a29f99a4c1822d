"""ATR-based volatility profile: stop/target distances and volatility tier."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import pandas as pd

from decision_engine.models import Candle
from decision_engine.signals import Signal

logger = logging.getLogger(__name__)

ATR_PERIOD = 14
STOP_ATR_MULTIPLE = 1.5
TARGET_ATR_MULTIPLE = 3.0
ATR_GATE_MIN_PCT = 1.0  # below this the expected move does not clear fees


@dataclass(frozen=True)
class ATRProfile:
    """Volatility-scaled risk distances for one snapshot."""

    atr: float
    atr_pct: float  # ATR as % of price
    stop_distance: float
    target_distance: float
    volatility_tier: str  # LOW | MEDIUM | HIGH | EXTREME
    from_candles: bool = False

    def stop_price(self, price: float) -> float:
        return round(price - self.stop_distance, 2)

    def target_price(self, price: float) -> float:
        return round(price + self.target_distance, 2)


def _true_range_series(candles: Sequence[Candle]) -> pd.Series:
    frame = pd.DataFrame([(c.high, c.low, c.close) for c in candles], columns=["high", "low", "close"])
    prev_close = frame["close"].shift(1)
    true_range = pd.concat([
        frame["high"] - frame["low"],
        (frame["high"] - prev_close).abs(),
        (frame["low"] - prev_close).abs(),
    ], axis=1).max(axis=1)
    # First bar has no previous close
    return true_range.iloc[1:]


def compute_true_ranges(candles: Sequence[Candle]) -> List[float]:
    """True range for each candle after the first."""
    if len(candles) < 2:
        return []
    return _true_range_series(candles).tolist()


def compute_atr(candles: Sequence[Candle], period: int = ATR_PERIOD) -> float:
    """Mean of the last ``period`` true ranges (0.0 with fewer than two candles)."""
    if len(candles) < 2:
        return 0.0
    return float(_true_range_series(candles).tail(period).mean())


def volatility_tier(atr_pct: float) -> str:
    if atr_pct < 1.5:
        return "LOW"
    if atr_pct < 4:
        return "MEDIUM"
    if atr_pct < 8:
        return "HIGH"
    return "EXTREME"


def build_atr_profile(price: float, volatility: float, candles: Optional[Sequence[Candle]] = None,
                      period: int = ATR_PERIOD, stop_multiple: float = STOP_ATR_MULTIPLE,
                      target_multiple: float = TARGET_ATR_MULTIPLE) -> ATRProfile:
    """
    Build the ATR risk profile.

    Uses real ATR when at least ``period`` candles are available, otherwise
    estimates it as ``price * volatility / 100``.

    Args:
        price: Current price
        volatility: 24h range as % of price
        candles: Optional OHLC history
        period: ATR lookback
        stop_multiple: Stop distance in ATRs
        target_multiple: Target distance in ATRs

    Returns:
        ATRProfile
    """
    from_candles = bool(candles) and len(candles) >= period
    if from_candles:
        atr = compute_atr(candles, period)
    else:
        atr = price * (volatility or 0.0) / 100
    atr_pct = atr / price * 100 if price > 0 else 0.0
    return ATRProfile(
        atr=atr,
        atr_pct=atr_pct,
        stop_distance=atr * stop_multiple,
        target_distance=atr * target_multiple,
        volatility_tier=volatility_tier(atr_pct),
        from_candles=from_candles,
    )


def atr_gate_signal(profile: ATRProfile) -> Signal:
    """Informational ATR signal; NEUTRAL so it never moves the directional scores."""
    if profile.atr_pct > ATR_GATE_MIN_PCT:
        return Signal.neutral("ATR_GATE", 1.0, 0.3,
                              f"ATR {profile.atr_pct:.2f}% ({profile.volatility_tier}), move clears fees")
    return Signal.neutral("ATR_GATE", 1.0, 0.1,
                          f"ATR {profile.atr_pct:.2f}% ({profile.volatility_tier}), expected move too small")
