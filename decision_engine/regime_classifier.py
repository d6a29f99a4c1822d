"""Trend regime classification from the EMA stack or multi-timeframe momentum."""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from decision_engine.indicators.ema_stack import EmaStack, compute_ema_stack
from decision_engine.models import MarketSnapshot

logger = logging.getLogger(__name__)

UPTREND = "UPTREND"
DOWNTREND = "DOWNTREND"
RANGE = "RANGE"

STRONG_UPTREND = "STRONG_UPTREND"
NEUTRAL = "NEUTRAL"
STRONG_DOWNTREND = "STRONG_DOWNTREND"

MIN_EMA_REGIME_POINTS = 21


@dataclass(frozen=True)
class RegimeReading:
    """Three-state regime plus the finer five-state trend regime."""

    regime: str  # UPTREND | DOWNTREND | RANGE
    trend_regime: str  # STRONG_UPTREND | UPTREND | NEUTRAL | DOWNTREND | STRONG_DOWNTREND
    source: str  # "ema" | "momentum"
    price_above_count: int = 0
    ema_count: int = 0
    up_votes: int = 0
    down_votes: int = 0


class RegimeClassifier:
    """Classifies the current trend regime."""

    def classify(self, snapshot: MarketSnapshot, stack: Optional[EmaStack] = None) -> RegimeReading:
        """
        Classify the regime for a snapshot.

        With at least 21 price-history points the EMA ladder decides,
        otherwise a four-way momentum vote (1h, 24h, 7d, range position).

        Args:
            snapshot: Market snapshot
            stack: Precomputed EMA stack for the snapshot's history (optional)

        Returns:
            RegimeReading
        """
        prices = snapshot.price_history or []
        if len(prices) >= MIN_EMA_REGIME_POINTS:
            if stack is None:
                stack = compute_ema_stack(prices)
            if stack.count > 0:
                return self._classify_from_stack(stack)
        return self._classify_from_momentum(snapshot)

    def classify_trend(self, snapshot: MarketSnapshot) -> str:
        """Five-state trend regime only."""
        return self.classify(snapshot).trend_regime

    def _classify_from_stack(self, stack: EmaStack) -> RegimeReading:
        n = stack.count
        above = stack.price_above_count
        up_cut = math.ceil(0.75 * n)
        down_cut = math.floor(0.25 * n)

        if above >= up_cut:
            regime = UPTREND
        elif above <= down_cut:
            regime = DOWNTREND
        else:
            regime = RANGE

        if above == n:
            trend = STRONG_UPTREND
        elif above == 0:
            trend = STRONG_DOWNTREND
        elif above >= up_cut:
            trend = UPTREND
        elif above <= down_cut:
            trend = DOWNTREND
        else:
            trend = NEUTRAL

        return RegimeReading(regime=regime, trend_regime=trend, source="ema",
                             price_above_count=above, ema_count=n)

    def _classify_from_momentum(self, snapshot: MarketSnapshot) -> RegimeReading:
        votes = [
            (snapshot.change_1h > 0.5, snapshot.change_1h < -0.5),
            (snapshot.change_24h > 2, snapshot.change_24h < -2),
            (snapshot.change_7d > 5, snapshot.change_7d < -5),
            (snapshot.range_percent > 70, snapshot.range_percent < 30),
        ]
        up = sum(1 for bull, _ in votes if bull)
        down = sum(1 for _, bear in votes if bear)

        if up >= 3:
            regime = UPTREND
            trend = STRONG_UPTREND if up == len(votes) else UPTREND
        elif down >= 3:
            regime = DOWNTREND
            trend = STRONG_DOWNTREND if down == len(votes) else DOWNTREND
        else:
            regime = RANGE
            trend = NEUTRAL

        logger.debug(f"{snapshot.symbol}: momentum regime {regime} (up={up}, down={down})")
        return RegimeReading(regime=regime, trend_regime=trend, source="momentum",
                             up_votes=up, down_votes=down)
