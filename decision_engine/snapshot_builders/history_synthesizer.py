"""Deterministic price-history synthesis for snapshots without closes."""

import logging
from typing import List, Optional, Tuple

import numpy as np

from decision_engine.models import MarketSnapshot

logger = logging.getLogger(__name__)

DEFAULT_POINTS = 30
JITTER_PCT = 0.003  # total band width, +/-0.15%


def _price_before(price: float, change_pct: float) -> float:
    base = 1 + change_pct / 100
    return price / base if base > 0 else price


def synthesize_price_history(snapshot: MarketSnapshot, points: int = DEFAULT_POINTS,
                             seed: Optional[int] = None) -> List[float]:
    """
    Reconstruct an approximate close path from the snapshot's statistics.

    The path runs from the 7d-ago price to the 24h-ago price over the first
    third, through the 24h high and then the 24h low across the day, and from
    the 1h-ago price to now over the last tenth. The current price is
    appended last, so the result has ``points + 1`` values.

    Without a seed the path is exact. With a seed, uniform jitter of +/-0.15%
    is drawn from a seeded generator, so the same seed always yields the same
    path.

    Args:
        snapshot: Snapshot providing price, changes and 24h high/low
        points: Number of path points before the current price
        seed: Optional jitter seed

    Returns:
        Close prices, oldest first
    """
    price = snapshot.price
    high = snapshot.high_24h or price
    low = snapshot.low_24h or price
    price_7d = _price_before(price, snapshot.change_7d)
    price_24h = _price_before(price, snapshot.change_24h)
    price_1h = _price_before(price, snapshot.change_1h)

    rng = np.random.default_rng(seed) if seed is not None else None
    steps = max(2, points)
    history = []
    for i in range(steps):
        t = i / (steps - 1)
        if t < 0.33:
            base = price_7d + (price_24h - price_7d) * (t / 0.33)
        elif t < 0.9:
            day_t = (t - 0.33) / 0.57
            if day_t < 0.5:
                base = price_24h + (high - price_24h) * (day_t / 0.5)
            else:
                base = high + (low - high) * ((day_t - 0.5) / 0.5)
        else:
            base = price_1h + (price - price_1h) * ((t - 0.9) / 0.1)
        if rng is not None:
            base += (rng.random() - 0.5) * base * JITTER_PCT
        history.append(float(base))
    history.append(price)
    return history


def ensure_price_history(snapshot: MarketSnapshot, points: int = DEFAULT_POINTS,
                         seed: Optional[int] = None) -> Tuple[MarketSnapshot, bool]:
    """
    Return a snapshot that carries price history.

    Returns:
        Tuple of (snapshot, synthesized) where ``synthesized`` is True when the
        history was fabricated from the snapshot's statistics
    """
    if snapshot.price_history:
        return snapshot, False
    logger.warning(f"{snapshot.symbol}: no price history, synthesizing {points} points")
    return snapshot.with_history(synthesize_price_history(snapshot, points, seed)), True
