"""Bollinger band squeeze and expansion signal."""

from dataclasses import dataclass
from typing import Sequence

import pandas as pd

from decision_engine.models import MarketSnapshot
from decision_engine.signals import Direction, Signal

BB_WEIGHT = 1.0
BB_PERIOD = 20
BB_STD_MULTIPLIER = 2.0
BB_LOOKBACK = 5


@dataclass
class BollingerBands:
    """Band values at the latest sample."""

    upper: float
    middle: float
    lower: float
    bandwidth: float  # (upper - lower) / middle
    percent_b: float  # position of price inside the bands, 0.5 when bands collapse
    previous_bandwidth: float
    sufficient: bool = True

    @property
    def is_squeeze(self) -> bool:
        return self.sufficient and self.bandwidth < self.previous_bandwidth * 0.75

    @property
    def is_expanding(self) -> bool:
        return self.sufficient and self.bandwidth > self.previous_bandwidth * 1.25


def compute_bollinger(prices: Sequence[float], period: int = BB_PERIOD,
                      multiplier: float = BB_STD_MULTIPLIER) -> BollingerBands:
    """
    Compute Bollinger bands over the last ``period`` closes.

    Bands use the rolling mean and population standard deviation. The previous
    bandwidth is read five samples earlier. With fewer than ``period + 5``
    prices it equals the current bandwidth.

    Args:
        prices: Close prices, oldest first
        period: Band window length
        multiplier: Standard deviations per band

    Returns:
        BollingerBands (``sufficient`` is False below ``period`` prices)
    """
    if len(prices) < period:
        last = prices[-1] if prices else 0.0
        return BollingerBands(upper=last * 1.02, middle=last, lower=last * 0.98,
                              bandwidth=0.04, percent_b=0.5, previous_bandwidth=0.04,
                              sufficient=False)

    closes = pd.Series(prices, dtype=float)
    middle = closes.rolling(window=period).mean()
    std = closes.rolling(window=period).std(ddof=0)
    upper_band = middle + multiplier * std
    lower_band = middle - multiplier * std
    bandwidth = ((upper_band - lower_band) / middle).where(middle > 0, 0.0)

    upper, mean, lower = upper_band.iloc[-1], middle.iloc[-1], lower_band.iloc[-1]
    price = closes.iloc[-1]
    percent_b = (price - lower) / (upper - lower) if upper > lower else 0.5

    current = bandwidth.iloc[-1]
    if len(prices) >= period + BB_LOOKBACK:
        previous = bandwidth.iloc[-1 - BB_LOOKBACK]
    else:
        previous = current

    return BollingerBands(upper=float(upper), middle=float(mean), lower=float(lower),
                          bandwidth=float(current), percent_b=float(percent_b),
                          previous_bandwidth=float(previous))


def analyze_bollinger(snapshot: MarketSnapshot) -> Signal:
    """Score squeeze, breakout expansion and band-extreme mean reversion."""
    prices = snapshot.price_history or []
    bands = compute_bollinger(prices)
    if not bands.sufficient:
        return Signal.neutral("BB_SQUEEZE", BB_WEIGHT, 0.1,
                              f"Insufficient history for Bollinger bands ({len(prices)}/{BB_PERIOD})")

    pct = bands.percent_b
    if bands.is_squeeze:
        return Signal.neutral("BB_SQUEEZE", BB_WEIGHT, 0.3,
                              f"BB squeeze (BW {bands.bandwidth * 100:.1f}%), breakout imminent")
    if bands.is_expanding and pct > 0.85:
        return Signal("BB_SQUEEZE", Direction.BUY, 0.7, BB_WEIGHT,
                      f"BB expansion with price at {pct * 100:.0f}% of band, upside breakout")
    if bands.is_expanding and pct < 0.15:
        return Signal("BB_SQUEEZE", Direction.SELL, 0.7, BB_WEIGHT,
                      f"BB expansion with price at {pct * 100:.0f}% of band, downside breakout")
    if pct > 0.90:
        return Signal("BB_SQUEEZE", Direction.SELL, 0.5, BB_WEIGHT,
                      f"Price near upper band ({pct * 100:.0f}%), mean-reversion risk")
    if pct < 0.10:
        return Signal("BB_SQUEEZE", Direction.BUY, 0.5, BB_WEIGHT,
                      f"Price near lower band ({pct * 100:.0f}%), bounce candidate")
    return Signal.neutral("BB_SQUEEZE", BB_WEIGHT, 0.15, f"Price within bands ({pct * 100:.0f}%)")
