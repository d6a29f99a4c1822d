"""Ichimoku cloud computed on close prices."""

from dataclasses import dataclass
from typing import Optional, Sequence

from decision_engine.models import MarketSnapshot
from decision_engine.signals import Direction, Signal

ICHIMOKU_WEIGHT = 2.0
TENKAN_PERIOD = 9
KIJUN_PERIOD = 26
SENKOU_B_PERIOD = 52


def period_midpoint(prices: Sequence[float], period: int) -> Optional[float]:
    """Midpoint of the highest and lowest close over the last ``period`` points."""
    if len(prices) < period:
        return None
    window = prices[-period:]
    return (max(window) + min(window)) / 2


@dataclass
class IchimokuCloud:
    tenkan: Optional[float]
    kijun: Optional[float]
    senkou_a: Optional[float]
    senkou_b: Optional[float]
    price: float
    cross_up: bool = False
    cross_down: bool = False

    @property
    def cloud_top(self) -> Optional[float]:
        if self.senkou_a is None or self.senkou_b is None:
            return None
        return max(self.senkou_a, self.senkou_b)

    @property
    def cloud_bottom(self) -> Optional[float]:
        if self.senkou_a is None or self.senkou_b is None:
            return None
        return min(self.senkou_a, self.senkou_b)

    @property
    def above_cloud(self) -> bool:
        return self.cloud_top is not None and self.price > self.cloud_top

    @property
    def below_cloud(self) -> bool:
        return self.cloud_bottom is not None and self.price < self.cloud_bottom

    @property
    def in_cloud(self) -> bool:
        return not self.above_cloud and not self.below_cloud


def compute_ichimoku(prices: Sequence[float]) -> IchimokuCloud:
    """
    Compute Tenkan, Kijun and both Senkou spans from close prices.

    The Tenkan/Kijun cross compares the latest midpoints with the ones
    computed one sample earlier, which needs at least 27 points.

    Args:
        prices: Close prices, oldest first

    Returns:
        IchimokuCloud (lines are None when history is too short)
    """
    tenkan = period_midpoint(prices, TENKAN_PERIOD)
    kijun = period_midpoint(prices, KIJUN_PERIOD)
    senkou_a = (tenkan + kijun) / 2 if tenkan is not None and kijun is not None else None
    senkou_b = period_midpoint(prices, SENKOU_B_PERIOD)
    cloud = IchimokuCloud(tenkan=tenkan, kijun=kijun, senkou_a=senkou_a, senkou_b=senkou_b,
                          price=prices[-1] if prices else 0.0)

    if len(prices) >= KIJUN_PERIOD + 1 and tenkan is not None and kijun is not None:
        previous = prices[:-1]
        prev_tenkan = period_midpoint(previous, TENKAN_PERIOD)
        prev_kijun = period_midpoint(previous, KIJUN_PERIOD)
        cloud.cross_up = tenkan > kijun and prev_tenkan <= prev_kijun
        cloud.cross_down = tenkan < kijun and prev_tenkan >= prev_kijun
    return cloud


def analyze_ichimoku(snapshot: MarketSnapshot) -> Signal:
    """Score Tenkan/Kijun crosses confirmed by price position against the cloud."""
    prices = snapshot.price_history or []
    if len(prices) < KIJUN_PERIOD:
        return Signal.neutral("ICHIMOKU", ICHIMOKU_WEIGHT, 0.15,
                              f"Insufficient history for Ichimoku ({len(prices)}/{KIJUN_PERIOD})")

    cloud = compute_ichimoku(prices)
    if cloud.cross_up and cloud.above_cloud:
        return Signal("ICHIMOKU", Direction.BUY, 0.9, ICHIMOKU_WEIGHT,
                      "Tenkan/Kijun bullish cross above the cloud")
    if cloud.cross_down and cloud.below_cloud:
        return Signal("ICHIMOKU", Direction.SELL, 0.9, ICHIMOKU_WEIGHT,
                      "Tenkan/Kijun bearish cross below the cloud")
    if cloud.cross_up:
        return Signal("ICHIMOKU", Direction.BUY, 0.65, ICHIMOKU_WEIGHT,
                      "Tenkan/Kijun bullish cross without cloud confirmation")
    if cloud.cross_down:
        return Signal("ICHIMOKU", Direction.SELL, 0.65, ICHIMOKU_WEIGHT,
                      "Tenkan/Kijun bearish cross without cloud confirmation")
    if cloud.above_cloud and cloud.tenkan > cloud.kijun:
        return Signal("ICHIMOKU", Direction.BUY, 0.55, ICHIMOKU_WEIGHT,
                      "Price above cloud, Tenkan > Kijun")
    if cloud.below_cloud and cloud.tenkan < cloud.kijun:
        return Signal("ICHIMOKU", Direction.SELL, 0.55, ICHIMOKU_WEIGHT,
                      "Price below cloud, Tenkan < Kijun")
    if cloud.in_cloud:
        detail = "Price inside cloud, choppy market"
        if cloud.cloud_top is None:
            detail = f"Cloud not formed yet ({len(prices)}/{SENKOU_B_PERIOD} points), no trend confirmation"
        return Signal.neutral("ICHIMOKU", ICHIMOKU_WEIGHT, 0.2, detail)
    return Signal.neutral("ICHIMOKU", ICHIMOKU_WEIGHT, 0.15,
                          "Price outside cloud without Tenkan/Kijun confirmation")
