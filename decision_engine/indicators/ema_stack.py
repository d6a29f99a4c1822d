"""EMA stack analysis (9/21/55/89/200)."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import pandas as pd

from decision_engine.models import MarketSnapshot
from decision_engine.signals import Direction, Signal

EMA_PERIODS = (9, 21, 55, 89, 200)
EMA_STACK_WEIGHT = 2.0


def compute_ema(prices: Sequence[float], period: int) -> List[float]:
    """
    Compute an exponential moving average series.

    The series is seeded with the simple average of the first ``period``
    points, then smoothed with ``ewm(alpha=2 / (period + 1), adjust=False)``.

    Args:
        prices: Close prices, oldest first
        period: EMA period

    Returns:
        ``len(prices) - period + 1`` EMA values, or an empty list when there
        are fewer than ``period`` prices
    """
    if period <= 0 or len(prices) < period:
        return []
    closes = pd.Series(prices, dtype=float)
    seeded = pd.concat([pd.Series([closes.iloc[:period].mean()]), closes.iloc[period:]], ignore_index=True)
    return seeded.ewm(alpha=2 / (period + 1), adjust=False).mean().tolist()


@dataclass
class EmaStack:
    """Snapshot of the EMA ladder at the latest sample."""

    price: float
    emas: Dict[int, float] = field(default_factory=dict)  # period -> latest value
    bullish_alignment: int = 0
    bearish_alignment: int = 0
    price_above_count: int = 0
    golden_cross: bool = False
    death_cross: bool = False

    @property
    def count(self) -> int:
        return len(self.emas)


def compute_ema_stack(prices: Sequence[float], price: Optional[float] = None) -> EmaStack:
    """
    Build the EMA ladder from a price history.

    Lines without enough history are left out of the alignment counts.

    Args:
        prices: Close prices, oldest first
        price: Reference price (defaults to the last close)

    Returns:
        EmaStack with alignment counts and EMA9/EMA21 cross flags
    """
    if price is None:
        price = prices[-1] if prices else 0.0
    series = {p: compute_ema(prices, p) for p in EMA_PERIODS}
    stack = EmaStack(price=price)
    for period in EMA_PERIODS:
        if series[period]:
            stack.emas[period] = series[period][-1]

    values = list(stack.emas.values())
    for upper, lower in zip(values, values[1:]):
        if upper > lower:
            stack.bullish_alignment += 1
        elif upper < lower:
            stack.bearish_alignment += 1
    stack.price_above_count = sum(1 for v in values if price > v)

    fast, slow = series[9], series[21]
    if len(fast) >= 2 and len(slow) >= 2:
        stack.golden_cross = fast[-1] > slow[-1] and fast[-2] <= slow[-2]
        stack.death_cross = fast[-1] < slow[-1] and fast[-2] >= slow[-2]
    return stack


def analyze_ema_stack(snapshot: MarketSnapshot) -> Signal:
    """Score trend alignment of the EMA ladder against the latest close."""
    prices = snapshot.price_history or []
    if len(prices) < EMA_PERIODS[0]:
        return Signal.neutral(
            "EMA_STACK", EMA_STACK_WEIGHT, 0.1,
            f"Insufficient history for EMA stack ({len(prices)}/{EMA_PERIODS[0]} points)",
        )

    stack = compute_ema_stack(prices)
    n = stack.count
    bull_strength = (stack.bullish_alignment + stack.price_above_count) / (2 * n - 1)
    bear_strength = (stack.bearish_alignment + (n - stack.price_above_count)) / (2 * n - 1)

    if stack.golden_cross:
        return Signal("EMA_STACK", Direction.BUY, 0.9, EMA_STACK_WEIGHT,
                      f"Golden cross: EMA9 crossed above EMA21. Price above {stack.price_above_count}/{n} EMAs")
    if stack.death_cross:
        return Signal("EMA_STACK", Direction.SELL, 0.9, EMA_STACK_WEIGHT,
                      f"Death cross: EMA9 crossed below EMA21. Price above {stack.price_above_count}/{n} EMAs")
    if bull_strength > 0.65:
        return Signal("EMA_STACK", Direction.BUY, min(1.0, bull_strength), EMA_STACK_WEIGHT,
                      f"Bullish EMA stack ({stack.bullish_alignment}/{n - 1} aligned up), "
                      f"price above {stack.price_above_count} EMAs")
    if bear_strength > 0.65:
        return Signal("EMA_STACK", Direction.SELL, min(1.0, bear_strength), EMA_STACK_WEIGHT,
                      f"Bearish EMA stack ({stack.bearish_alignment}/{n - 1} aligned down), "
                      f"price above only {stack.price_above_count} EMAs")
    return Signal.neutral("EMA_STACK", EMA_STACK_WEIGHT, 0.2,
                          f"EMA stack mixed, price above {stack.price_above_count}/{n} EMAs")
