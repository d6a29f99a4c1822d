"""Swing-based market structure classification."""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from decision_engine.models import MarketSnapshot
from decision_engine.signals import Direction, Signal

STRUCTURE_WEIGHT = 1.5

MARKUP = "MARKUP"
MARKDOWN = "MARKDOWN"
ACCUMULATION = "ACCUMULATION"
DISTRIBUTION = "DISTRIBUTION"
RANGING = "RANGING"


def find_swings(prices: Sequence[float]) -> Tuple[List[float], List[float]]:
    """
    Find strict local extrema.

    Returns:
        Tuple of (swing_highs, swing_lows) in chronological order
    """
    highs, lows = [], []
    for prev, cur, nxt in zip(prices, prices[1:], prices[2:]):
        if cur > prev and cur > nxt:
            highs.append(cur)
        if cur < prev and cur < nxt:
            lows.append(cur)
    return highs, lows


@dataclass
class StructureReading:
    structure: str
    direction: Direction
    strength: float
    detail: str


def classify_structure(snapshot: MarketSnapshot) -> StructureReading:
    """
    Classify the market phase from swing points.

    With fewer than two swing highs or two swing lows the 24h and 7d changes
    decide instead.

    Args:
        snapshot: Market snapshot

    Returns:
        StructureReading
    """
    prices = snapshot.price_history or [snapshot.price]
    highs, lows = find_swings(prices)
    p24h, p7d = snapshot.change_24h, snapshot.change_7d

    if len(highs) < 2 or len(lows) < 2:
        if p24h > 3 and p7d > 5:
            return StructureReading(MARKUP, Direction.BUY, 0.5,
                                    f"Markup phase: {p24h:+.1f}% 24h, {p7d:+.1f}% 7d")
        if p24h < -3 and p7d < -5:
            return StructureReading(MARKDOWN, Direction.SELL, 0.5,
                                    f"Markdown phase: {p24h:+.1f}% 24h, {p7d:+.1f}% 7d")
        if abs(p24h) < 1.5 and abs(p7d) < 3:
            return StructureReading(RANGING, Direction.NEUTRAL, 0.15,
                                    f"Ranging: {p24h:+.1f}% 24h, wait for breakout")
        if p24h > 0:
            return StructureReading(ACCUMULATION, Direction.BUY, 0.4, "Possible accumulation, price recovering")
        return StructureReading(DISTRIBUTION, Direction.SELL, 0.4, "Possible distribution, price fading")

    higher_highs = highs[-1] > highs[-2]
    lower_highs = highs[-1] < highs[-2]
    higher_lows = lows[-1] > lows[-2]
    lower_lows = lows[-1] < lows[-2]

    if higher_highs and higher_lows:
        return StructureReading(MARKUP, Direction.BUY, 0.8, "HH/HL structure, uptrend")
    if lower_highs and lower_lows:
        return StructureReading(MARKDOWN, Direction.SELL, 0.8, "LH/LL structure, downtrend")
    if higher_lows and lower_highs:
        return StructureReading(ACCUMULATION, Direction.BUY, 0.5, "Coiling (higher lows, lower highs), accumulation")
    if lower_lows and higher_highs:
        return StructureReading(DISTRIBUTION, Direction.SELL, 0.5, "Expanding (lower lows, higher highs), distribution")
    return StructureReading(RANGING, Direction.NEUTRAL, 0.2, "No clear swing structure, ranging")


def analyze_market_structure(snapshot: MarketSnapshot) -> Signal:
    reading = classify_structure(snapshot)
    return Signal("MARKET_STRUCT", reading.direction, reading.strength, STRUCTURE_WEIGHT,
                  f"{reading.structure}: {reading.detail}")
