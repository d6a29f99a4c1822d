"""Smart Money Concepts: order blocks, fair value gaps and liquidity sweeps."""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from decision_engine.models import Candle, MarketSnapshot
from decision_engine.signals import Direction, Signal

SMC_WEIGHT = 1.8
ORDER_BLOCK_MOVE = 0.02  # 2% displacement after the block candle
ORDER_BLOCK_LOOKAHEAD = 3
SWEEP_LOOKBACK = 3


@dataclass
class SmcReading:
    """Order-flow patterns found around the current price."""

    order_block_support: bool = False
    order_block_resistance: bool = False
    fvg_below: bool = False
    fvg_above: bool = False
    liquidity_sweep: Optional[Direction] = None  # BUY = bullish sweep, SELL = bearish sweep

    def labels(self) -> List[str]:
        labels = []
        if self.order_block_support:
            labels.append("order block support")
        if self.order_block_resistance:
            labels.append("order block resistance")
        if self.fvg_below:
            labels.append("FVG below")
        if self.fvg_above:
            labels.append("FVG above")
        if self.liquidity_sweep == Direction.BUY:
            labels.append("bullish liquidity sweep")
        elif self.liquidity_sweep == Direction.SELL:
            labels.append("bearish liquidity sweep")
        return labels


def _scan_order_blocks(price: float, candles: Sequence[Candle], reading: SmcReading) -> None:
    n = len(candles)
    for i in range(max(0, n - 5), n - 3):
        c = candles[i]
        later = candles[i + 1:i + 1 + ORDER_BLOCK_LOOKAHEAD]
        if c.close < c.open:
            # Last bearish candle before a rally marks demand
            if max(x.high for x in later) > c.open * (1 + ORDER_BLOCK_MOVE):
                if c.low <= price <= c.high * 1.01 or c.low * 0.99 < price < c.low:
                    reading.order_block_support = True
        elif c.close > c.open:
            # Last bullish candle before a drop marks supply
            if min(x.low for x in later) < c.open * (1 - ORDER_BLOCK_MOVE):
                if c.low <= price <= c.high:
                    reading.order_block_resistance = True


def _scan_fair_value_gaps(price: float, candles: Sequence[Candle], reading: SmcReading) -> None:
    for first, third in zip(candles, candles[2:]):
        if first.high < third.low:
            # Bullish gap
            if price < third.low:
                reading.fvg_above = True
            if first.high < price < third.low * 1.1:
                reading.fvg_below = True
        if first.low > third.high:
            # Bearish gap
            if price > first.low:
                reading.fvg_below = True
            if third.high * 0.9 < price < first.low:
                reading.fvg_above = True


def _detect_sweep(candles: Sequence[Candle]) -> Optional[Direction]:
    last = candles[-1]
    prior = candles[-(SWEEP_LOOKBACK + 1):-1]
    prev_high = max(c.high for c in prior)
    prev_low = min(c.low for c in prior)
    if last.high > prev_high and last.close < prev_high:
        return Direction.SELL
    if last.low < prev_low and last.close > prev_low:
        return Direction.BUY
    return None


def read_smart_money(snapshot: MarketSnapshot) -> SmcReading:
    """
    Detect SMC patterns from candles, or approximate them from momentum.

    Without at least five candles, the 24h range position and 1h/24h changes
    stand in: a bottom-of-range 1h uptick approximates a support block, and a
    sharp 24h move reversing on the hour approximates a sweep.

    Args:
        snapshot: Market snapshot

    Returns:
        SmcReading
    """
    reading = SmcReading()
    candles = snapshot.candles or []
    price = snapshot.price

    if len(candles) >= 5:
        _scan_order_blocks(price, candles, reading)
        _scan_fair_value_gaps(price, candles, reading)
        reading.liquidity_sweep = _detect_sweep(candles)
        return reading

    range_pct = snapshot.range_percent if snapshot.range_percent is not None else 50.0
    p1h, p24h = snapshot.change_1h, snapshot.change_24h
    if range_pct < 20 and p1h > 0.1:
        reading.order_block_support = True
    if range_pct > 80 and p1h < -0.1:
        reading.order_block_resistance = True
    if p24h < -5 and p1h > 0.5:
        reading.liquidity_sweep = Direction.BUY
    if p24h > 5 and p1h < -0.5:
        reading.liquidity_sweep = Direction.SELL
    return reading


def analyze_smc(snapshot: MarketSnapshot) -> Signal:
    """Turn the SMC reading into a signal (sweeps outrank order blocks)."""
    reading = read_smart_money(snapshot)
    labels = ", ".join(reading.labels())

    if reading.liquidity_sweep == Direction.BUY:
        return Signal("SMC", Direction.BUY, 0.85, SMC_WEIGHT, f"SMC: {labels}, accumulation zone")
    if reading.order_block_support:
        return Signal("SMC", Direction.BUY, 0.6, SMC_WEIGHT, f"SMC: {labels}, accumulation zone")
    if reading.liquidity_sweep == Direction.SELL:
        return Signal("SMC", Direction.SELL, 0.85, SMC_WEIGHT, f"SMC: {labels}, distribution zone")
    if reading.order_block_resistance:
        return Signal("SMC", Direction.SELL, 0.6, SMC_WEIGHT, f"SMC: {labels}, distribution zone")
    if labels:
        return Signal.neutral("SMC", SMC_WEIGHT, 0.1, f"SMC: {labels}, mixed signals")
    return Signal.neutral("SMC", SMC_WEIGHT, 0.1, "SMC: no order blocks or sweeps detected")
