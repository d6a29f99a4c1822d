"""RSI and MACD momentum signals."""

from typing import Optional, Sequence

from decision_engine.models import MacdReading, MarketSnapshot
from decision_engine.signals import Direction, Signal

RSI_WEIGHT = 1.5
MACD_WEIGHT = 1.5
MACD_STRONG_SLOPE = 0.001


def analyze_rsi(rsi: Optional[float]) -> Signal:
    """
    Classify an RSI reading by level alone.

    Below 20 is an extreme oversold BUY (0.9), below 30 an oversold BUY (0.6);
    above 80 and above 70 mirror that for SELL. 30 and 70 themselves are
    neutral.

    Args:
        rsi: RSI value in [0, 100], or None

    Returns:
        RSI level signal
    """
    if rsi is None:
        return Signal.neutral("RSI", RSI_WEIGHT, 0.0, "No RSI")
    if rsi < 20:
        return Signal("RSI", Direction.BUY, 0.9, RSI_WEIGHT, f"RSI extreme oversold ({rsi:.0f})")
    if rsi < 30:
        return Signal("RSI", Direction.BUY, 0.6, RSI_WEIGHT, f"RSI oversold ({rsi:.0f})")
    if rsi > 80:
        return Signal("RSI", Direction.SELL, 0.9, RSI_WEIGHT, f"RSI extreme overbought ({rsi:.0f})")
    if rsi > 70:
        return Signal("RSI", Direction.SELL, 0.6, RSI_WEIGHT, f"RSI overbought ({rsi:.0f})")
    return Signal.neutral("RSI", RSI_WEIGHT, 0.1, f"RSI neutral ({rsi:.0f})")


def detect_rsi_divergence(rsi: float, prices: Optional[Sequence[float]],
                          rsi_history: Optional[Sequence[float]]) -> Optional[Direction]:
    """
    Compare the latest price and RSI to the values two samples back.

    Returns:
        Direction.BUY for a bullish divergence, Direction.SELL for a bearish
        one, None when there is no divergence or not enough history
    """
    if not prices or not rsi_history or len(prices) < 3 or len(rsi_history) < 3:
        return None
    price_lower = prices[-1] < prices[-3]
    price_higher = prices[-1] > prices[-3]
    rsi_higher = rsi_history[-1] > rsi_history[-3]
    rsi_lower = rsi_history[-1] < rsi_history[-3]
    if price_lower and rsi_higher and rsi < 50:
        return Direction.BUY
    if price_higher and rsi_lower and rsi > 50:
        return Direction.SELL
    return None


def analyze_rsi_divergence(snapshot: MarketSnapshot) -> Signal:
    """Score RSI divergence first, then RSI level, then 24h momentum."""
    rsi = snapshot.rsi
    if rsi is None:
        return Signal.neutral("RSI_DIV", RSI_WEIGHT, 0.0, "No RSI data")

    divergence = detect_rsi_divergence(rsi, snapshot.price_history, snapshot.rsi_history)
    if divergence == Direction.BUY:
        return Signal("RSI_DIV", Direction.BUY, 0.95 if rsi < 20 else 0.8, RSI_WEIGHT,
                      f"Bullish RSI divergence: price lower-low, RSI higher-low at {rsi:.0f}")
    if divergence == Direction.SELL:
        return Signal("RSI_DIV", Direction.SELL, 0.95 if rsi > 80 else 0.8, RSI_WEIGHT,
                      f"Bearish RSI divergence: price higher-high, RSI lower-high at {rsi:.0f}")

    if rsi < 20:
        return Signal("RSI_DIV", Direction.BUY, 0.75, RSI_WEIGHT, f"RSI extremely oversold ({rsi:.0f})")
    if rsi < 30:
        return Signal("RSI_DIV", Direction.BUY, 0.5, RSI_WEIGHT, f"RSI oversold ({rsi:.0f})")
    if rsi > 80:
        return Signal("RSI_DIV", Direction.SELL, 0.75, RSI_WEIGHT, f"RSI extremely overbought ({rsi:.0f})")
    if rsi > 70:
        return Signal("RSI_DIV", Direction.SELL, 0.5, RSI_WEIGHT, f"RSI overbought ({rsi:.0f})")

    # Neutral zone: 24h momentum breaks the tie
    detail = f"RSI neutral ({rsi:.0f}), no divergence"
    if snapshot.change_24h > 2:
        return Signal("RSI_DIV", Direction.BUY, 0.2, RSI_WEIGHT, detail + ", 24h momentum up")
    if snapshot.change_24h < -2:
        return Signal("RSI_DIV", Direction.SELL, 0.2, RSI_WEIGHT, detail + ", 24h momentum down")
    return Signal.neutral("RSI_DIV", RSI_WEIGHT, 0.1, detail)


def analyze_macd(macd: Optional[MacdReading]) -> Signal:
    """
    Read MACD cross state together with histogram slope.

    A cross whose slope disagrees with it is treated as exhaustion and votes
    the other way at 0.4.

    Args:
        macd: MACD reading, or None

    Returns:
        MACD_MOMENTUM signal
    """
    if macd is None:
        return Signal.neutral("MACD_MOMENTUM", MACD_WEIGHT, 0.0, "No MACD data")

    hist = macd.histogram
    above_zero = hist > 0
    rising = macd.slope > 0
    bullish_cross = macd.value > macd.signal and hist > 0
    bearish_cross = macd.value < macd.signal and hist < 0
    strength = 0.85 if abs(macd.slope) > MACD_STRONG_SLOPE else 0.65

    if bullish_cross and rising and above_zero:
        return Signal("MACD_MOMENTUM", Direction.BUY, strength, MACD_WEIGHT,
                      f"MACD bullish: histogram {hist:.3f} above zero, rising slope")
    if bearish_cross and not rising and not above_zero:
        return Signal("MACD_MOMENTUM", Direction.SELL, strength, MACD_WEIGHT,
                      f"MACD bearish: histogram {hist:.3f} below zero, falling slope")
    if bullish_cross and not rising:
        return Signal("MACD_MOMENTUM", Direction.SELL, 0.4, MACD_WEIGHT,
                      "MACD peak: bullish cross but slope turning down, momentum exhaustion")
    if bearish_cross and rising:
        return Signal("MACD_MOMENTUM", Direction.BUY, 0.4, MACD_WEIGHT,
                      "MACD trough: bearish cross but slope rising, sellers exhausting")
    direction = Direction.BUY if above_zero else Direction.SELL
    return Signal("MACD_MOMENTUM", direction, 0.25, MACD_WEIGHT,
                  f"MACD {'above' if above_zero else 'below'} zero (hist: {hist:.3f}), weak signal")
