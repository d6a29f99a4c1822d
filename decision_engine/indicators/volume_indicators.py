"""Volume-weighted confirmation signal."""

from decision_engine.models import MarketSnapshot
from decision_engine.signals import Direction, Signal

VOLUME_WEIGHT = 1.5
HIGH_VOLUME_RATIO = 1.5
LOW_VOLUME_RATIO = 0.7


def volume_ratio(current_volume: float, history) -> float:
    """Current volume over the history average (1.0 when undefined)."""
    if not history:
        return 1.0
    average = sum(history) / len(history)
    return current_volume / average if average > 0 else 1.0


def analyze_volume(snapshot: MarketSnapshot) -> Signal:
    """Confirm the 24h move when it happens on above-average volume."""
    history = snapshot.volume_history
    if history:
        current = history[-1]
        ratio = volume_ratio(current, history)
    else:
        ratio = 1.0

    if ratio >= HIGH_VOLUME_RATIO and snapshot.change_24h != 0:
        strength = min(1.0, 0.4 + 0.5 * (ratio - 1))
        if snapshot.change_24h > 0:
            return Signal("VOLUME", Direction.BUY, strength, VOLUME_WEIGHT,
                          f"Volume {ratio:.1f}x avg on up-move, buying conviction")
        return Signal("VOLUME", Direction.SELL, strength, VOLUME_WEIGHT,
                      f"Volume {ratio:.1f}x avg on down-move, selling pressure")
    if ratio < LOW_VOLUME_RATIO:
        return Signal.neutral("VOLUME", VOLUME_WEIGHT, 0.1, f"Low volume ({ratio:.1f}x avg), no conviction")
    return Signal.neutral("VOLUME", VOLUME_WEIGHT, 0.2, f"Volume {ratio:.1f}x avg, normal activity")
