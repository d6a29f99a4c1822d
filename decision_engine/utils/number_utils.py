"""Small numeric helpers shared across the engine."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 rounding up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` when the denominator is zero."""
    if not denominator:
        return default
    return numerator / denominator


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
