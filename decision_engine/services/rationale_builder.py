"""Human-readable rationale strings for decisions."""

from typing import List, Optional

from decision_engine.confluence_scorer import ConfluenceResult
from decision_engine.indicators.ema_stack import EmaStack
from decision_engine.indicators.ichimoku import IchimokuCloud
from decision_engine.models import Action, MarketSnapshot
from decision_engine.regime_classifier import STRONG_DOWNTREND, RegimeReading
from decision_engine.signals import Signal
from decision_engine.strategy_utils.atr_profile import ATRProfile
from decision_engine.utils.number_utils import safe_div


def price_context(snapshot: MarketSnapshot) -> str:
    return f"{snapshot.symbol} @ ${snapshot.price:,.2f} ({snapshot.change_24h:+.2f}% 24h)"


def dominant_signals(result: ConfluenceResult, limit: int = 3) -> List[Signal]:
    """Active signals ordered by strength-weighted contribution."""
    active = result.active_signals
    return sorted(active, key=lambda s: s.strength * s.weight, reverse=True)[:limit]


def build_technical_summary(
    regime: RegimeReading,
    structure: str,
    atr: ATRProfile,
    result: ConfluenceResult,
    stack: Optional[EmaStack] = None,
    cloud: Optional[IchimokuCloud] = None,
    synthetic_points: int = 0,
) -> str:
    parts = [
        f"EMA Regime: {regime.trend_regime}",
        f"Regime: {regime.regime} ({regime.source})",
        f"Structure: {structure}",
        f"ATR: ${atr.atr:.2f} ({atr.atr_pct:.2f}%, {atr.volatility_tier})",
    ]
    if stack is not None and stack.count:
        parts.append(f"EMA Stack: price above {stack.price_above_count}/{stack.count} EMAs")
    if cloud is not None:
        if cloud.above_cloud:
            parts.append("Ichimoku: above cloud")
        elif cloud.below_cloud:
            parts.append("Ichimoku: below cloud")
    parts.append(f"Buy score: {result.buy_score:.1f} ({result.buy_count} signals)")
    parts.append(f"Sell score: {result.sell_score:.1f} ({result.sell_count} signals)")
    if result.inverted:
        parts.append("Contrarian inversion applied")
    if synthetic_points:
        parts.append(f"History: synthetic ({synthetic_points} pts)")
    return " | ".join(parts)


def build_risk_summary(action: Action, snapshot: MarketSnapshot, atr: ATRProfile,
                       result: ConfluenceResult, regime: RegimeReading) -> str:
    price = snapshot.price
    stop_pct = safe_div(atr.stop_distance, price) * 100
    target_pct = safe_div(atr.target_distance, price) * 100
    if action == Action.BUY:
        return (
            f"ATR Stop: ${price - atr.stop_distance:.2f} (-{stop_pct:.1f}%). "
            f"Target: ${price + atr.target_distance:.2f} (+{target_pct:.1f}%). R:R = 2:1."
        )
    if action == Action.SELL:
        return (
            f"Exit at ${price:,.2f}. ATR stop band {stop_pct:.1f}%, target band {target_pct:.1f}% "
            f"({atr.volatility_tier} volatility)."
        )
    if regime.trend_regime == STRONG_DOWNTREND:
        return "No trade. EMA regime too bearish to buy."
    return (
        f"No trade. Waiting for {result.min_signals} confirmations "
        f"(have: buy={result.buy_count}, sell={result.sell_count})."
    )


def build_reasoning(action: Action, snapshot: MarketSnapshot, result: ConfluenceResult,
                    regime: RegimeReading, structure: str, headline: Optional[str] = None) -> str:
    """
    Assemble the free-text reasoning line.

    Args:
        action: Final action
        snapshot: Market snapshot
        result: Scorer output
        regime: Regime reading
        structure: Market structure label
        headline: Overrides the default lead (stop-loss, take-profit, gating reasons)

    Returns:
        Reasoning string
    """
    ctx = f"{price_context(snapshot)}. EMA {regime.trend_regime} | {structure}."
    top = ", ".join(f"{s.name}: {s.direction.value} ({s.strength * 100:.0f}%)" for s in dominant_signals(result))
    signals = f" Signals: {top}." if top else ""

    if headline:
        return f"{headline} {ctx}{signals}"
    if action == Action.BUY:
        return f"BUY: {result.buy_count} signals aligned (score {result.buy_score:.2f}). {ctx}{signals}"
    if action == Action.SELL:
        return f"SELL: {result.sell_count} signals aligned (score {result.sell_score:.2f}). {ctx}{signals}"
    if result.blocked_by_regime:
        return f"HOLD: buy confluence blocked by STRONG_DOWNTREND regime. {ctx}{signals}"
    return (
        f"HOLD: insufficient confluence. {ctx} Need {result.min_signals} aligned signals, "
        f"have buy={result.buy_count}, sell={result.sell_count}.{signals}"
    )
