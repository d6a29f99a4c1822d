"""Confluence scorer: aggregates indicator signals into a raw action."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from decision_engine.indicators.ema_stack import analyze_ema_stack
from decision_engine.indicators.ichimoku import analyze_ichimoku
from decision_engine.indicators.market_structure import analyze_market_structure
from decision_engine.indicators.momentum_indicators import analyze_macd, analyze_rsi_divergence
from decision_engine.indicators.smart_money import analyze_smc
from decision_engine.indicators.volatility_indicators import analyze_bollinger
from decision_engine.indicators.volume_indicators import analyze_volume
from decision_engine.models import Action, AgentTraits, MarketSnapshot
from decision_engine.regime_classifier import STRONG_DOWNTREND
from decision_engine.signals import Direction, Signal
from decision_engine.strategy_utils.atr_profile import ATRProfile, atr_gate_signal
from decision_engine.strategy_utils.trait_weights import build_trait_weights
from decision_engine.utils.number_utils import clamp, round_half_up

logger = logging.getLogger(__name__)

SELL_THRESHOLD = 2.0
CONTRARIAN_INVERSION = 70.0
HOLD_CONFIDENCE = 50
MAX_BUY_CONFIDENCE = 95
MAX_SELL_CONFIDENCE = 92


@dataclass
class ConfluenceResult:
    """Scorer output before portfolio and session gating."""

    action: Action
    confidence: int
    buy_score: float
    sell_score: float
    buy_count: int
    sell_count: int
    buy_threshold: float
    sell_threshold: float
    min_signals: int
    signals: List[Signal] = field(default_factory=list)
    inverted: bool = False
    blocked_by_regime: bool = False

    @property
    def confluence_score(self) -> float:
        return self.sell_score if self.action == Action.SELL else self.buy_score

    @property
    def signal_count(self) -> int:
        if self.action == Action.BUY:
            return self.buy_count
        if self.action == Action.SELL:
            return self.sell_count
        return 0

    @property
    def active_signals(self) -> List[Signal]:
        return [s for s in self.signals if s.is_active]


class ConfluenceScorer:
    """Runs the indicator modules and scores their agreement."""

    def collect_signals(self, snapshot: MarketSnapshot, atr_profile: Optional[ATRProfile] = None) -> List[Signal]:
        """
        Run every indicator module against the snapshot.

        Each module degrades to a low-strength NEUTRAL signal on missing data,
        so the list always has one entry per module.

        Args:
            snapshot: Market snapshot (history already ensured by the caller)
            atr_profile: ATR profile, adds the informational ATR_GATE signal

        Returns:
            List of signals
        """
        signals = [
            analyze_ema_stack(snapshot),
            analyze_volume(snapshot),
            analyze_rsi_divergence(snapshot),
            analyze_macd(snapshot.macd),
            analyze_bollinger(snapshot),
            analyze_smc(snapshot),
            analyze_ichimoku(snapshot),
            analyze_market_structure(snapshot),
        ]
        if atr_profile is not None:
            signals.append(atr_gate_signal(atr_profile))
        return signals

    def score(self, signals: List[Signal], traits: AgentTraits,
              trend_regime: Optional[str] = None) -> ConfluenceResult:
        """
        Score signals into BUY, SELL or HOLD.

        Effective weight is the trait-derived module weight times signal
        strength. Agents with contrarian bias above 70 have their buy and sell
        sides swapped. BUY needs ``2.5 + 2 * aggression / 100`` weighted score
        and ``round(2 + 2 * timing / 100)`` signals, and is blocked in a strong
        downtrend; SELL needs 2.0 and ``max(2, min_signals - 1)`` signals.

        Args:
            signals: Indicator outputs
            traits: Agent traits
            trend_regime: Five-state trend regime

        Returns:
            ConfluenceResult
        """
        weights: Dict[str, float] = build_trait_weights(traits)
        buy_score = sell_score = 0.0
        buy_count = sell_count = 0

        for sig in signals:
            effective = weights.get(sig.name, sig.weight) * sig.strength
            if sig.direction == Direction.BUY:
                buy_score += effective
                buy_count += 1
            elif sig.direction == Direction.SELL:
                sell_score += effective
                sell_count += 1

        inverted = traits.contrarian_bias > CONTRARIAN_INVERSION
        if inverted:
            buy_score, sell_score = sell_score, buy_score
            buy_count, sell_count = sell_count, buy_count

        min_signals = round_half_up(2 + 2 * traits.timing_sensitivity / 100)
        buy_threshold = 2.5 + 2 * traits.aggression / 100
        sell_min_signals = max(2, min_signals - 1)

        action = Action.HOLD
        confidence = HOLD_CONFIDENCE
        blocked = False

        buy_ready = buy_score >= buy_threshold and buy_count >= min_signals
        if buy_ready and trend_regime == STRONG_DOWNTREND:
            blocked = True
            buy_ready = False

        if buy_ready:
            action = Action.BUY
            raw = 55 + (buy_score - buy_threshold) * 8 + buy_count * 3
            confidence = round_half_up(clamp(raw, 0, MAX_BUY_CONFIDENCE))
        elif sell_score >= SELL_THRESHOLD and sell_count >= sell_min_signals:
            action = Action.SELL
            raw = 55 + (sell_score - SELL_THRESHOLD) * 8 + sell_count * 3
            confidence = round_half_up(clamp(raw, 0, MAX_SELL_CONFIDENCE))

        logger.debug(
            f"Confluence: buy={buy_score:.2f} ({buy_count}) sell={sell_score:.2f} ({sell_count}) "
            f"thresholds buy={buy_threshold:.2f} sell={SELL_THRESHOLD:.2f} min={min_signals} -> {action.value}"
        )

        return ConfluenceResult(
            action=action,
            confidence=confidence,
            buy_score=buy_score,
            sell_score=sell_score,
            buy_count=buy_count,
            sell_count=sell_count,
            buy_threshold=buy_threshold,
            sell_threshold=SELL_THRESHOLD,
            min_signals=min_signals,
            signals=list(signals),
            inverted=inverted,
            blocked_by_regime=blocked,
        )
