"""Decision provider interface and the confluence decision orchestrator."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Callable, Optional

from decision_engine.confluence_scorer import ConfluenceResult, ConfluenceScorer
from decision_engine.indicators.ema_stack import EmaStack, compute_ema_stack
from decision_engine.indicators.ichimoku import KIJUN_PERIOD, IchimokuCloud, compute_ichimoku
from decision_engine.indicators.market_structure import classify_structure
from decision_engine.memory.session_store import SessionState, SessionStore
from decision_engine.models import (
    Action,
    AgentTraits,
    Decision,
    DecisionState,
    MarketSnapshot,
    PortfolioSnapshot,
)
from decision_engine.portfolio.portfolio_guard import PortfolioAssessment, PortfolioGuard
from decision_engine.regime_classifier import RegimeClassifier, RegimeReading
from decision_engine.risk_manager import SessionGovernor
from decision_engine.services.rationale_builder import (
    build_reasoning,
    build_risk_summary,
    build_technical_summary,
    price_context,
)
from decision_engine.snapshot_builders.history_synthesizer import ensure_price_history
from decision_engine.strategy_utils.atr_profile import (
    STOP_ATR_MULTIPLE,
    TARGET_ATR_MULTIPLE,
    ATRProfile,
    build_atr_profile,
)
from decision_engine.strategy_utils.position_sizing import compute_position_size
from decision_engine.utils.number_utils import round_half_up, safe_div

logger = logging.getLogger(__name__)

FUNDS_TOO_LOW_CONFIDENCE = 50
SESSION_CAP_CONFIDENCE = 60
COOLDOWN_CONFIDENCE = 55
GATED_BUY_CONFIDENCE = 55
NO_POSITION_CONFIDENCE = 55
STOP_LOSS_CONFIDENCE = 90
TAKE_PROFIT_CONFIDENCE = 85


class DecisionProvider(ABC):
    """Abstract base class for decision providers."""

    @abstractmethod
    def evaluate(self, agent_id: str, snapshot: MarketSnapshot, traits: AgentTraits,
                 portfolio: PortfolioSnapshot, now: Optional[float] = None) -> Decision:
        """
        Produce a decision for one agent at one instant.

        Args:
            agent_id: Agent identifier (session state key)
            snapshot: Fresh market snapshot
            traits: Agent traits
            portfolio: Fresh portfolio snapshot
            now: Evaluation time in Unix seconds (defaults to the clock)

        Returns:
            Complete Decision record
        """
        pass


@dataclass
class AnalysisContext:
    """Everything SCORE_SIGNALS produces, reused by later states and the rationale."""

    snapshot: MarketSnapshot
    result: ConfluenceResult
    regime: RegimeReading
    atr: ATRProfile
    structure: str
    stack: Optional[EmaStack]
    cloud: Optional[IchimokuCloud]
    synthetic_points: int

    @property
    def technical_summary(self) -> str:
        return build_technical_summary(self.regime, self.structure, self.atr, self.result,
                                       self.stack, self.cloud, self.synthetic_points)


class DecisionOrchestrator(DecisionProvider):
    """
    Runs the decision state machine:

    CHECK_FUNDS -> CHECK_SESSION_CAP -> CHECK_COOLDOWN -> SCORE_SIGNALS ->
    EVALUATE_SELL -> EVALUATE_BUY -> SIZE_POSITION -> EMIT

    The three checks short-circuit to HOLD. Session state is read once at
    entry and written once at exit, under the agent's lock.
    """

    def __init__(self, session_store: SessionStore, config=None,
                 scorer: Optional[ConfluenceScorer] = None,
                 regime_classifier: Optional[RegimeClassifier] = None,
                 portfolio_guard: Optional[PortfolioGuard] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the orchestrator.

        Args:
            session_store: Shared per-agent session store
            config: Configuration object (engine thresholds)
            scorer: Confluence scorer
            regime_classifier: Regime classifier
            portfolio_guard: Portfolio guard
            clock: Callable returning Unix seconds
        """
        self.config = config
        self.session_store = session_store
        self.clock = clock
        self.governor = SessionGovernor(session_store, config, clock)
        self.scorer = scorer or ConfluenceScorer()
        self.regime_classifier = regime_classifier or RegimeClassifier()
        self.portfolio_guard = portfolio_guard or PortfolioGuard(config)
        self.min_trade_amount = getattr(config, "min_trade_amount", 3.0)
        self.min_position_value = getattr(config, "min_position_value", 1.0)
        self.history_points = getattr(config, "synthetic_history_points", 30)
        self.history_seed = getattr(config, "history_jitter_seed", None)

    def evaluate(self, agent_id: str, snapshot: MarketSnapshot, traits: AgentTraits,
                 portfolio: PortfolioSnapshot, now: Optional[float] = None) -> Decision:
        now = self.clock() if now is None else now
        with self.session_store.locked(agent_id) as live_state:
            state = replace(live_state)
            decision = self._run(state, snapshot, traits, portfolio, now)
            if decision.action != Action.HOLD:
                self.governor.record_trade(agent_id, decision.action.value, now)

        logger.info(
            f"{agent_id} {snapshot.symbol}: {decision.action.value} "
            f"(conf {decision.confidence}%, size {decision.suggested_amount:.1f}%, "
            f"{len(decision.active_signals)} active signals, state {decision.terminal_state.value})"
        )
        return decision

    def hold_for_missing_data(self, agent_id: str, symbol: str, reason: str = "",
                              now: Optional[float] = None) -> Decision:
        """HOLD emitted when the market data provider returned no snapshot."""
        now = self.clock() if now is None else now
        detail = f": {reason}" if reason else ""
        logger.warning(f"{agent_id} {symbol}: market data unavailable{detail}")
        return Decision(
            action=Action.HOLD,
            confidence=0,
            suggested_amount=0.0,
            reasoning=f"HOLD: market data unavailable for {symbol}{detail}. No analysis performed.",
            risk_assessment="No trade without a market snapshot.",
            terminal_state=DecisionState.CHECK_FUNDS,
            symbol=symbol,
            timestamp=now,
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _run(self, state: SessionState, snapshot: MarketSnapshot, traits: AgentTraits,
             portfolio: PortfolioSnapshot, now: float) -> Decision:
        held_value = self._held_value(portfolio, snapshot)
        if held_value != portfolio.position_value:
            portfolio = replace(portfolio, position_value=held_value)

        # CHECK_FUNDS
        assessment = self.portfolio_guard.assess(portfolio)
        if assessment.is_funds_too_low:
            return self._preflight_hold(
                DecisionState.CHECK_FUNDS, FUNDS_TOO_LOW_CONFIDENCE, snapshot, now,
                f"Funds too low (equity ${assessment.equity:.2f} below "
                f"${self.portfolio_guard.min_equity:.2f})",
            )

        # CHECK_SESSION_CAP
        allowed, reason = self.governor.check_session_cap(state)
        if not allowed:
            return self._preflight_hold(DecisionState.CHECK_SESSION_CAP, SESSION_CAP_CONFIDENCE,
                                        snapshot, now, reason)

        # CHECK_COOLDOWN
        allowed, reason = self.governor.check_cooldown(state, now)
        if not allowed:
            return self._preflight_hold(DecisionState.CHECK_COOLDOWN, COOLDOWN_CONFIDENCE,
                                        snapshot, now, reason)

        # SCORE_SIGNALS
        ctx = self._score_signals(snapshot, traits)

        # EVALUATE_SELL
        if held_value >= self.min_position_value:
            sell = self._evaluate_sell(ctx, traits, portfolio, now)
            if sell is not None:
                return sell

        # EVALUATE_BUY
        if ctx.result.action == Action.BUY:
            return self._evaluate_buy(ctx, traits, assessment, now)

        if ctx.result.action == Action.SELL:
            return self._hold(ctx, now, DecisionState.EVALUATE_SELL, NO_POSITION_CONFIDENCE,
                              "HOLD: sell confluence but no open position to sell.")
        return self._hold(ctx, now, DecisionState.SCORE_SIGNALS, ctx.result.confidence)

    def _score_signals(self, snapshot: MarketSnapshot, traits: AgentTraits) -> AnalysisContext:
        enriched, synthesized = ensure_price_history(snapshot, self.history_points, self.history_seed)
        prices = enriched.price_history
        stack = compute_ema_stack(prices)
        regime = self.regime_classifier.classify(enriched, stack)
        atr = build_atr_profile(enriched.price, enriched.volatility, enriched.candles,
                                stop_multiple=STOP_ATR_MULTIPLE, target_multiple=TARGET_ATR_MULTIPLE)
        structure = classify_structure(enriched).structure
        signals = self.scorer.collect_signals(enriched, atr)
        result = self.scorer.score(signals, traits, regime.trend_regime)
        cloud = compute_ichimoku(prices) if len(prices) >= KIJUN_PERIOD else None
        return AnalysisContext(
            snapshot=enriched,
            result=result,
            regime=regime,
            atr=atr,
            structure=structure,
            stack=stack,
            cloud=cloud,
            synthetic_points=len(prices) if synthesized else 0,
        )

    def _evaluate_sell(self, ctx: AnalysisContext, traits: AgentTraits,
                       portfolio: PortfolioSnapshot, now: float) -> Optional[Decision]:
        atr_pct = ctx.atr.atr_pct
        move_pct = self._position_move_pct(portfolio, ctx.snapshot)
        stop_pct = atr_pct * STOP_ATR_MULTIPLE
        target_pct = atr_pct * TARGET_ATR_MULTIPLE
        aggression = traits.aggression / 100

        if atr_pct > 0 and move_pct < -stop_pct:
            headline = (f"STOP LOSS: position down {abs(move_pct):.2f}%, beyond the "
                        f"{stop_pct:.2f}% stop (1.5x ATR). Exiting in full.")
            return self._sell(ctx, now, STOP_LOSS_CONFIDENCE, 100.0, headline)
        if atr_pct > 0 and move_pct > target_pct:
            headline = (f"TAKE PROFIT: position up {move_pct:.2f}%, beyond the "
                        f"{target_pct:.2f}% target (3x ATR).")
            return self._sell(ctx, now, TAKE_PROFIT_CONFIDENCE, float(round_half_up(60 + aggression * 20)), headline)
        if ctx.result.action == Action.SELL:
            return self._sell(ctx, now, ctx.result.confidence, float(round_half_up(40 + aggression * 20)))
        return None

    def _evaluate_buy(self, ctx: AnalysisContext, traits: AgentTraits,
                      assessment: PortfolioAssessment, now: float) -> Decision:
        if assessment.available_cash < self.min_trade_amount:
            return self._hold(
                ctx, now, DecisionState.EVALUATE_BUY, GATED_BUY_CONFIDENCE,
                f"HOLD: buy signal but available cash ${assessment.available_cash:.2f} after reserves "
                f"is below the ${self.min_trade_amount:.2f} minimum trade.",
            )
        if assessment.is_overexposed:
            return self._hold(
                ctx, now, DecisionState.EVALUATE_BUY, GATED_BUY_CONFIDENCE,
                f"HOLD: buy signal but portfolio overexposed ({assessment.exposure_pct:.1f}% in positions).",
            )
        if assessment.is_cash_low:
            return self._hold(
                ctx, now, DecisionState.EVALUATE_BUY, GATED_BUY_CONFIDENCE,
                f"HOLD: buy signal but cash reserve low ({assessment.cash_pct:.1f}% of equity).",
            )

        # SIZE_POSITION
        size = compute_position_size(ctx.atr.atr_pct, traits, assessment.cash, assessment.tradable_amount)
        if size.trade_amount < self.min_trade_amount:
            return self._hold(
                ctx, now, DecisionState.SIZE_POSITION, GATED_BUY_CONFIDENCE,
                f"HOLD: buy signal but sized trade ${size.trade_amount:.2f} is below the "
                f"${self.min_trade_amount:.2f} minimum.",
            )

        # EMIT
        price = ctx.snapshot.price
        return self._emit(
            ctx, now, Action.BUY, ctx.result.confidence, size.suggested_pct,
            build_reasoning(Action.BUY, ctx.snapshot, ctx.result, ctx.regime, ctx.structure),
            DecisionState.EMIT,
            trade_amount=size.trade_amount,
            stop_loss=ctx.atr.stop_price(price),
            take_profit=ctx.atr.target_price(price),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _held_value(portfolio: PortfolioSnapshot, snapshot: MarketSnapshot) -> float:
        if portfolio.position_value > 0:
            return portfolio.position_value
        if portfolio.position is not None and portfolio.position.quantity > 0:
            return portfolio.position.quantity * snapshot.price
        return 0.0

    @staticmethod
    def _position_move_pct(portfolio: PortfolioSnapshot, snapshot: MarketSnapshot) -> float:
        """Unrealized move vs entry, or the 24h change when the entry price is unknown."""
        position = portfolio.position
        if position is not None:
            entry = position.entry_price
            if not entry and position.entry_cost and position.quantity > 0:
                entry = position.entry_cost / position.quantity
            if entry and entry > 0:
                return safe_div(snapshot.price - entry, entry) * 100
        return snapshot.change_24h

    def _preflight_hold(self, stage: DecisionState, confidence: int, snapshot: MarketSnapshot,
                        now: float, reason: str) -> Decision:
        logger.info(f"{snapshot.symbol}: {stage.value} blocked - {reason}")
        return Decision(
            action=Action.HOLD,
            confidence=confidence,
            suggested_amount=0.0,
            reasoning=f"HOLD: {reason}. {price_context(snapshot)}.",
            risk_assessment=f"No trade: {reason}.",
            terminal_state=stage,
            symbol=snapshot.symbol,
            timestamp=now,
        )

    def _sell(self, ctx: AnalysisContext, now: float, confidence: int, amount: float,
              headline: Optional[str] = None) -> Decision:
        reasoning = build_reasoning(Action.SELL, ctx.snapshot, ctx.result, ctx.regime, ctx.structure, headline)
        return self._emit(ctx, now, Action.SELL, confidence, amount, reasoning, DecisionState.EVALUATE_SELL)

    def _hold(self, ctx: AnalysisContext, now: float, stage: DecisionState, confidence: int,
              headline: Optional[str] = None) -> Decision:
        reasoning = build_reasoning(Action.HOLD, ctx.snapshot, ctx.result, ctx.regime, ctx.structure, headline)
        return self._emit(ctx, now, Action.HOLD, confidence, 0.0, reasoning, stage)

    def _emit(self, ctx: AnalysisContext, now: float, action: Action, confidence: int,
              suggested_amount: float, reasoning: str, stage: DecisionState,
              trade_amount: float = 0.0, stop_loss: Optional[float] = None,
              take_profit: Optional[float] = None) -> Decision:
        return Decision(
            action=action,
            confidence=int(confidence),
            suggested_amount=suggested_amount,
            reasoning=reasoning,
            technical_analysis=ctx.technical_summary,
            risk_assessment=build_risk_summary(action, ctx.snapshot, ctx.atr, ctx.result, ctx.regime),
            stop_loss=stop_loss,
            take_profit=take_profit,
            trade_amount=trade_amount,
            regime=ctx.regime.regime,
            trend_regime=ctx.regime.trend_regime,
            market_structure=ctx.structure,
            active_signals=[s.describe() for s in ctx.result.active_signals],
            confluence_score=round(ctx.result.confluence_score, 4),
            terminal_state=stage,
            symbol=ctx.snapshot.symbol,
            timestamp=now,
        )
