"""
ATR profile, position sizing and portfolio guard tests

Tests:
- True range and ATR estimation
- Volatility tier boundaries and the ATR gate
- ATR-risk position sizing
- Portfolio reserves, exposure and tradable capital
"""

import pytest

from decision_engine.models import AgentTraits, Candle, PortfolioSnapshot
from decision_engine.portfolio.portfolio_guard import PortfolioGuard
from decision_engine.signals import Direction
from decision_engine.strategy_utils.atr_profile import (
    atr_gate_signal,
    build_atr_profile,
    compute_atr,
    compute_true_ranges,
    volatility_tier,
)
from decision_engine.strategy_utils.position_sizing import compute_position_size


# ============================================================================
# ATR profile
# ============================================================================

class TestAtrProfile:
    """ATR risk distances"""

    def test_true_range_uses_previous_close(self):
        candles = [Candle(99, 101, 98, 100), Candle(103, 105, 102, 104)]

        assert compute_true_ranges(candles) == [pytest.approx(5.0)]

    def test_atr_averages_last_period_ranges(self):
        """Only the last 14 true ranges count"""
        candles = [Candle(100, 110, 90, 100) for _ in range(6)] + [Candle(100, 102, 98, 100) for _ in range(15)]

        assert compute_atr(candles) == pytest.approx(4.0)
        assert compute_atr(candles, period=20) == pytest.approx((4.0 * 15 + 20.0 * 5) / 20)
        assert compute_atr(candles[:1]) == 0.0

    def test_estimate_from_volatility(self):
        profile = build_atr_profile(price=100.0, volatility=3.0)

        assert profile.atr == pytest.approx(3.0)
        assert profile.atr_pct == pytest.approx(3.0)
        assert profile.stop_distance == pytest.approx(4.5)
        assert profile.target_distance == pytest.approx(9.0)
        assert profile.stop_price(100.0) == pytest.approx(95.5)
        assert profile.target_price(100.0) == pytest.approx(109.0)
        assert profile.volatility_tier == "MEDIUM"
        assert not profile.from_candles

    def test_real_atr_from_candles(self):
        candles = [Candle(100, 102, 98, 100) for _ in range(15)]
        profile = build_atr_profile(price=100.0, volatility=10.0, candles=candles)

        assert profile.from_candles
        assert profile.atr == pytest.approx(4.0)

    def test_target_is_twice_the_stop(self):
        profile = build_atr_profile(price=250.0, volatility=2.4)

        assert profile.target_distance == pytest.approx(2 * profile.stop_distance)

    @pytest.mark.parametrize("atr_pct,tier", [
        (1.49, "LOW"),
        (1.5, "MEDIUM"),
        (3.99, "MEDIUM"),
        (4.0, "HIGH"),
        (8.0, "EXTREME"),
    ])
    def test_tier_boundaries(self, atr_pct, tier):
        assert volatility_tier(atr_pct) == tier

    def test_atr_gate_is_informational(self):
        wide = atr_gate_signal(build_atr_profile(100.0, 2.0))
        narrow = atr_gate_signal(build_atr_profile(100.0, 0.5))

        assert wide.direction == narrow.direction == Direction.NEUTRAL
        assert wide.strength == pytest.approx(0.3)
        assert narrow.strength == pytest.approx(0.1)


# ============================================================================
# Position sizing
# ============================================================================

class TestPositionSizing:
    """Risk-based sizing capped by tradable capital"""

    def test_capped_by_tradable_amount(self):
        size = compute_position_size(atr_pct=2.0, traits=AgentTraits(), cash=1000.0, tradable_amount=50.0)

        assert size.stop_pct == pytest.approx(3.0)
        assert size.risk_pct == pytest.approx(1.75)
        assert size.raw_pct == pytest.approx(50.0)
        assert size.blended_pct == pytest.approx(43.25)
        assert size.trade_amount == pytest.approx(50.0)
        assert size.suggested_pct == pytest.approx(5.0)

    def test_uncapped_size(self):
        traits = AgentTraits(risk_tolerance=0.0, aggression=0.0, atr_discipline=100.0)
        size = compute_position_size(atr_pct=5.0, traits=traits, cash=1000.0, tradable_amount=500.0)

        # 0.5% risk over a 7.5% stop
        assert size.raw_pct == pytest.approx(0.5 / 7.5 * 100)
        assert size.trade_amount == pytest.approx(66.67)

    def test_zero_atr_uses_fallback_size(self):
        size = compute_position_size(atr_pct=0.0, traits=AgentTraits(), cash=1000.0, tradable_amount=1000.0)

        assert size.raw_pct == pytest.approx(5.0)
        assert size.trade_amount == pytest.approx(117.5)

    def test_zero_cash(self):
        size = compute_position_size(atr_pct=2.0, traits=AgentTraits(), cash=0.0, tradable_amount=0.0)

        assert size.trade_amount == 0.0
        assert size.suggested_pct == 0.0


# ============================================================================
# Portfolio guard
# ============================================================================

class TestPortfolioGuard:
    """Reserves and exposure flags"""

    def test_reserves_and_trade_cap(self):
        assessment = PortfolioGuard().assess(PortfolioSnapshot(cash_balance=100.0))

        assert assessment.equity == pytest.approx(100.0)
        assert assessment.available_cash == pytest.approx(74.5)
        assert assessment.max_trade_size == pytest.approx(5.0)
        assert assessment.tradable_amount == pytest.approx(5.0)
        assert not assessment.is_overexposed
        assert not assessment.is_cash_low

    def test_overexposed(self):
        assessment = PortfolioGuard().assess(PortfolioSnapshot(cash_balance=300.0, position_value=700.0))

        assert assessment.exposure_pct == pytest.approx(70.0)
        assert assessment.is_overexposed

    def test_cash_low(self):
        assessment = PortfolioGuard().assess(PortfolioSnapshot(cash_balance=15.0, position_value=85.0))

        assert assessment.cash_pct == pytest.approx(15.0)
        assert assessment.is_cash_low
        assert assessment.available_cash == 0.0

    def test_zero_equity(self):
        assessment = PortfolioGuard().assess(PortfolioSnapshot(cash_balance=0.0))

        assert assessment.exposure_pct == 0.0
        assert assessment.is_funds_too_low

    def test_config_overrides(self, config):
        config.max_trade_pct = 0.10
        assessment = PortfolioGuard(config).assess(PortfolioSnapshot(cash_balance=100.0))

        assert assessment.tradable_amount == pytest.approx(10.0)
