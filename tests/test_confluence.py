"""
Regime classification and confluence scoring tests

Tests:
- EMA-based and momentum-vote regimes
- Trait-derived weights
- BUY/SELL/HOLD thresholds, confidence caps and half-up rounding
- Contrarian inversion and the strong-downtrend buy block
"""

import pytest

from decision_engine.confluence_scorer import ConfluenceScorer
from decision_engine.models import Action, AgentTraits, MarketSnapshot
from decision_engine.regime_classifier import (
    DOWNTREND,
    NEUTRAL,
    RANGE,
    STRONG_DOWNTREND,
    STRONG_UPTREND,
    UPTREND,
    RegimeClassifier,
)
from decision_engine.signals import Direction, Signal
from decision_engine.strategy_utils.atr_profile import build_atr_profile
from decision_engine.strategy_utils.trait_weights import build_trait_weights
from tests.conftest import linear_prices


@pytest.fixture
def scorer():
    return ConfluenceScorer()


@pytest.fixture
def bullish_signals():
    return [
        Signal("EMA_STACK", Direction.BUY, 1.0, 2.0),
        Signal("MACD_MOMENTUM", Direction.BUY, 0.85, 1.5),
        Signal("MARKET_STRUCT", Direction.BUY, 0.8, 1.5),
        Signal("RSI_DIV", Direction.BUY, 0.5, 1.5),
        Signal.neutral("VOLUME", 1.5, 0.2, "normal"),
    ]


# ============================================================================
# Regime classifier
# ============================================================================

class TestRegimeClassifier:
    """Three- and five-state regimes"""

    def test_ema_strong_uptrend(self):
        prices = linear_prices(100, 1, 30)
        reading = RegimeClassifier().classify(MarketSnapshot("BTC/USDT", prices[-1], price_history=prices))

        assert reading.source == "ema"
        assert reading.regime == UPTREND
        assert reading.trend_regime == STRONG_UPTREND

    def test_ema_strong_downtrend(self):
        prices = linear_prices(130, -1, 30)
        reading = RegimeClassifier().classify(MarketSnapshot("BTC/USDT", prices[-1], price_history=prices))

        assert reading.regime == DOWNTREND
        assert reading.trend_regime == STRONG_DOWNTREND

    @pytest.mark.parametrize("changes,regime,trend", [
        ((1.0, 3.0, 6.0, 80.0), UPTREND, STRONG_UPTREND),
        ((1.0, 3.0, 6.0, 50.0), UPTREND, UPTREND),
        ((-1.0, -3.0, -6.0, 20.0), DOWNTREND, STRONG_DOWNTREND),
        ((1.0, 3.0, 0.0, 50.0), RANGE, NEUTRAL),
    ])
    def test_momentum_vote(self, changes, regime, trend):
        p1h, p24h, p7d, range_pct = changes
        snapshot = MarketSnapshot("ETH/USDT", 2000.0, change_1h=p1h, change_24h=p24h,
                                  change_7d=p7d, range_percent=range_pct)
        reading = RegimeClassifier().classify(snapshot)

        assert reading.source == "momentum"
        assert (reading.regime, reading.trend_regime) == (regime, trend)

    def test_short_history_uses_momentum(self):
        snapshot = MarketSnapshot("BTC/USDT", 100.0, price_history=linear_prices(90, 1, 20))

        assert RegimeClassifier().classify(snapshot).source == "momentum"
        assert RegimeClassifier().classify_trend(snapshot) == NEUTRAL


# ============================================================================
# Trait weights
# ============================================================================

class TestTraitWeights:
    def test_default_weights(self):
        weights = build_trait_weights(AgentTraits())

        assert weights["EMA_STACK"] == pytest.approx(2.4)
        assert weights["RSI_DIV"] == pytest.approx(1.65)
        assert weights["SMC"] == pytest.approx(1.0 + 0.75 + 0.24)
        assert len(weights) == 8

    def test_weights_follow_skill(self):
        low = build_trait_weights(AgentTraits(ichimoku_mastery=0))
        high = build_trait_weights(AgentTraits(ichimoku_mastery=100))

        assert low["ICHIMOKU"] == pytest.approx(1.5)
        assert high["ICHIMOKU"] == pytest.approx(3.0)


# ============================================================================
# Confluence scoring
# ============================================================================

class TestConfluenceScorer:
    """Scoring thresholds and inversion"""

    def test_buy_confluence(self, scorer, bullish_signals):
        result = scorer.score(bullish_signals, AgentTraits(), UPTREND)

        assert result.action == Action.BUY
        assert result.buy_count == 4
        assert result.buy_score == pytest.approx(5.41125)
        assert result.buy_threshold == pytest.approx(3.5)
        assert result.min_signals == 3
        assert result.confidence == 82
        assert result.confluence_score == pytest.approx(result.buy_score)

    def test_contrarian_inversion_mirrors_sides(self, scorer, bullish_signals):
        result = scorer.score(bullish_signals, AgentTraits(contrarian_bias=80), UPTREND)

        assert result.inverted
        assert result.action == Action.SELL
        assert result.sell_score == pytest.approx(5.41125)
        assert result.sell_count == 4
        # Capped at 92 for SELL
        assert result.confidence == 92

    def test_contrarian_at_threshold_is_not_inverted(self, scorer, bullish_signals):
        result = scorer.score(bullish_signals, AgentTraits(contrarian_bias=70), UPTREND)

        assert not result.inverted
        assert result.action == Action.BUY

    def test_strong_downtrend_blocks_buy(self, scorer, bullish_signals):
        result = scorer.score(bullish_signals, AgentTraits(), STRONG_DOWNTREND)

        assert result.action == Action.HOLD
        assert result.blocked_by_regime
        assert result.confidence == 50

    def test_blocked_buy_falls_through_to_sell(self, scorer, bullish_signals):
        signals = bullish_signals + [
            Signal("SMC", Direction.SELL, 0.85, 1.8),
            Signal("VOLUME", Direction.SELL, 1.0, 1.5),
        ]
        result = scorer.score(signals, AgentTraits(), STRONG_DOWNTREND)

        assert result.blocked_by_regime
        assert result.action == Action.SELL
        assert result.sell_count == 2

    def test_not_enough_signals(self, scorer):
        signals = [
            Signal("EMA_STACK", Direction.BUY, 1.0, 2.0),
            Signal("ICHIMOKU", Direction.BUY, 0.9, 2.0),
        ]
        result = scorer.score(signals, AgentTraits(), UPTREND)

        assert result.buy_score >= result.buy_threshold
        assert result.action == Action.HOLD

    def test_min_signals_rounds_half_up(self, scorer):
        result = scorer.score([], AgentTraits(timing_sensitivity=25), NEUTRAL)

        assert result.min_signals == 3

    def test_buy_threshold_follows_aggression(self, scorer):
        result = scorer.score([], AgentTraits(aggression=100), NEUTRAL)

        assert result.buy_threshold == pytest.approx(4.5)
        assert result.action == Action.HOLD

    def test_buy_confidence_capped(self, scorer):
        signals = [Signal(name, Direction.BUY, 1.0, 2.0) for name in
                   ("EMA_STACK", "ICHIMOKU", "SMC", "MACD_MOMENTUM", "RSI_DIV", "MARKET_STRUCT")]
        result = scorer.score(signals, AgentTraits(), STRONG_UPTREND)

        assert result.action == Action.BUY
        assert result.confidence == 95

    def test_collect_signals_runs_every_module(self, scorer, uptrend_snapshot):
        atr = build_atr_profile(uptrend_snapshot.price, uptrend_snapshot.volatility)
        signals = scorer.collect_signals(uptrend_snapshot, atr)

        assert [s.name for s in signals] == [
            "EMA_STACK", "VOLUME", "RSI_DIV", "MACD_MOMENTUM", "BB_SQUEEZE",
            "SMC", "ICHIMOKU", "MARKET_STRUCT", "ATR_GATE",
        ]

    def test_uptrend_snapshot_scores_buy(self, scorer, uptrend_snapshot):
        signals = scorer.collect_signals(uptrend_snapshot)
        result = scorer.score(signals, AgentTraits(), STRONG_UPTREND)

        assert result.action == Action.BUY
        assert result.buy_count == 4
        assert result.sell_count == 1
        assert result.buy_score == pytest.approx(5.01375)
        assert result.confidence == 79
