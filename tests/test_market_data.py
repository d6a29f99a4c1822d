"""
Market data layer tests

Tests:
- pandas RSI/MACD enrichment
- Snapshot derivation from ticker and hourly candles
- ccxt-backed provider with retry and linear backoff
"""

from unittest.mock import Mock

import ccxt
import pytest

from decision_engine.config import Config
from decision_engine.data_acquisition import ExchangeMarketDataProvider
from decision_engine.data_fetchers.market_data_fetcher import MarketDataFetcher
from decision_engine.exchange_adapters.exchange_adapter import ExchangeAdapter
from decision_engine.indicator_calculators.technical_indicator_calculator import (
    TechnicalIndicatorCalculator,
    compute_macd,
    compute_rsi_series,
    rsi_proxy,
)
from decision_engine.snapshot_builders.market_snapshot_builder import MarketSnapshotBuilder

BASE_TS = 1_700_000_000_000
HOUR_MS = 3_600_000


def make_ohlcv(closes, volumes=None):
    rows = []
    for i, close in enumerate(closes):
        volume = volumes[i] if volumes else 10.0
        rows.append([BASE_TS + i * HOUR_MS, close, close + 1.0, close - 1.0, close, volume])
    return rows


@pytest.fixture
def rising_ohlcv():
    return make_ohlcv([100.0 + 0.5 * i for i in range(200)])


@pytest.fixture
def mock_exchange(rising_ohlcv):
    exchange = Mock()
    exchange.fetch_ticker.return_value = {"last": 199.5, "timestamp": BASE_TS}
    exchange.fetch_ohlcv.return_value = rising_ohlcv
    return exchange


# ============================================================================
# Indicator enrichment
# ============================================================================

class TestTechnicalIndicatorCalculator:
    def test_flat_series_rsi_is_50(self):
        rsi = compute_rsi_series([100.0] * 20)

        assert rsi.iloc[-1] == pytest.approx(50.0)

    def test_only_gains_rsi_is_100(self):
        rsi = compute_rsi_series([100.0 + i for i in range(20)])

        assert rsi.iloc[-1] == pytest.approx(100.0)

    def test_rsi_warmup_is_nan(self):
        rsi = compute_rsi_series([100.0 + i for i in range(20)])

        assert rsi.iloc[:14].isna().all()

    def test_macd_needs_slow_period(self):
        assert compute_macd([100.0] * 25) is None

    def test_macd_positive_in_uptrend(self):
        macd = compute_macd([100.0 + i for i in range(60)])

        assert macd.value > 0
        assert macd.histogram == pytest.approx(macd.value - macd.signal)

    def test_compute_indicators(self, rising_ohlcv):
        indicators = TechnicalIndicatorCalculator().compute_indicators(rising_ohlcv)

        assert indicators["rsi"] == pytest.approx(100.0)
        assert len(indicators["rsi_history"]) == 10
        assert indicators["macd"] is not None

    def test_empty_ohlcv(self):
        indicators = TechnicalIndicatorCalculator().compute_indicators([])

        assert indicators == {"rsi": None, "rsi_history": [], "macd": None}

    def test_rsi_proxy_is_clamped(self):
        assert rsi_proxy(2.0, 4.0) == pytest.approx(55.0)
        assert rsi_proxy(100.0, 100.0) == 95.0
        assert rsi_proxy(-100.0, 0.0) == 5.0


# ============================================================================
# Snapshot builder
# ============================================================================

class TestMarketSnapshotBuilder:
    def test_changes_from_candle_lookbacks(self, rising_ohlcv):
        snapshot = MarketSnapshotBuilder().build("BTC/USDT", {"last": 199.5}, rising_ohlcv)

        # closes 1, 24 and 168 candles back
        assert snapshot.change_1h == pytest.approx((199.5 - 199.0) / 199.0 * 100)
        assert snapshot.change_24h == pytest.approx((199.5 - 187.5) / 187.5 * 100)
        assert snapshot.change_7d == pytest.approx((199.5 - 115.5) / 115.5 * 100)

    def test_range_from_last_day(self, rising_ohlcv):
        snapshot = MarketSnapshotBuilder().build("BTC/USDT", {"last": 199.5}, rising_ohlcv)

        assert snapshot.high_24h == pytest.approx(200.5)
        assert snapshot.low_24h == pytest.approx(187.0)
        assert snapshot.volatility == pytest.approx(13.5 / 199.5 * 100)
        assert snapshot.range_percent == pytest.approx(12.5 / 13.5 * 100)

    def test_ticker_high_low_override(self, rising_ohlcv):
        ticker = {"last": 199.5, "high": 210.0, "low": 190.0, "quoteVolume": 5_000_000.0}
        snapshot = MarketSnapshotBuilder().build("BTC/USDT", ticker, rising_ohlcv)

        assert snapshot.high_24h == 210.0
        assert snapshot.low_24h == 190.0
        assert snapshot.volume_24h == 5_000_000.0

    def test_volume_ratio_and_history(self):
        volumes = [10.0] * 29 + [30.0]
        ohlcv = make_ohlcv([100.0] * 30, volumes)
        snapshot = MarketSnapshotBuilder().build("BTC/USDT", {"last": 100.0}, ohlcv)

        assert snapshot.volume_ratio == pytest.approx(3.0)
        assert len(snapshot.volume_history) == 20
        assert snapshot.volume_history[-1] == 30.0

    def test_rsi_proxy_without_indicators(self, rising_ohlcv):
        snapshot = MarketSnapshotBuilder().build("BTC/USDT", {"last": 199.5}, rising_ohlcv)

        assert 5.0 <= snapshot.rsi <= 95.0

    def test_history_kept(self, rising_ohlcv):
        snapshot = MarketSnapshotBuilder().build("BTC/USDT", {"last": 199.5, "timestamp": BASE_TS}, rising_ohlcv)

        assert len(snapshot.price_history) == 200
        assert len(snapshot.candles) == 200
        assert snapshot.timestamp == BASE_TS

    def test_no_price_raises(self):
        with pytest.raises(ValueError, match="No valid price"):
            MarketSnapshotBuilder().build("BTC/USDT", {"last": None}, [])


# ============================================================================
# Exchange provider
# ============================================================================

class TestExchangeMarketDataProvider:
    def test_unknown_exchange_rejected(self):
        with pytest.raises(ValueError, match="Unsupported exchange type"):
            ExchangeAdapter(Config(exchange_type="not_an_exchange"))

    def test_fetch_snapshot(self, mock_exchange):
        provider = ExchangeMarketDataProvider(Config(), ExchangeAdapter(Config(), exchange=mock_exchange))

        result = provider.fetch_snapshot("BTC/USDT")

        assert result.ok
        assert result.attempts == 1
        assert result.snapshot.price == 199.5
        assert result.snapshot.macd is not None
        mock_exchange.fetch_ohlcv.assert_called_once_with("BTC/USDT", timeframe="1h", limit=200)

    def test_retry_with_linear_backoff(self, mock_exchange):
        mock_exchange.fetch_ticker.side_effect = [
            ccxt.NetworkError("timeout"),
            ccxt.NetworkError("timeout"),
            {"last": 199.5},
        ]
        sleep = Mock()
        provider = ExchangeMarketDataProvider(Config(), ExchangeAdapter(Config(), exchange=mock_exchange), sleep=sleep)

        result = provider.fetch_snapshot("BTC/USDT")

        assert result.ok
        assert result.attempts == 3
        assert [c.args[0] for c in sleep.call_args_list] == [1.5, 3.0]

    def test_all_attempts_fail(self, mock_exchange):
        mock_exchange.fetch_ticker.side_effect = ccxt.NetworkError("down")
        provider = ExchangeMarketDataProvider(Config(fetch_retries=2), ExchangeAdapter(Config(), exchange=mock_exchange),
                                              sleep=Mock())

        result = provider.fetch_snapshot("BTC/USDT")

        assert not result.ok
        assert result.snapshot is None
        assert result.error == "NetworkError: down"
        assert result.attempts == 2

    def test_fetch_snapshots(self, mock_exchange):
        provider = ExchangeMarketDataProvider(Config(), ExchangeAdapter(Config(), exchange=mock_exchange))

        results = provider.fetch_snapshots(["BTC/USDT", "ETH/USDT"])

        assert set(results) == {"BTC/USDT", "ETH/USDT"}
        assert all(r.ok for r in results.values())

    def test_malformed_candles_dropped(self, mock_exchange, rising_ohlcv):
        rows = list(reversed(rising_ohlcv))
        rows.insert(3, [BASE_TS, None, None, None, None, None])
        rows.append([BASE_TS, 1.0, 1.0])
        mock_exchange.fetch_ohlcv.return_value = rows
        fetcher = MarketDataFetcher(ExchangeAdapter(Config(), exchange=mock_exchange), Config())

        candles = fetcher.fetch_ohlcv_data("BTC/USDT", "1h", 200)

        assert len(candles) == 200
        assert candles[0][0] == BASE_TS
        assert candles[-1][4] == rising_ohlcv[-1][4]
