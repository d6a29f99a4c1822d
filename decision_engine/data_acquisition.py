"""Data acquisition layer for fetching market snapshots from exchanges."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from decision_engine.data_fetchers.market_data_fetcher import MarketDataFetcher
from decision_engine.exchange_adapters.exchange_adapter import ExchangeAdapter
from decision_engine.indicator_calculators.technical_indicator_calculator import TechnicalIndicatorCalculator
from decision_engine.models import MarketSnapshot
from decision_engine.snapshot_builders.market_snapshot_builder import MarketSnapshotBuilder

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Outcome of a snapshot fetch. ``snapshot`` is None on failure."""

    symbol: str
    snapshot: Optional[MarketSnapshot] = None
    error: Optional[str] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.snapshot is not None


class MarketDataProvider(ABC):
    """Abstract source of market snapshots."""

    @abstractmethod
    def fetch_snapshot(self, symbol: str) -> FetchResult:
        """
        Fetch a fresh snapshot for one symbol.

        Args:
            symbol: Trading pair symbol (e.g., "BTC/USDT")

        Returns:
            FetchResult; never raises for data errors
        """
        pass

    def fetch_snapshots(self, symbols: List[str]) -> Dict[str, FetchResult]:
        """Fetch snapshots for several symbols, one result per symbol."""
        results = {symbol: self.fetch_snapshot(symbol) for symbol in symbols}
        failed = [symbol for symbol, result in results.items() if not result.ok]
        if failed:
            logger.warning(f"Failed to fetch {len(failed)} symbol(s): {', '.join(failed)}")
        return results


class ExchangeMarketDataProvider(MarketDataProvider):
    """Builds snapshots from ccxt tickers and hourly candles, with retries."""

    def __init__(self, config, exchange_adapter: Optional[ExchangeAdapter] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize data acquisition with exchange client.

        Args:
            config: Configuration object with exchange and fetch settings
            exchange_adapter: Pre-built adapter (defaults to one from config)
            sleep: Sleep function used between retries
        """
        self.config = config
        self.exchange_adapter = exchange_adapter or ExchangeAdapter(config)
        self.data_fetcher = MarketDataFetcher(self.exchange_adapter, config)
        self.indicator_calculator = TechnicalIndicatorCalculator()
        self.snapshot_builder = MarketSnapshotBuilder(config)
        self.timeframe = getattr(config, "ohlcv_timeframe", "1h")
        self.limit = getattr(config, "ohlcv_limit", 200)
        self.retries = max(1, getattr(config, "fetch_retries", 3))
        self.retry_delay = getattr(config, "fetch_retry_delay_seconds", 1.5)
        self.sleep = sleep

    def _build_snapshot(self, symbol: str) -> MarketSnapshot:
        ticker_data = self.data_fetcher.fetch_ticker_data(symbol)
        ohlcv_data = self.data_fetcher.fetch_ohlcv_data(symbol, self.timeframe, self.limit)
        indicators = self.indicator_calculator.compute_indicators(ohlcv_data)
        return self.snapshot_builder.build(symbol, ticker_data, ohlcv_data, indicators)

    def fetch_snapshot(self, symbol: str) -> FetchResult:
        last_error = None
        for attempt in range(1, self.retries + 1):
            try:
                snapshot = self._build_snapshot(symbol)
                logger.debug(f"Fetched snapshot for {symbol}: price={snapshot.price} (attempt {attempt})")
                return FetchResult(symbol=symbol, snapshot=snapshot, attempts=attempt)
            except Exception as e:
                last_error = f"{type(e).__name__}: {e}"
                logger.warning(f"Fetch {symbol} attempt {attempt}/{self.retries} failed: {last_error}")
                if attempt < self.retries:
                    self.sleep(self.retry_delay * attempt)

        logger.error(f"Failed to fetch market data for {symbol} after {self.retries} attempts")
        return FetchResult(symbol=symbol, error=last_error, attempts=self.retries)
