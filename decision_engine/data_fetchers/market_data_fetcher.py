"""Ticker and candle retrieval from the configured ccxt exchange."""

import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

OHLCV_FIELDS = 6


def _is_valid_candle(row: Any) -> bool:
    if not isinstance(row, (list, tuple)) or len(row) < OHLCV_FIELDS:
        return False
    if any(value is None for value in row[:OHLCV_FIELDS]):
        return False
    return row[4] > 0


class MarketDataFetcher:
    """Thin wrapper over the public ccxt endpoints the snapshot builder needs."""

    def __init__(self, exchange_adapter, config):
        self.exchange_adapter = exchange_adapter
        self.config = config

    @property
    def exchange(self):
        return self.exchange_adapter.exchange

    def fetch_ticker_data(self, symbol: str) -> Dict[str, Any]:
        """
        Return the unified ccxt ticker for ``symbol``.

        Raises:
            ccxt.BaseError: Propagated for the provider's retry loop
        """
        ticker = self.exchange.fetch_ticker(symbol)
        logger.debug(f"{symbol} ticker last={ticker.get('last')} high={ticker.get('high')} low={ticker.get('low')}")
        return ticker

    def fetch_ohlcv_data(self, symbol: str, timeframe: str, limit: int) -> List[List[float]]:
        """
        Return candles oldest first, keeping only rows with a positive close.

        Args:
            symbol: Market symbol such as "BTC/USDT"
            timeframe: ccxt timeframe ("1h")
            limit: Maximum candles requested

        Returns:
            Rows of ``[timestamp, open, high, low, close, volume]``
        """
        rows = self.exchange.fetch_ohlcv(symbol, timeframe=timeframe, limit=limit) or []
        candles = sorted((row for row in rows if _is_valid_candle(row)), key=lambda row: row[0])
        dropped = len(rows) - len(candles)
        if dropped:
            logger.warning(f"{symbol}: dropped {dropped} malformed candle(s)")
        return candles
