"""Builder for MarketSnapshot objects from exchange data."""

import logging
from typing import Any, Dict, List, Optional

from decision_engine.indicator_calculators.technical_indicator_calculator import rsi_proxy
from decision_engine.models import Candle, MarketSnapshot
from decision_engine.utils.number_utils import safe_div

logger = logging.getLogger(__name__)

CANDLES_1H = 1
CANDLES_24H = 24
CANDLES_7D = 168
MAX_PRICE_HISTORY = 250
MAX_VOLUME_HISTORY = 20


def _percent_change(closes: List[float], price: float, lookback: int) -> float:
    """Percent change vs the close ``lookback`` candles back (or the oldest one)."""
    if len(closes) < 2:
        return 0.0
    index = max(0, len(closes) - 1 - lookback)
    base = closes[index]
    return safe_div(price - base, base) * 100


class MarketSnapshotBuilder:
    """Derives snapshot statistics from a ticker and hourly candles."""

    def __init__(self, config=None):
        """
        Initialize snapshot builder.

        Args:
            config: Configuration object
        """
        self.config = config

    def build(self, symbol: str, ticker_data: Dict, ohlcv_data: List[List[float]],
              indicators: Optional[Dict[str, Any]] = None) -> MarketSnapshot:
        """
        Build a MarketSnapshot.

        Args:
            symbol: Trading pair symbol
            ticker_data: ccxt ticker
            ohlcv_data: Hourly OHLCV rows, oldest first
            indicators: Output of TechnicalIndicatorCalculator.compute_indicators

        Returns:
            MarketSnapshot

        Raises:
            ValueError: If no usable price is available
        """
        indicators = indicators or {}
        candles = [Candle.from_ohlcv(row) for row in ohlcv_data or []]
        closes = [c.close for c in candles]

        price = ticker_data.get("last") or ticker_data.get("close") or (closes[-1] if closes else None)
        if not price or price <= 0:
            raise ValueError(f"No valid price for {symbol}")
        price = float(price)

        change_1h = _percent_change(closes, price, CANDLES_1H)
        change_24h = _percent_change(closes, price, CANDLES_24H)
        change_7d = _percent_change(closes, price, CANDLES_7D)

        day = candles[-CANDLES_24H:]
        high_24h = float(ticker_data.get("high") or (max(c.high for c in day) if day else price))
        low_24h = float(ticker_data.get("low") or (min(c.low for c in day) if day else price))

        quote_volume = ticker_data.get("quoteVolume")
        if quote_volume:
            volume_24h = float(quote_volume)
        else:
            volume_24h = sum(c.volume for c in day) * price

        price_range = high_24h - low_24h
        range_percent = safe_div(price - low_24h, price_range) * 100 if price_range > 0 else 50.0
        volatility = safe_div(price_range, price) * 100

        volumes = [c.volume for c in candles]
        prior = volumes[-(CANDLES_24H + 1):-1]
        prior_mean = safe_div(sum(prior), len(prior))
        volume_ratio = safe_div(volumes[-1], prior_mean) if volumes and prior_mean > 0 else 0.0

        rsi = indicators.get("rsi")
        if rsi is None:
            rsi = rsi_proxy(change_24h, change_7d)

        timestamp = ticker_data.get("timestamp")
        snapshot = MarketSnapshot(
            symbol=symbol,
            price=price,
            change_1h=change_1h,
            change_24h=change_24h,
            change_7d=change_7d,
            high_24h=high_24h,
            low_24h=low_24h,
            volume_24h=volume_24h,
            range_percent=range_percent,
            volatility=volatility,
            volume_ratio=volume_ratio,
            price_history=closes[-MAX_PRICE_HISTORY:] or None,
            candles=candles[-MAX_PRICE_HISTORY:] or None,
            rsi=rsi,
            rsi_history=indicators.get("rsi_history") or None,
            macd=indicators.get("macd"),
            volume_history=volumes[-MAX_VOLUME_HISTORY:] or None,
            timestamp=int(timestamp) if timestamp is not None else None,
        )
        logger.debug(
            f"Snapshot {symbol}: ${price:.2f} 24h={change_24h:+.2f}% 7d={change_7d:+.2f}% "
            f"vol={volatility:.2f}% candles={len(candles)}"
        )
        return snapshot
