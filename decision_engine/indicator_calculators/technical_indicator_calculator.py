"""Technical indicator calculations from OHLCV data."""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from decision_engine.models import MacdReading
from decision_engine.utils.number_utils import clamp

logger = logging.getLogger(__name__)

RSI_PERIOD = 14
RSI_HISTORY_LENGTH = 10
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9


def compute_rsi_series(closes: Sequence[float], period: int = RSI_PERIOD) -> pd.Series:
    """
    RSI from rolling mean gain and loss.

    A window with no movement reads 50, gains with no losses read 100.

    Args:
        closes: Close prices, oldest first
        period: Lookback window

    Returns:
        Series aligned with ``closes``; the first ``period`` values are NaN
    """
    close = pd.Series(closes, dtype="float64")
    delta = close.diff()
    gain = delta.clip(lower=0).rolling(window=period).mean()
    loss = (-delta).clip(lower=0).rolling(window=period).mean()

    rs = gain / loss.replace(0.0, np.nan)
    rsi = 100 - (100 / (1 + rs))
    rsi = rsi.mask((loss == 0) & (gain > 0), 100.0)
    rsi = rsi.mask((loss == 0) & (gain == 0), 50.0)
    return rsi


def compute_macd(closes: Sequence[float], fast: int = MACD_FAST, slow: int = MACD_SLOW,
                 signal: int = MACD_SIGNAL) -> Optional[MacdReading]:
    """
    MACD line, signal line and histogram, plus the histogram's last change.

    Returns:
        MacdReading, or None with fewer than ``slow`` closes
    """
    if len(closes) < slow:
        return None
    close = pd.Series(closes, dtype="float64")
    macd_line = close.ewm(span=fast, adjust=False).mean() - close.ewm(span=slow, adjust=False).mean()
    signal_line = macd_line.ewm(span=signal, adjust=False).mean()
    histogram = macd_line - signal_line
    slope = float(histogram.iloc[-1] - histogram.iloc[-2]) if len(histogram) > 1 else 0.0
    return MacdReading(
        value=float(macd_line.iloc[-1]),
        signal=float(signal_line.iloc[-1]),
        histogram=float(histogram.iloc[-1]),
        slope=slope,
    )


def rsi_proxy(change_24h: float, change_7d: float) -> float:
    """Rough RSI estimate from percent changes when no closes are available."""
    return clamp(50 + 1.5 * change_24h + 0.5 * change_7d, 5.0, 95.0)


class TechnicalIndicatorCalculator:
    """Calculates RSI and MACD enrichment from OHLCV data."""

    def compute_indicators(self, ohlcv: List[List[float]]) -> Dict[str, Any]:
        """
        Compute technical indicators from OHLCV data.

        Args:
            ohlcv: List of OHLCV candles [[timestamp, open, high, low, close, volume], ...]

        Returns:
            Dictionary with ``rsi`` (float or None), ``rsi_history`` (last
            values, oldest first) and ``macd`` (MacdReading or None)
        """
        if not ohlcv:
            return {"rsi": None, "rsi_history": [], "macd": None}

        df = pd.DataFrame(ohlcv, columns=["timestamp", "open", "high", "low", "close", "volume"])
        closes = df["close"].astype("float64").tolist()

        rsi_series = compute_rsi_series(closes).dropna()
        rsi = float(rsi_series.iloc[-1]) if not rsi_series.empty else None
        rsi_history = [float(v) for v in rsi_series.iloc[-RSI_HISTORY_LENGTH:]]

        macd = compute_macd(closes)
        logger.debug(
            f"Indicators over {len(closes)} candles: rsi={rsi if rsi is None else round(rsi, 2)}, "
            f"macd={'n/a' if macd is None else round(macd.histogram, 6)}"
        )
        return {"rsi": rsi, "rsi_history": rsi_history, "macd": macd}
