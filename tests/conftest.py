"""Shared fixtures for decision engine tests."""

import pytest

from decision_engine.config import Config
from decision_engine.models import AgentTraits, MacdReading, MarketSnapshot, PortfolioSnapshot


def linear_prices(start: float, step: float, count: int):
    return [start + step * i for i in range(count)]


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def traits():
    return AgentTraits()


@pytest.fixture
def uptrend_snapshot():
    """30-point linear uptrend with oversold RSI and rising MACD."""
    prices = linear_prices(100.0, 1.0, 30)
    return MarketSnapshot(
        symbol="BTC/USDT",
        price=prices[-1],
        change_1h=0.8,
        change_24h=4.0,
        change_7d=8.0,
        high_24h=130.0,
        low_24h=120.0,
        range_percent=90.0,
        volatility=2.0,
        price_history=prices,
        rsi=25.0,
        macd=MacdReading(value=0.05, signal=0.04, histogram=0.01, slope=0.002),
    )


@pytest.fixture
def flat_portfolio():
    return PortfolioSnapshot(cash_balance=1000.0)
