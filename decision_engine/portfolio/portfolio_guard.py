"""Portfolio guard: equity, exposure, reserves and tradable capital.

Reserves are taken off cash in a fixed order (gas buffer, safety buffer,
minimum cash reserve). What remains, floored at zero, is available cash.
A single trade is further capped at a fraction of equity.
"""

from dataclasses import dataclass

from decision_engine.models import PortfolioSnapshot
from decision_engine.utils.number_utils import safe_div


@dataclass(frozen=True)
class PortfolioAssessment:
    equity: float
    cash: float
    position_value: float
    exposure_pct: float
    cash_pct: float
    available_cash: float
    max_trade_size: float
    tradable_amount: float
    is_overexposed: bool
    is_cash_low: bool
    is_funds_too_low: bool


class PortfolioGuard:
    def __init__(self, config=None):
        self.gas_buffer = getattr(config, "gas_buffer", 0.50)
        self.safety_buffer_pct = getattr(config, "safety_buffer_pct", 0.05)
        self.min_cash_reserve_pct = getattr(config, "min_cash_reserve_pct", 0.20)
        self.max_trade_pct = getattr(config, "max_trade_pct", 0.05)
        self.overexposure_pct = getattr(config, "overexposure_pct", 60.0)
        self.min_equity = getattr(config, "min_equity", 2.0)

    def assess(self, portfolio: PortfolioSnapshot) -> PortfolioAssessment:
        cash = max(0.0, portfolio.cash_balance)
        position_value = max(0.0, portfolio.position_value)
        equity = cash + position_value

        exposure_pct = safe_div(position_value, equity) * 100
        cash_pct = safe_div(cash, equity) * 100

        safety_buffer = equity * self.safety_buffer_pct
        cash_reserve = equity * self.min_cash_reserve_pct
        available_cash = max(0.0, cash - self.gas_buffer - safety_buffer - cash_reserve)

        max_trade_size = equity * self.max_trade_pct
        tradable_amount = min(max_trade_size, available_cash)

        return PortfolioAssessment(
            equity=equity,
            cash=cash,
            position_value=position_value,
            exposure_pct=exposure_pct,
            cash_pct=cash_pct,
            available_cash=available_cash,
            max_trade_size=max_trade_size,
            tradable_amount=tradable_amount,
            is_overexposed=exposure_pct > self.overexposure_pct,
            is_cash_low=cash_pct < self.min_cash_reserve_pct * 100,
            is_funds_too_low=equity < self.min_equity,
        )
