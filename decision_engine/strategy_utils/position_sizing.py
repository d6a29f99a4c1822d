"""Position sizing from ATR risk and agent traits."""

import logging
from dataclasses import dataclass

from decision_engine.models import AgentTraits
from decision_engine.strategy_utils.atr_profile import STOP_ATR_MULTIPLE
from decision_engine.utils.number_utils import clamp, safe_div

logger = logging.getLogger(__name__)

MAX_RAW_POSITION_PCT = 50.0
NO_STOP_POSITION_PCT = 5.0


@dataclass(frozen=True)
class PositionSize:
    suggested_pct: float  # % of cash actually committed
    trade_amount: float  # quote currency
    stop_pct: float
    risk_pct: float
    raw_pct: float
    blended_pct: float


def compute_position_size(
    atr_pct: float,
    traits: AgentTraits,
    cash: float,
    tradable_amount: float,
    stop_multiple: float = STOP_ATR_MULTIPLE,
) -> PositionSize:
    """
    Size a BUY so a stop-out loses a trait-scaled fraction of capital.

    risk% runs 0.5-3% with risk tolerance; raw size is ``risk% / stop% * 100``
    capped at 50%. That is blended with an aggression-driven size (5-50%)
    by ATR discipline, then capped by the portfolio guard's tradable amount.

    Args:
        atr_pct: ATR as % of price
        traits: Agent traits
        cash: Cash balance
        tradable_amount: Maximum capital for a new trade

    Returns:
        PositionSize
    """
    stop_pct = atr_pct * stop_multiple
    risk_pct = 0.5 + 2.5 * traits.risk_tolerance / 100
    if stop_pct > 0:
        raw_pct = min(MAX_RAW_POSITION_PCT, risk_pct / stop_pct * 100)
    else:
        raw_pct = NO_STOP_POSITION_PCT

    discipline = traits.atr_discipline / 100
    aggression_pct = 5 + 45 * traits.aggression / 100
    blended_pct = raw_pct * discipline + aggression_pct * (1 - discipline)

    desired = cash * blended_pct / 100
    trade_amount = max(0.0, min(tradable_amount, desired))
    suggested_pct = clamp(safe_div(trade_amount, cash) * 100, 0.0, 100.0)

    logger.debug(
        f"Sizing: stop={stop_pct:.2f}% risk={risk_pct:.2f}% raw={raw_pct:.1f}% "
        f"blended={blended_pct:.1f}% -> ${trade_amount:.2f} ({suggested_pct:.2f}% of cash)"
    )
    return PositionSize(
        suggested_pct=round(suggested_pct, 2),
        trade_amount=round(trade_amount, 2),
        stop_pct=stop_pct,
        risk_pct=risk_pct,
        raw_pct=raw_pct,
        blended_pct=blended_pct,
    )
