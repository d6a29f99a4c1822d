"""Order execution for engine decisions."""

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from decision_engine.managers.position_manager import PortfolioStore
from decision_engine.models import Action, Decision, MarketSnapshot

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Result of trade execution."""

    executed: bool
    order_id: Optional[str] = None
    filled_size: Optional[float] = None
    fill_price: Optional[float] = None
    error: Optional[str] = None


class ExecutionLayer(ABC):
    """Acts on BUY/SELL decisions."""

    @abstractmethod
    def execute(self, agent_id: str, decision: Decision, snapshot: MarketSnapshot) -> ExecutionResult:
        """
        Execute a decision.

        Args:
            agent_id: Agent identifier
            decision: Engine decision (HOLD is a no-op)
            snapshot: Snapshot the decision was made on

        Returns:
            ExecutionResult; never raises
        """
        pass


class PaperExecutor(ExecutionLayer):
    """Fills decisions against an in-memory portfolio at the snapshot price."""

    def __init__(self, portfolio_store: PortfolioStore):
        """
        Initialize order executor.

        Args:
            portfolio_store: Store updated by each fill
        """
        self.portfolio_store = portfolio_store
        self._order_ids = itertools.count(1)

    def execute(self, agent_id: str, decision: Decision, snapshot: MarketSnapshot) -> ExecutionResult:
        if decision.action == Action.HOLD:
            return ExecutionResult(executed=False, error="HOLD")

        price = snapshot.price
        token = snapshot.symbol.split("/")[0]
        try:
            if decision.action == Action.BUY:
                logger.info(f"Executing BUY: {agent_id} ${decision.trade_amount:.2f} of {snapshot.symbol} @ ${price:.2f}")
                filled = self.portfolio_store.apply_buy(agent_id, token, decision.trade_amount, price)
            else:
                portfolio = self.portfolio_store.get_portfolio(agent_id, price)
                held = portfolio.position.quantity if portfolio.position else 0.0
                quantity = held * decision.suggested_amount / 100
                logger.info(f"Executing SELL: {agent_id} {quantity:.8f} {token} "
                            f"({decision.suggested_amount:.0f}%) @ ${price:.2f}")
                filled = self.portfolio_store.apply_sell(agent_id, quantity, price)
        except Exception as e:
            logger.error(f"{decision.action.value} execution failed for {agent_id}: {e}")
            return ExecutionResult(executed=False, error=str(e))

        return ExecutionResult(
            executed=True,
            order_id=f"paper-{next(self._order_ids)}",
            filled_size=filled,
            fill_price=price,
        )
