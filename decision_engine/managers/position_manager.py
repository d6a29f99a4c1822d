"""Portfolio and position tracking per agent."""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from decision_engine.models import OpenPosition, PortfolioSnapshot

logger = logging.getLogger(__name__)


class PortfolioStore(ABC):
    """Source of fresh portfolio snapshots, updated after fills."""

    @abstractmethod
    def get_portfolio(self, agent_id: str, price: float) -> PortfolioSnapshot:
        """
        Return the agent's portfolio valued at ``price``.

        Args:
            agent_id: Agent identifier
            price: Current price of the agent's token

        Returns:
            PortfolioSnapshot
        """
        pass

    @abstractmethod
    def apply_buy(self, agent_id: str, token: str, cost: float, price: float) -> float:
        """Spend ``cost`` of cash at ``price``; returns the quantity bought."""
        pass

    @abstractmethod
    def apply_sell(self, agent_id: str, quantity: float, price: float) -> float:
        """Sell up to ``quantity`` at ``price``; returns the quantity sold."""
        pass


@dataclass
class _Account:
    cash: float
    token: Optional[str] = None
    quantity: float = 0.0
    entry_price: Optional[float] = None
    entry_cost: float = 0.0


class InMemoryPortfolioStore(PortfolioStore):
    """Paper accounts held in process memory."""

    def __init__(self, starting_cash: float = 1000.0):
        """
        Initialize position manager.

        Args:
            starting_cash: Cash given to an agent on first reference
        """
        self.starting_cash = starting_cash
        self._accounts: Dict[str, _Account] = {}
        self._lock = threading.Lock()

    def open_account(self, agent_id: str, cash: Optional[float] = None) -> None:
        """Create (or reset) an agent's account with the given cash."""
        with self._lock:
            self._accounts[agent_id] = _Account(cash=self.starting_cash if cash is None else cash)
        logger.info(f"Opened paper account {agent_id} with ${self._accounts[agent_id].cash:.2f}")

    def _account(self, agent_id: str) -> _Account:
        account = self._accounts.get(agent_id)
        if account is None:
            account = _Account(cash=self.starting_cash)
            self._accounts[agent_id] = account
        return account

    def get_portfolio(self, agent_id: str, price: float) -> PortfolioSnapshot:
        with self._lock:
            account = self._account(agent_id)
            position = None
            if account.quantity > 0:
                position = OpenPosition(
                    token=account.token or "",
                    quantity=account.quantity,
                    entry_price=account.entry_price,
                    entry_cost=account.entry_cost,
                )
            return PortfolioSnapshot(
                cash_balance=account.cash,
                position_value=account.quantity * price,
                position=position,
            )

    def apply_buy(self, agent_id: str, token: str, cost: float, price: float) -> float:
        if cost <= 0 or price <= 0:
            raise ValueError(f"Invalid buy: cost={cost}, price={price}")
        with self._lock:
            account = self._account(agent_id)
            if cost > account.cash:
                raise ValueError(f"Insufficient cash: need ${cost:.2f}, have ${account.cash:.2f}")
            quantity = cost / price
            account.cash -= cost
            account.entry_cost += cost
            account.quantity += quantity
            account.entry_price = account.entry_cost / account.quantity
            account.token = token
            return quantity

    def apply_sell(self, agent_id: str, quantity: float, price: float) -> float:
        if price <= 0:
            raise ValueError(f"Invalid sell price: {price}")
        with self._lock:
            account = self._account(agent_id)
            sold = min(quantity, account.quantity)
            if sold <= 0:
                raise ValueError(f"No position to sell for {agent_id}")
            # Cost basis leaves in proportion to the quantity sold
            account.entry_cost -= account.entry_cost * sold / account.quantity
            account.quantity -= sold
            account.cash += sold * price
            if account.quantity <= 1e-12:
                account.quantity = 0.0
                account.entry_cost = 0.0
                account.entry_price = None
                account.token = None
            return sold
