"""Session governor: trade caps and cooldowns per agent."""

import logging
import math
import time
from typing import Callable, Optional, Tuple

from decision_engine.memory.session_store import SessionState, SessionStore

logger = logging.getLogger(__name__)


class SessionGovernor:
    """Enforces the per-agent session trade cap and cooldown window."""

    def __init__(self, store: SessionStore, config=None, clock: Callable[[], float] = time.time):
        """
        Initialize the governor.

        Args:
            store: Shared session store (injected, one per process)
            config: Configuration object with ``cooldown_seconds`` and
                ``max_trades_per_session``
            clock: Callable returning Unix seconds
        """
        self.store = store
        self.cooldown_seconds = getattr(config, "cooldown_seconds", 60)
        self.max_trades_per_session = getattr(config, "max_trades_per_session", 50)
        self.clock = clock

    def check_session_cap(self, state: SessionState) -> Tuple[bool, str]:
        """
        Check the session-lifetime trade cap.

        Returns:
            Tuple of (allowed, reason)
        """
        if state.trade_count >= self.max_trades_per_session:
            return False, f"Session trade limit reached ({state.trade_count}/{self.max_trades_per_session})"
        return True, ""

    def check_cooldown(self, state: SessionState, now: float) -> Tuple[bool, str]:
        """
        Check time elapsed since the agent's last trade.

        Returns:
            Tuple of (allowed, reason)
        """
        if state.last_trade_time is None:
            return True, ""
        elapsed = now - state.last_trade_time
        if elapsed < self.cooldown_seconds:
            remaining = math.ceil(self.cooldown_seconds - elapsed)
            return False, f"Cooldown active ({remaining}s remaining)"
        return True, ""

    def can_trade(self, agent_id: str, now: Optional[float] = None) -> Tuple[bool, str]:
        """Run both checks against a copy of the agent's state."""
        now = self.clock() if now is None else now
        state = self.store.get(agent_id)
        allowed, reason = self.check_session_cap(state)
        if not allowed:
            return allowed, reason
        return self.check_cooldown(state, now)

    def record_trade(self, agent_id: str, action: str, now: Optional[float] = None) -> SessionState:
        """Count a trade that is being acted upon."""
        now = self.clock() if now is None else now
        state = self.store.record_trade(agent_id, action, now)
        logger.info(
            f"Session: {agent_id} trade #{state.trade_count} ({action}), "
            f"cooldown {self.cooldown_seconds}s"
        )
        return state
