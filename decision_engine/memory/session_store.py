"""In-memory per-agent session state.

Holds one SessionState per agent id for the lifetime of the process.
Nothing is persisted, so a restart resets trade counts and cooldowns.
Every agent id has its own re-entrant lock, and a store-wide lock guards
only the creation of new entries. Evaluations for different agents never
contend, while evaluations for the same agent serialize around their
check-and-update.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional, Tuple


@dataclass
class SessionState:
    agent_id: str
    trade_count: int = 0
    last_trade_time: Optional[float] = None  # Unix seconds
    last_action: Optional[str] = None


class SessionStore:
    """Thread-safe table of SessionState keyed by agent id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: Dict[str, SessionState] = {}
        self._agent_locks: Dict[str, threading.RLock] = {}

    def _entry(self, agent_id: str) -> Tuple[SessionState, threading.RLock]:
        with self._lock:
            state = self._states.get(agent_id)
            if state is None:
                state = SessionState(agent_id=agent_id)
                self._states[agent_id] = state
                self._agent_locks[agent_id] = threading.RLock()
            return state, self._agent_locks[agent_id]

    @contextmanager
    def locked(self, agent_id: str) -> Iterator[SessionState]:
        """Hold the agent's lock and yield its live state."""
        state, lock = self._entry(agent_id)
        with lock:
            yield state

    def get(self, agent_id: str) -> SessionState:
        """Return a copy of the agent's state, creating it on first reference."""
        with self.locked(agent_id) as state:
            return replace(state)

    def record_trade(self, agent_id: str, action: str, timestamp: float) -> SessionState:
        with self.locked(agent_id) as state:
            state.trade_count += 1
            if state.last_trade_time is None or timestamp > state.last_trade_time:
                state.last_trade_time = timestamp
            state.last_action = action
            return replace(state)

    def agent_ids(self) -> List[str]:
        with self._lock:
            return list(self._states)

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
