"""Loop controller: runs every agent through the decision engine each cycle."""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from decision_engine.config import AgentProfile, Config
from decision_engine.data_acquisition import FetchResult, MarketDataProvider
from decision_engine.decision_provider import DecisionOrchestrator
from decision_engine.executors.order_executor import ExecutionLayer, ExecutionResult
from decision_engine.logger import DecisionLogger
from decision_engine.managers.position_manager import PortfolioStore
from decision_engine.models import Action, Decision
from decision_engine.services.shutdown_service import ShutdownService

logger = logging.getLogger(__name__)


class LoopController:
    """Orchestrates decision cycles and handles errors per agent."""

    def __init__(
        self,
        config: Config,
        profiles: List[AgentProfile],
        market_data: MarketDataProvider,
        portfolio_store: PortfolioStore,
        orchestrator: DecisionOrchestrator,
        executor: ExecutionLayer,
        decision_logger: Optional[DecisionLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize loop controller with all components.

        Args:
            config: Configuration object
            profiles: Agents to evaluate each cycle
            market_data: Snapshot provider
            portfolio_store: Portfolio source, updated by the executor
            orchestrator: Decision engine
            executor: Execution layer for BUY/SELL decisions
            decision_logger: JSONL audit log
            sleep: Sleep function between cycles
            clock: Callable returning Unix seconds
        """
        self.config = config
        self.profiles = profiles
        self.market_data = market_data
        self.portfolio_store = portfolio_store
        self.orchestrator = orchestrator
        self.executor = executor
        self.decision_logger = decision_logger
        self.sleep = sleep
        self.clock = clock
        self.running = False
        self.cycle_count = 0
        self.shutdown_service = ShutdownService(self)

    def run_cycle(self) -> Dict[str, Decision]:
        """
        Evaluate every agent once.

        Snapshots are fetched once per symbol. A failure for one agent is
        logged and does not stop the others.

        Returns:
            Mapping of agent_id to Decision (agents that raised are omitted)
        """
        symbols = sorted({p.symbol for p in self.profiles})
        fetched = self.market_data.fetch_snapshots(symbols)

        decisions = {}
        for profile in self.profiles:
            try:
                decisions[profile.agent_id] = self._process_agent(profile, fetched.get(profile.symbol))
            except Exception as e:
                logger.error(f"Cycle failed for {profile.agent_id}: {e}", exc_info=True)
        return decisions

    def _process_agent(self, profile: AgentProfile, fetch: Optional[FetchResult]) -> Decision:
        now = self.clock()
        if fetch is None or fetch.snapshot is None:
            reason = fetch.error if fetch is not None else "no fetch result"
            decision = self.orchestrator.hold_for_missing_data(profile.agent_id, profile.symbol, reason, now)
            self._log(profile.agent_id, decision)
            return decision

        snapshot = fetch.snapshot
        portfolio = self.portfolio_store.get_portfolio(profile.agent_id, snapshot.price)
        decision = self.orchestrator.evaluate(profile.agent_id, snapshot, profile.traits, portfolio, now)

        execution = None
        if decision.action != Action.HOLD:
            execution = self.executor.execute(profile.agent_id, decision, snapshot)
            self._report_execution(profile.agent_id, decision, execution)
        self._log(profile.agent_id, decision, execution)
        return decision

    def _report_execution(self, agent_id: str, decision: Decision, execution: ExecutionResult) -> None:
        if execution.executed:
            logger.info(
                f"{agent_id}: {decision.action.value} filled {execution.filled_size:.8f} "
                f"@ ${execution.fill_price:.2f} ({execution.order_id})"
            )
        else:
            logger.warning(f"{agent_id}: {decision.action.value} not executed: {execution.error}")

    def _log(self, agent_id: str, decision: Decision, execution: Optional[ExecutionResult] = None) -> None:
        if self.decision_logger is None:
            return
        try:
            self.decision_logger.log_decision(agent_id, decision, execution)
        except OSError as e:
            logger.error(f"Failed to write decision log for {agent_id}: {e}")

    def run(self, max_cycles: Optional[int] = None) -> None:
        """
        Execute cycles in a loop until shutdown (or ``max_cycles``).

        Errors inside a cycle are logged and the loop continues.
        """
        self.running = True
        logger.info(f"Starting decision loop: {len(self.profiles)} agent(s), "
                    f"interval {self.config.loop_interval_seconds}s")

        while self.running:
            self.cycle_count += 1
            cycle_start_time = self.clock()
            if self.cycle_count == 1 or self.cycle_count % 10 == 0:
                logger.info(f"CYCLE {self.cycle_count} - {datetime.now(timezone.utc).strftime('%H:%M:%S')}")

            try:
                self.run_cycle()
            except Exception as e:
                logger.error(f"Cycle {self.cycle_count} failed: {e}", exc_info=True)

            if max_cycles is not None and self.cycle_count >= max_cycles:
                self.running = False
            if self.running:
                self._sleep_until_next_cycle(cycle_start_time)

        logger.info(f"Decision loop stopped after {self.cycle_count} cycle(s)")

    def _sleep_until_next_cycle(self, cycle_start_time: float) -> None:
        """Sleep until the next cycle based on configured interval."""
        cycle_duration = self.clock() - cycle_start_time
        sleep_time = max(0, self.config.loop_interval_seconds - cycle_duration)

        if sleep_time > 0:
            logger.debug(f"Sleeping for {sleep_time:.1f} seconds until next cycle")
            self.sleep(sleep_time)
        else:
            logger.warning(f"Cycle took {cycle_duration:.1f}s, longer than interval {self.config.loop_interval_seconds}s")

    def shutdown(self) -> None:
        """Gracefully stop the loop."""
        self.shutdown_service.shutdown()

    def register_signal_handlers(self) -> None:
        """Delegate signal handler registration to the shutdown service."""
        self.shutdown_service.register_signal_handlers()
