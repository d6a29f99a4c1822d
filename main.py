#!/usr/bin/env python3
"""
Main entry point for the multi-signal decision engine runner.

Loads configuration, wires the market data provider, paper portfolio,
decision orchestrator and loop controller, then runs decision cycles
until interrupted.
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from decision_engine.config import Config, load_agent_profiles
from decision_engine.data_acquisition import ExchangeMarketDataProvider
from decision_engine.decision_provider import DecisionOrchestrator
from decision_engine.executors.order_executor import PaperExecutor
from decision_engine.logger import DecisionLogger
from decision_engine.loop_controller import LoopController
from decision_engine.managers.position_manager import InMemoryPortfolioStore
from decision_engine.memory.session_store import SessionStore

__version__ = "1.0.0"


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(verbose: bool = False, json_logs: bool = False, log_dir: str = "logs") -> None:
    """
    Route engine logs to stdout and files under log_dir.

    Args:
        verbose: DEBUG level instead of INFO
        json_logs: Emit one JSON object per record, also to engine.json
        log_dir: Directory for log files
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    if json_logs:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                                      "%Y-%m-%d %H:%M:%S")

    handlers = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(str(Path(log_dir) / "engine.log"), mode="a"),
    ]
    if json_logs:
        handlers.append(logging.FileHandler(str(Path(log_dir) / "engine.json"), mode="a"))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # Reduce noisy third-party loggers
    logging.getLogger("ccxt").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def parse_arguments(argv: Optional[list] = None) -> argparse.Namespace:
    """
    Parse runner options.

    Args:
        argv: Argument list, defaults to sys.argv[1:]
    """
    parser = argparse.ArgumentParser(
        description="Multi-signal confluence decision engine (paper runner)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                    # Use .env in the working directory
  python main.py --env .env.local   # Run with custom env file
  python main.py --cycles 1         # Evaluate every agent once and exit

Environment Variables:
  See .env.example for configuration variables.
        """,
    )
    parser.add_argument("--env", type=str, default=".env", help="Path to environment file (default: .env)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose (DEBUG) logging")
    parser.add_argument("--json-logs", action="store_true",
                        help="Enable JSON structured logging (outputs to logs/engine.json)")
    parser.add_argument("--cycles", type=int, default=None, help="Stop after this many cycles")
    parser.add_argument("--version", action="version", version=f"Decision Engine v{__version__}")
    return parser.parse_args(argv)


def build_controller(config: Config) -> LoopController:
    """Wire every runtime component from configuration."""
    profiles = load_agent_profiles(config)
    portfolio_store = InMemoryPortfolioStore(starting_cash=config.starting_cash)
    for profile in profiles:
        portfolio_store.open_account(profile.agent_id, profile.starting_cash)

    return LoopController(
        config=config,
        profiles=profiles,
        market_data=ExchangeMarketDataProvider(config),
        portfolio_store=portfolio_store,
        orchestrator=DecisionOrchestrator(SessionStore(), config),
        executor=PaperExecutor(portfolio_store),
        decision_logger=DecisionLogger(config.decision_log_file),
    )


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the runner.

    Returns:
        0 when the loop stops cleanly, 1 on configuration or runtime failure
    """
    args = parse_arguments(argv)
    setup_logging(verbose=args.verbose, json_logs=args.json_logs)
    logger = logging.getLogger(__name__)

    logger.info("=" * 80)
    logger.info("DECISION ENGINE")
    logger.info("=" * 80)

    try:
        logger.info(f"Reading settings ({args.env})")
        if args.env != ".env":
            if not Path(args.env).exists():
                logger.error(f"No such env file: {args.env}")
                return 1
            load_dotenv(args.env, override=True)
        config = Config.from_env()
        logger.info(f"[OK] Settings valid: {len(config.symbols)} symbol(s), cooldown {config.cooldown_seconds}s")
    except ValueError as e:
        logger.error(f"[ERROR] Invalid settings: {e}")
        logger.error("Compare your environment with .env.example.")
        return 1

    try:
        controller = build_controller(config)
        logger.info(f"[OK] {len(controller.profiles)} agent(s) on {config.exchange_type}")
    except ValueError as e:
        logger.error(f"[ERROR] Agent setup failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"[ERROR] Could not wire the runner: {e}", exc_info=True)
        return 1

    controller.register_signal_handlers()

    try:
        logger.info("Starting decision loop. Press Ctrl+C to stop gracefully")
        controller.run(max_cycles=args.cycles)
        logger.info("Engine stopped successfully")
        return 0
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        controller.shutdown()
        return 0
    except Exception as e:
        logger.error(f"[ERROR] Decision loop crashed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
