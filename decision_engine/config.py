"""Configuration module for the decision engine."""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from decision_engine.models import AgentTraits


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        raise ValueError(f"{name} must be a valid integer")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        raise ValueError(f"{name} must be a valid float")


def _require_fraction(name: str, value: float) -> None:
    if not 0 <= value <= 1:
        raise ValueError(f"{name} must be between 0 and 1")


def _require_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


@dataclass
class Config:
    """Configuration for the engine and its runner, loaded from environment variables."""

    # Session governor
    cooldown_seconds: int = 60
    max_trades_per_session: int = 50

    # Portfolio guard
    gas_buffer: float = 0.50
    safety_buffer_pct: float = 0.05
    min_cash_reserve_pct: float = 0.20
    max_trade_pct: float = 0.05
    overexposure_pct: float = 60.0
    min_equity: float = 2.0
    min_trade_amount: float = 3.0
    min_position_value: float = 1.0

    # History synthesis
    synthetic_history_points: int = 30
    history_jitter_seed: Optional[int] = None

    # Runner
    exchange_type: str = "binance"
    symbols: List[str] = field(default_factory=lambda: ["BTC/USDT"])
    loop_interval_seconds: int = 30
    ohlcv_timeframe: str = "1h"
    ohlcv_limit: int = 200
    fetch_retries: int = 3
    fetch_retry_delay_seconds: float = 1.5
    starting_cash: float = 1000.0
    agents_file: Optional[str] = None
    decision_log_file: str = "logs/decisions.jsonl"

    @classmethod
    def from_env(cls) -> "Config":
        """
        Load configuration from environment variables with validation.

        Returns:
            Config: Validated configuration object

        Raises:
            ValueError: If a value is malformed or out of range
        """
        # Load .env file if it exists
        load_dotenv()

        symbols_str = os.getenv("SYMBOLS", "BTC/USDT")
        symbols = [s.strip() for s in symbols_str.split(",") if s.strip()]
        if not symbols:
            raise ValueError("SYMBOLS must contain at least one valid symbol")

        cooldown_seconds = _env_int("COOLDOWN_SECONDS", 60)
        max_trades_per_session = _env_int("MAX_TRADES_PER_SESSION", 50)
        _require_non_negative("COOLDOWN_SECONDS", cooldown_seconds)
        if max_trades_per_session < 1:
            raise ValueError("MAX_TRADES_PER_SESSION must be at least 1")

        gas_buffer = _env_float("GAS_BUFFER", 0.50)
        _require_non_negative("GAS_BUFFER", gas_buffer)
        safety_buffer_pct = _env_float("SAFETY_BUFFER_PCT", 0.05)
        min_cash_reserve_pct = _env_float("MIN_CASH_RESERVE_PCT", 0.20)
        max_trade_pct = _env_float("MAX_TRADE_PCT", 0.05)
        for name, value in (("SAFETY_BUFFER_PCT", safety_buffer_pct),
                            ("MIN_CASH_RESERVE_PCT", min_cash_reserve_pct),
                            ("MAX_TRADE_PCT", max_trade_pct)):
            _require_fraction(name, value)

        overexposure_pct = _env_float("OVEREXPOSURE_PCT", 60.0)
        if not 0 <= overexposure_pct <= 100:
            raise ValueError("OVEREXPOSURE_PCT must be between 0 and 100")
        min_equity = _env_float("MIN_EQUITY", 2.0)
        min_trade_amount = _env_float("MIN_TRADE_AMOUNT", 3.0)
        min_position_value = _env_float("MIN_POSITION_VALUE", 1.0)
        for name, value in (("MIN_EQUITY", min_equity),
                            ("MIN_TRADE_AMOUNT", min_trade_amount),
                            ("MIN_POSITION_VALUE", min_position_value)):
            _require_non_negative(name, value)

        synthetic_history_points = _env_int("SYNTHETIC_HISTORY_POINTS", 30)
        if synthetic_history_points < 2:
            raise ValueError("SYNTHETIC_HISTORY_POINTS must be at least 2")
        history_jitter_seed = None
        seed_str = os.getenv("HISTORY_JITTER_SEED")
        if seed_str:
            try:
                history_jitter_seed = int(seed_str)
            except ValueError:
                raise ValueError("HISTORY_JITTER_SEED must be a valid integer")

        loop_interval_seconds = _env_int("LOOP_INTERVAL_SECONDS", 30)
        if loop_interval_seconds < 1:
            raise ValueError("LOOP_INTERVAL_SECONDS must be at least 1")
        ohlcv_limit = _env_int("OHLCV_LIMIT", 200)
        if ohlcv_limit < 1:
            raise ValueError("OHLCV_LIMIT must be at least 1")
        fetch_retries = _env_int("FETCH_RETRIES", 3)
        if fetch_retries < 1:
            raise ValueError("FETCH_RETRIES must be at least 1")
        fetch_retry_delay_seconds = _env_float("FETCH_RETRY_DELAY_SECONDS", 1.5)
        _require_non_negative("FETCH_RETRY_DELAY_SECONDS", fetch_retry_delay_seconds)
        starting_cash = _env_float("STARTING_CASH", 1000.0)
        _require_non_negative("STARTING_CASH", starting_cash)

        return cls(
            cooldown_seconds=cooldown_seconds,
            max_trades_per_session=max_trades_per_session,
            gas_buffer=gas_buffer,
            safety_buffer_pct=safety_buffer_pct,
            min_cash_reserve_pct=min_cash_reserve_pct,
            max_trade_pct=max_trade_pct,
            overexposure_pct=overexposure_pct,
            min_equity=min_equity,
            min_trade_amount=min_trade_amount,
            min_position_value=min_position_value,
            synthetic_history_points=synthetic_history_points,
            history_jitter_seed=history_jitter_seed,
            exchange_type=os.getenv("EXCHANGE_TYPE", "binance").strip().lower(),
            symbols=symbols,
            loop_interval_seconds=loop_interval_seconds,
            ohlcv_timeframe=os.getenv("OHLCV_TIMEFRAME", "1h"),
            ohlcv_limit=ohlcv_limit,
            fetch_retries=fetch_retries,
            fetch_retry_delay_seconds=fetch_retry_delay_seconds,
            starting_cash=starting_cash,
            agents_file=os.getenv("AGENTS_FILE") or None,
            decision_log_file=os.getenv("DECISION_LOG_FILE", "logs/decisions.jsonl"),
        )


@dataclass
class AgentProfile:
    """One trading agent: identity, market and trait vector."""

    agent_id: str
    symbol: str
    traits: AgentTraits = field(default_factory=AgentTraits)
    personality: Optional[str] = None
    starting_cash: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentProfile":
        """
        Build a profile from a mapping; personality adjustments are applied to traits.

        Raises:
            ValueError: If ``agent_id`` or ``symbol`` is missing
        """
        agent_id = data.get("agent_id")
        symbol = data.get("symbol")
        if not agent_id or not symbol:
            raise ValueError("Agent profile requires 'agent_id' and 'symbol'")
        personality = data.get("personality")
        traits = AgentTraits.from_dict(data.get("traits") or {}).apply_personality(personality)
        starting_cash = data.get("starting_cash")
        return cls(
            agent_id=str(agent_id),
            symbol=str(symbol),
            traits=traits,
            personality=personality,
            starting_cash=float(starting_cash) if starting_cash is not None else None,
        )


def load_agent_profiles(config: Config) -> List[AgentProfile]:
    """
    Load agent profiles from ``config.agents_file`` or default one agent per symbol.

    Raises:
        ValueError: If the file is unreadable or not a JSON list of profiles
    """
    if not config.agents_file:
        return [AgentProfile(agent_id=f"agent-{symbol.split('/')[0].lower()}", symbol=symbol)
                for symbol in config.symbols]

    try:
        with open(config.agents_file) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"AGENTS_FILE could not be loaded: {e}")

    if not isinstance(data, list) or not data:
        raise ValueError("AGENTS_FILE must contain a non-empty JSON list of agent profiles")
    profiles = [AgentProfile.from_dict(entry) for entry in data]
    ids = [p.agent_id for p in profiles]
    if len(set(ids)) != len(ids):
        raise ValueError("AGENTS_FILE contains duplicate agent_id values")
    return profiles
