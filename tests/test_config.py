"""
Configuration tests

Tests:
- Defaults and environment overrides
- Validation errors
- Agent profiles from file and defaults
"""

import json

import pytest

from decision_engine.config import AgentProfile, Config, load_agent_profiles

ENV_VARS = [
    "COOLDOWN_SECONDS", "MAX_TRADES_PER_SESSION", "GAS_BUFFER", "SAFETY_BUFFER_PCT",
    "MIN_CASH_RESERVE_PCT", "MAX_TRADE_PCT", "OVEREXPOSURE_PCT", "MIN_EQUITY",
    "MIN_TRADE_AMOUNT", "MIN_POSITION_VALUE", "SYNTHETIC_HISTORY_POINTS", "HISTORY_JITTER_SEED",
    "EXCHANGE_TYPE", "SYMBOLS", "LOOP_INTERVAL_SECONDS", "OHLCV_TIMEFRAME", "OHLCV_LIMIT",
    "FETCH_RETRIES", "FETCH_RETRY_DELAY_SECONDS", "STARTING_CASH", "AGENTS_FILE", "DECISION_LOG_FILE",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Isolate from any .env file and inherited variables"""
    monkeypatch.setattr("decision_engine.config.load_dotenv", lambda *args, **kwargs: False)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ============================================================================
# Config.from_env
# ============================================================================

class TestConfigFromEnv:
    def test_defaults(self, clean_env):
        config = Config.from_env()

        assert config.cooldown_seconds == 60
        assert config.max_trades_per_session == 50
        assert config.min_cash_reserve_pct == pytest.approx(0.20)
        assert config.symbols == ["BTC/USDT"]
        assert config.history_jitter_seed is None
        assert config.decision_log_file == "logs/decisions.jsonl"

    def test_overrides(self, clean_env):
        clean_env.setenv("COOLDOWN_SECONDS", "120")
        clean_env.setenv("SYMBOLS", "BTC/USDT, ETH/USDT ,")
        clean_env.setenv("HISTORY_JITTER_SEED", "42")
        clean_env.setenv("EXCHANGE_TYPE", "Kraken")

        config = Config.from_env()

        assert config.cooldown_seconds == 120
        assert config.symbols == ["BTC/USDT", "ETH/USDT"]
        assert config.history_jitter_seed == 42
        assert config.exchange_type == "kraken"

    @pytest.mark.parametrize("name,value,message", [
        ("COOLDOWN_SECONDS", "abc", "COOLDOWN_SECONDS must be a valid integer"),
        ("GAS_BUFFER", "x", "GAS_BUFFER must be a valid float"),
        ("MIN_CASH_RESERVE_PCT", "1.5", "MIN_CASH_RESERVE_PCT must be between 0 and 1"),
        ("OVEREXPOSURE_PCT", "150", "OVEREXPOSURE_PCT must be between 0 and 100"),
        ("MAX_TRADES_PER_SESSION", "0", "MAX_TRADES_PER_SESSION must be at least 1"),
        ("SYMBOLS", " , ", "SYMBOLS must contain at least one valid symbol"),
        ("HISTORY_JITTER_SEED", "seed", "HISTORY_JITTER_SEED must be a valid integer"),
    ])
    def test_invalid_values(self, clean_env, name, value, message):
        clean_env.setenv(name, value)

        with pytest.raises(ValueError, match=message):
            Config.from_env()


# ============================================================================
# Agent profiles
# ============================================================================

class TestAgentProfiles:
    def test_default_agent_per_symbol(self):
        profiles = load_agent_profiles(Config(symbols=["BTC/USDT", "ETH/USDT"]))

        assert [p.agent_id for p in profiles] == ["agent-btc", "agent-eth"]
        assert profiles[1].symbol == "ETH/USDT"

    def test_profiles_from_file(self, tmp_path):
        path = tmp_path / "agents.json"
        path.write_text(json.dumps([
            {"agent_id": "bull", "symbol": "BTC/USDT", "personality": "aggressive",
             "traits": {"aggression": 90, "timingSensitivity": 50}, "starting_cash": 250},
        ]))

        profiles = load_agent_profiles(Config(agents_file=str(path)))

        assert len(profiles) == 1
        assert profiles[0].traits.aggression == 100.0
        assert profiles[0].traits.timing_sensitivity == 35.0
        assert profiles[0].starting_cash == 250.0

    def test_duplicate_ids_rejected(self, tmp_path):
        path = tmp_path / "agents.json"
        path.write_text(json.dumps([
            {"agent_id": "a", "symbol": "BTC/USDT"},
            {"agent_id": "a", "symbol": "ETH/USDT"},
        ]))

        with pytest.raises(ValueError, match="duplicate"):
            load_agent_profiles(Config(agents_file=str(path)))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="AGENTS_FILE could not be loaded"):
            load_agent_profiles(Config(agents_file=str(tmp_path / "missing.json")))

    def test_profile_requires_symbol(self):
        with pytest.raises(ValueError):
            AgentProfile.from_dict({"agent_id": "x"})

    def test_unknown_personality_keeps_traits(self):
        profile = AgentProfile.from_dict({"agent_id": "x", "symbol": "BTC/USDT", "personality": "stoic"})

        assert profile.traits.aggression == 50.0
