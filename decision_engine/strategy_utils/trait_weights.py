"""Trait-derived module weights."""

from typing import Dict

from decision_engine.models import AgentTraits


def build_trait_weights(traits: AgentTraits) -> Dict[str, float]:
    """
    Scale each indicator module's weight by the agent's relevant skill trait.

    Args:
        traits: Agent trait vector (0-100 values)

    Returns:
        Mapping of signal name to effective module weight
    """
    ema = traits.ema_skill / 100
    smc = traits.smc_awareness / 100
    ich = traits.ichimoku_mastery / 100
    pattern = traits.pattern_recognition / 100
    contrarian = traits.contrarian_bias / 100

    return {
        "EMA_STACK": 1.5 + ema * 1.5,  # 1.5-3.0
        "VOLUME": 1.0 + pattern * 0.5,  # 1.0-1.5
        "RSI_DIV": 1.0 + pattern * 1.0,  # 1.0-2.0
        "MACD_MOMENTUM": 1.0 + pattern * 0.5,
        "BB_SQUEEZE": 0.8 + pattern * 0.4,  # 0.8-1.2
        "SMC": 1.0 + smc * 1.5 + contrarian * 0.8,  # 1.0-3.3
        "ICHIMOKU": 1.5 + ich * 1.5,
        "MARKET_STRUCT": 1.0 + pattern * 0.5,
    }
