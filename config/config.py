"""
Configuration classes for the inventory rebalancing agents.
Defines thresholds, scheduling and trade defaults in a type-safe, extensible way.
"""

import os
from dataclasses import dataclass, field, fields

from utils.env import load_project_dotenv

ENV_PREFIX = "REBALANCER_"


@dataclass
class AgentThresholds:
    low_stock_threshold: int = 50
    high_stock_threshold: int = 500
    min_profit_margin: float = 0.001  # fraction, 0.1%
    max_transport_cost_ratio: float = 0.1


@dataclass
class ForecastingConfig:
    look_ahead_days: int = 30
    confidence_threshold: float = 0.7
    update_interval: float = 300.0  # seconds


@dataclass
class AgentConfig:
    decision_interval: float = 60.0  # seconds between cycles
    max_concurrent_actions: int = 5
    max_actions_per_decision: int = 3
    remote_call_timeout: float = 10.0  # bounds brain and marketplace calls
    participate_in_market: bool = False
    use_detector_fallback: bool = True
    thresholds: AgentThresholds = field(default_factory=AgentThresholds)
    forecasting: ForecastingConfig = field(default_factory=ForecastingConfig)


@dataclass
class TradeDefaults:
    transport_cost: float = 25.0
    max_transport_cost: float = 50.0
    urgency_score: float = 7.0
    delivery_window_days: int = 7
    min_quantity_ratio: float = 0.5


def _coerce(name: str, raw: str, target_type: type):
    if target_type is bool:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    try:
        return target_type(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc


def _apply_env(instance, env: dict[str, str]) -> None:
    for f in fields(instance):
        current = getattr(instance, f.name)
        if isinstance(current, (AgentThresholds, ForecastingConfig)):
            _apply_env(current, env)
            continue
        var_name = ENV_PREFIX + f.name.upper()
        if var_name in env:
            setattr(instance, f.name, _coerce(var_name, env[var_name], type(current)))


def load_agent_config(env: dict[str, str] | None = None) -> AgentConfig:
    """
    Build an AgentConfig from ``REBALANCER_*`` environment variables.

    The project ``.env`` is loaded first (without overriding the process
    environment). Variables that are not set keep the dataclass defaults, e.g.
    ``REBALANCER_DECISION_INTERVAL=30`` or ``REBALANCER_LOW_STOCK_THRESHOLD=40``.
    """
    if env is None:
        load_project_dotenv()
        env = dict(os.environ)
    config = AgentConfig()
    _apply_env(config, env)
    return config


# Example usage:
# config = load_agent_config()
# agent = ProductAgent(product_id="SKU-1", product=profile, config=config)
