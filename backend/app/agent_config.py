"""Agent configuration loaded from agent.yaml.

Example:

    agent: range_break
    range_break:
      instrument: BTCUSDT
      lookback_minutes: 480
      range_pips: 100
      trailing_stop_pips: 30
      trade_units: 1
    broker:
      api_key_env: BINANCE_API_KEY
      api_secret_env: BINANCE_API_SECRET
      testnet: true

Configuration errors are fatal: a missing file, a missing instrument or a
non-positive period/threshold stops startup.
"""

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

from core.models import RangeBreakConfig
from core.strategy import list_agents

logger = logging.getLogger(__name__)


class BrokerAccountConfig(BaseModel):
    """Exchange account used to execute agent actions."""

    api_key_env: str = ""
    api_secret_env: str = ""
    testnet: bool = True

    @property
    def api_key(self) -> str:
        if not self.api_key_env:
            return ""
        return os.environ.get(self.api_key_env, "")

    @property
    def api_secret(self) -> str:
        if not self.api_secret_env:
            return ""
        return os.environ.get(self.api_secret_env, "")


class AgentFileConfig(BaseModel):
    """Top-level agent.yaml configuration."""

    agent: str = "range_break"
    range_break: RangeBreakConfig
    broker: BrokerAccountConfig = BrokerAccountConfig()

    @model_validator(mode="after")
    def _validate(self):
        if self.agent not in list_agents():
            raise ValueError(
                f"agent must be one of {list_agents()}, got '{self.agent}'"
            )
        return self


_DEFAULT_PATH = Path(__file__).parent.parent / "agent.yaml"


def load_agent_config(path: Path | None = None) -> AgentFileConfig:
    """Load agent config from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If the configuration is invalid.
    """
    config_path = path or _DEFAULT_PATH

    # Load .env into os.environ so BrokerAccountConfig can read credentials
    env_path = config_path.parent / ".env"
    load_dotenv(env_path, override=False)

    if not config_path.exists():
        raise FileNotFoundError(f"Agent config not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = AgentFileConfig(**raw)
    logger.info(
        "Loaded agent config: agent=%s instrument=%s lookback=%dmin range=%spips testnet=%s",
        config.agent,
        config.range_break.instrument,
        config.range_break.lookback_minutes,
        config.range_break.range_pips,
        config.broker.testnet,
    )
    return config
