"""Configuration loader -- reads config.yaml + .env, validates with Pydantic.

Resolves ${ENV_VAR} references in YAML values from environment variables.
Fails fast with clear errors if a value is malformed.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from core.duration import parse_duration, to_milliseconds

logger = logging.getLogger(__name__)

# Default home directory for config.yaml and .env
DEFAULT_HOME = Path.home() / ".finiq"

HOME_ENV_VAR = "FINIQ_HOME"


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} references in config values."""
    if isinstance(value, str):
        pattern = re.compile(r"\$\{(\w+)\}")
        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                logger.warning("Environment variable %s not set", var_name)
                return ""
            return env_value
        return pattern.sub(replacer, value)
    elif isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Config models (Pydantic)
# ---------------------------------------------------------------------------

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8700


class BackendConfig(BaseModel):
    """Connection to the external backend service.

    An empty `url` means no backend session: data-access calls fail fast
    with BackendUnavailableError.
    """

    url: str = ""
    token: str = ""
    principal: str = ""
    timeout: str = "30s"
    cache_ttl: str = "5m"

    @field_validator("timeout", "cache_ttl")
    @classmethod
    def check_duration(cls, value: str | int) -> str | int:
        parse_duration(value)
        return value

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    @property
    def timeout_seconds(self) -> float:
        return parse_duration(self.timeout).total_seconds()

    @property
    def cache_ttl_seconds(self) -> float:
        return parse_duration(self.cache_ttl).total_seconds()


class LivePricesConfig(BaseModel):
    poll_interval: str | int = "3000ms"
    default_price: float = Field(default=100.0, gt=0)
    max_step: float = Field(default=0.005, ge=0, lt=1)
    seed: int | None = None

    @field_validator("poll_interval")
    @classmethod
    def check_duration(cls, value: str | int) -> str | int:
        parse_duration(value)
        return value

    @property
    def poll_interval_ms(self) -> int:
        return to_milliseconds(self.poll_interval)


class HistoryConfig(BaseModel):
    days: int = Field(default=30, ge=1)
    drift_bias: float = 0.48
    amplitude: float = Field(default=0.03, ge=0)
    seed: int | None = None


class AlertsConfig(BaseModel):
    enabled: bool = True
    poll_interval: str = "30s"

    @field_validator("poll_interval")
    @classmethod
    def check_duration(cls, value: str | int) -> str | int:
        parse_duration(value)
        return value

    @property
    def poll_interval_seconds(self) -> float:
        return parse_duration(self.poll_interval).total_seconds()


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    home_dir: str = str(DEFAULT_HOME)
    server: ServerConfig = Field(default_factory=ServerConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    live_prices: LivePricesConfig = Field(default_factory=LivePricesConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def home_path(self) -> Path:
        """Resolved home directory as a Path."""
        return Path(self.home_dir).expanduser()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def get_home_dir() -> Path:
    """Get the FinIQ home directory (holds config.yaml and .env)."""
    return Path(os.environ.get(HOME_ENV_VAR, str(DEFAULT_HOME))).expanduser()


def load_config(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> AppConfig:
    """Load configuration from YAML + .env files.

    1. Load .env into environment variables
    2. Load config.yaml and resolve ${ENV_VAR} references
    3. Validate against Pydantic models

    Missing files are not an error; every setting has a default.
    """
    home = get_home_dir()

    if env_path is None:
        env_path = home / ".env"
    if config_path is None:
        config_path = home / "config.yaml"

    env_path = Path(env_path)
    config_path = Path(config_path)

    # Load .env
    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from %s", env_path)
    else:
        logger.debug("No .env file at %s", env_path)

    # Load config.yaml
    raw_config: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", config_path)
    else:
        logger.info("No config file at %s, using defaults", config_path)

    resolved = _resolve_env_vars(raw_config)

    # Override home_dir if set via env
    if HOME_ENV_VAR in os.environ:
        resolved["home_dir"] = os.environ[HOME_ENV_VAR]

    return AppConfig(**resolved)
