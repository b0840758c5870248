"""
Configuration schema and loading for Basquiat.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import re
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, Field, ValidationError

from basquiat.contracts.enums import WriteTarget
from basquiat.contracts.errors import ConfigurationError

_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


class PipelineConfig(BaseModel):
    """Bounds and deadlines for one write pipeline run.

    concurrency_bound and prefetch_window are independent knobs: the first
    caps simultaneous persistence calls, the second caps how far ahead the
    source is drained into the dispatcher's buffer.

    Attributes:
        concurrency_bound: Max requests in flight at once (>= 1)
        prefetch_window: Replenishment batch size for the source (>= 1)
        worker_pool_size: Worker threads for persistence calls, None for no pool
        drain_timeout_seconds: Default wait used by PipelineHandle.join()
        progress_interval: Log a progress record every N settlements (0 = off)
    """

    model_config = {"frozen": True, "extra": "forbid"}

    concurrency_bound: int = Field(default=256, ge=1, description="Maximum simultaneously in-flight requests")
    prefetch_window: int = Field(default=256, ge=1, description="Source lookahead / replenishment batch size")
    worker_pool_size: int | None = Field(default=None, ge=1, description="Offload worker count (None disables the pool)")
    drain_timeout_seconds: float = Field(default=3000.0, gt=0, description="Maximum wait for full drain")
    progress_interval: int = Field(default=0, ge=0, description="Settlements between progress log records")

    @property
    def low_tide(self) -> int:
        """Buffered-request count at which the prefetch buffer is topped up.

        Matches the reactive replenish-after-75%-consumed policy.
        """
        return self.prefetch_window // 4

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> Self:
        """Create config from dict with clear error on validation failure.

        Raises:
            ConfigurationError: If any bound is invalid.
        """
        if not isinstance(config, dict):
            raise ConfigurationError(f"Invalid configuration for {cls.__name__}: config must be a dict, got {type(config).__name__}.")
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration for {cls.__name__}: {e}") from e


class SourceSettings(BaseModel):
    """Request source configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    total: int = Field(default=100_000, ge=0, description="Number of create-requests to generate")
    prefix: str = Field(default="uid-", description="Identifier prefix")
    start: int = Field(default=1, description="First sequence number")


class DatabaseSettings(BaseModel):
    """Database connection configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    url: str = Field(default="sqlite:///basquiat.db", description="SQLAlchemy database URL")
    pool_size: int = Field(default=20, gt=0, description="Connection pool size")
    echo: bool = Field(default=False, description="Echo SQL statements")


class SimulationSettings(BaseModel):
    """Latency/failure injection for the simulated member store."""

    model_config = {"frozen": True, "extra": "forbid"}

    delay_ms: float = Field(default=10.0, ge=0, description="Fixed latency of each create")
    fail_every: int = Field(default=0, ge=0, description="Fail every N-th sequence number (0 = never)")


class LoggingSettings(BaseModel):
    """Log output configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: str = Field(default="INFO", pattern=r"(?i)^(debug|info|warning|error|critical)$")
    json_output: bool = Field(default=False, description="Emit JSON log lines")


class BasquiatSettings(BaseModel):
    """Top-level Basquiat configuration.

    Example YAML:
        pipeline:
          concurrency_bound: 256
          prefetch_window: 256
          worker_pool_size: 20
        source:
          total: 100000
        target: database
        database:
          url: sqlite:///members.db
          pool_size: 20
    """

    model_config = {"frozen": True}

    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    source: SourceSettings = Field(default_factory=SourceSettings)
    target: WriteTarget = Field(default=WriteTarget.SIMULATED, description="Where load runs write to")
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values."""
    import os

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            default = match.group(2)
            if default is not None:
                return default
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lowercase_keys(value: Any) -> Any:
    # Dynaconf upper-cases keys that arrive through environment variables
    if isinstance(value, dict):
        return {str(k).lower(): _lowercase_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path) -> BasquiatSettings:
    """Load settings from YAML file with environment variable overrides.

    Precedence:
    1. Environment variables (BASQUIAT_*) - highest priority
    2. Config file
    3. Defaults from the Pydantic schema - lowest priority

    Environment variable format: BASQUIAT_PIPELINE__CONCURRENCY_BOUND for nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="BASQUIAT",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _expand_env_vars(_lowercase_keys(raw_config))

    return BasquiatSettings(**raw_config)
