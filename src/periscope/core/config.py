# src/periscope/core/config.py
"""
Configuration schema and loading for Periscope.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class CollectorSettings(BaseModel):
    """Configuration for the dead letters collector.

    Example YAML:
        collector:
          capacity: 100
          query_timeout_seconds: 5.0
    """

    model_config = {"frozen": True}

    capacity: int = Field(default=100, gt=0, description="Entries retained per event category")
    query_timeout_seconds: float = Field(default=5.0, gt=0, description="How long blocking queries wait for the collector")


class LoggingSettings(BaseModel):
    """Configuration for structured logging output."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")


class PeriscopeSettings(BaseModel):
    """Top-level settings.

    Example YAML:
        collector:
          capacity: 50
        logging:
          level: DEBUG
          json_output: true
    """

    model_config = {"frozen": True}

    collector: CollectorSettings = Field(default_factory=CollectorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: Path) -> PeriscopeSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (PERISCOPE_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: PERISCOPE_COLLECTOR__CAPACITY for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated PeriscopeSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="PERISCOPE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; filter its own settings out
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    return PeriscopeSettings(**raw_config)

