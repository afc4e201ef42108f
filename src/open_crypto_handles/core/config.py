"""Configuration for locating libcrypto and logging."""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError

# Environment variable names
ENV_LIBCRYPTO = "OPEN_CRYPTO_HANDLES_LIBCRYPTO"
ENV_LOG_LEVEL = "OPEN_CRYPTO_HANDLES_LOG_LEVEL"
ENV_LOG_FORMAT = "OPEN_CRYPTO_HANDLES_LOG_FORMAT"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LibraryConfig(BaseModel):
    """Where to find libcrypto and how to log."""

    libcrypto_path: Optional[str] = Field(
        default=None,
        description="Explicit path to the libcrypto shared object (searched if unset)",
    )
    log_level: str = Field(default="WARNING", description="Log level name")
    log_format: Literal["console", "json"] = Field(
        default="console", description="Log renderer"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log level names in any case."""
        level = str(v).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_config(cls, config_path: str | Path) -> "LibraryConfig":
        """Load configuration from a YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            LibraryConfig instance

        Raises:
            ConfigurationError: If config file cannot be loaded or parsed
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            return cls.model_validate(data.get("open_crypto_handles", data))
        except (yaml.YAMLError, ValidationError, AttributeError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

    @classmethod
    def from_env(cls) -> "LibraryConfig":
        """Build configuration from environment variables."""
        data = {}
        if os.environ.get(ENV_LIBCRYPTO):
            data["libcrypto_path"] = os.environ[ENV_LIBCRYPTO]
        if os.environ.get(ENV_LOG_LEVEL):
            data["log_level"] = os.environ[ENV_LOG_LEVEL]
        if os.environ.get(ENV_LOG_FORMAT):
            data["log_format"] = os.environ[ENV_LOG_FORMAT].lower()

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e


_config: Optional[LibraryConfig] = None


def get_config() -> LibraryConfig:
    """Return the active configuration, reading the environment on first use."""
    global _config
    if _config is None:
        _config = LibraryConfig.from_env()
    return _config


def configure(config: Optional[LibraryConfig] = None) -> LibraryConfig:
    """Install a configuration and reload libcrypto on next use.

    Args:
        config: Configuration to install (default: read from environment)

    Returns:
        The installed configuration
    """
    global _config
    from .library import reset_library
    from .logging import configure_logging

    _config = config if config is not None else LibraryConfig.from_env()
    reset_library()
    configure_logging(log_level=_config.log_level, log_format=_config.log_format)
    return _config
