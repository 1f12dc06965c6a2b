"""
Configuration management for whale.

This module uses Pydantic Settings for environment-based configuration with
support for .env files. Configuration is organized into logical sections:
- Docker settings
- Collector settings (concurrency, deadlines, refresh interval)
- Logging settings

Sections can also be loaded from a YAML file with ``WhaleConfig.from_yaml``.
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from whale.common.exceptions import ConfigurationError


class DockerSettings(BaseSettings):
    """
    Docker daemon connection settings.

    Parameters
    ----------
    docker_host : str, optional
        Docker daemon URL (default: unix:///var/run/docker.sock)
    docker_timeout_seconds : float
        Total timeout for a single daemon request

    Environment Variables
    ---------------------
    DOCKER_HOST : str
        Override Docker daemon URL
    DOCKER_TIMEOUT_SECONDS : float
        Request timeout

    Examples
    --------
    >>> config = DockerSettings()
    >>> config.docker_host
    'unix:///var/run/docker.sock'
    >>> config = DockerSettings(docker_host="tcp://localhost:2375")
    >>> config.docker_host
    'tcp://localhost:2375'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    docker_host: str = Field(
        default="unix:///var/run/docker.sock",
        description="Docker daemon URL",
    )
    docker_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=300,
        description="Daemon request timeout (s)",
    )

    @field_validator("docker_host")
    @classmethod
    def validate_docker_host(cls, v: str) -> str:
        """Validate Docker host URL format."""
        valid_schemes = ("unix://", "tcp://", "http://", "https://", "npipe://")
        if not any(v.startswith(scheme) for scheme in valid_schemes):
            raise ValueError(f"Docker host must start with one of: {valid_schemes}. Got: {v}")
        return v


class CollectorSettings(BaseSettings):
    """
    Stats collection settings.

    Parameters
    ----------
    fetch_concurrency : int
        Maximum simultaneous stats calls
    fetch_timeout_seconds : float
        Deadline for one container's stats call
    collect_timeout_seconds : float
        Deadline for a whole one-shot collection
    refresh_interval_seconds : float
        Interval between cycles in watch mode

    Environment Variables
    ---------------------
    FETCH_CONCURRENCY : int
        Concurrency ceiling
    FETCH_TIMEOUT_SECONDS : float
        Per-call deadline
    REFRESH_INTERVAL_SECONDS : float
        Watch interval

    Examples
    --------
    >>> config = CollectorSettings()
    >>> config.fetch_concurrency
    16
    >>> config.fetch_timeout_seconds
    1.5
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    fetch_concurrency: int = Field(
        default=16,
        ge=1,
        le=256,
        description="Concurrent stats calls",
    )
    fetch_timeout_seconds: float = Field(
        default=1.5,
        gt=0,
        le=60,
        description="Per-call stats deadline (s)",
    )
    collect_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=600,
        description="One-shot collection deadline (s)",
    )
    refresh_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        le=3600,
        description="Watch refresh interval (s)",
    )


class LoggingSettings(BaseSettings):
    """
    Logging configuration.

    Parameters
    ----------
    log_level : str
        Logging level ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    log_format : str
        Log format ("json", "console")
    log_file : Path, optional
        Log file path (None for stderr only)

    Examples
    --------
    >>> config = LoggingSettings()
    >>> config.log_level
    'WARNING'
    >>> config.log_format
    'console'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Logging level",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log format",
    )
    log_file: Path | None = Field(None, description="Log file path")


class WhaleConfig(BaseSettings):
    """
    Main whale configuration aggregating all settings.

    Parameters
    ----------
    docker : DockerSettings
        Docker configuration
    collector : CollectorSettings
        Collection configuration
    logging : LoggingSettings
        Logging configuration

    Examples
    --------
    >>> config = WhaleConfig()
    >>> config.docker.docker_host
    'unix:///var/run/docker.sock'
    >>> config.collector.refresh_interval_seconds
    2.0
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="WHALE_",
    )

    docker: DockerSettings = Field(default_factory=DockerSettings)
    collector: CollectorSettings = Field(default_factory=CollectorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "WhaleConfig":
        """Load configuration from a YAML file.

        Sections missing from the file fall back to environment and defaults.

        Parameters
        ----------
        path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        WhaleConfig
            Parsed configuration.

        Raises
        ------
        ConfigurationError
            If the file is missing or invalid.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}", details={"path": str(path)})

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in config file: {path}",
                details={"path": str(path), "error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file must contain a mapping: {path}", details={"path": str(path)}
            )

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration in {path}",
                details={"path": str(path), "error": str(e)},
            ) from e


# =============================================================================
# Convenience functions
# =============================================================================


def load_config(env_file: Path | str | None = None) -> WhaleConfig:
    """
    Load whale configuration from environment and optional .env file.

    Parameters
    ----------
    env_file : Path or str, optional
        Path to .env file (default: .env in current directory)

    Returns
    -------
    WhaleConfig
        Loaded configuration

    Examples
    --------
    >>> config = load_config()
    >>> config.collector.fetch_concurrency
    16
    """
    if env_file:
        return WhaleConfig(
            docker=DockerSettings(_env_file=str(env_file)),
            collector=CollectorSettings(_env_file=str(env_file)),
            logging=LoggingSettings(_env_file=str(env_file)),
        )
    return WhaleConfig()
