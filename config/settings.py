"""
Configuration management for the healthz server.

Settings are read from HEALTHZ_* environment variables, then from a base
``.env`` file and an environment-specific ``.env.<environment>`` file layered
on top of it. Every field has a default, so a bare process starts listening
on :3000 with the simple response mode.
"""

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from errors.exceptions import ConfigurationError

DEFAULT_LISTEN_ADDR = ":3000"
DEFAULT_HOST = "0.0.0.0"

ENVIRONMENT_VARIABLE = "HEALTHZ_ENVIRONMENT"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def current(cls) -> "Environment":
        """Environment named by HEALTHZ_ENVIRONMENT, or DEVELOPMENT."""
        value = os.environ.get(ENVIRONMENT_VARIABLE, "").strip().lower()
        try:
            return cls(value)
        except ValueError:
            return cls.DEVELOPMENT

    def env_files(self) -> Tuple[str, ...]:
        """Existing .env files for this environment, base file first."""
        candidates = (".env", f".env.{self.value}")
        return tuple(name for name in candidates if Path(name).is_file())


def parse_listen_addr(addr: str) -> Tuple[str, int]:
    """
    Split a listen address into host and port.

    Accepts ``host:port``, ``:port`` (all interfaces) and ``[v6-host]:port``.

    Args:
        addr: The listen address string

    Returns:
        Tuple of (host, port)

    Raises:
        ValueError: If the address has no port or the port is out of range
    """
    addr = addr.strip()
    host, sep, port_str = addr.rpartition(":")
    if not sep:
        raise ValueError(f"listen address {addr!r} must be in host:port form")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"listen address {addr!r} has an invalid port") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"listen address {addr!r} port must be between 0 and 65535")
    return host or DEFAULT_HOST, port


class Settings(BaseSettings):
    """
    Healthz server settings.

    Invalid values fail startup with a ConfigurationError naming the fields.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment used to pick the .env overlay"
    )

    # Listener
    listen_addr: str = Field(
        default=DEFAULT_LISTEN_ADDR,
        description="Address the health server listens on, e.g. ':3000'"
    )
    shutdown_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds allowed for draining in-flight requests on shutdown"
    )

    # /healthz response shape
    detailed: bool = Field(
        default=False,
        description="Include per-check service records in /healthz responses"
    )
    fail_code: int = Field(
        default=0,
        description="HTTP status returned when a check fails (0 uses 503)"
    )

    log_level: str = Field(default="INFO", description="Root logger level")

    model_config = SettingsConfigDict(
        env_prefix="HEALTHZ_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("listen_addr")
    @classmethod
    def validate_listen_addr(cls, v: str) -> str:
        parse_listen_addr(v)
        return v.strip()

    @field_validator("fail_code")
    @classmethod
    def validate_fail_code(cls, v: int) -> int:
        """A fail code is either unset (0) or a real HTTP status."""
        if v != 0 and not 100 <= v <= 599:
            raise ValueError("fail_code must be 0 or an HTTP status between 100 and 599")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        return level


def _split_errors(exc: ValidationError) -> Tuple[List[str], Dict[str, str]]:
    missing: List[str] = []
    invalid: Dict[str, str] = {}
    for error in exc.errors():
        name = ".".join(str(part) for part in error["loc"])
        if error["type"] == "missing":
            missing.append(name)
        else:
            invalid[name] = error["msg"]
    return missing, invalid


def load_settings(environment: Optional[Environment] = None) -> Settings:
    """
    Load settings for an environment.

    Args:
        environment: Environment whose .env overlay is applied. Defaults to
                     the one named by HEALTHZ_ENVIRONMENT.

    Returns:
        Settings: Validated settings

    Raises:
        ConfigurationError: If any value fails validation
    """
    environment = environment or Environment.current()
    try:
        return Settings(
            _env_file=environment.env_files() or None,
            environment=environment,
        )
    except ValidationError as e:
        missing, invalid = _split_errors(e)
        raise ConfigurationError(
            f"Invalid healthz configuration for environment '{environment.value}'",
            missing_fields=missing,
            invalid_fields=invalid,
        ) from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Process-wide settings, loaded on first use.

    Raises:
        ConfigurationError: If settings are invalid.
    """
    return load_settings()


def clear_settings_cache() -> None:
    """Forget the cached settings so the next get_settings() reloads them."""
    get_settings.cache_clear()
