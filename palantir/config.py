"""
Runtime configuration from the process environment.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .const import (
    DEFAULT_BIND,
    DEFAULT_DOCKER_SOCKET,
    DEFAULT_DOCKER_TIMEOUT,
    DEFAULT_HOST_ROOT,
    DEFAULT_PORT,
    DEFAULT_PROC_PATH,
    DEFAULT_SYS_PATH,
    DEFAULT_WORKERS,
)


TRUTHY = frozenset({"1", "true", "yes", "on"})
LOG_LEVELS = frozenset({"debug", "info", "warning", "error", "critical"})


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


def _parse_bool(value: str | None) -> bool:
    return value is not None and value.strip().lower() in TRUTHY


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


@dataclass
class Config:
    """Daemon configuration."""

    port: int = DEFAULT_PORT
    bind: str = DEFAULT_BIND
    announce: bool = True
    proc_path: str = DEFAULT_PROC_PATH
    sys_path: str = DEFAULT_SYS_PATH
    host_root: str = DEFAULT_HOST_ROOT
    docker_socket: str = DEFAULT_DOCKER_SOCKET
    docker_timeout: float = DEFAULT_DOCKER_TIMEOUT
    workers: int = DEFAULT_WORKERS
    log_level: str = "warning"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        """
        Build configuration from environment variables.

        Args:
            environ: Variables to read (defaults to os.environ)

        Returns:
            Validated Config

        Raises:
            ConfigError: If a variable has an invalid value
        """
        if environ is None:
            environ = os.environ

        config = cls()

        if "PORT" in environ:
            config.port = _parse_int("PORT", environ["PORT"])
        if environ.get("BIND"):
            config.bind = environ["BIND"]
        config.announce = not _parse_bool(environ.get("DISABLE_MDNS"))
        if environ.get("PROC_PATH"):
            config.proc_path = environ["PROC_PATH"]
        if environ.get("SYS_PATH"):
            config.sys_path = environ["SYS_PATH"]
        if environ.get("HOST_ROOT"):
            config.host_root = environ["HOST_ROOT"]
        if environ.get("DOCKER_SOCKET"):
            config.docker_socket = environ["DOCKER_SOCKET"]
        if "DOCKER_TIMEOUT" in environ:
            config.docker_timeout = _parse_float("DOCKER_TIMEOUT", environ["DOCKER_TIMEOUT"])
        if "WORKERS" in environ:
            config.workers = _parse_int("WORKERS", environ["WORKERS"])
        if environ.get("LOG_LEVEL"):
            config.log_level = environ["LOG_LEVEL"].strip().lower()

        config.validate()
        return config

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigError: If any value is out of range
        """
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"PORT must be between 1 and 65535, got {self.port}")
        if self.docker_timeout <= 0:
            raise ConfigError(f"DOCKER_TIMEOUT must be positive, got {self.docker_timeout}")
        if self.workers < 1:
            raise ConfigError(f"WORKERS must be at least 1, got {self.workers}")
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"Unknown LOG_LEVEL: {self.log_level}")
