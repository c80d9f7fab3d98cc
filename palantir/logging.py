"""
Logging configuration for Palantir.

Features:
- Console output on stderr, colored when attached to a terminal
- Optional file output with rotation
- Per-component loggers under the "palantir" namespace
"""

import logging
import logging.handlers
import sys
from dataclasses import dataclass
from pathlib import Path


ROOT_LOGGER = "palantir"


class Colors:
    """ANSI color codes."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"


LEVEL_COLORS = {
    logging.DEBUG: Colors.DIM + Colors.CYAN,
    logging.INFO: Colors.GREEN,
    logging.WARNING: Colors.YELLOW,
    logging.ERROR: Colors.RED,
    logging.CRITICAL: Colors.BOLD + Colors.RED,
}

# Keyed by the first name segment below "palantir"
COMPONENT_COLORS = {
    "main": Colors.MAGENTA,
    "app": Colors.GREEN,
    "server": Colors.BLUE,
    "sensors": Colors.CYAN,
    "power": Colors.YELLOW,
    "docker": Colors.BLUE + Colors.BOLD,
}

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def _component(name: str) -> str:
    parts = name.split(".")
    if len(parts) > 1 and parts[0] == ROOT_LOGGER:
        return parts[1]
    return parts[0]


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level, the component and warning messages.

    The record is copied before decoration so other handlers see it
    unchanged.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{LEVEL_COLORS.get(record.levelno, '')}{record.levelname:8}{Colors.RESET}"

        component_color = COMPONENT_COLORS.get(_component(record.name))
        if component_color:
            record.name = f"{component_color}{record.name}{Colors.RESET}"

        if record.levelno >= logging.WARNING:
            message_color = Colors.RED if record.levelno >= logging.ERROR else Colors.YELLOW
            record.msg = f"{message_color}{record.getMessage()}{Colors.RESET}"
            record.args = None

        return super().format(record)


class PlainFormatter(logging.Formatter):
    """Plain formatter with a fixed-width level for file output."""

    def format(self, record: logging.LogRecord) -> str:
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{record.levelname:8}"
        return super().format(record)


@dataclass
class LogConfig:
    """Logging configuration."""

    # Console settings
    console_level: str = "warning"
    console_colors: bool = True

    # File settings
    file_enabled: bool = False
    file_path: str = "/var/log/palantir/palantir.log"
    file_level: str = "debug"
    file_max_bytes: int = 10 * 1024 * 1024  # 10 MB
    file_backup_count: int = 5

    # Format
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"


def get_log_level(level_str: str) -> int:
    """Convert a level name to a logging constant, INFO if unknown."""
    return LEVELS.get(level_str.strip().lower(), logging.INFO)


def _console_handler(config: LogConfig) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(get_log_level(config.console_level))

    # Colors only when attached to a terminal
    use_colors = config.console_colors and sys.stderr.isatty()
    handler.setFormatter(ColoredFormatter(config.format, config.date_format, use_colors))
    return handler


def _file_handler(config: LogConfig) -> logging.Handler:
    Path(config.file_path).parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        config.file_path,
        maxBytes=config.file_max_bytes,
        backupCount=config.file_backup_count,
    )
    handler.setLevel(get_log_level(config.file_level))
    handler.setFormatter(PlainFormatter(config.format, config.date_format))
    return handler


def setup_logging(config: LogConfig | None = None) -> None:
    """
    Configure the "palantir" logger hierarchy.

    Args:
        config: Logging configuration (uses defaults if None)
    """
    if config is None:
        config = LogConfig()

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG)  # filtered at handlers
    root_logger.handlers.clear()

    root_logger.addHandler(_console_handler(config))
    if config.file_enabled:
        root_logger.addHandler(_file_handler(config))

    # One access line per scrape is noise
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a component.

    Args:
        name: Component name (prefixed with "palantir." unless already)

    Returns:
        Logger instance
    """
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
