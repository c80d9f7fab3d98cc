"""
Entry point for Palantir.

Usage:
    python -m palantir
    PORT=9100 python -m palantir --verbose
"""

import argparse
import asyncio
import sys

from . import __version__
from .app import run_app
from .config import Config, ConfigError
from .logging import LogConfig, get_logger, setup_logging
from .sensors import StartupError


logger = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="palantir",
        description="Host telemetry agent serving a metrics snapshot over HTTP. "
        "Settings come from the environment (PORT, BIND, PROC_PATH, SYS_PATH, "
        "DOCKER_SOCKET, DOCKER_TIMEOUT, WORKERS, LOG_LEVEL, HOST_ROOT, DISABLE_MDNS).",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose",
        dest="log_level", action="store_const", const="info",
        help="Enable verbose logging (INFO level)",
    )
    verbosity.add_argument(
        "-d", "--debug",
        dest="log_level", action="store_const", const="debug",
        help="Enable debug logging (DEBUG level)",
    )
    verbosity.add_argument(
        "-q", "--quiet",
        dest="log_level", action="store_const", const="error",
        help="Quiet mode (only errors)",
    )

    parser.add_argument("--log-file", metavar="PATH", help="Also write logs to a rotating file")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--port", type=int, metavar="N", help="Listening port (overrides PORT)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def load_config(args: argparse.Namespace) -> Config:
    """
    Read the environment and apply command line overrides.

    Raises:
        ConfigError: If a setting is invalid
    """
    config = Config.from_env()
    if args.port is not None:
        config.port = args.port
    if args.log_level is not None:
        config.log_level = args.log_level
    config.validate()
    return config


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        LogConfig(
            console_level=config.log_level,
            console_colors=not args.no_color,
            file_enabled=args.log_file is not None,
            file_path=args.log_file or LogConfig.file_path,
        )
    )

    try:
        asyncio.run(run_app(config))
        return 0
    except StartupError as e:
        logger.error(f"Startup failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
