"""Application entry point and CLI for rcon-scheduler.

This module implements the main entry point: CLI argument parsing,
configuration loading, logging setup, and orchestrator lifecycle management
with graceful shutdown on SIGINT/SIGTERM.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import NoReturn

from rcon_scheduler.core.config import (
    ConfigurationError,
    EnvironmentVariableError,
    load_main_config,
)
from rcon_scheduler.core.orchestrator import Orchestrator
from rcon_scheduler.utils.logging import configure_logging
from rcon_scheduler.utils.sanitization import sanitize_url

__all__ = ["main"]

DEFAULT_CONFIG_PATH: Path = Path("config.json")

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_RUNTIME_ERROR = 1


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list; defaults to ``sys.argv[1:]``

    Returns:
        Parsed arguments namespace

    CLI Arguments:
        --config, -c: Path to the configuration file
        --log-level: Override log level from config
        --log-dir: Override the log file directory
        --no-file-log: Log to the console only
    """
    parser = argparse.ArgumentParser(
        prog="rcon-scheduler",
        description="Announce and execute scheduled daily restarts of WebRCON game servers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rcon-scheduler
  rcon-scheduler --config /etc/rcon-scheduler/config.json
  rcon-scheduler --log-level DEBUG --no-file-log
        """,
    )

    _ = parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file, JSON or YAML (default: {DEFAULT_CONFIG_PATH})",
        metavar="PATH",
    )

    _ = parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from configuration",
        metavar="LEVEL",
    )

    _ = parser.add_argument(
        "--log-dir",
        type=Path,
        help="Override the directory for rotated log files",
        metavar="PATH",
    )

    _ = parser.add_argument(
        "--no-file-log",
        action="store_true",
        help="Disable the log file (console output only)",
    )

    return parser.parse_args(argv)


async def async_main(
    *,
    config_path: Path,
    log_level: str | None = None,
    log_dir: Path | None = None,
    enable_file_log: bool = True,
) -> None:
    """Async main function implementing application lifecycle.

    Args:
        config_path: Path to the configuration file
        log_level: Override log level from config
        log_dir: Override log directory from config
        enable_file_log: Write the rotated log file

    Raises:
        ConfigurationError: If configuration is invalid
        EnvironmentVariableError: If a required environment variable is missing
    """
    config = load_main_config(config_path)

    directory = log_dir if log_dir is not None else config.logging.directory
    configure_logging(
        log_level=log_level or config.logging.level,
        log_dir=directory if enable_file_log else None,
        max_bytes=config.logging.max_bytes,
        retention_days=config.logging.retention_days,
        enable_console=True,
    )

    logger = logging.getLogger(__name__)
    logger.info("rcon-scheduler starting with %d server(s) from %s", len(config.servers), config_path)

    orchestrator = Orchestrator(config=config)

    shutdown_requested = False

    def request_shutdown() -> None:
        """Request graceful shutdown of orchestrator."""
        nonlocal shutdown_requested
        if not shutdown_requested:
            shutdown_requested = True
            logger.info("Shutdown signal received, requesting graceful shutdown")
            orchestrator.request_shutdown()

    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, request_shutdown)

    try:
        await orchestrator.run()

    except Exception:
        logger.exception("Orchestrator failed during execution")
        raise

    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            _ = loop.remove_signal_handler(sig)

        logger.info("rcon-scheduler shutdown complete")


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for rcon-scheduler.

    Exit Codes:
        0: Clean shutdown
        1: Configuration error or runtime error
    """
    args = parse_arguments(argv)

    try:
        # Extract args with type annotations to avoid reportAny at argparse boundary
        config_path_arg: Path = args.config  # pyright: ignore[reportAny]  # argparse boundary
        log_level_arg: str | None = args.log_level  # pyright: ignore[reportAny]  # argparse boundary
        log_dir_arg: Path | None = args.log_dir  # pyright: ignore[reportAny]  # argparse boundary
        no_file_log_arg: bool = args.no_file_log  # pyright: ignore[reportAny]  # argparse boundary

        asyncio.run(
            async_main(
                config_path=config_path_arg,
                log_level=log_level_arg,
                log_dir=log_dir_arg,
                enable_file_log=not no_file_log_arg,
            )
        )

    except ConfigurationError as exc:
        print(f"Configuration error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except EnvironmentVariableError as exc:
        print(f"Environment variable error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except KeyboardInterrupt:
        print("\nShutdown complete", file=sys.stderr)
        sys.exit(EXIT_SUCCESS)

    except Exception as exc:
        print(f"Unexpected error: {sanitize_url(str(exc))}", file=sys.stderr)
        logging.exception("Unexpected error during application execution")
        sys.exit(EXIT_RUNTIME_ERROR)

    sys.exit(EXIT_SUCCESS)


if __name__ == "__main__":
    main()
