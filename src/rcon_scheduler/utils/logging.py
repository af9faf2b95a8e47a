"""Logging infrastructure with daily file rotation and secret redaction.

This module configures the root logger for the rcon-scheduler application:

- Console output with per-level colors
- A log file rotated at midnight and whenever it grows past a size cap,
  with rotated files gzip-compressed and pruned after a retention window
- Secret redaction on every handler, so RCON passwords embedded in
  connection URLs and webhook tokens never reach log output

Every line uses the ``[timestamp] level: message`` layout.
"""

from __future__ import annotations

import gzip
import logging
import logging.handlers
import os
import shutil
import sys
import time
from pathlib import Path
from typing import Final, override

from rcon_scheduler.utils.sanitization import sanitize_args, sanitize_value

LOG_FORMAT: Final[str] = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

DEFAULT_LOG_DIR: Final[Path] = Path("logs")
DEFAULT_LOG_FILENAME: Final[str] = "server.log"
DEFAULT_MAX_BYTES: Final[int] = 20 * 1024 * 1024
DEFAULT_RETENTION_DAYS: Final[int] = 14

_SECONDS_PER_DAY: Final[int] = 24 * 60 * 60

# LogRecord attributes that are never treated as structured ``extra`` context
_STANDARD_RECORD_ATTRS: Final[frozenset[str]] = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "asctime",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class SecretRedactingFilter(logging.Filter):
    """Logging filter that redacts sensitive information from log records.

    Sanitizes the message text, the ``%``-formatting arguments and any extra
    fields passed to the logger.

    Examples:
        >>> logger.info("Connecting to RCON at %s", "ws://10.0.0.2:28016/hunter2")
        # Logged as: "Connecting to RCON at ws://10.0.0.2:28016/<REDACTED>"
    """

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            sanitized_msg = sanitize_value(record.msg)
            if isinstance(sanitized_msg, str):
                record.msg = sanitized_msg

        if record.args and isinstance(record.args, tuple):
            record.args = sanitize_args(record.args)

        for attr_name in list(record.__dict__.keys()):
            if attr_name in _STANDARD_RECORD_ATTRS or attr_name.startswith("_"):
                continue
            attr_value: object = getattr(record, attr_name)  # pyright: ignore[reportAny]
            setattr(record, attr_name, sanitize_value(attr_value, field_name=attr_name))

        return True


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the whole line by level for console output."""

    # ANSI color codes
    COLORS: dict[str, str] = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, *, enable_colors: bool = True) -> None:
        super().__init__(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        self.enable_colors: bool = enable_colors

    @override
    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.enable_colors and record.levelname in self.COLORS:
            return f"{self.COLORS[record.levelname]}{formatted}{self.COLORS['RESET']}"

        return formatted


def _gzip_namer(default_name: str) -> str:
    return f"{default_name}.gz"


def _gzip_rotator(source: str, dest: str) -> None:
    with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
        shutil.copyfileobj(src, dst)
    os.remove(source)


class DailyRotatingFileHandler(logging.handlers.TimedRotatingFileHandler):
    """File handler rotated at midnight and when the file exceeds a size cap.

    Rotated files are named ``<file>.<YYYY-MM-DD>[.<n>].gz``; a second
    rotation on the same day (size cap reached) gets the next free counter.
    Rotated files older than ``retention_days`` are deleted after each
    rotation.
    """

    def __init__(
        self,
        filename: Path | str,
        *,
        max_bytes: int = DEFAULT_MAX_BYTES,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        compress: bool = True,
    ) -> None:
        filepath = Path(filename)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        # Retention is handled by _prune_rotated_files, not backupCount
        super().__init__(
            str(filepath),
            when="midnight",
            backupCount=0,
            encoding="utf-8",
        )
        self.max_bytes: int = max_bytes
        self.retention_days: int = retention_days
        self.compress: bool = compress
        self.namer = self._unique_name

    def _unique_name(self, default_name: str) -> str:
        name = _gzip_namer(default_name) if self.compress else default_name
        if not os.path.exists(name):
            return name

        stem = default_name
        counter = 1
        while True:
            candidate = f"{stem}.{counter}"
            if self.compress:
                candidate = _gzip_namer(candidate)
            if not os.path.exists(candidate):
                return candidate
            counter += 1

    @override
    def shouldRollover(self, record: logging.LogRecord) -> bool:
        if super().shouldRollover(record):
            return True

        if self.max_bytes <= 0:
            return False

        if self.stream is None:  # pyright: ignore[reportUnnecessaryComparison]
            self.stream = self._open()

        _ = self.stream.seek(0, 2)
        size = self.stream.tell()
        if size == 0:
            return False

        msg = f"{self.format(record)}\n"
        return size + len(msg.encode(self.encoding or "utf-8")) > self.max_bytes

    @override
    def rotate(self, source: str, dest: str) -> None:
        if self.compress:
            if os.path.exists(source):
                _gzip_rotator(source, dest)
            return
        super().rotate(source, dest)

    @override
    def doRollover(self) -> None:
        super().doRollover()
        self._prune_rotated_files()

    def _prune_rotated_files(self) -> None:
        base = Path(self.baseFilename)
        cutoff = time.time() - self.retention_days * _SECONDS_PER_DAY
        for rotated in base.parent.glob(f"{base.name}.*"):
            try:
                if rotated.stat().st_mtime < cutoff:
                    rotated.unlink()
            except OSError:
                continue


def configure_logging(
    *,
    log_level: str = "INFO",
    log_dir: Path | None = DEFAULT_LOG_DIR,
    max_bytes: int = DEFAULT_MAX_BYTES,
    retention_days: int = DEFAULT_RETENTION_DAYS,
    enable_console: bool = True,
    enable_colors: bool = True,
) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the rotated log file, or None to disable file logging
        max_bytes: Size cap that triggers an extra rotation (0 disables)
        retention_days: Days to keep rotated log files
        enable_console: Enable console output handler
        enable_colors: Color console lines by level

    Example:
        >>> configure_logging(log_level="INFO", log_dir=Path("logs"))
        >>> logging.getLogger(__name__).info("[%s] Connected", "Main")
    """
    root_logger = logging.getLogger()

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    secret_filter = SecretRedactingFilter()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter(enable_colors=enable_colors))
        console_handler.addFilter(secret_filter)
        root_logger.addHandler(console_handler)

    if log_dir is not None:
        try:
            file_handler = DailyRotatingFileHandler(
                log_dir / DEFAULT_LOG_FILENAME,
                max_bytes=max_bytes,
                retention_days=retention_days,
            )
        except OSError as exc:
            print(
                f"Warning: Could not open log file in {log_dir}: {exc}",
                file=sys.stderr,
            )
        else:
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            file_handler.addFilter(secret_filter)
            root_logger.addHandler(file_handler)
