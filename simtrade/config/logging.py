"""Logging configuration for SimTrade.

Console output uses a coloured human-readable format; log files (and the
console in production, via LOG_FORMAT=json) use one JSON object per line.
Engine events pass structured data through ``extra={"extra_fields": {...}}``,
which the JSON formatter merges into the record.
"""

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Chatty third-party loggers capped at WARNING
NOISY_LOGGERS = ("yfinance", "urllib3", "peewee")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for files and log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            payload.update(extra_fields)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """Coloured console formatter for interactive use."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        color = self.COLORS.get(original)
        if color:
            record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def _resolve_level(level: Optional[str]) -> int:
    name = (
        level
        or os.getenv("SIMTRADE_LOG_LEVEL")
        or os.getenv("LOG_LEVEL")
        or "INFO"
    ).upper()
    numeric = getattr(logging, name, None)
    if not isinstance(numeric, int):
        raise ValueError(f"Invalid log level: {name}")
    return numeric


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
    use_json: bool = False,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """Configure the root logger.

    Call once at startup (the CLI does this from its global options).

    Args:
        level: Log level name. Falls back to SIMTRADE_LOG_LEVEL, then
            LOG_LEVEL, then INFO.
        log_file: Optional path for a rotating JSON log file.
        use_json: Use JSON on the console. LOG_FORMAT=json|console overrides.
        max_bytes: Size at which the log file rotates.
        backup_count: Number of rotated files to keep.

    Raises:
        ValueError: If the level name is not a logging level.

    Example:
        >>> from simtrade.config.logging import setup_logging
        >>> setup_logging(level="DEBUG", log_file=Path("logs/simtrade.log"))
    """
    numeric_level = _resolve_level(level)

    log_format = os.getenv("LOG_FORMAT", "").lower()
    if log_format in ("json", "console"):
        use_json = log_format == "json"

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(
        JSONFormatter()
        if use_json
        else ConsoleFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(console)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    logging.getLogger(__name__).debug(
        "Logging initialized: level=%s, format=%s, file=%s",
        logging.getLevelName(numeric_level),
        "json" if use_json else "console",
        log_file or "disabled",
    )
