"""
tutor-tts Structured Logging Module.

Numeric log levels (1-4), colored console output, optional JSONL file
output and request-id correlation across a play request.

Configuration:
    export TUTOR_TTS_LOG_LEVEL=3   # VERBOSE
    export TUTOR_TTS_NO_COLOR=1    # Disable colors
    export TUTOR_TTS_LOG_DIR=logs  # Also write logs/tutor-tts.jsonl

    In settings.yaml:
        logging:
          level: 2
          log_dir: logs
          jsonl_file: tutor-tts.jsonl

Usage:
    from tutor_tts.core.logging import get_logger, info, warn, verbose

    log = get_logger("tutor-tts.mymodule")
    info(log, "play_start", chars=150)
    warn(log, "retry_smaller_budget", retry=1, max_bytes=600)
    verbose(log, "chunk_played", index=1, total=3)
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from .levels import LogLevel, LEVEL_MAP, LEVEL_NAMES, coerce_level
from .colors import Colors, supports_color, get_tag_color
from .context import (
    get_request_id,
    set_request_id,
    get_level,
    set_level,
    get_level_name,
    is_configured,
    set_configured,
    get_log_config,
    set_log_config,
    read_logging_config,
)
from .formatters import JsonlFormatter, ColoredConsoleFormatter

# Read by the formatters at format time; tests may flip it
_USE_COLORS = supports_color()


def configure_logging(level: Optional[int | str | LogLevel] = None, force: bool = False) -> None:
    """
    Configure the logging system.

    Args:
        level: Log level (1-4, level name, or LogLevel enum)
        force: Force reconfiguration even if already configured
    """
    global _USE_COLORS

    if is_configured() and not force:
        return

    _USE_COLORS = supports_color()

    log_config = read_logging_config()
    set_log_config(log_config)

    current_level = coerce_level(level or log_config.get("level", LogLevel.NORMAL))
    set_level(current_level)
    python_level = LEVEL_MAP.get(current_level, logging.INFO)

    # Only our own logger tree; the host application's root logger is left alone
    base = logging.getLogger("tutor-tts")
    base.setLevel(logging.DEBUG - 5)
    base.propagate = False
    base.handlers = []

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(python_level)
    console.setFormatter(ColoredConsoleFormatter())
    base.addHandler(console)

    log_dir = log_config.get("log_dir")
    if log_dir:
        jsonl_file = log_config.get("jsonl_file", "tutor-tts.jsonl")
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            Path(log_dir) / str(jsonl_file),
            maxBytes=int(log_config.get("rotate_max_bytes", 10 * 1024 * 1024)),
            backupCount=int(log_config.get("rotate_backup_count", 5)),
            encoding="utf-8",
            delay=True,
        )
        file_handler.setLevel(logging.DEBUG - 5)
        file_handler.setFormatter(JsonlFormatter())
        base.addHandler(file_handler)

    set_configured(True)


def _log(
    logger: logging.Logger,
    level: int,
    tag: str,
    msg: str,
    numeric_level: int = 2,
    **fields: Any
) -> None:
    if numeric_level > get_level():
        return

    event = fields.pop("event", None)
    seconds = fields.pop("seconds", None)
    logger.log(
        level,
        msg,
        extra={
            "tag": tag,
            "request_id": get_request_id(),
            "event": event,
            "seconds": seconds,
            "extra_data": fields or None,
            "numeric_level": numeric_level,
        },
    )


def get_logger(name: str = "tutor-tts") -> logging.Logger:
    """
    Get a logger under the "tutor-tts" tree, configuring logging if needed.

    Names are expected as "tutor-tts.<component>".
    """
    configure_logging()
    return logging.getLogger(name)


def info(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log an info message (level 2 = NORMAL)."""
    _log(logger, logging.INFO, "INFO", msg, numeric_level=2, **fields)


def warn(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log a warning message (level 2 = NORMAL)."""
    _log(logger, logging.WARNING, "WARN", msg, numeric_level=2, **fields)


def error(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log an error message (level 1 = MINIMAL)."""
    _log(logger, logging.ERROR, "ERROR", msg, numeric_level=1, **fields)


def success(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log a success message (level 2 = NORMAL)."""
    _log(logger, logging.INFO, "SUCCESS", msg, numeric_level=2, **fields)


def verbose(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log a verbose message (level 3 = VERBOSE)."""
    _log(logger, logging.DEBUG, "INFO", msg, numeric_level=3, **fields)


def debug(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Log a debug message (level 4 = DEBUG)."""
    _log(logger, logging.DEBUG - 5, "DEBUG", msg, numeric_level=4, **fields)


__all__ = [
    "LogLevel",
    "LEVEL_MAP",
    "LEVEL_NAMES",
    "coerce_level",
    "Colors",
    "supports_color",
    "get_tag_color",
    "get_request_id",
    "set_request_id",
    "get_level",
    "get_level_name",
    "get_log_config",
    "JsonlFormatter",
    "ColoredConsoleFormatter",
    "configure_logging",
    "get_logger",
    "info",
    "warn",
    "error",
    "success",
    "verbose",
    "debug",
]
