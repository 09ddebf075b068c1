"""
Request Context and Configuration State for Logging.

The request id lives in a ContextVar so that every log line emitted
while a play request is in progress (including lines from dispatcher
worker tasks, which copy the context when they are created) carries the
same id. Logging configuration itself is process-wide module state.

Environment Variables:
    - TUTOR_TTS_SETTINGS: Settings file to read the logging section from
    - TUTOR_TTS_LOG_LEVEL: Override log level (1-4 or name)
    - TUTOR_TTS_LOG_DIR: Directory for the JSONL log file
    - TUTOR_TTS_JSONL_FILE: JSONL filename
    - TUTOR_TTS_LOG_ROTATE_BYTES: Max log file size
    - TUTOR_TTS_LOG_ROTATE_BACKUP: Number of backup files
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

from .levels import LEVEL_NAMES, LogLevel

# "-" marks log lines emitted outside a play request
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Get current request ID from context, or "-" if not set."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Set request ID in context for log correlation."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    """Get current log level."""
    return _current_level


def set_level(level: LogLevel) -> None:
    """Set current log level."""
    global _current_level
    _current_level = level


def get_level_name() -> str:
    """Get current log level as a name ("MINIMAL", "NORMAL", ...)."""
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    """True once configure_logging() has run."""
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _int_env(cfg: Dict[str, Any], key: str, env_name: str) -> None:
    raw = os.getenv(env_name)
    if not raw:
        return
    try:
        cfg[key] = int(raw)
    except ValueError:
        pass  # Invalid value, keep settings/default


def read_logging_config() -> Dict[str, Any]:
    """
    Read logging configuration from the settings file and environment.

    Priority (highest first): TUTOR_TTS_* environment variables, the
    settings.yaml logging section, built-in defaults.

    Returns:
        Dictionary with resolved logging configuration.
    """
    cfg: Dict[str, Any] = {}

    settings_path = os.getenv("TUTOR_TTS_SETTINGS", "config/settings.yaml")
    try:
        from tutor_tts.core.config import ConfigValidationError, load_settings
        settings = load_settings(settings_path)
        cfg.update(settings.raw.get("logging", {}) or {})
    except (FileNotFoundError, ConfigValidationError):
        pass

    if os.getenv("TUTOR_TTS_LOG_LEVEL"):
        cfg["level"] = os.environ["TUTOR_TTS_LOG_LEVEL"]
    if os.getenv("TUTOR_TTS_LOG_DIR"):
        cfg["log_dir"] = os.environ["TUTOR_TTS_LOG_DIR"]
    if os.getenv("TUTOR_TTS_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["TUTOR_TTS_JSONL_FILE"]
    _int_env(cfg, "rotate_max_bytes", "TUTOR_TTS_LOG_ROTATE_BYTES")
    _int_env(cfg, "rotate_backup_count", "TUTOR_TTS_LOG_ROTATE_BACKUP")

    return cfg
