"""
Configuration Management for tutor-tts.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (TUTOR_TTS_API_URL, TUTOR_TTS_VOICE, etc.)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    synthesis:
      base_url: http://localhost:3000
      language: cmn-CN
      voice: cmn-CN-Chirp3-HD-Despina

    segmentation:
      max_bytes: 800

    retry:
      max_retries: 2
      budget_step: 200
      budget_floor: 500

    dispatch:
      limit: 10
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict
import os
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    Sections:
        - Segmentation: UTF-8 byte budget per chunk
        - Retry: Budget reduction after "text too long" rejections
        - Dispatch: Synthesis requests in flight per play request
        - Synthesis: Backend endpoint, language and voice
        - Logging: Log level and formatting
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Segmentation
    # ─────────────────────────────────────────────────────────────────────────
    SEGMENT_MAX_BYTES = 800             # Byte budget per synthesis chunk

    # ─────────────────────────────────────────────────────────────────────────
    # Retry on length rejection
    # ─────────────────────────────────────────────────────────────────────────
    RETRY_MAX_RETRIES = 2               # Retries after the first attempt
    RETRY_BUDGET_STEP = 200             # Bytes removed from budget per retry
    RETRY_BUDGET_FLOOR = 500            # Budget never drops below this

    # ─────────────────────────────────────────────────────────────────────────
    # Dispatch
    # ─────────────────────────────────────────────────────────────────────────
    DISPATCH_LIMIT = 10                 # Concurrent synthesis calls

    # ─────────────────────────────────────────────────────────────────────────
    # Synthesis backend
    # ─────────────────────────────────────────────────────────────────────────
    SYNTHESIS_BASE_URL = "http://localhost:3000"
    SYNTHESIS_ENDPOINT = "/api/tts"
    SYNTHESIS_TIMEOUT_S = 30.0
    SYNTHESIS_LANGUAGE = "cmn-CN"
    SYNTHESIS_VOICE = "cmn-CN-Chirp3-HD-Despina"

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 80     # Characters to show in text preview
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


@dataclass
class SegmentationConfig:
    """Byte budget used for the first segmentation attempt."""
    max_bytes: int = Defaults.SEGMENT_MAX_BYTES


@dataclass
class RetryConfig:
    """
    Budget-reduction retry configuration.

    After a "text too long" rejection the text is re-segmented with
    max(budget_floor, budget - budget_step), at most max_retries times.
    """
    max_retries: int = Defaults.RETRY_MAX_RETRIES
    budget_step: int = Defaults.RETRY_BUDGET_STEP
    budget_floor: int = Defaults.RETRY_BUDGET_FLOOR


@dataclass
class DispatchConfig:
    """Number of synthesis calls allowed in flight for one play request."""
    limit: int = Defaults.DISPATCH_LIMIT


@dataclass
class SynthesisConfig:
    """
    Synthesis backend configuration.

    The backend receives one chunk per request and answers with a
    playable audio reference.
    """
    base_url: str = Defaults.SYNTHESIS_BASE_URL
    endpoint: str = Defaults.SYNTHESIS_ENDPOINT
    timeout_s: float = Defaults.SYNTHESIS_TIMEOUT_S
    language: str = Defaults.SYNTHESIS_LANGUAGE
    voice: str = Defaults.SYNTHESIS_VOICE


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Play request lifecycle, retries (default)
        3 = VERBOSE: Per-stage timing, per-chunk flow
        4 = DEBUG: Internal state, full tracing
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class SpeechConfig:
    """
    Validated configuration for the read-aloud pipeline.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = SpeechConfig.from_settings(settings)
        print(config.segmentation.max_bytes)
    """
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SpeechConfig":
        """
        Create SpeechConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated SpeechConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Segmentation
        # ─────────────────────────────────────────────────────────────────────
        seg_raw = raw.get("segmentation", {}) or {}
        segmentation = SegmentationConfig(
            max_bytes=cls._as_int("segmentation.max_bytes", seg_raw.get("max_bytes", Defaults.SEGMENT_MAX_BYTES)),
        )
        cls._validate_positive("segmentation.max_bytes", segmentation.max_bytes)

        # ─────────────────────────────────────────────────────────────────────
        # Retry
        # ─────────────────────────────────────────────────────────────────────
        retry_raw = raw.get("retry", {}) or {}
        retry = RetryConfig(
            max_retries=cls._as_int("retry.max_retries", retry_raw.get("max_retries", Defaults.RETRY_MAX_RETRIES)),
            budget_step=cls._as_int("retry.budget_step", retry_raw.get("budget_step", Defaults.RETRY_BUDGET_STEP)),
            budget_floor=cls._as_int("retry.budget_floor", retry_raw.get("budget_floor", Defaults.RETRY_BUDGET_FLOOR)),
        )
        cls._validate_non_negative("retry.max_retries", retry.max_retries)
        cls._validate_positive("retry.budget_step", retry.budget_step)
        cls._validate_positive("retry.budget_floor", retry.budget_floor)
        if retry.budget_floor > segmentation.max_bytes:
            raise ConfigValidationError(
                f"retry.budget_floor ({retry.budget_floor}) must not exceed "
                f"segmentation.max_bytes ({segmentation.max_bytes})"
            )

        # ─────────────────────────────────────────────────────────────────────
        # Dispatch
        # ─────────────────────────────────────────────────────────────────────
        dispatch_raw = raw.get("dispatch", {}) or {}
        dispatch = DispatchConfig(
            limit=cls._as_int("dispatch.limit", dispatch_raw.get("limit", Defaults.DISPATCH_LIMIT)),
        )
        cls._validate_positive("dispatch.limit", dispatch.limit)

        # ─────────────────────────────────────────────────────────────────────
        # Synthesis
        # ─────────────────────────────────────────────────────────────────────
        synth_raw = raw.get("synthesis", {}) or {}
        synthesis = SynthesisConfig(
            base_url=str(synth_raw.get("base_url", Defaults.SYNTHESIS_BASE_URL)).rstrip("/"),
            endpoint=str(synth_raw.get("endpoint", Defaults.SYNTHESIS_ENDPOINT)),
            timeout_s=cls._as_float("synthesis.timeout_s", synth_raw.get("timeout_s", Defaults.SYNTHESIS_TIMEOUT_S)),
            language=str(synth_raw.get("language", Defaults.SYNTHESIS_LANGUAGE)),
            voice=str(synth_raw.get("voice", Defaults.SYNTHESIS_VOICE)),
        )
        cls._validate_positive("synthesis.timeout_s", synthesis.timeout_s)
        if not synthesis.base_url:
            raise ConfigValidationError("synthesis.base_url must not be empty")

        # ─────────────────────────────────────────────────────────────────────
        # Logging
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = cls._as_int("logging.level", log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=cls._as_int(
                "logging.text_preview_chars",
                logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS),
            ),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            segmentation=segmentation,
            retry=retry,
            dispatch=dispatch,
            synthesis=synthesis,
            logging=logging_cfg,
        )

    @staticmethod
    def _as_int(name: str, value: Any) -> int:
        """Coerce a settings value to int, rejecting non-numeric input."""
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigValidationError(f"{name} must be an integer, got {value!r}") from None

    @staticmethod
    def _as_float(name: str, value: Any) -> float:
        """Coerce a settings value to float, rejecting non-numeric input."""
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigValidationError(f"{name} must be a number, got {value!r}") from None

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_speech_config() to get a validated SpeechConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    @property
    def base_url(self) -> str:
        """Get the synthesis backend base URL."""
        return str(self.raw.get("synthesis", {}).get("base_url", Defaults.SYNTHESIS_BASE_URL))

    @property
    def language(self) -> str:
        """Get the synthesis language tag."""
        return str(self.raw.get("synthesis", {}).get("language", Defaults.SYNTHESIS_LANGUAGE))

    @property
    def voice(self) -> str:
        """Get the synthesis voice identifier."""
        return str(self.raw.get("synthesis", {}).get("voice", Defaults.SYNTHESIS_VOICE))

    def get_speech_config(self) -> SpeechConfig:
        """
        Get validated SpeechConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return SpeechConfig.from_settings(self)


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    Environment variable overrides:
        - TUTOR_TTS_API_URL: Override synthesis.base_url
        - TUTOR_TTS_LANGUAGE: Override synthesis.language
        - TUTOR_TTS_VOICE: Override synthesis.voice

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
        ConfigValidationError: If the file is not a valid YAML mapping.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        try:
            raw: Dict[str, Any] = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"invalid YAML in {p}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigValidationError(f"settings file must contain a mapping, got {type(raw).__name__}")

    _apply_env_overrides(raw)
    return Settings(raw=raw)


def _apply_env_overrides(raw: Dict[str, Any]) -> None:
    """Apply TUTOR_TTS_* environment overrides to the synthesis section in place."""
    overrides = {
        "base_url": os.getenv("TUTOR_TTS_API_URL"),
        "language": os.getenv("TUTOR_TTS_LANGUAGE"),
        "voice": os.getenv("TUTOR_TTS_VOICE"),
    }
    for key, value in overrides.items():
        if value:
            raw.setdefault("synthesis", {})[key] = value


def load_settings_or_defaults(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings, falling back to defaults when the file is missing.

    Environment overrides are applied in both cases.
    """
    try:
        return load_settings(path)
    except FileNotFoundError:
        raw: Dict[str, Any] = {}
        _apply_env_overrides(raw)
        return Settings(raw=raw)
