"""
Tests for configuration validation and defaults.

Tests cover:
- SpeechConfig.from_settings() - all sections
- Defaults class values
- ConfigValidationError on invalid values
- Retry floor must not exceed the starting budget
- String log level coercion ("DEBUG" -> 4)
- Missing sections use defaults
- Settings properties and environment overrides
"""

import pytest

from tutor_tts.core.config import (
    ConfigValidationError,
    Defaults,
    Settings,
    SpeechConfig,
    load_settings,
    load_settings_or_defaults,
)


class TestDefaults:
    """Tests for Defaults class values."""

    def test_segmentation_defaults(self):
        assert Defaults.SEGMENT_MAX_BYTES == 800

    def test_retry_defaults(self):
        """Two retries, 200 bytes smaller each time, never below 500."""
        assert Defaults.RETRY_MAX_RETRIES == 2
        assert Defaults.RETRY_BUDGET_STEP == 200
        assert Defaults.RETRY_BUDGET_FLOOR == 500

    def test_dispatch_defaults(self):
        assert Defaults.DISPATCH_LIMIT == 10

    def test_synthesis_defaults(self):
        assert Defaults.SYNTHESIS_ENDPOINT == "/api/tts"
        assert Defaults.SYNTHESIS_LANGUAGE == "cmn-CN"
        assert Defaults.SYNTHESIS_VOICE == "cmn-CN-Chirp3-HD-Despina"

    def test_logging_defaults(self):
        assert Defaults.LOGGING_TEXT_PREVIEW_CHARS == 80
        assert Defaults.LOGGING_LEVEL == 2


class TestSpeechConfigFromSettings:
    """Tests for SpeechConfig.from_settings()."""

    def test_from_settings_with_empty_raw(self):
        """from_settings should use defaults for empty raw dict."""
        config = SpeechConfig.from_settings(Settings(raw={}))

        assert config.segmentation.max_bytes == Defaults.SEGMENT_MAX_BYTES
        assert config.retry.max_retries == Defaults.RETRY_MAX_RETRIES
        assert config.retry.budget_step == Defaults.RETRY_BUDGET_STEP
        assert config.retry.budget_floor == Defaults.RETRY_BUDGET_FLOOR
        assert config.dispatch.limit == Defaults.DISPATCH_LIMIT
        assert config.synthesis.base_url == Defaults.SYNTHESIS_BASE_URL
        assert config.logging.level == Defaults.LOGGING_LEVEL

    def test_from_settings_with_all_sections(self):
        settings = Settings(raw={
            "segmentation": {"max_bytes": 600},
            "retry": {"max_retries": 1, "budget_step": 100, "budget_floor": 300},
            "dispatch": {"limit": 4},
            "synthesis": {"base_url": "http://tutor.local:3000/", "voice": "v1"},
            "logging": {"level": 3, "text_preview_chars": 20},
        })
        config = SpeechConfig.from_settings(settings)

        assert config.segmentation.max_bytes == 600
        assert config.retry.max_retries == 1
        assert config.retry.budget_step == 100
        assert config.retry.budget_floor == 300
        assert config.dispatch.limit == 4
        assert config.synthesis.base_url == "http://tutor.local:3000"
        assert config.synthesis.voice == "v1"
        assert config.logging.level == 3
        assert config.logging.text_preview_chars == 20

    def test_null_section_uses_defaults(self):
        """A YAML section left empty (None) behaves like a missing one."""
        config = SpeechConfig.from_settings(Settings(raw={"retry": None}))
        assert config.retry.max_retries == Defaults.RETRY_MAX_RETRIES

    def test_string_log_level(self):
        config = SpeechConfig.from_settings(Settings(raw={"logging": {"level": "DEBUG"}}))
        assert config.logging.level == 4

        config = SpeechConfig.from_settings(Settings(raw={"logging": {"level": "verbose"}}))
        assert config.logging.level == 3

    def test_zero_retries_allowed(self):
        config = SpeechConfig.from_settings(Settings(raw={"retry": {"max_retries": 0}}))
        assert config.retry.max_retries == 0


class TestValidation:
    """ConfigValidationError on invalid values."""

    @pytest.mark.parametrize("raw", [
        {"segmentation": {"max_bytes": 0}},
        {"segmentation": {"max_bytes": -5}},
        {"retry": {"max_retries": -1}},
        {"retry": {"budget_step": 0}},
        {"retry": {"budget_floor": 0}},
        {"dispatch": {"limit": 0}},
        {"synthesis": {"timeout_s": 0}},
        {"logging": {"level": 5}},
        {"logging": {"text_preview_chars": -1}},
        {"segmentation": {"max_bytes": "lots"}},
        {"retry": {"budget_step": None}},
        {"dispatch": {"limit": [10]}},
        {"synthesis": {"timeout_s": "soon"}},
        {"logging": {"level": 2.5j}},
    ])
    def test_invalid_values_rejected(self, raw):
        with pytest.raises(ConfigValidationError):
            SpeechConfig.from_settings(Settings(raw=raw))

    def test_floor_above_budget_rejected(self):
        settings = Settings(raw={"segmentation": {"max_bytes": 400}})
        with pytest.raises(ConfigValidationError, match="budget_floor"):
            SpeechConfig.from_settings(settings)

    def test_empty_base_url_rejected(self):
        with pytest.raises(ConfigValidationError, match="base_url"):
            SpeechConfig.from_settings(Settings(raw={"synthesis": {"base_url": ""}}))


class TestSettings:
    """Settings properties and file loading."""

    def test_properties_default(self):
        settings = Settings(raw={})
        assert settings.base_url == Defaults.SYNTHESIS_BASE_URL
        assert settings.language == Defaults.SYNTHESIS_LANGUAGE
        assert settings.voice == Defaults.SYNTHESIS_VOICE

    def test_settings_is_frozen(self):
        settings = Settings(raw={})
        with pytest.raises(Exception):
            settings.raw = {"x": 1}

    def test_load_settings_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path / "missing.yaml"))

    def test_load_settings_malformed_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("segmentation: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="invalid YAML"):
            load_settings(str(path))

    def test_load_settings_non_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="mapping"):
            load_settings(str(path))

    def test_load_settings_from_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TUTOR_TTS_API_URL", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("segmentation:\n  max_bytes: 700\nsynthesis:\n  voice: custom\n", encoding="utf-8")

        settings = load_settings(str(path))
        assert settings.voice == "custom"
        assert settings.get_speech_config().segmentation.max_bytes == 700

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TUTOR_TTS_API_URL", "http://env.example:9000")
        monkeypatch.setenv("TUTOR_TTS_VOICE", "env-voice")
        path = tmp_path / "settings.yaml"
        path.write_text("synthesis:\n  base_url: http://file.example\n", encoding="utf-8")

        settings = load_settings(str(path))
        assert settings.base_url == "http://env.example:9000"
        assert settings.voice == "env-voice"

    def test_load_settings_or_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TUTOR_TTS_LANGUAGE", "en-US")
        settings = load_settings_or_defaults(str(tmp_path / "missing.yaml"))
        assert settings.language == "en-US"
        assert settings.get_speech_config().segmentation.max_bytes == Defaults.SEGMENT_MAX_BYTES

    def test_repo_settings_file_is_valid(self):
        """The shipped config/settings.yaml loads and validates."""
        from pathlib import Path
        path = Path(__file__).parent.parent / "config" / "settings.yaml"
        config = load_settings(str(path)).get_speech_config()
        assert config.segmentation.max_bytes == 800
        assert config.dispatch.limit == 10
