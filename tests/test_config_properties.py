"""Property-based tests for configuration management.

Feature: content-ideas
Covers defaults, environment parsing and validation of Settings.
"""

import os
from unittest.mock import patch

import pytest
from hypothesis import given, settings, strategies as st

from src.config.settings import (
    ConfigurationError,
    DEFAULT_BUSINESS_CONTEXT,
    DEFAULT_CHANNELS,
    DEFAULT_TARGET_AUDIENCE,
    Settings,
    load_settings,
)


class TestConfigurationDefaults:
    """Tests for configuration defaults."""

    def test_default_settings_have_documented_values(self):
        """Verify that Settings uses documented default values."""
        settings_obj = Settings()

        assert settings_obj.openai_api_key == ""
        assert settings_obj.openai_base_url == "https://api.openai.com/v1"
        assert settings_obj.model == "gpt-4o-mini"
        assert settings_obj.temperature == 0.7
        assert settings_obj.max_retries == 3
        assert settings_obj.retry_initial_delay_seconds == 1.0
        assert settings_obj.retry_max_backoff_seconds == 5.0
        assert settings_obj.business_context == DEFAULT_BUSINESS_CONTEXT
        assert settings_obj.target_audience == DEFAULT_TARGET_AUDIENCE
        assert settings_obj.default_channels == DEFAULT_CHANNELS
        assert settings_obj.schema_name == "content_ideas_schema"
        assert settings_obj.strict_schema is True
        assert settings_obj.max_content_length == 50000
        assert settings_obj.truncated_content_length == 30000
        assert settings_obj.truncation_risk_chars == 15000
        assert settings_obj.session_store == "memory"
        assert settings_obj.max_sessions == 50

    def test_default_channels_are_not_shared_between_instances(self):
        first = Settings()
        first.default_channels.append("instagram")

        assert Settings().default_channels == DEFAULT_CHANNELS

    def test_default_settings_are_valid(self):
        Settings().validate()

    def test_load_settings_uses_defaults_for_missing_env_vars(self):
        with patch.dict(os.environ, {}, clear=True):
            settings_obj = load_settings(env_path="/nonexistent/.env", validate=True)

        assert settings_obj == Settings()


class TestEnvironmentParsing:
    """Property tests for reading settings from the environment."""

    @given(
        max_retries=st.integers(min_value=0, max_value=10),
        max_sessions=st.integers(min_value=1, max_value=10000),
        temperature=st.floats(min_value=0.0, max_value=2.0, allow_nan=False),
    )
    @settings(max_examples=100)
    def test_load_settings_parses_valid_env_vars(
        self, max_retries: int, max_sessions: int, temperature: float
    ):
        """For any valid env var values, load_settings SHALL parse them correctly."""
        env_vars = {
            "OPENAI_API_KEY": "sk-test",
            "OPENAI_MODEL": "gpt-4o",
            "OPENAI_TEMPERATURE": repr(temperature),
            "MAX_RETRIES": str(max_retries),
            "MAX_SESSIONS": str(max_sessions),
            "SESSION_STORE": "SQLite",
            "DATABASE_PATH": "/tmp/sessions.db",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings_obj = load_settings(env_path="/nonexistent/.env", validate=True)

        assert settings_obj.openai_api_key == "sk-test"
        assert settings_obj.model == "gpt-4o"
        assert settings_obj.temperature == temperature
        assert settings_obj.max_retries == max_retries
        assert settings_obj.max_sessions == max_sessions
        assert settings_obj.session_store == "sqlite"
        assert settings_obj.database_path == "/tmp/sessions.db"

    def test_load_settings_uses_defaults_for_invalid_env_vars(self):
        """For invalid numeric values, load_settings SHALL use defaults."""
        env_vars = {
            "MAX_RETRIES": "three",
            "OPENAI_TEMPERATURE": "warm",
            "MAX_CONTENT_LENGTH": "",
            "MAX_WORKERS": "4.5",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings_obj = load_settings(env_path="/nonexistent/.env", validate=True)

        assert settings_obj.max_retries == 3
        assert settings_obj.temperature == 0.7
        assert settings_obj.max_content_length == 50000
        assert settings_obj.max_workers == 4

    def test_default_channels_parsed_from_comma_list(self):
        env_vars = {"DEFAULT_CHANNELS": " linkedin , x ,, "}

        with patch.dict(os.environ, env_vars, clear=True):
            settings_obj = load_settings(env_path="/nonexistent/.env", validate=True)

        assert settings_obj.default_channels == ["linkedin", "x"]

    def test_blank_default_channels_fall_back(self):
        with patch.dict(os.environ, {"DEFAULT_CHANNELS": " , "}, clear=True):
            settings_obj = load_settings(env_path="/nonexistent/.env", validate=True)

        assert settings_obj.default_channels == DEFAULT_CHANNELS

    def test_env_file_is_loaded(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("OPENAI_MODEL=from-file\nMAX_SESSIONS=7\n")

        with patch.dict(os.environ, {}, clear=True):
            settings_obj = load_settings(env_path=str(env_file), validate=True)

        assert settings_obj.model == "from-file"
        assert settings_obj.max_sessions == 7


class TestValidation:
    """Tests for Settings.validate."""

    @pytest.mark.parametrize(
        "overrides,fragment",
        [
            ({"temperature": 2.5}, "temperature"),
            ({"temperature": -0.1}, "temperature"),
            ({"max_retries": -1}, "max_retries"),
            ({"request_timeout_seconds": 0.0}, "request_timeout_seconds"),
            ({"retry_initial_delay_seconds": 10.0}, "retry_max_backoff_seconds"),
            ({"idea_min_items": 0}, "idea_min_items"),
            ({"idea_min_items": 3, "idea_max_items": 2}, "idea_max_items"),
            ({"max_content_length": 100, "truncated_content_length": 100}, "max_content_length"),
            ({"truncation_risk_chars": 0}, "truncation_risk_chars"),
            ({"session_store": "redis"}, "session_store"),
            ({"max_sessions": 0}, "max_sessions"),
            ({"max_workers": 0}, "max_workers"),
            ({"default_channels": ["facebook"]}, "default_channels"),
            ({"model": ""}, "model"),
        ],
    )
    def test_invalid_values_rejected(self, overrides, fragment):
        settings_obj = Settings(**overrides)

        with pytest.raises(ConfigurationError) as exc_info:
            settings_obj.validate()

        assert fragment in str(exc_info.value)

    def test_all_errors_reported_together(self):
        settings_obj = Settings(temperature=5.0, max_sessions=0)

        with pytest.raises(ConfigurationError) as exc_info:
            settings_obj.validate()

        message = str(exc_info.value)
        assert "temperature" in message
        assert "max_sessions" in message
        assert "; " in message

    def test_missing_api_key_is_not_a_validation_error(self):
        Settings(openai_api_key="").validate()

    def test_validate_false_skips_validation(self):
        with patch.dict(os.environ, {"OPENAI_TEMPERATURE": "9"}, clear=True):
            settings_obj = load_settings(env_path="/nonexistent/.env", validate=False)

        assert settings_obj.temperature == 9.0

    def test_load_settings_raises_on_invalid_env(self):
        with patch.dict(os.environ, {"SESSION_STORE": "redis"}, clear=True):
            with pytest.raises(ConfigurationError):
                load_settings(env_path="/nonexistent/.env", validate=True)
