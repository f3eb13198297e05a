"""Tests for environment detection and settings overrides."""

import os
from unittest.mock import patch

import pytest
from common.config.settings import Environment, Settings, get_environment


class TestGetEnvironment:
    """Test environment detection function."""

    def test_raises_error_when_app_env_not_set(self):
        """Test that missing APP_ENV raises ValueError for production safety."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="APP_ENV environment variable must be set"):
                get_environment()

    def test_detects_staging(self):
        with patch.dict(os.environ, {"APP_ENV": "staging"}):
            assert get_environment() == Environment.STAGING

    def test_raises_error_for_invalid_value(self):
        with patch.dict(os.environ, {"APP_ENV": "invalid"}):
            with pytest.raises(ValueError, match="Invalid APP_ENV value 'invalid'"):
                get_environment()

    def test_case_insensitive(self):
        with patch.dict(os.environ, {"APP_ENV": "PRODUCTION"}):
            assert get_environment() == Environment.PRODUCTION


class TestEnvironmentOverrides:
    def test_development_defaults_to_debug_logging(self):
        with patch.dict(os.environ, {"APP_ENV": "development"}, clear=True):
            settings = Settings()
        assert settings.debug is True
        assert settings.service.log_level == "DEBUG"

    def test_development_respects_explicit_log_level(self):
        env = {"APP_ENV": "development", "SERVICE__LOG_LEVEL": "ERROR"}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings()
        assert settings.service.log_level == "ERROR"

    def test_staging_defaults_to_info(self):
        with patch.dict(os.environ, {"APP_ENV": "staging"}, clear=True):
            settings = Settings()
        assert settings.service.log_level == "INFO"

    def test_production_enforces_safe_values(self):
        env = {
            "APP_ENV": "production",
            "DEBUG": "true",
            "SERVICE__LOG_LEVEL": "DEBUG",
            "DOCUMENT_STORE": "memory",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings()
        assert settings.debug is False
        assert settings.service.log_level == "WARNING"
        assert settings.document_store == "redis"


class TestSettingsValidation:
    def test_rejects_non_redis_url(self):
        with patch.dict(os.environ, {"APP_ENV": "development"}, clear=True):
            with pytest.raises(ValueError, match="redis_url"):
                Settings(redis_url="http://localhost:6379")

    def test_admin_token_from_environment(self):
        env = {"APP_ENV": "development", "ADMIN_API_TOKEN": "s3cret"}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings()
        assert settings.admin_api_token == "s3cret"

    def test_rejects_invalid_log_level(self):
        env = {"APP_ENV": "staging", "SERVICE__LOG_LEVEL": "LOUD"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError):
                Settings()
