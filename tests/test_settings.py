"""Tests for configuration."""

import pytest
from pydantic import ValidationError

from finance_sync.config import ApiSettings, AppSettings, get_settings, validate_all_settings
from finance_sync.models import Generation


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestApiSettings:
    """Tests for ApiSettings."""

    def test_defaults(self, monkeypatch):
        """Test modern generation and no timeout by default."""
        monkeypatch.delenv("FINANCE_API_GENERATION", raising=False)
        monkeypatch.delenv("FINANCE_API_TIMEOUT_SECONDS", raising=False)
        settings = ApiSettings()
        assert settings.generation == Generation.MODERN
        assert settings.timeout_seconds is None

    def test_generation_from_env(self, monkeypatch):
        """Test environment override."""
        monkeypatch.setenv("FINANCE_API_GENERATION", "legacy")
        assert ApiSettings().generation == Generation.LEGACY

    def test_trailing_slash_stripped(self):
        """Test base URL normalization."""
        assert ApiSettings(base_url="https://finance.test/").base_url == "https://finance.test"

    def test_scheme_required(self):
        """Test that a base URL without scheme is rejected."""
        with pytest.raises(ValidationError):
            ApiSettings(base_url="finance.test")

    def test_unknown_generation_rejected(self):
        with pytest.raises(ValidationError):
            ApiSettings(generation="v3")


class TestAppSettings:
    """Tests for AppSettings."""

    def test_log_level_normalized(self):
        assert AppSettings(log_level="debug").log_level == "DEBUG"

    def test_log_level_rejected(self):
        with pytest.raises(ValidationError):
            AppSettings(log_level="verbose")


class TestStartupValidation:
    """Tests for validate_all_settings."""

    def test_all_valid(self, monkeypatch):
        """Test a clean report."""
        monkeypatch.delenv("FINANCE_API_BASE_URL", raising=False)
        assert validate_all_settings() == {"api": True, "app": True}

    def test_reports_failure(self, monkeypatch):
        """Test that a broken sub-settings block is reported, not raised."""
        monkeypatch.setenv("FINANCE_API_BASE_URL", "not-a-url")
        results = validate_all_settings()
        assert results["api"] is False
        assert "api_error" in results
        assert results["app"] is True
