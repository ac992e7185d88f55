"""Tests for configuration loading and the startup check."""

import pytest

from budget_ledger.config import AppSettings, validate_all_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "NEAR_LIMIT_RATIO",
        "TOP_EXPENSES_COUNT",
    ):
        monkeypatch.delenv(name, raising=False)


class TestAppSettings:
    """Tests for application settings."""

    def test_defaults(self):
        """Test the documented defaults."""
        settings = AppSettings(_env_file=None)
        assert settings.near_limit_ratio == 0.8
        assert settings.top_expenses_count == 5
        assert settings.history_months == 6
        assert settings.currency_symbol == "$"
        assert settings.notifications_enabled is False

    def test_environment_override(self, monkeypatch):
        """Test values come from the environment."""
        monkeypatch.setenv("NEAR_LIMIT_RATIO", "0.9")
        assert AppSettings(_env_file=None).near_limit_ratio == 0.9


class TestValidateAllSettings:
    """Tests for the startup settings check."""

    def test_missing_remote_config(self):
        """Test an unconfigured remote store is reported, not raised."""
        results = validate_all_settings()
        assert results["app"] is True
        assert results["google_sheets"] is False
        assert "credentials_path" in results["google_sheets_error"]

    def test_invalid_app_setting(self, monkeypatch):
        """Test an out-of-range value fails the app check."""
        monkeypatch.setenv("TOP_EXPENSES_COUNT", "0")
        results = validate_all_settings()
        assert results["app"] is False
        assert "top_expenses_count" in results["app_error"]

    def test_configured_remote(self, tmp_path, monkeypatch):
        """Test a complete remote configuration passes."""
        credentials = tmp_path / "service-account.json"
        credentials.write_text("{}")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")
        assert validate_all_settings()["google_sheets"] is True
