"""
Configuration Management for Budget Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here, so the external dependencies of the
ledger (local data directory, remote Google Sheets store) are visible in
one place and validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets remote storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    budgets_sheet_name: str = Field(
        default="Budgets",
        description="Name of the sheet holding one budget document per user"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before enabling remote sync."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Local persistence
    data_dir: Path = Field(
        default=Path(".budget_ledger"),
        description="Directory of the local key/value store"
    )

    # Alert thresholds
    near_limit_ratio: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Share of a category limit at which spending is near-limit"
    )
    notifications_enabled: bool = Field(
        default=False,
        description="Whether over-limit notifications start enabled"
    )

    # Insights
    top_expenses_count: int = Field(
        default=5,
        ge=1,
        le=100,
        description="How many of the largest expenses insights report"
    )
    history_months: int = Field(
        default=6,
        ge=1,
        le=120,
        description="How many months the monthly history view shows"
    )
    currency_symbol: str = Field(
        default="$",
        max_length=5,
        description="Symbol used when formatting amounts"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the remote store can stay unconfigured

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus {setting_name}_error
    entries describing failures. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
