"""
Configuration Management for FinPro

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here and passed
explicitly to the components that need it. get_settings() exists for
entry points; library code accepts injected settings.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Tunables of the derived-finance engine."""

    model_config = SettingsConfigDict(
        env_prefix="FINPRO_",
        extra="ignore"
    )

    upcoming_window_days: int = Field(
        default=7,
        ge=0,
        le=366,
        description="How many days ahead the upcoming-payments list looks"
    )
    upcoming_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum number of upcoming payments shown"
    )
    budget_near_threshold: Decimal = Field(
        default=Decimal("0.75"),
        gt=0,
        le=1,
        description="Consumption ratio above which a budget is 'near' its cap"
    )
    block_payments_on_settled_loans: bool = Field(
        default=True,
        description="Reject payments against loans that are already settled"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

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

    # One worksheet per user collection
    collection_sheet_template: str = Field(
        default="{user_id}-{collection}",
        description="Worksheet title for a user's collection"
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
                "Make sure it exists before running the application."
            )
        return v

    @field_validator('collection_sheet_template')
    @classmethod
    def validate_template(cls, v: str) -> str:
        if "{user_id}" not in v or "{collection}" not in v:
            raise ValueError("Template must contain {user_id} and {collection}")
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

    preferences_path: Path = Field(
        default=Path(".finpro/preferences.json"),
        description="Where user preferences (currency, theme, categories) are kept"
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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

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

