"""Configuration package."""

from finpro.config.settings import (
    AppSettings,
    EngineSettings,
    GoogleSheetsSettings,
    Settings,
    get_settings,
)
from finpro.config.preferences import (
    SUPPORTED_CURRENCIES,
    CurrencyConfig,
    PreferencesStore,
    Theme,
    UserPreferences,
)

__all__ = [
    "AppSettings",
    "EngineSettings",
    "GoogleSheetsSettings",
    "Settings",
    "get_settings",
    # Preferences
    "SUPPORTED_CURRENCIES",
    "CurrencyConfig",
    "PreferencesStore",
    "Theme",
    "UserPreferences",
]
