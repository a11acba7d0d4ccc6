"""Tests for configuration and user preferences."""

import pytest
from decimal import Decimal

from pydantic import ValidationError

from finpro.config import (
    SUPPORTED_CURRENCIES,
    AppSettings,
    EngineSettings,
    GoogleSheetsSettings,
    PreferencesStore,
    Theme,
    UserPreferences,
    get_settings,
)
from finpro.models.records import LOAN_COLLECTION_CATEGORY, TransactionType


class TestEngineSettings:
    """Tests for EngineSettings."""

    def test_defaults(self, monkeypatch):
        for name in ("UPCOMING_WINDOW_DAYS", "UPCOMING_LIMIT", "BUDGET_NEAR_THRESHOLD",
                     "BLOCK_PAYMENTS_ON_SETTLED_LOANS"):
            monkeypatch.delenv(f"FINPRO_{name}", raising=False)
        settings = EngineSettings()
        assert settings.upcoming_window_days == 7
        assert settings.upcoming_limit == 5
        assert settings.budget_near_threshold == Decimal("0.75")
        assert settings.block_payments_on_settled_loans is True

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("FINPRO_UPCOMING_LIMIT", "10")
        monkeypatch.setenv("FINPRO_BLOCK_PAYMENTS_ON_SETTLED_LOANS", "false")
        settings = EngineSettings()
        assert settings.upcoming_limit == 10
        assert settings.block_payments_on_settled_loans is False

    def test_threshold_bounds(self):
        with pytest.raises(ValidationError):
            EngineSettings(budget_near_threshold=Decimal("1.5"))


class TestGoogleSheetsSettings:
    """Tests for GoogleSheetsSettings."""

    def test_missing_credentials_file_only_warns(self, tmp_path):
        with pytest.warns(UserWarning, match="credentials file not found"):
            settings = GoogleSheetsSettings(
                credentials_path=str(tmp_path / "missing.json"),
                spreadsheet_id="sheet-id",
            )
        assert settings.collection_sheet_template == "{user_id}-{collection}"

    def test_template_needs_both_placeholders(self, tmp_path):
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        with pytest.raises(ValidationError, match="Template must contain"):
            GoogleSheetsSettings(
                credentials_path=str(credentials),
                spreadsheet_id="sheet-id",
                collection_sheet_template="{user_id}",
            )


class TestUserPreferences:
    """Tests for UserPreferences."""

    def test_defaults(self):
        prefs = UserPreferences()
        assert prefs.currency == "COP"
        assert prefs.theme == Theme.LIGHT
        assert prefs.currency_config == SUPPORTED_CURRENCIES["COP"]

    def test_unknown_currency_falls_back(self):
        assert UserPreferences(currency="JPY").currency == "COP"
        assert UserPreferences(currency="eur").currency_config.symbol == "€"

    def test_add_custom_category(self):
        prefs = UserPreferences()
        assert prefs.add_custom_category(" Mascotas ") is True
        assert prefs.add_custom_category("Mascotas") is False
        assert prefs.add_custom_category("   ") is False
        assert prefs.custom_categories == ["Mascotas"]

    def test_available_categories(self):
        prefs = UserPreferences(custom_categories=["Mascotas", "Mascotas", "Otros"])
        expense = prefs.available_categories(TransactionType.EXPENSE)
        income = prefs.available_categories("income")
        assert expense[-1] == "Mascotas"
        assert expense.count("Otros") == 1
        assert LOAN_COLLECTION_CATEGORY in income

    def test_toggle_theme(self):
        prefs = UserPreferences()
        assert prefs.toggle_theme() == Theme.DARK
        assert prefs.toggle_theme() == Theme.LIGHT


class TestPreferencesStore:
    """Tests for explicit load/save of preferences."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert PreferencesStore(tmp_path / "prefs.json").load() == UserPreferences()

    def test_round_trip(self, tmp_path):
        store = PreferencesStore(tmp_path / "nested" / "prefs.json")
        prefs = UserPreferences(currency="USD", theme="dark", user_name="Camila")
        prefs.add_custom_category("Mascotas")
        store.save(prefs)
        assert store.load() == prefs

    def test_corrupt_file_gives_defaults(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("{not json", encoding="utf-8")
        assert PreferencesStore(path).load() == UserPreferences()

    def test_store_from_configured_path(self, tmp_path, monkeypatch):
        path = tmp_path / "configured" / "prefs.json"
        monkeypatch.setenv("PREFERENCES_PATH", str(path))
        store = PreferencesStore.from_settings(AppSettings())
        store.save(UserPreferences(currency="EUR"))
        assert store.path == path
        assert PreferencesStore(path).load().currency == "EUR"

    def test_store_from_cached_settings(self, tmp_path, monkeypatch):
        path = tmp_path / "prefs.json"
        monkeypatch.setenv("PREFERENCES_PATH", str(path))
        get_settings.cache_clear()
        try:
            assert PreferencesStore.from_settings().path == path
        finally:
            get_settings.cache_clear()
