"""
User Preferences

Display currency, theme, the user's name and custom categories. These
never influence a computation; they are passed explicitly to whatever
renders results.

Preferences live in a small JSON file and are only read or written
through PreferencesStore.load() / save(). Nothing is persisted as a
side effect of changing a field.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from finpro.config.settings import AppSettings, get_settings
from finpro.models.records import (
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    TransactionType,
)


logger = structlog.get_logger(__name__)


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class CurrencyConfig(BaseModel):
    """How amounts in one currency are displayed."""
    model_config = ConfigDict(frozen=True)

    code: str
    symbol: str
    locale: str
    name: str


SUPPORTED_CURRENCIES: dict[str, CurrencyConfig] = {
    "COP": CurrencyConfig(code="COP", symbol="$", locale="es-CO", name="Peso Colombiano (COP)"),
    "USD": CurrencyConfig(code="USD", symbol="$", locale="en-US", name="Dólar Estadounidense (USD)"),
    "EUR": CurrencyConfig(code="EUR", symbol="€", locale="de-DE", name="Euro (EUR)"),
}
DEFAULT_CURRENCY = "COP"


class UserPreferences(BaseModel):
    """Per-installation display preferences."""

    currency: str = Field(
        default=DEFAULT_CURRENCY,
        description="ISO code of the display currency"
    )
    theme: Theme = Theme.LIGHT
    user_name: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Name shown in the greeting"
    )
    custom_categories: list[str] = Field(default_factory=list)

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Unknown currencies fall back to the default."""
        code = v.strip().upper()
        return code if code in SUPPORTED_CURRENCIES else DEFAULT_CURRENCY

    @field_validator('custom_categories')
    @classmethod
    def dedupe_categories(cls, v: list[str]) -> list[str]:
        seen: list[str] = []
        for name in v:
            name = name.strip()
            if name and name not in seen:
                seen.append(name)
        return seen

    @property
    def currency_config(self) -> CurrencyConfig:
        return SUPPORTED_CURRENCIES[self.currency]

    def add_custom_category(self, name: str) -> bool:
        """
        Add a category if it is new.

        Returns True if the list changed. Blank names and names already
        present are ignored.
        """
        name = name.strip()
        if not name or name in self.custom_categories:
            return False
        self.custom_categories.append(name)
        return True

    def toggle_theme(self) -> Theme:
        self.theme = Theme.DARK if self.theme == Theme.LIGHT else Theme.LIGHT
        return self.theme

    def available_categories(self, transaction_type: TransactionType) -> list[str]:
        """Built-in categories for the type followed by the custom ones."""
        builtin = (
            DEFAULT_INCOME_CATEGORIES
            if TransactionType(transaction_type) == TransactionType.INCOME
            else DEFAULT_EXPENSE_CATEGORIES
        )
        return list(builtin) + [c for c in self.custom_categories if c not in builtin]


class PreferencesStore:
    """Loads and saves UserPreferences as JSON."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @classmethod
    def from_settings(cls, settings: Optional[AppSettings] = None) -> "PreferencesStore":
        """Store at the configured preferences_path."""
        settings = settings or get_settings().app
        return cls(settings.preferences_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> UserPreferences:
        """
        Read preferences from disk.

        A missing file gives defaults. A corrupt file also gives defaults,
        and the problem is logged.
        """
        if not self._path.exists():
            return UserPreferences()

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return UserPreferences.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(
                "preferences_unreadable",
                path=str(self._path),
                error=str(e),
            )
            return UserPreferences()

    def save(self, preferences: UserPreferences) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            preferences.model_dump_json(indent=2),
            encoding="utf-8",
        )
