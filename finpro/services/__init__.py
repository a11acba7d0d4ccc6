"""Services package."""

from finpro.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    FinanceStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
    InMemoryAuditStorage,
    InMemoryFinanceStore,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "FinanceStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStore",
    "InMemoryAuditStorage",
    "InMemoryFinanceStore",
    "NotFoundError",
    "StorageError",
]
