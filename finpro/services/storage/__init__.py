"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the persistent backend; the in-memory store serves tests
and offline use. Both are swappable behind the same interface.
"""

from finpro.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    Document,
    DuplicateError,
    FinanceStoreInterface,
    NotFoundError,
    SnapshotCallback,
    StorageError,
    Unsubscribe,
)
from finpro.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryFinanceStore,
)
from finpro.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "Document",
    "FinanceStoreInterface",
    "SnapshotCallback",
    "Unsubscribe",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryFinanceStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStore",
]
