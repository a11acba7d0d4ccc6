"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the store client.
This allows us to:
1. Keep Google Sheets (or any document store) out of the engine
2. Use in-memory storage for testing
3. Deliver snapshots to subscribers the same way for every backend

Records cross this boundary as plain documents (dicts with an "id").
Coercion into typed records happens on the engine side, so a store
never has to understand the record schemas.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Optional
from uuid import UUID

from finpro.models.audit import AuditEvent
from finpro.models.records import Collection


Document = dict[str, Any]

# Receives the full list of documents of one collection on every change
SnapshotCallback = Callable[[list[Document]], None]
Unsubscribe = Callable[[], None]


class FinanceStoreInterface(ABC):
    """
    Abstract interface for the per-user record store.

    Every operation is scoped by (user_id, collection). Any backend
    (Google Sheets, a document database, memory) must implement these.
    """

    @abstractmethod
    async def list_records(
        self,
        user_id: str,
        collection: Collection,
    ) -> list[Document]:
        """
        Current documents of one collection.

        Returns:
            Documents in insertion order; empty if the collection is new
        """
        pass

    @abstractmethod
    async def add_record(
        self,
        user_id: str,
        collection: Collection,
        document: Document,
    ) -> str:
        """
        Insert a document.

        Returns:
            The id the store keeps the document under

        Raises:
            DuplicateError: A document with the same id exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_record(
        self,
        user_id: str,
        collection: Collection,
        record_id: str,
        document: Document,
    ) -> None:
        """
        Replace an existing document.

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_record(
        self,
        user_id: str,
        collection: Collection,
        record_id: str,
    ) -> bool:
        """
        Delete a document.

        Returns:
            True if something was deleted
        """
        pass

    @abstractmethod
    def subscribe(
        self,
        user_id: str,
        collection: Collection,
        callback: SnapshotCallback,
    ) -> Unsubscribe:
        """
        Register for whole-collection snapshots.

        The callback receives the complete document list after every
        change. Calling the returned function stops delivery.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., both halves of a loan payment).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific record.

        Args:
            entity_type: Collection of the record (e.g., 'loans')
            entity_id: The record's id
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Record not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate record."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
