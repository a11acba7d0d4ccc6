"""
In-Memory Storage

Dict-backed implementations of the storage interfaces. Used by tests
and for running the engine without a configured backend.

Subscribers receive a fresh copy of the whole collection immediately on
subscribe and after every add, update or delete. A subscriber that
raises is logged; the write it was told about still stands.
"""

import copy
from collections import defaultdict
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finpro.models.audit import AuditEvent
from finpro.models.records import Collection
from finpro.services.storage.interface import (
    AuditStorageInterface,
    Document,
    DuplicateError,
    FinanceStoreInterface,
    NotFoundError,
    SnapshotCallback,
    Unsubscribe,
)


logger = structlog.get_logger(__name__)


class InMemoryFinanceStore(FinanceStoreInterface):
    """Documents kept per (user_id, collection), in insertion order."""

    def __init__(self):
        self._documents: dict[tuple[str, Collection], dict[str, Document]] = defaultdict(dict)
        self._subscribers: dict[tuple[str, Collection], list[SnapshotCallback]] = defaultdict(list)

    def _key(self, user_id: str, collection: Collection) -> tuple[str, Collection]:
        return (user_id, Collection(collection))

    def _snapshot(self, key: tuple[str, Collection]) -> list[Document]:
        return [copy.deepcopy(doc) for doc in self._documents[key].values()]

    def _notify(self, key: tuple[str, Collection]) -> None:
        for callback in list(self._subscribers[key]):
            try:
                callback(self._snapshot(key))
            except Exception as e:
                logger.exception(
                    "snapshot_subscriber_failed",
                    user_id=key[0],
                    collection=key[1].value,
                    error=str(e),
                )

    async def list_records(self, user_id: str, collection: Collection) -> list[Document]:
        return self._snapshot(self._key(user_id, collection))

    async def add_record(
        self,
        user_id: str,
        collection: Collection,
        document: Document,
    ) -> str:
        key = self._key(user_id, collection)
        record_id = str(document.get("id") or uuid4())
        if record_id in self._documents[key]:
            raise DuplicateError(f"{key[1].value} record already exists: {record_id}")

        self._documents[key][record_id] = {**copy.deepcopy(document), "id": record_id}
        self._notify(key)
        return record_id

    async def update_record(
        self,
        user_id: str,
        collection: Collection,
        record_id: str,
        document: Document,
    ) -> None:
        key = self._key(user_id, collection)
        if record_id not in self._documents[key]:
            raise NotFoundError(f"{key[1].value} record not found: {record_id}")

        self._documents[key][record_id] = {**copy.deepcopy(document), "id": record_id}
        self._notify(key)

    async def delete_record(
        self,
        user_id: str,
        collection: Collection,
        record_id: str,
    ) -> bool:
        key = self._key(user_id, collection)
        if self._documents[key].pop(record_id, None) is None:
            return False
        self._notify(key)
        return True

    def subscribe(
        self,
        user_id: str,
        collection: Collection,
        callback: SnapshotCallback,
    ) -> Unsubscribe:
        key = self._key(user_id, collection)
        self._subscribers[key].append(callback)
        callback(self._snapshot(key))

        def unsubscribe() -> None:
            if callback in self._subscribers[key]:
                self._subscribers[key].remove(callback)

        return unsubscribe


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if user_id is None or e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
