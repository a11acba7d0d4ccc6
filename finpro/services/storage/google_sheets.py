"""
Google Sheets Storage Implementation

DESIGN DECISION: Each user collection gets its own worksheet, titled
from GoogleSheetsSettings.collection_sheet_template
(e.g. "user-42-transactions"). A row holds one record:

    id | document_json | updated_at

Records are kept as JSON documents rather than one column per field, so
the five record kinds (and both loan shapes) share one layout and older
documents with legacy keys survive untouched until the engine coerces
them.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (the orchestrator handles dual-writes with rollback)
- No push notifications; subscribers get a snapshot after each write
  made through this store and whenever refresh() is called
"""

import json
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finpro.config import GoogleSheetsSettings, get_settings
from finpro.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finpro.models.records import Collection
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


logger = structlog.get_logger(__name__)

# Column layout of every collection sheet
RECORD_COLUMNS = [
    "id",
    "document_json",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

_sheets_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type((NotFoundError, DuplicateError)),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def collection_sheet_title(self, user_id: str, collection: Collection) -> str:
        return self._settings.collection_sheet_template.format(
            user_id=user_id,
            collection=Collection(collection).value,
        )

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_collection_sheet(self, user_id: str, collection: Collection) -> gspread.Worksheet:
        """Get or create the worksheet of one user collection."""
        return self._get_or_create_sheet(
            self.collection_sheet_title(user_id, collection),
            RECORD_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsFinanceStore(FinanceStoreInterface):
    """
    Google Sheets implementation of the record store.

    Rows whose document_json cannot be parsed are skipped and logged;
    schema validation is left to the engine.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._subscribers: dict[tuple[str, Collection], list[SnapshotCallback]] = defaultdict(list)

    @staticmethod
    def _document_to_row(record_id: str, document: Document) -> list:
        body = {**document, "id": record_id}
        return [
            record_id,
            json.dumps(body, default=str, ensure_ascii=False),
            datetime.now(timezone.utc).isoformat(),
        ]

    @staticmethod
    def _row_to_document(row: list) -> Optional[Document]:
        if not row or not row[0]:
            return None
        try:
            document = json.loads(row[1]) if len(row) > 1 and row[1] else {}
        except json.JSONDecodeError as e:
            logger.warning("sheet_row_unreadable", record_id=row[0], error=str(e))
            return None
        if not isinstance(document, dict):
            logger.warning("sheet_row_unreadable", record_id=row[0], error="not an object")
            return None
        document["id"] = row[0]
        return document

    def _find_row(self, sheet: gspread.Worksheet, record_id: str) -> Optional[int]:
        """1-based sheet row of a record, or None."""
        # Start from 2 (row 1 is header)
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and row[0] == record_id:
                return idx
        return None

    def _notify(self, user_id: str, collection: Collection, documents: list[Document]) -> None:
        """Hand each subscriber its own copy; a failing subscriber is logged, not raised."""
        for callback in list(self._subscribers[(user_id, collection)]):
            try:
                callback([dict(doc) for doc in documents])
            except Exception as e:
                logger.exception(
                    "snapshot_subscriber_failed",
                    user_id=user_id,
                    collection=collection.value,
                    error=str(e),
                )

    async def _push(self, user_id: str, collection: Collection) -> None:
        if self._subscribers[(user_id, collection)]:
            self._notify(user_id, collection, self._read_documents(user_id, collection))

    async def _push_after_write(self, user_id: str, collection: Collection) -> None:
        """Notify subscribers of a write that is already stored."""
        try:
            await self._push(user_id, collection)
        except StorageError as e:
            logger.warning(
                "snapshot_push_failed",
                user_id=user_id,
                collection=collection.value,
                error=str(e),
            )

    # Sheet I/O. Only these calls are retried; notification runs after
    # the write has landed.

    @_sheets_retry
    def _read_documents(self, user_id: str, collection: Collection) -> list[Document]:
        try:
            sheet = self._client.get_collection_sheet(user_id, collection)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list {collection.value}: {e}")

        documents = []
        for row in all_rows:
            document = self._row_to_document(row)
            if document is not None:
                documents.append(document)
        return documents

    @_sheets_retry
    def _append(self, user_id: str, collection: Collection, record_id: str, document: Document) -> None:
        try:
            sheet = self._client.get_collection_sheet(user_id, collection)
            if self._find_row(sheet, record_id) is not None:
                raise DuplicateError(f"{collection.value} record already exists: {record_id}")
            sheet.append_row(
                self._document_to_row(record_id, document),
                value_input_option="RAW",
            )
        except (DuplicateError, ConnectionError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {collection.value} record: {e}")

    @_sheets_retry
    def _replace(self, user_id: str, collection: Collection, record_id: str, document: Document) -> None:
        try:
            sheet = self._client.get_collection_sheet(user_id, collection)
            idx = self._find_row(sheet, record_id)
            if idx is None:
                raise NotFoundError(f"{collection.value} record not found: {record_id}")
            sheet.update(
                f"A{idx}:C{idx}",
                [self._document_to_row(record_id, document)],
                value_input_option="RAW",
            )
        except (NotFoundError, ConnectionError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {collection.value} record: {e}")

    @_sheets_retry
    def _remove(self, user_id: str, collection: Collection, record_id: str) -> bool:
        try:
            sheet = self._client.get_collection_sheet(user_id, collection)
            idx = self._find_row(sheet, record_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {collection.value} record: {e}")
        return True

    async def list_records(self, user_id: str, collection: Collection) -> list[Document]:
        return self._read_documents(user_id, Collection(collection))

    async def add_record(
        self,
        user_id: str,
        collection: Collection,
        document: Document,
    ) -> str:
        collection = Collection(collection)
        record_id = str(document.get("id") or uuid4())
        self._append(user_id, collection, record_id, document)
        await self._push_after_write(user_id, collection)
        return record_id

    async def update_record(
        self,
        user_id: str,
        collection: Collection,
        record_id: str,
        document: Document,
    ) -> None:
        collection = Collection(collection)
        self._replace(user_id, collection, record_id, document)
        await self._push_after_write(user_id, collection)

    async def delete_record(
        self,
        user_id: str,
        collection: Collection,
        record_id: str,
    ) -> bool:
        collection = Collection(collection)
        if not self._remove(user_id, collection, record_id):
            return False
        await self._push_after_write(user_id, collection)
        return True

    def subscribe(
        self,
        user_id: str,
        collection: Collection,
        callback: SnapshotCallback,
    ) -> Unsubscribe:
        """
        Register a snapshot callback.

        Sheets cannot push, so the first snapshot arrives on the next
        write through this store or on refresh().
        """
        key = (user_id, Collection(collection))
        self._subscribers[key].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[key]:
                self._subscribers[key].remove(callback)

        return unsubscribe

    async def refresh(self, user_id: str, collection: Optional[Collection] = None) -> None:
        """Re-read the sheet(s) and push snapshots to subscribers."""
        collections = [Collection(collection)] if collection is not None else list(Collection)
        for name in collections:
            await self._push(user_id, name)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            user_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _read_events(self, keep) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError) as e:
                logger.warning("audit_row_unreadable", event_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = self._read_events(
            lambda row: len(row) > 7 and row[7] == str(correlation_id)
        )
        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        events = self._read_events(
            lambda row: len(row) > 5 and row[4] == entity_type and row[5] == entity_id
        )
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events(
            lambda row: user_id is None or (len(row) > 6 and row[6] == user_id)
        )
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
