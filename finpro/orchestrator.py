"""
Main Orchestrator for FinPro

This module ties the engine to the store and defines the end-to-end
flows for:
1. Reading (store → snapshot → dashboard / budget report / lists)
2. Ledger writes (loan payment, goal contribution)
3. Plain record saves and deletes

DESIGN DECISION: The engine never touches the store. The orchestrator
loads documents, runs the pure engine functions, and persists whatever
next states they return.

A loan payment or goal contribution is a dual-write: the updated owning
record first, then the synthetic transaction. If the second write fails
the owning record is restored, a partial_write event is audited, and the
storage error is re-raised. Every step is audited.
"""

from collections.abc import Callable
from functools import partial
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel

from finpro.audit import AuditLogger, create_correlation_id
from finpro.config import EngineSettings, get_settings
from finpro.engine.aggregator import (
    category_breakdown,
    dashboard_summary,
    filter_transactions,
    monthly_trend,
)
from finpro.engine.budgets import evaluate_month
from finpro.engine.errors import FinanceEngineError, InconsistentRecord
from finpro.engine.goals import contribute
from finpro.engine.loans import record_payment
from finpro.engine.normalize import resolve_as_of
from finpro.engine.recurrence import upcoming_payments
from finpro.engine.snapshot import (
    build_snapshot,
    coerce_budget,
    coerce_goal,
    coerce_loan,
    coerce_subscription,
    coerce_transaction,
)
from finpro.models.audit import AuditEventType
from finpro.models.records import (
    Collection,
    FinanceSnapshot,
    Loan,
    SavingsGoal,
    Transaction,
)
from finpro.models.results import BudgetClassification, BudgetStatus, Dashboard
from finpro.services.storage import (
    Document,
    FinanceStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
    InMemoryFinanceStore,
    NotFoundError,
    StorageError,
    Unsubscribe,
)


logger = structlog.get_logger(__name__)

_COERCERS = {
    Collection.TRANSACTIONS: coerce_transaction,
    Collection.SUBSCRIPTIONS: coerce_subscription,
    Collection.LOANS: coerce_loan,
    Collection.GOALS: coerce_goal,
    Collection.BUDGETS: coerce_budget,
}

# New writes must pass the creation rules, not just the stored-record ones
_WRITE_COERCERS = {
    **_COERCERS,
    Collection.TRANSACTIONS: partial(coerce_transaction, require_category=True),
}


def to_document(record: BaseModel) -> Document:
    """JSON-safe document for the store (Decimals and dates as strings)."""
    return record.model_dump(mode="json")


class FinanceOrchestrator:
    """
    Runs engine operations against one store.

    Flow for a ledger write:
    1. Load → fetch and coerce the owning record
    2. Compute → engine returns (next record, synthetic transaction)
    3. Persist → update record, then add transaction
    4. Recover → restore the record if step 3 half-failed
    5. Audit
    """

    def __init__(
        self,
        store: FinanceStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or EngineSettings()

    @property
    def store(self) -> FinanceStoreInterface:
        return self._store

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    async def load_snapshot(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> FinanceSnapshot:
        """
        Fetch all five collections and coerce them.

        Malformed documents are left out and audited per collection.
        """
        raw = {
            collection: await self._store.list_records(user_id, collection)
            for collection in Collection
        }
        snapshot, skipped_ids = self._snapshot_from(raw)

        for collection, record_ids in skipped_ids.items():
            await self._audit_logger.log_records_skipped(
                user_id=user_id,
                collection=collection.value,
                record_ids=record_ids,
                correlation_id=correlation_id,
            )
        await self._audit_logger.log_snapshot_loaded(
            user_id=user_id,
            counts={c.value: len(getattr(snapshot, c.value)) for c in Collection},
            skipped=snapshot.skipped,
            correlation_id=correlation_id,
        )
        return snapshot

    @staticmethod
    def _snapshot_from(
        raw: dict[Collection, list[Document]],
    ) -> tuple[FinanceSnapshot, dict[Collection, list[Optional[str]]]]:
        skipped_ids: dict[Collection, list[Optional[str]]] = {}

        def on_skip(collection: Collection, error: InconsistentRecord) -> None:
            skipped_ids.setdefault(collection, []).append(error.record_id)

        snapshot = build_snapshot(
            transactions=raw.get(Collection.TRANSACTIONS, []),
            subscriptions=raw.get(Collection.SUBSCRIPTIONS, []),
            loans=raw.get(Collection.LOANS, []),
            goals=raw.get(Collection.GOALS, []),
            budgets=raw.get(Collection.BUDGETS, []),
            on_skip=on_skip,
        )
        return snapshot, skipped_ids

    def build_dashboard(self, snapshot: FinanceSnapshot, as_of: Optional[Any] = None) -> Dashboard:
        reference = resolve_as_of(as_of)
        return Dashboard(
            summary=dashboard_summary(snapshot.transactions, reference),
            category_breakdown=category_breakdown(snapshot.transactions),
            trend=monthly_trend(snapshot.transactions),
            upcoming=upcoming_payments(
                snapshot.subscriptions,
                snapshot.loans,
                as_of=reference,
                window_days=self._settings.upcoming_window_days,
                limit=self._settings.upcoming_limit,
            ),
        )

    async def dashboard(self, user_id: str, as_of: Optional[Any] = None) -> Dashboard:
        """Dashboard figures computed from a fresh snapshot."""
        snapshot = await self.load_snapshot(user_id)
        return self.build_dashboard(snapshot, as_of)

    async def transactions(self, user_id: str, **filters: Any) -> list[Transaction]:
        """Transaction list view; see aggregator.filter_transactions for filters."""
        documents = await self._store.list_records(user_id, Collection.TRANSACTIONS)
        return filter_transactions(documents, **filters)

    async def budget_report(
        self,
        user_id: str,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> list[BudgetStatus]:
        """
        Status of every budget for a zero-based month.

        Budgets over their cap are audited.
        """
        snapshot = await self.load_snapshot(user_id, correlation_id)
        report = evaluate_month(
            snapshot.budgets,
            snapshot.transactions,
            month,
            year,
            self._settings.budget_near_threshold,
        )
        for budget_status in report:
            if budget_status.classification == BudgetClassification.OVER:
                await self._audit_logger.log_budget_exceeded(
                    budget_id=budget_status.budget_id,
                    user_id=user_id,
                    category=budget_status.category,
                    spent=budget_status.spent,
                    budgeted=budget_status.budgeted,
                    correlation_id=correlation_id,
                )
        return report

    def subscribe_snapshots(
        self,
        user_id: str,
        callback: Callable[[FinanceSnapshot], None],
    ) -> Unsubscribe:
        """
        Deliver a rebuilt FinanceSnapshot whenever any collection changes.

        Nothing is delivered until every collection has reported once, so
        the callback never sees a half-loaded snapshot.
        """
        latest: dict[Collection, list[Document]] = {}

        def on_collection(collection: Collection) -> Callable[[list[Document]], None]:
            def _receive(documents: list[Document]) -> None:
                latest[collection] = documents
                if len(latest) == len(Collection):
                    snapshot, _ = self._snapshot_from(latest)
                    callback(snapshot)
            return _receive

        unsubscribers = [
            self._store.subscribe(user_id, collection, on_collection(collection))
            for collection in Collection
        ]

        def unsubscribe() -> None:
            for stop in unsubscribers:
                stop()

        return unsubscribe

    # -------------------------------------------------------------------------
    # Plain writes
    # -------------------------------------------------------------------------

    async def save_record(
        self,
        user_id: str,
        collection: Collection,
        record: Any,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Validate and store a record, inserting or replacing by id.

        Raises:
            InconsistentRecord: the record does not validate
            StorageError: the store rejected the write
        """
        collection = Collection(collection)
        typed = _WRITE_COERCERS[collection](record)
        document = to_document(typed)

        existing = {doc.get("id") for doc in await self._store.list_records(user_id, collection)}
        try:
            if typed.id in existing:
                await self._store.update_record(user_id, collection, typed.id, document)
                record_id = typed.id
            else:
                record_id = await self._store.add_record(user_id, collection, document)
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                collection=collection.value,
                record_id=typed.id,
                user_id=user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_record_saved(
            collection=collection.value,
            record_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        return record_id

    async def delete_record(
        self,
        user_id: str,
        collection: Collection,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        collection = Collection(collection)
        deleted = await self._store.delete_record(user_id, collection, record_id)
        if deleted:
            await self._audit_logger.log_record_deleted(
                collection=collection.value,
                record_id=record_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return deleted

    # -------------------------------------------------------------------------
    # Ledger writes
    # -------------------------------------------------------------------------

    async def _fetch(self, user_id: str, collection: Collection, record_id: str) -> Document:
        for document in await self._store.list_records(user_id, collection):
            if document.get("id") == record_id:
                return document
        raise NotFoundError(f"{collection.value} record not found: {record_id}")

    async def _dual_write(
        self,
        user_id: str,
        collection: Collection,
        original: Document,
        updated: BaseModel,
        transaction: Transaction,
        correlation_id: UUID,
    ) -> str:
        """
        Persist the updated owning record, then its synthetic transaction.

        Returns the stored transaction id.
        """
        record_id = original["id"]
        try:
            await self._store.update_record(user_id, collection, record_id, to_document(updated))
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                collection=collection.value,
                record_id=record_id,
                user_id=user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        try:
            return await self._store.add_record(
                user_id, Collection.TRANSACTIONS, to_document(transaction)
            )
        except StorageError as e:
            rolled_back = True
            try:
                await self._store.update_record(user_id, collection, record_id, original)
            except StorageError as rollback_error:
                rolled_back = False
                logger.error(
                    "rollback_failed",
                    collection=collection.value,
                    record_id=record_id,
                    error=str(rollback_error),
                )
            await self._audit_logger.log_partial_write(
                entity_type=collection.value,
                entity_id=record_id,
                user_id=user_id,
                error_message=str(e),
                rolled_back=rolled_back,
                correlation_id=correlation_id,
            )
            raise

    async def record_loan_payment(
        self,
        user_id: str,
        loan_id: str,
        amount: Any,
        payment_date: Optional[Any] = None,
        allow_settled: Optional[bool] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Loan, Transaction]:
        """
        Record a payment on a stored loan.

        Args:
            allow_settled: accept payments on a settled loan; defaults to
                the inverse of EngineSettings.block_payments_on_settled_loans

        Raises:
            NotFoundError: no loan with that id
            InconsistentRecord: the stored loan is malformed
            InvalidAmount, InvalidDate, AlreadyComplete: payment refused
            StorageError: a write failed (after rollback)
        """
        correlation_id = correlation_id or create_correlation_id()
        if allow_settled is None:
            allow_settled = not self._settings.block_payments_on_settled_loans

        original = await self._fetch(user_id, Collection.LOANS, loan_id)
        try:
            updated, transaction = record_payment(
                original, amount, payment_date, allow_settled=allow_settled
            )
        except FinanceEngineError as e:
            await self._audit_logger.log_rejected(
                event_type=AuditEventType.LOAN_PAYMENT_REJECTED,
                entity_type=Collection.LOANS.value,
                entity_id=loan_id,
                user_id=user_id,
                reason=str(e),
                details={"amount": str(amount), "error_type": type(e).__name__},
                correlation_id=correlation_id,
            )
            raise

        transaction_id = await self._dual_write(
            user_id, Collection.LOANS, original, updated, transaction, correlation_id
        )

        await self._audit_logger.log_loan_payment(
            loan_id=loan_id,
            user_id=user_id,
            amount=transaction.amount,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        return updated, transaction

    async def contribute_to_goal(
        self,
        user_id: str,
        goal_id: str,
        amount: Any,
        contribution_date: Optional[Any] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[SavingsGoal, Transaction]:
        """
        Add money to a stored savings goal.

        Raises:
            NotFoundError: no goal with that id
            InconsistentRecord: the stored goal is malformed
            InvalidAmount, InvalidDate, ExceedsTarget: contribution refused
            StorageError: a write failed (after rollback)
        """
        correlation_id = correlation_id or create_correlation_id()

        original = await self._fetch(user_id, Collection.GOALS, goal_id)
        try:
            updated, transaction = contribute(original, amount, contribution_date)
        except FinanceEngineError as e:
            details = {"amount": str(amount), "error_type": type(e).__name__}
            shortfall = getattr(e, "shortfall", None)
            if shortfall is not None:
                details["shortfall"] = str(shortfall)
            await self._audit_logger.log_rejected(
                event_type=AuditEventType.GOAL_CONTRIBUTION_REJECTED,
                entity_type=Collection.GOALS.value,
                entity_id=goal_id,
                user_id=user_id,
                reason=str(e),
                details=details,
                correlation_id=correlation_id,
            )
            raise

        transaction_id = await self._dual_write(
            user_id, Collection.GOALS, original, updated, transaction, correlation_id
        )

        await self._audit_logger.log_goal_contribution(
            goal_id=goal_id,
            user_id=user_id,
            amount=transaction.amount,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        return updated, transaction


def create_orchestrator(use_storage: bool = True) -> FinanceOrchestrator:
    """
    Factory function to create a ready-to-use orchestrator.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to run
                    against an in-memory store.
    """
    settings = get_settings()
    engine_settings = settings.engine

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient(settings.google_sheets)
            store = GoogleSheetsFinanceStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
            return FinanceOrchestrator(store, audit_logger, engine_settings)
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))

    return FinanceOrchestrator(InMemoryFinanceStore(), AuditLogger(), engine_settings)
