"""
Audit Logger

DESIGN DECISION: Every write to the store, and every operation the
engine rejects, is logged. This provides:
1. Complete traceability of balances and goal amounts
2. Debugging capability for skipped records
3. Evidence when a dual-write fails halfway

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finpro.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finpro.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        # Persist to storage if available
        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_snapshot_loaded(
        self,
        user_id: str,
        counts: dict[str, int],
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.snapshot_loaded(
            user_id=user_id,
            counts=counts,
            skipped=skipped,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_records_skipped(
        self,
        user_id: str,
        collection: str,
        record_ids: list[Optional[str]],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log malformed records left out of a snapshot."""
        event = AuditEventBuilder.records_skipped(
            user_id=user_id,
            collection=collection,
            record_ids=record_ids,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_saved(
        self,
        collection: str,
        record_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.record_saved(
            collection=collection,
            record_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_deleted(
        self,
        collection: str,
        record_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.record_deleted(
            collection=collection,
            record_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_save_failed(
        self,
        collection: str,
        record_id: Optional[str],
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.save_failed(
            collection=collection,
            record_id=record_id,
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_loan_payment(
        self,
        loan_id: str,
        user_id: str,
        amount: Decimal,
        transaction_id: str,
        correlation_id: UUID,
    ) -> None:
        """Log a loan payment that reached the store in full."""
        event = AuditEventBuilder.loan_payment_recorded(
            loan_id=loan_id,
            user_id=user_id,
            amount=str(amount),
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_contribution(
        self,
        goal_id: str,
        user_id: str,
        amount: Decimal,
        transaction_id: str,
        correlation_id: UUID,
    ) -> None:
        """Log a goal contribution that reached the store in full."""
        event = AuditEventBuilder.goal_contribution_recorded(
            goal_id=goal_id,
            user_id=user_id,
            amount=str(amount),
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rejected(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        user_id: str,
        reason: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an operation the engine refused."""
        event = AuditEventBuilder.operation_rejected(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            reason=reason,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_partial_write(
        self,
        entity_type: str,
        entity_id: str,
        user_id: str,
        error_message: str,
        rolled_back: bool,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.partial_write(
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            error_message=error_message,
            rolled_back=rolled_back,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_budget_exceeded(
        self,
        budget_id: str,
        user_id: str,
        category: str,
        spent: Decimal,
        budgeted: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.budget_exceeded(
            budget_id=budget_id,
            user_id=user_id,
            category=category,
            spent=str(spent),
            budgeted=str(budgeted),
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a loan payment).
    Pass it through all subsequent operations.
    """
    return uuid4()
