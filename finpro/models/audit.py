"""
Audit Models for FinPro

Every write that reaches the store, and every operation the engine
rejects, is recorded as an audit event. This provides:
1. Traceability of how a loan balance or goal amount came to be
2. Evidence when a dual-write (record + synthetic transaction) fails halfway
3. Debugging information for skipped malformed records

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Snapshots
    SNAPSHOT_LOADED = "snapshot_loaded"
    RECORDS_SKIPPED = "records_skipped"

    # Persistence
    RECORD_SAVED = "record_saved"
    RECORD_DELETED = "record_deleted"
    SAVE_FAILED = "save_failed"
    PARTIAL_WRITE = "partial_write"

    # Ledger operations
    LOAN_PAYMENT_RECORDED = "loan_payment_recorded"
    LOAN_PAYMENT_REJECTED = "loan_payment_rejected"
    GOAL_CONTRIBUTION_RECORDED = "goal_contribution_recorded"
    GOAL_CONTRIBUTION_REJECTED = "goal_contribution_rejected"

    # Budgets
    BUDGET_EXCEEDED = "budget_exceeded"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Collection of the record (e.g., 'loans', 'goals')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store id of the record this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Opaque id of the user whose data changed"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., both halves of a loan payment)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         user_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            self.user_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_saved("transactions", tx_id, user_id, correlation_id)
        event = AuditEventBuilder.loan_payment_recorded(loan_id, ...)
    """

    @staticmethod
    def snapshot_loaded(
        user_id: str,
        counts: dict[str, int],
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_LOADED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Snapshot loaded ({sum(counts.values())} records)",
            details={"counts": counts, "skipped": skipped},
        )

    @staticmethod
    def records_skipped(
        user_id: str,
        collection: str,
        record_ids: list[Optional[str]],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type=collection,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Skipped {len(record_ids)} malformed {collection} record(s)",
            details={"record_ids": record_ids},
        )

    @staticmethod
    def record_saved(
        collection: str,
        record_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SAVED,
            entity_type=collection,
            entity_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Saved {collection} record {record_id}",
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        collection: str,
        record_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type=collection,
            entity_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Deleted {collection} record {record_id}",
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        collection: str,
        record_id: Optional[str],
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=collection,
            entity_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Failed to save {collection} record",
            error_message=error_message,
        )

    @staticmethod
    def loan_payment_recorded(
        loan_id: str,
        user_id: str,
        amount: str,
        transaction_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAN_PAYMENT_RECORDED,
            entity_type="loans",
            entity_id=loan_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Loan payment of {amount} recorded",
            details={"amount": amount, "transaction_id": transaction_id},
            is_user_action=True,
        )

    @staticmethod
    def goal_contribution_recorded(
        goal_id: str,
        user_id: str,
        amount: str,
        transaction_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_CONTRIBUTION_RECORDED,
            entity_type="goals",
            entity_id=goal_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Contribution of {amount} added to goal",
            details={"amount": amount, "transaction_id": transaction_id},
            is_user_action=True,
        )

    @staticmethod
    def operation_rejected(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        user_id: str,
        reason: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Operation rejected: {reason}"[:500],
            details=details or {},
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def partial_write(
        entity_type: str,
        entity_id: str,
        user_id: str,
        error_message: str,
        rolled_back: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTIAL_WRITE,
            severity=AuditSeverity.ERROR if rolled_back else AuditSeverity.CRITICAL,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=(
                "Synthetic transaction failed to save; record restored"
                if rolled_back
                else "Synthetic transaction failed to save; record NOT restored"
            ),
            details={"rolled_back": rolled_back},
            error_message=error_message,
        )

    @staticmethod
    def budget_exceeded(
        budget_id: str,
        user_id: str,
        category: str,
        spent: str,
        budgeted: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_EXCEEDED,
            severity=AuditSeverity.WARNING,
            entity_type="budgets",
            entity_id=budget_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Budget for {category} exceeded",
            details={"category": category, "spent": spent, "budgeted": budgeted},
        )
