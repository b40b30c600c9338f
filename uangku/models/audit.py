"""
Audit Models for UangKu Ledger

Every mutation of the ledger (and every undo/redo of one) is recorded as
an audit event. This gives:
1. Traceability of who changed what, and when
2. Debugging information when a repository call fails
3. A history that survives `clear_history()` on the command log

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    BATCH_APPLIED = "batch_applied"

    # History
    COMMAND_UNDONE = "command_undone"
    COMMAND_REDONE = "command_redone"
    HISTORY_CLEARED = "history_cleared"

    # Failures
    OPERATION_FAILED = "operation_failed"

    # Budgets
    BUDGET_MONITORING_STARTED = "budget_monitoring_started"
    BUDGET_THRESHOLD_CROSSED = "budget_threshold_crossed"


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

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget', 'command')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the entity, when known"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one batch)"
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

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
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
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx.id, tx.user_id, str(tx.amount), "income")
        event = AuditEventBuilder.command_undone("Add transaction TRX001")
    """

    @staticmethod
    def transaction_added(
        transaction_id: str,
        user_id: str,
        amount: str,
        kind: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} recorded: Rp {amount}",
            details={
                "amount": amount,
                "kind": kind,
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        user_id: str,
        old_amount: str,
        new_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Transaction updated: Rp {old_amount} -> Rp {new_amount}",
            details={
                "old_amount": old_amount,
                "new_amount": new_amount,
            },
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
        )

    @staticmethod
    def batch_applied(
        size: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BATCH_APPLIED,
            entity_type="command",
            correlation_id=correlation_id,
            description=f"Batch of {size} operations applied",
            details={"size": size},
        )

    @staticmethod
    def command_undone(
        command: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_UNDONE,
            entity_type="command",
            correlation_id=correlation_id,
            description=f"Undone: {command}",
            details={"command": command},
        )

    @staticmethod
    def command_redone(
        command: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_REDONE,
            entity_type="command",
            correlation_id=correlation_id,
            description=f"Redone: {command}",
            details={"command": command},
        )

    @staticmethod
    def history_cleared(size: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HISTORY_CLEARED,
            entity_type="command",
            description=f"Command history cleared ({size} entries)",
            details={"size": size},
        )

    @staticmethod
    def operation_failed(
        operation: str,
        error_kind: str,
        error_message: str,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction" if entity_id else None,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{operation} failed: {error_kind}",
            error_code=error_kind,
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def budget_monitoring_started(
        budget_id: str,
        user_id: str,
        limit_amount: str,
        category_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_MONITORING_STARTED,
            entity_type="budget",
            entity_id=budget_id,
            user_id=user_id,
            description=f"Monitoring budget of Rp {limit_amount}",
            details={
                "limit_amount": limit_amount,
                "category_id": category_id,
            },
        )

    @staticmethod
    def budget_threshold_crossed(
        budget_id: str,
        user_id: str,
        tier: str,
        percent_used: float,
    ) -> AuditEvent:
        severity = (
            AuditSeverity.WARNING
            if tier in ("near_limit", "over_limit")
            else AuditSeverity.INFO
        )
        return AuditEvent(
            event_type=AuditEventType.BUDGET_THRESHOLD_CROSSED,
            severity=severity,
            entity_type="budget",
            entity_id=budget_id,
            user_id=user_id,
            description=f"Budget {tier}: {percent_used:.1f}% used",
            details={
                "tier": tier,
                "percent_used": percent_used,
            },
        )
