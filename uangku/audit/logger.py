"""
Audit Logger

DESIGN DECISION: Every ledger mutation, undo and redo is logged.
This provides:
1. Complete traceability
2. Debugging capability when a repository call fails
3. A user-visible history independent of the bounded undo log

The audit logger:
- Is async so it can persist to remote storage
- Gracefully handles failures (never breaks the ledger flow)
- Supports correlation IDs to trace related events (e.g. one batch)
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from uangku.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from uangku.models.budget import Budget, BudgetStatus
from uangku.models.result import OperationResult
from uangku.models.transaction import Transaction
from uangku.services.storage import AuditStorageInterface


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


def configure_logging(log_level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=log_level.upper())
    logging.getLogger("uangku").setLevel(log_level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional audit storage backend (for persistence)
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
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity is AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_added(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_added(
            transaction_id=transaction.id,
            user_id=transaction.user_id,
            amount=str(transaction.amount),
            kind=transaction.kind.value,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_updated(
        self,
        old: Transaction,
        new: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_updated(
            transaction_id=new.id,
            user_id=new.user_id,
            old_amount=str(old.amount),
            new_amount=str(new.amount),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_deleted(
            transaction_id=transaction.id,
            user_id=transaction.user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_batch_applied(
        self,
        size: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.batch_applied(size, correlation_id))

    async def log_command_undone(self, command: str) -> None:
        await self.log(AuditEventBuilder.command_undone(command))

    async def log_command_redone(self, command: str) -> None:
        await self.log(AuditEventBuilder.command_redone(command))

    async def log_history_cleared(self, size: int) -> None:
        await self.log(AuditEventBuilder.history_cleared(size))

    async def log_operation_failed(
        self,
        operation: str,
        result: OperationResult,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed repository/command result."""
        event = AuditEventBuilder.operation_failed(
            operation=operation,
            error_kind=result.error_kind.value if result.error_kind else "unknown",
            error_message=result.error_message or "",
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_budget_monitoring_started(self, budget: Budget) -> None:
        event = AuditEventBuilder.budget_monitoring_started(
            budget_id=budget.id,
            user_id=budget.user_id,
            limit_amount=str(budget.limit_amount),
            category_id=budget.category_id,
        )
        await self.log(event)

    async def log_budget_threshold(self, budget: Budget, status: BudgetStatus) -> None:
        event = AuditEventBuilder.budget_threshold_crossed(
            budget_id=budget.id,
            user_id=budget.user_id,
            tier=status.tier.value,
            percent_used=float(status.percent_used),
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step action (e.g. a batch).
    """
    return uuid4()
