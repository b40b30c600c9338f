"""
Tests for the audit logger.
"""

from decimal import Decimal

import pytest

from uangku.audit import AuditLogger, create_correlation_id
from uangku.models import (
    AuditEventBuilder,
    AuditEventType,
    NotFoundError,
    OperationResult,
    TransactionFactory,
)
from uangku.services.storage import AuditStorageInterface, InMemoryAuditStorage


class BrokenAuditStorage(AuditStorageInterface):
    """Audit storage that is always down."""

    async def append_event(self, event):
        raise ConnectionError("audit sheet unreachable")

    async def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for local and persisted audit logging."""

    @pytest.mark.asyncio
    async def test_local_only_logging(self):
        """Test that logging without storage succeeds."""
        logger = AuditLogger()
        tx = TransactionFactory.create_expense("Taxi", Decimal("20000"), "2025-06-02", "TRANSPORT", "u1")
        await logger.log_transaction_added(tx)

    @pytest.mark.asyncio
    async def test_events_are_persisted(self):
        """Test that events reach the storage backend."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        tx = TransactionFactory.create_income("Pay", Decimal("100"), "2025-06-01", "SALARY", "u1")
        correlation_id = create_correlation_id()

        await logger.log_transaction_added(tx, correlation_id=correlation_id)
        await logger.log_batch_applied(3, correlation_id)

        events = storage.events
        assert [e.event_type for e in events] == [
            AuditEventType.TRANSACTION_ADDED,
            AuditEventType.BATCH_APPLIED,
        ]
        assert all(e.correlation_id == correlation_id for e in events)
        assert events[0].entity_id == tx.id

    @pytest.mark.asyncio
    async def test_operation_failure_carries_error_kind(self):
        """Test that failed results are logged with their kind."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        await logger.log_operation_failed(
            "delete_transaction", OperationResult.fail(NotFoundError("gone")), entity_id="T1",
        )
        event = storage.events[0]
        assert event.error_code == "not_found"
        assert event.error_message == "gone"
        assert event.entity_id == "T1"

    @pytest.mark.asyncio
    async def test_storage_failure_never_raises(self):
        """Test that a broken backend does not break the caller."""
        logger = AuditLogger(BrokenAuditStorage())
        event_written = await logger.log(AuditEventBuilder.history_cleared(2))
        assert event_written is False
