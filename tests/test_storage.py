"""
Tests for the local, layered and in-memory storage backends.
"""

import asyncio
from decimal import Decimal

import pytest

from uangku.models import AuditEventBuilder, Budget, ErrorKind, TransactionFactory
from uangku.services.storage import (
    InMemoryAuditStorage,
    InMemoryRemoteStore,
    LayeredTransactionRepository,
    LocalTransactionRepository,
    LocalTransactionStore,
)


def _expense(tx_id, amount="100", date="2025-06-01", category="FOOD", user="u1"):
    return TransactionFactory.create_expense(
        f"Expense {tx_id}", Decimal(amount), date, category, user, transaction_id=tx_id,
    )


def _income(tx_id, amount="1000", date="2025-06-01", category="SALARY", user="u1"):
    return TransactionFactory.create_income(
        f"Income {tx_id}", Decimal(amount), date, category, user, transaction_id=tx_id,
    )


class BrokenStore(LocalTransactionStore):
    """A store whose writes fail with an unexpected error."""

    def insert(self, transaction):
        raise RuntimeError("disk full")


class RecordingRemote(InMemoryRemoteStore):
    """In-memory remote that records every call."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    async def push(self, transaction):
        self.calls.append(("push", transaction.id))
        await super().push(transaction)

    async def remove(self, transaction_id):
        self.calls.append(("remove", transaction_id))
        await super().remove(transaction_id)


class SlowRemote(InMemoryRemoteStore):
    """Remote that never answers within a short timeout."""

    async def push(self, transaction):
        await asyncio.sleep(1)

    async def fetch_by_user(self, user_id):
        await asyncio.sleep(1)
        return []


class TestLocalRepository:
    """Tests for the authoritative local repository."""

    @pytest.mark.asyncio
    async def test_save_and_read_back(self):
        """Test that saved transactions are listed for their user."""
        repo = LocalTransactionRepository()
        assert (await repo.save(_expense("T1"))).success
        assert (await repo.save(_expense("T2", user="u2"))).success

        result = await repo.get_by_user("u1")
        assert result.success
        assert [tx.id for tx in result.value] == ["T1"]

    @pytest.mark.asyncio
    async def test_unknown_user_is_empty_not_error(self):
        """Test that a user with no transactions gets an empty list."""
        repo = LocalTransactionRepository()
        result = await repo.get_by_user("nobody")
        assert result.success
        assert result.value == []

    @pytest.mark.asyncio
    async def test_duplicate_save_fails(self):
        """Test that saving an existing id is a storage failure."""
        repo = LocalTransactionRepository()
        await repo.save(_expense("T1"))
        result = await repo.save(_expense("T1"))
        assert result.error_kind is ErrorKind.STORAGE_FAILURE

    @pytest.mark.asyncio
    async def test_update_keeps_position(self):
        """Test that an update replaces in place."""
        repo = LocalTransactionRepository()
        for tx_id in ("T1", "T2", "T3"):
            await repo.save(_expense(tx_id))

        result = await repo.update("T2", _expense("T2", amount="999"))
        assert result.success

        listed = (await repo.get_by_user("u1")).value
        assert [tx.id for tx in listed] == ["T1", "T2", "T3"]
        assert listed[1].amount == Decimal("999")

    @pytest.mark.asyncio
    async def test_get_by_id(self):
        """Test single-id lookup, including an unknown id."""
        repo = LocalTransactionRepository()
        await repo.save(_expense("T1", amount="250"))

        found = await repo.get("T1")
        assert found.success
        assert found.value.amount == Decimal("250")
        assert (await repo.get("missing")).error_kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_unknown_id_is_not_found(self):
        """Test that updating an unknown id fails with NOT_FOUND."""
        repo = LocalTransactionRepository()
        result = await repo.update("missing", _expense("missing"))
        assert result.error_kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_unknown_id_is_not_found(self):
        """Test that deleting an unknown id fails with NOT_FOUND."""
        repo = LocalTransactionRepository()
        result = await repo.delete("missing")
        assert result.error_kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_removes(self):
        """Test that a deleted transaction is gone."""
        repo = LocalTransactionRepository()
        await repo.save(_expense("T1"))
        assert (await repo.delete("T1")).success
        assert (await repo.get_by_user("u1")).value == []

    @pytest.mark.asyncio
    async def test_unexpected_fault_becomes_storage_failure(self):
        """Test that store exceptions never escape the repository."""
        repo = LocalTransactionRepository(BrokenStore())
        result = await repo.save(_expense("T1"))
        assert not result.success
        assert result.error_kind is ErrorKind.STORAGE_FAILURE
        assert "disk full" in result.error_message

    @pytest.mark.asyncio
    async def test_get_by_category(self):
        """Test filtering by category."""
        repo = LocalTransactionRepository()
        await repo.save(_expense("T1", category="FOOD"))
        await repo.save(_expense("T2", category="TRANSPORT"))
        result = await repo.get_by_category("u1", "TRANSPORT")
        assert [tx.id for tx in result.value] == ["T2"]

    @pytest.mark.asyncio
    async def test_get_by_date_range_is_inclusive(self):
        """Test that both range bounds are included."""
        repo = LocalTransactionRepository()
        await repo.save(_expense("T1", date="2025-05-31"))
        await repo.save(_expense("T2", date="2025-06-01"))
        await repo.save(_expense("T3", date="2025-06-30"))
        await repo.save(_expense("T4", date="2025-07-01"))

        result = await repo.get_by_date_range("u1", "2025-06-01", "2025-06-30")
        assert [tx.id for tx in result.value] == ["T2", "T3"]


class TestLocalStore:
    """Tests for the raw local store."""

    def test_budgets_are_kept_per_user(self):
        """Test storing and listing budgets."""
        store = LocalTransactionStore()
        store.save_budget(Budget(id="B1", period="2025-06", limit_amount=Decimal("100"), user_id="u1"))
        store.save_budget(Budget(id="B2", period="2025-06", limit_amount=Decimal("100"), user_id="u2"))
        assert [b.id for b in store.budgets_for_user("u1")] == ["B1"]

    def test_clear(self):
        """Test that clear drops everything."""
        store = LocalTransactionStore()
        store.insert(_expense("T1"))
        store.clear()
        assert store.count() == 0


class TestLayeredRepository:
    """Tests for local-first writes and remote-first reads."""

    @pytest.mark.asyncio
    async def test_get_reads_local_not_remote(self):
        """Test that single-id lookups ignore a stale mirror."""
        local = LocalTransactionRepository()
        remote = InMemoryRemoteStore([_expense("T1", amount="100")])
        repo = LayeredTransactionRepository(local, remote)
        await local.save(_expense("T1", amount="200"))
        await local.save(_expense("T2"))

        assert (await repo.get("T1")).value.amount == Decimal("200")
        assert (await repo.get("T2")).success

    @pytest.mark.asyncio
    async def test_save_mirrors_to_remote(self):
        """Test that a local write is mirrored."""
        remote = InMemoryRemoteStore()
        repo = LayeredTransactionRepository(LocalTransactionRepository(), remote)

        result = await repo.save(_expense("T1"))
        assert result.success
        assert remote.contains("T1")

    @pytest.mark.asyncio
    async def test_save_succeeds_when_remote_offline(self):
        """Test that a remote failure never fails a write."""
        local = LocalTransactionRepository()
        remote = InMemoryRemoteStore(available=False)
        repo = LayeredTransactionRepository(local, remote)

        result = await repo.save(_expense("T1"))
        assert result.success
        assert local.store.get("T1") is not None
        assert not remote.contains("T1")

    @pytest.mark.asyncio
    async def test_local_failure_is_not_mirrored(self):
        """Test that the remote is untouched when the local write fails."""
        local = LocalTransactionRepository()
        remote = RecordingRemote()
        repo = LayeredTransactionRepository(local, remote)
        await repo.save(_expense("T1"))
        remote.calls.clear()

        result = await repo.save(_expense("T1"))
        assert result.error_kind is ErrorKind.STORAGE_FAILURE
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_update_unknown_is_not_found_and_not_mirrored(self):
        """Test that a failed local update is returned as-is."""
        remote = RecordingRemote()
        repo = LayeredTransactionRepository(LocalTransactionRepository(), remote)

        result = await repo.update("missing", _expense("missing"))
        assert result.error_kind is ErrorKind.NOT_FOUND
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_update_with_new_id_removes_old_remote_row(self):
        """Test that re-keying a transaction does not leave a stale remote row."""
        remote = InMemoryRemoteStore()
        repo = LayeredTransactionRepository(LocalTransactionRepository(), remote)
        await repo.save(_expense("T1"))

        result = await repo.update("T1", _expense("T9"))
        assert result.success
        assert not remote.contains("T1")
        assert remote.contains("T9")

    @pytest.mark.asyncio
    async def test_delete_is_mirrored_by_default(self):
        """Test that deletes reach the remote by default."""
        remote = InMemoryRemoteStore()
        repo = LayeredTransactionRepository(LocalTransactionRepository(), remote)
        await repo.save(_expense("T1"))

        assert (await repo.delete("T1")).success
        assert not remote.contains("T1")

    @pytest.mark.asyncio
    async def test_delete_mirroring_can_be_disabled(self):
        """Test that deletes stay local when mirroring is off."""
        remote = RecordingRemote()
        repo = LayeredTransactionRepository(
            LocalTransactionRepository(), remote, mirror_deletes=False,
        )
        await repo.save(_expense("T1"))

        assert (await repo.delete("T1")).success
        assert remote.contains("T1")
        assert ("remove", "T1") not in remote.calls

    @pytest.mark.asyncio
    async def test_delete_unknown_is_not_found(self):
        """Test that delete of an unknown id fails with NOT_FOUND."""
        repo = LayeredTransactionRepository(LocalTransactionRepository(), InMemoryRemoteStore())
        result = await repo.delete("missing")
        assert result.error_kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_read_prefers_remote(self):
        """Test that reads come from the remote when it answers."""
        remote = InMemoryRemoteStore([_income("R1")])
        local = LocalTransactionRepository()
        await local.save(_expense("L1"))
        repo = LayeredTransactionRepository(local, remote)

        result = await repo.get_by_user("u1")
        assert [tx.id for tx in result.value] == ["R1"]

    @pytest.mark.asyncio
    async def test_read_falls_back_to_local_when_offline(self):
        """Test that an unreachable remote falls back to local data."""
        remote = InMemoryRemoteStore(available=False)
        repo = LayeredTransactionRepository(LocalTransactionRepository(), remote)
        await repo.save(_expense("T1"))

        result = await repo.get_by_user("u1")
        assert result.success
        assert [tx.id for tx in result.value] == ["T1"]

    @pytest.mark.asyncio
    async def test_slow_remote_times_out(self):
        """Test that a hanging remote is bounded by the timeout."""
        repo = LayeredTransactionRepository(
            LocalTransactionRepository(), SlowRemote(), remote_timeout=0.01,
        )
        assert (await repo.save(_expense("T1"))).success

        result = await repo.get_by_user("u1")
        assert result.success
        assert [tx.id for tx in result.value] == ["T1"]

    @pytest.mark.asyncio
    async def test_date_range_reads_through_layers(self):
        """Test that derived queries use the layered read path."""
        remote = InMemoryRemoteStore(available=False)
        repo = LayeredTransactionRepository(LocalTransactionRepository(), remote)
        await repo.save(_expense("T1", date="2025-06-10"))
        await repo.save(_expense("T2", date="2025-07-10"))

        result = await repo.get_by_date_range("u1", "2025-06-01", "2025-06-30")
        assert [tx.id for tx in result.value] == ["T1"]


class TestInMemoryAuditStorage:
    """Tests for the in-memory audit backend."""

    @pytest.mark.asyncio
    async def test_recent_events_newest_first(self):
        """Test that recent events are returned newest first and limited."""
        storage = InMemoryAuditStorage()
        for size in range(3):
            await storage.append_event(AuditEventBuilder.history_cleared(size))

        recent = await storage.get_recent_events(limit=2)
        assert len(recent) == 2
        assert recent[0].timestamp >= recent[1].timestamp
        assert len(storage.events) == 3
