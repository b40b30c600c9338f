"""
Tests for the Google Sheets remote mirror.

No real API calls: the client and worksheet are mocks.
"""

import time
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from uangku.models import RemoteUnavailableError, TransactionFactory
from uangku.services.storage import (
    GoogleSheetsTransactionStore,
    LayeredTransactionRepository,
    LocalTransactionRepository,
)
from uangku.services.storage.google_sheets import (
    TRANSACTION_COLUMNS,
    row_to_transaction,
    transaction_to_row,
)


def _expense(tx_id="T1", user="u1"):
    return TransactionFactory.create_expense(
        "Groceries", Decimal("350000.50"), "2025-06-02", "FOOD", user,
        payment_method="Card", transaction_id=tx_id,
    )


def _income(tx_id="I1", user="u1"):
    return TransactionFactory.create_income(
        "Salary", Decimal("5000000"), "2025-06-01", "SALARY", user,
        source="Employer", transaction_id=tx_id,
    )


def _store_with_rows(rows):
    sheet = MagicMock()
    sheet.get_all_values.return_value = [TRANSACTION_COLUMNS] + rows
    client = MagicMock()
    client.get_transactions_sheet.return_value = sheet
    return GoogleSheetsTransactionStore(client), sheet


class TestRowConversion:
    """Tests for sheet row (de)serialisation."""

    def test_expense_row_layout(self):
        """Test that an expense row follows the column order."""
        row = transaction_to_row(_expense())
        assert len(row) == len(TRANSACTION_COLUMNS)
        assert row[:7] == ["T1", "u1", "expense", "Groceries", "350000.50", "2025-06-02", "FOOD"]
        assert row[7] == ""
        assert row[8] == "Card"
        assert datetime.fromisoformat(row[9]).tzinfo is not None

    def test_income_row_layout(self):
        """Test that an income row carries its source."""
        row = transaction_to_row(_income())
        assert row[2] == "income"
        assert row[7] == "Employer"
        assert row[8] == ""

    def test_row_restores_transaction(self):
        """Test reading back a written row."""
        for tx in (_expense(), _income()):
            restored = row_to_transaction(transaction_to_row(tx))
            assert restored == tx

    def test_short_row_uses_defaults(self):
        """Test that missing trailing cells fall back to defaults."""
        tx = row_to_transaction(["T1", "u1", "expense", "Taxi", "20000", "2025-06-03", "TRANSPORT"])
        assert tx.payment_method == "Cash"

    def test_malformed_row_raises(self):
        """Test that an unknown kind is rejected."""
        with pytest.raises(ValueError):
            row_to_transaction(["T1", "u1", "transfer", "x", "1", "2025-06-01", "C"])


class TestGoogleSheetsTransactionStore:
    """Tests for the remote store against a mocked worksheet."""

    @pytest.mark.asyncio
    async def test_push_appends_new_row(self):
        """Test that an unknown id is appended."""
        store, sheet = _store_with_rows([])
        await store.push(_expense())
        sheet.append_row.assert_called_once()
        assert sheet.append_row.call_args[0][0][0] == "T1"

    @pytest.mark.asyncio
    async def test_push_updates_existing_row(self):
        """Test that a known id is updated in place."""
        store, sheet = _store_with_rows([transaction_to_row(_expense())])
        await store.push(_expense())
        sheet.append_row.assert_not_called()
        sheet.update_cell.assert_any_call(2, 1, "T1")

    @pytest.mark.asyncio
    async def test_remove_deletes_row(self):
        """Test that remove deletes the matching sheet row."""
        store, sheet = _store_with_rows([
            transaction_to_row(_income()),
            transaction_to_row(_expense()),
        ])
        await store.remove("T1")
        sheet.delete_rows.assert_called_once_with(3)

    @pytest.mark.asyncio
    async def test_remove_unknown_is_noop(self):
        """Test that removing an absent id touches nothing."""
        store, sheet = _store_with_rows([])
        await store.remove("T1")
        sheet.delete_rows.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_filters_by_user_and_skips_bad_rows(self):
        """Test that fetch returns only valid rows of the user."""
        store, _ = _store_with_rows([
            transaction_to_row(_income()),
            transaction_to_row(_expense("T2", user="u2")),
            [],
            ["BAD", "u1", "expense", "x", "not-a-number", "2025-06-01", "C"],
            transaction_to_row(_expense()),
        ])
        transactions = await store.fetch_by_user("u1")
        assert [tx.id for tx in transactions] == ["I1", "T1"]

    @pytest.mark.asyncio
    async def test_fetch_failure_is_remote_unavailable(self):
        """Test that sheet errors surface as RemoteUnavailableError."""
        client = MagicMock()
        client.get_transactions_sheet.side_effect = ConnectionError("network down")
        store = GoogleSheetsTransactionStore(client)
        with pytest.raises(RemoteUnavailableError):
            await store.fetch_by_user("u1")

    @pytest.mark.asyncio
    async def test_remove_failure_is_remote_unavailable(self):
        """Test that a failing delete is reported as unavailable."""
        store, sheet = _store_with_rows([transaction_to_row(_expense())])
        sheet.delete_rows.side_effect = ConnectionError("network down")
        with pytest.raises(RemoteUnavailableError):
            await store.remove("T1")


class TestBlockingSheet:
    """Tests for a worksheet that hangs inside gspread."""

    @pytest.mark.asyncio
    async def test_hung_read_times_out_and_falls_back(self):
        """Test that a blocking sheet call cannot stall the layered timeout."""
        def hang():
            time.sleep(0.5)
            return [TRANSACTION_COLUMNS]

        store, sheet = _store_with_rows([])
        sheet.get_all_values.side_effect = hang
        local = LocalTransactionRepository()
        await local.save(_expense())
        repo = LayeredTransactionRepository(local, store, remote_timeout=0.05)

        started = time.monotonic()
        result = await repo.get_by_user("u1")
        elapsed = time.monotonic() - started

        assert elapsed < 0.4
        assert [tx.id for tx in result.value] == ["T1"]
