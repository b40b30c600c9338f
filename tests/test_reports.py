"""
Tests for period reports.
"""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from uangku.models import ErrorKind, OperationResult, ReportType, StorageError, TransactionFactory
from uangku.reports import ReportBuilder, month_range, week_range
from uangku.services.storage import LocalTransactionRepository


def _expense(tx_id, amount, day, category="FOOD", user="u1"):
    return TransactionFactory.create_expense(
        f"Expense {tx_id}", Decimal(amount), day, category, user, transaction_id=tx_id,
    )


def _income(tx_id, amount, day, user="u1"):
    return TransactionFactory.create_income(
        f"Income {tx_id}", Decimal(amount), day, "SALARY", user, transaction_id=tx_id,
    )


class UnreadableRepository(LocalTransactionRepository):
    """Repository whose reads always fail."""

    async def get_by_user(self, user_id):
        return OperationResult.fail(StorageError("read failed"))


@pytest_asyncio.fixture
async def repo():
    repo = LocalTransactionRepository()
    for tx in (
        _income("I1", "5000000", "2025-06-01"),
        _expense("E1", "350000", "2025-06-02", category="FOOD"),
        _expense("E2", "150000", "2025-06-15", category="TRANSPORT"),
        _expense("E3", "100000", "2025-06-30", category="FOOD"),
        _expense("E4", "999", "2025-07-01"),
        _expense("X1", "777", "2025-06-10", user="u2"),
    ):
        await repo.save(tx)
    return repo


class TestDateRanges:
    """Tests for period helpers."""

    def test_month_range_uses_real_month_end(self):
        """Test month bounds, leap years included."""
        assert month_range(2024, 2) == ("2024-02-01", "2024-02-29")
        assert month_range(2025, 2) == ("2025-02-01", "2025-02-28")
        assert month_range(2025, 6) == ("2025-06-01", "2025-06-30")
        assert month_range(2025, 12) == ("2025-12-01", "2025-12-31")

    def test_week_range_is_monday_to_sunday(self):
        """Test week bounds around a Wednesday."""
        assert week_range(date(2025, 6, 4)) == ("2025-06-02", "2025-06-08")
        assert week_range("2025-06-02") == ("2025-06-02", "2025-06-08")
        assert week_range("2025-06-08") == ("2025-06-02", "2025-06-08")


class TestReportBuilder:
    """Tests for report aggregation."""

    @pytest.mark.asyncio
    async def test_monthly_totals(self, repo):
        """Test totals, category breakdown and user scoping."""
        result = await ReportBuilder(repo).monthly("u1", 2025, 6)
        assert result.success

        report = result.value
        assert report.report_type is ReportType.MONTHLY
        assert report.start_date == "2025-06-01"
        assert report.end_date == "2025-06-30"
        assert [tx.id for tx in report.transactions] == ["I1", "E1", "E2", "E3"]
        assert report.total_income == Decimal("5000000")
        assert report.total_expense == Decimal("600000")
        assert report.balance == Decimal("4400000")
        assert report.totals_by_category == {
            "SALARY": Decimal("5000000"),
            "FOOD": Decimal("450000"),
            "TRANSPORT": Decimal("150000"),
        }

    @pytest.mark.asyncio
    async def test_daily_report(self, repo):
        """Test a single-day report."""
        result = await ReportBuilder(repo).daily("u1", "2025-06-02")
        assert [tx.id for tx in result.value.transactions] == ["E1"]
        assert result.value.report_type is ReportType.DAILY

    @pytest.mark.asyncio
    async def test_weekly_report(self, repo):
        """Test a Monday-to-Sunday report."""
        result = await ReportBuilder(repo).weekly("u1", date(2025, 6, 4))
        assert [tx.id for tx in result.value.transactions] == ["E1"]

    @pytest.mark.asyncio
    async def test_empty_period_is_zero_report(self, repo):
        """Test that a period without data is not an error."""
        result = await ReportBuilder(repo).monthly("u1", 2024, 1)
        assert result.success
        assert result.value.transaction_count == 0
        assert result.value.balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_transactions_sorted_by_date(self):
        """Test that report transactions are in date order."""
        repo = LocalTransactionRepository()
        await repo.save(_expense("late", "10", "2025-06-20"))
        await repo.save(_expense("early", "10", "2025-06-05"))

        result = await ReportBuilder(repo).build("u1", ReportType.MONTHLY, "2025-06-01", "2025-06-30")
        assert [tx.id for tx in result.value.transactions] == ["early", "late"]

    @pytest.mark.asyncio
    async def test_invalid_range(self, repo):
        """Test that malformed or inverted ranges fail validation."""
        builder = ReportBuilder(repo)
        bad_date = await builder.build("u1", ReportType.DAILY, "not-a-date", "2025-06-01")
        inverted = await builder.build("u1", ReportType.WEEKLY, "2025-06-30", "2025-06-01")
        assert bad_date.error_kind is ErrorKind.VALIDATION_FAILED
        assert inverted.error_kind is ErrorKind.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_repository_failure_is_passed_through(self):
        """Test that a read failure is returned unchanged."""
        result = await ReportBuilder(UnreadableRepository()).monthly("u1", 2025, 6)
        assert result.error_kind is ErrorKind.STORAGE_FAILURE
        assert result.error_message == "read failed"
