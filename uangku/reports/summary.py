"""
Report Builder

DESIGN DECISION: Reports are DETERMINISTIC summaries of what the
repository returns for a date range. Nothing is estimated: an empty
period is an empty report with zero totals, not an error.

A repository failure is passed through unchanged.
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Union

import structlog

from uangku.models.report import Report, ReportType
from uangku.models.result import OperationResult, ValidationFailedError
from uangku.models.transaction import Transaction
from uangku.services.storage import TransactionRepository


logger = structlog.get_logger(__name__)

DateLike = Union[date, str]


def _iso(value: DateLike) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(value).isoformat()


def month_range(year: int, month: int) -> tuple[str, str]:
    """First and last ISO day of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1).isoformat(), date(year, month, last_day).isoformat()


def week_range(day: DateLike) -> tuple[str, str]:
    """Monday to Sunday of the ISO week containing `day`."""
    if isinstance(day, str):
        day = date.fromisoformat(day)
    monday = day - timedelta(days=day.weekday())
    return monday.isoformat(), (monday + timedelta(days=6)).isoformat()


def summarize(
    transactions: list[Transaction],
    report_type: ReportType,
    user_id: str,
    start_date: str,
    end_date: str,
) -> Report:
    """Aggregate a list of transactions into a report."""
    total_income = Decimal("0")
    total_expense = Decimal("0")
    by_category: dict[str, Decimal] = {}

    for tx in transactions:
        if tx.is_income:
            total_income += tx.amount
        else:
            total_expense += tx.amount
        by_category[tx.category_id] = by_category.get(tx.category_id, Decimal("0")) + tx.amount

    return Report(
        report_type=report_type,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        transactions=sorted(transactions, key=lambda tx: tx.date),
        total_income=total_income,
        total_expense=total_expense,
        totals_by_category=by_category,
    )


class ReportBuilder:
    """Builds period reports from a transaction repository."""

    def __init__(self, repository: TransactionRepository):
        self._repository = repository

    async def build(
        self,
        user_id: str,
        report_type: ReportType,
        start_date: DateLike,
        end_date: DateLike,
    ) -> OperationResult:
        """
        Build a report over [start_date, end_date], both inclusive.

        Returns ok(Report), VALIDATION_FAILED for a malformed range, or
        the repository's failure.
        """
        try:
            start, end = _iso(start_date), _iso(end_date)
        except ValueError as e:
            return OperationResult.fail(ValidationFailedError(f"Invalid report range: {e}"))
        if start > end:
            return OperationResult.fail(
                ValidationFailedError(f"Report range starts after it ends: {start} > {end}")
            )
        result = await self._repository.get_by_date_range(user_id, start, end)
        if not result.success:
            logger.warning(
                "report_failed",
                user_id=user_id,
                report_type=ReportType(report_type).value,
                error_kind=result.error_kind.value,
            )
            return result

        report = summarize(result.value, ReportType(report_type), user_id, start, end)
        logger.info(
            "report_generated",
            user_id=user_id,
            report_type=report.report_type.value,
            transactions=report.transaction_count,
        )
        return OperationResult.ok(report)

    async def daily(self, user_id: str, day: DateLike) -> OperationResult:
        return await self.build(user_id, ReportType.DAILY, day, day)

    async def weekly(self, user_id: str, day: DateLike) -> OperationResult:
        """Report for the Monday-to-Sunday week containing `day`."""
        start, end = week_range(day)
        return await self.build(user_id, ReportType.WEEKLY, start, end)

    async def monthly(self, user_id: str, year: int, month: int) -> OperationResult:
        start, end = month_range(year, month)
        return await self.build(user_id, ReportType.MONTHLY, start, end)
