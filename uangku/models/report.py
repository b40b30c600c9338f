"""
Report Models

A report is a period summary computed from the transactions a repository
returns. Rendering (charts, tables) is left to the UI layer.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from uangku.models.transaction import Transaction


class ReportType(str, Enum):
    """Supported report periods."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Report(BaseModel):
    """Summary of one user's transactions over a date range."""
    model_config = ConfigDict(frozen=True)

    report_type: ReportType
    user_id: str
    start_date: str
    end_date: str
    generated_at: datetime = Field(default_factory=datetime.utcnow)

    transactions: list[Transaction] = Field(default_factory=list)
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")

    # Category id -> total amount (income and expense together), for charts
    totals_by_category: dict[str, Decimal] = Field(default_factory=dict)

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    @property
    def total(self) -> Decimal:
        """Gross volume of all transactions in the period."""
        return self.total_income + self.total_expense

    @property
    def average(self) -> Decimal:
        """Mean transaction amount, zero for an empty period."""
        if not self.transactions:
            return Decimal("0")
        return self.total / len(self.transactions)
