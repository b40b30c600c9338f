"""
Budget Model for UangKu Ledger

A budget caps the spending of one user, either for a single category or
for all categories, over a named period.

DESIGN DECISION: Budgets are read-only after creation. Evaluating a budget
against a transaction snapshot never changes the budget.
"""

from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from uangku.models.transaction import Transaction


class BudgetTier(str, Enum):
    """
    How much of a budget has been consumed.

    SILENT:        below 50%
    INFORMATIONAL: 50% and above
    NEAR_LIMIT:    80% and above
    OVER_LIMIT:    100% and above
    """
    SILENT = "silent"
    INFORMATIONAL = "informational"
    NEAR_LIMIT = "near_limit"
    OVER_LIMIT = "over_limit"

    @classmethod
    def for_percent(cls, percent: Decimal) -> "BudgetTier":
        if percent >= 100:
            return cls.OVER_LIMIT
        if percent >= 80:
            return cls.NEAR_LIMIT
        if percent >= 50:
            return cls.INFORMATIONAL
        return cls.SILENT


class Budget(BaseModel):
    """A spending limit for one user."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Unique budget id"
    )
    period: str = Field(
        ...,
        min_length=1,
        description="Period label (e.g. '2025-06')"
    )
    limit_amount: Decimal = Field(
        ...,
        gt=0,
        description="Spending limit"
    )
    category_id: Optional[str] = Field(
        default=None,
        description="Category this budget covers; None covers all categories"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the budget"
    )

    def applies_to(self, transaction: Transaction) -> bool:
        """Does this transaction count against the budget?"""
        if not transaction.is_expense:
            return False
        if transaction.user_id != self.user_id:
            return False
        return self.category_id is None or transaction.category_id == self.category_id

    def spent(self, snapshot: Iterable[Transaction]) -> Decimal:
        """Total expense counted against this budget."""
        return sum(
            (tx.amount for tx in snapshot if self.applies_to(tx)),
            Decimal("0"),
        )

    def percent_used(self, snapshot: Iterable[Transaction]) -> Decimal:
        return self.spent(snapshot) / self.limit_amount * 100

    def is_within_limit(self, snapshot: Iterable[Transaction]) -> bool:
        return self.spent(snapshot) <= self.limit_amount

    def evaluate(self, snapshot: Iterable[Transaction]) -> "BudgetStatus":
        """Evaluate the budget against a snapshot."""
        spent = self.spent(snapshot)
        percent = spent / self.limit_amount * 100
        return BudgetStatus(
            budget_id=self.id,
            spent=spent,
            limit_amount=self.limit_amount,
            percent_used=percent,
            tier=BudgetTier.for_percent(percent),
        )


class BudgetStatus(BaseModel):
    """Result of evaluating a budget against a snapshot."""
    model_config = ConfigDict(frozen=True)

    budget_id: str
    spent: Decimal
    limit_amount: Decimal
    percent_used: Decimal
    tier: BudgetTier

    @property
    def remaining(self) -> Decimal:
        return self.limit_amount - self.spent
