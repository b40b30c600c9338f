"""
Standard observers: running balance and budget thresholds.
"""

from decimal import Decimal
from typing import Callable, Optional

import structlog

from uangku.models.budget import Budget, BudgetStatus, BudgetTier
from uangku.models.transaction import Transaction
from uangku.notifications.bus import TransactionObserver


logger = structlog.get_logger(__name__)


class BalanceObserver(TransactionObserver):
    """
    Tracks the running balance: sum(income) - sum(expense).

    Optionally scoped to one user; unscoped it sums the whole snapshot.
    """

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id
        self.total_income = Decimal("0")
        self.total_expense = Decimal("0")
        self.update_count = 0

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense

    def on_update(self, snapshot: list[Transaction]) -> None:
        transactions = [
            tx for tx in snapshot
            if self._user_id is None or tx.user_id == self._user_id
        ]
        self.total_income = sum(
            (tx.amount for tx in transactions if tx.is_income), Decimal("0")
        )
        self.total_expense = sum(
            (tx.amount for tx in transactions if tx.is_expense), Decimal("0")
        )
        self.update_count += 1
        logger.debug("balance_updated", balance=str(self.balance), user_id=self._user_id)


class BudgetObserver(TransactionObserver):
    """
    Watches one budget and classifies spending into tiers.

    Every update re-evaluates the budget. `on_threshold` fires only when
    the tier changes into a non-silent tier.
    """

    def __init__(
        self,
        budget: Budget,
        on_threshold: Optional[Callable[[Budget, BudgetStatus], None]] = None,
    ):
        self._budget = budget
        self._on_threshold = on_threshold
        self._status: BudgetStatus = budget.evaluate([])

    @property
    def budget(self) -> Budget:
        return self._budget

    @property
    def status(self) -> BudgetStatus:
        return self._status

    @property
    def tier(self) -> BudgetTier:
        return self._status.tier

    @property
    def percent_used(self) -> Decimal:
        return self._status.percent_used

    @property
    def spent(self) -> Decimal:
        return self._status.spent

    def on_update(self, snapshot: list[Transaction]) -> None:
        previous_tier = self._status.tier
        self._status = self._budget.evaluate(snapshot)

        if self._status.tier is BudgetTier.SILENT:
            return

        log_context = dict(
            budget_id=self._budget.id,
            category_id=self._budget.category_id,
            percent_used=f"{self._status.percent_used:.1f}",
            tier=self._status.tier.value,
        )
        if self._status.tier is BudgetTier.INFORMATIONAL:
            logger.info("budget_usage", **log_context)
        else:
            logger.warning("budget_usage", **log_context)

        if self._status.tier is not previous_tier and self._on_threshold is not None:
            self._on_threshold(self._budget, self._status)
