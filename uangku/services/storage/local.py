"""
Local Storage Implementation

The local store is the source of truth for transactions. It is an
in-memory, insertion-ordered table guarded by a lock, so each call is
atomic with respect to the store.

DESIGN DECISION: There is no process-wide singleton. A store is built
once per session by `create_ledger()` and handed to the repositories
that need it; tests build their own.
"""

import threading
from typing import Optional

import structlog

from uangku.models.budget import Budget
from uangku.models.result import (
    DuplicateError,
    NotFoundError,
    OperationResult,
)
from uangku.models.transaction import Transaction
from uangku.services.storage.interface import TransactionRepository


logger = structlog.get_logger(__name__)


class LocalTransactionStore:
    """
    In-memory table of transactions and budgets.

    Raises `NotFoundError` / `DuplicateError`; it knows nothing about
    results. Transactions are kept in insertion order, and an update
    keeps the original position, so reads are stable.
    """

    def __init__(self):
        self._transactions: dict[str, Transaction] = {}
        self._budgets: dict[str, Budget] = {}
        self._lock = threading.RLock()

    def insert(self, transaction: Transaction) -> None:
        with self._lock:
            if transaction.id in self._transactions:
                raise DuplicateError(f"Transaction already exists: {transaction.id}")
            self._transactions[transaction.id] = transaction

    def replace(self, transaction_id: str, transaction: Transaction) -> None:
        with self._lock:
            if transaction_id not in self._transactions:
                raise NotFoundError(f"Transaction not found: {transaction_id}")
            if transaction.id != transaction_id:
                # Re-key in place so the row keeps its position
                if transaction.id in self._transactions:
                    raise DuplicateError(f"Transaction already exists: {transaction.id}")
                self._transactions = {
                    (transaction.id if key == transaction_id else key):
                    (transaction if key == transaction_id else value)
                    for key, value in self._transactions.items()
                }
            else:
                self._transactions[transaction_id] = transaction

    def remove(self, transaction_id: str) -> Transaction:
        with self._lock:
            try:
                return self._transactions.pop(transaction_id)
            except KeyError:
                raise NotFoundError(f"Transaction not found: {transaction_id}")

    def get(self, transaction_id: str) -> Optional[Transaction]:
        with self._lock:
            return self._transactions.get(transaction_id)

    def list_by_user(self, user_id: str) -> list[Transaction]:
        with self._lock:
            return [tx for tx in self._transactions.values() if tx.user_id == user_id]

    def count(self) -> int:
        with self._lock:
            return len(self._transactions)

    # Budget operations

    def save_budget(self, budget: Budget) -> None:
        with self._lock:
            self._budgets[budget.id] = budget

    def budgets_for_user(self, user_id: str) -> list[Budget]:
        with self._lock:
            return [b for b in self._budgets.values() if b.user_id == user_id]

    def clear(self) -> None:
        """Drop everything. Called at session teardown."""
        with self._lock:
            self._transactions.clear()
            self._budgets.clear()


class LocalTransactionRepository(TransactionRepository):
    """
    Repository over a `LocalTransactionStore`.

    Every store exception is converted into a failed `OperationResult`:
    NotFoundError keeps NOT_FOUND, anything else becomes STORAGE_FAILURE.
    """

    def __init__(self, store: Optional[LocalTransactionStore] = None):
        self._store = store if store is not None else LocalTransactionStore()

    @property
    def store(self) -> LocalTransactionStore:
        return self._store

    async def save(self, transaction: Transaction) -> OperationResult:
        try:
            self._store.insert(transaction)
        except Exception as e:
            logger.warning("local_save_failed", transaction_id=transaction.id, error=str(e))
            return OperationResult.from_exception(e)
        return OperationResult.ok(True)

    async def get_by_user(self, user_id: str) -> OperationResult:
        try:
            return OperationResult.ok(self._store.list_by_user(user_id))
        except Exception as e:
            logger.warning("local_read_failed", user_id=user_id, error=str(e))
            return OperationResult.from_exception(e)

    async def get(self, transaction_id: str) -> OperationResult:
        try:
            transaction = self._store.get(transaction_id)
        except Exception as e:
            logger.warning("local_read_failed", transaction_id=transaction_id, error=str(e))
            return OperationResult.from_exception(e)
        if transaction is None:
            return OperationResult.fail(NotFoundError(f"Transaction not found: {transaction_id}"))
        return OperationResult.ok(transaction)

    async def update(self, transaction_id: str, transaction: Transaction) -> OperationResult:
        try:
            self._store.replace(transaction_id, transaction)
        except Exception as e:
            logger.warning("local_update_failed", transaction_id=transaction_id, error=str(e))
            return OperationResult.from_exception(e)
        return OperationResult.ok(True)

    async def delete(self, transaction_id: str) -> OperationResult:
        try:
            self._store.remove(transaction_id)
        except Exception as e:
            logger.warning("local_delete_failed", transaction_id=transaction_id, error=str(e))
            return OperationResult.from_exception(e)
        return OperationResult.ok(True)
