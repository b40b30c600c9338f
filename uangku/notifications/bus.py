"""
Notification Bus (Subject/Observer)

The bus holds a transient snapshot of the current transactions and hands
the full, updated snapshot to every registered observer after each
change.

GUARANTEES:
- Dispatch is synchronous: every observer has run before the mutating
  call returns.
- Observers are called in registration order.
- One notification per actual state change. Updating or removing an
  unknown id changes nothing and notifies nobody.
- An observer that raises is logged and skipped; later observers still
  run. The change itself has already been committed to the repository.

The snapshot is NOT the system of record. Repositories own the data.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from uangku.models.transaction import Transaction


logger = structlog.get_logger(__name__)


class TransactionObserver(ABC):
    """Anything that wants to receive the updated transaction snapshot."""

    @abstractmethod
    def on_update(self, snapshot: list[Transaction]) -> None:
        pass


class ChangeType(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"


class SnapshotChange(BaseModel):
    """
    One change to apply to the snapshot.

    For UPDATED, `transaction_id` is the id being replaced and
    `transaction` the replacement. For REMOVED only the id matters.
    """
    model_config = ConfigDict(frozen=True)

    change_type: ChangeType
    transaction_id: str
    transaction: Optional[Transaction] = None

    @classmethod
    def added(cls, transaction: Transaction) -> "SnapshotChange":
        return cls(change_type=ChangeType.ADDED, transaction_id=transaction.id, transaction=transaction)

    @classmethod
    def updated(cls, transaction_id: str, transaction: Transaction) -> "SnapshotChange":
        return cls(change_type=ChangeType.UPDATED, transaction_id=transaction_id, transaction=transaction)

    @classmethod
    def removed(cls, transaction_id: str) -> "SnapshotChange":
        return cls(change_type=ChangeType.REMOVED, transaction_id=transaction_id)


class NotificationBus:
    """Holds the transaction snapshot and notifies observers of changes."""

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None):
        self._observers: list[TransactionObserver] = []
        self._transactions: list[Transaction] = list(transactions or [])

    # Observer registry

    def add_observer(self, observer: TransactionObserver) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: TransactionObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    # Snapshot mutations

    def add_transaction(self, transaction: Transaction) -> None:
        """Append a transaction, or replace the one with the same id."""
        index = self._index_of(transaction.id)
        if index is None:
            self._transactions.append(transaction)
        else:
            self._transactions[index] = transaction
        self._notify()

    def update_transaction(self, transaction_id: str, transaction: Transaction) -> bool:
        """Replace a transaction. Returns False (and notifies nobody) for unknown ids."""
        index = self._index_of(transaction_id)
        if index is None:
            return False
        self._transactions[index] = transaction
        self._notify()
        return True

    def remove_transaction(self, transaction_id: str) -> bool:
        """Remove a transaction. Returns False (and notifies nobody) for unknown ids."""
        index = self._index_of(transaction_id)
        if index is None:
            return False
        del self._transactions[index]
        self._notify()
        return True

    def apply_change(self, change: SnapshotChange) -> None:
        if change.change_type is ChangeType.ADDED:
            self.add_transaction(change.transaction)
        elif change.change_type is ChangeType.UPDATED:
            self.update_transaction(change.transaction_id, change.transaction)
        else:
            self.remove_transaction(change.transaction_id)

    def apply_changes(self, changes: Iterable[SnapshotChange]) -> None:
        for change in changes:
            self.apply_change(change)

    def replace_snapshot(self, transactions: Iterable[Transaction]) -> None:
        """Load a whole snapshot at once (one notification)."""
        self._transactions = list(transactions)
        self._notify()

    def current_snapshot(self) -> list[Transaction]:
        """Copy of the current snapshot."""
        return list(self._transactions)

    # Internals

    def _index_of(self, transaction_id: str) -> Optional[int]:
        for index, transaction in enumerate(self._transactions):
            if transaction.id == transaction_id:
                return index
        return None

    def _notify(self) -> None:
        snapshot = list(self._transactions)
        for observer in list(self._observers):
            try:
                observer.on_update(list(snapshot))
            except Exception:
                logger.exception(
                    "observer_failed",
                    observer=type(observer).__name__,
                    snapshot_size=len(snapshot),
                )
