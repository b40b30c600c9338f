"""Transaction change notification package."""

from uangku.notifications.bus import (
    ChangeType,
    NotificationBus,
    SnapshotChange,
    TransactionObserver,
)
from uangku.notifications.observers import BalanceObserver, BudgetObserver

__all__ = [
    "BalanceObserver",
    "BudgetObserver",
    "ChangeType",
    "NotificationBus",
    "SnapshotChange",
    "TransactionObserver",
]
