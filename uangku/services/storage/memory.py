"""
In-Memory Backends

Used when no Google Sheets credentials are configured, and in tests.
The remote store can be switched offline to simulate an unreachable
mirror.
"""

from typing import Optional

from uangku.models.audit import AuditEvent
from uangku.models.result import RemoteUnavailableError
from uangku.models.transaction import Transaction
from uangku.services.storage.interface import (
    AuditStorageInterface,
    RemoteTransactionStore,
)


class InMemoryRemoteStore(RemoteTransactionStore):
    """
    Dict-backed remote mirror.

    While `available` is False every call raises `RemoteUnavailableError`.
    """

    def __init__(self, transactions: Optional[list[Transaction]] = None, available: bool = True):
        self._transactions: dict[str, Transaction] = {
            tx.id: tx for tx in (transactions or [])
        }
        self.available = available

    def _check_available(self) -> None:
        if not self.available:
            raise RemoteUnavailableError("Remote store is offline")

    async def push(self, transaction: Transaction) -> None:
        self._check_available()
        self._transactions[transaction.id] = transaction

    async def remove(self, transaction_id: str) -> None:
        self._check_available()
        self._transactions.pop(transaction_id, None)

    async def fetch_by_user(self, user_id: str) -> list[Transaction]:
        self._check_available()
        return [tx for tx in self._transactions.values() if tx.user_id == user_id]

    def contains(self, transaction_id: str) -> bool:
        return transaction_id in self._transactions

    def get(self, transaction_id: str) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)
