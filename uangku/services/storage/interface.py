"""
Abstract Storage Interfaces

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Compose an authoritative local store with a best-effort remote mirror
2. Use in-memory storage for testing
3. Swap Google Sheets for a real database later
4. Keep business logic decoupled from storage implementation

Two layers of contract:
- `TransactionRepository` is what commands and services talk to. Every
  method returns an `OperationResult` and never raises.
- `RemoteTransactionStore` and `AuditStorageInterface` are raw backends.
  They raise `StorageError` subclasses; repositories convert them.
"""

from abc import ABC, abstractmethod

from uangku.models.audit import AuditEvent
from uangku.models.result import (
    DuplicateError,
    NotFoundError,
    OperationResult,
    RemoteUnavailableError,
    StorageError,
)
from uangku.models.transaction import Transaction


class TransactionRepository(ABC):
    """
    Abstract interface for durable transaction storage.

    Any repository implementation (local, layered, ...) must implement
    the five core methods. The category and date range filters are
    derived from `get_by_user`.
    """

    @abstractmethod
    async def save(self, transaction: Transaction) -> OperationResult:
        """
        Persist a new transaction.

        Returns:
            ok(True) on success, STORAGE_FAILURE otherwise
        """
        pass

    @abstractmethod
    async def get_by_user(self, user_id: str) -> OperationResult:
        """
        List every transaction of a user.

        Ordering is implementation-defined but stable across repeated
        reads with no intervening writes.

        Returns:
            ok(list[Transaction])
        """
        pass

    @abstractmethod
    async def get(self, transaction_id: str) -> OperationResult:
        """
        Fetch one transaction by id from the authoritative store.

        Returns:
            ok(Transaction), or NOT_FOUND if the id is unknown
        """
        pass

    @abstractmethod
    async def update(self, transaction_id: str, transaction: Transaction) -> OperationResult:
        """
        Replace the transaction stored under `transaction_id`.

        Returns:
            ok(True), or NOT_FOUND if the id is unknown
        """
        pass

    @abstractmethod
    async def delete(self, transaction_id: str) -> OperationResult:
        """
        Delete a transaction by id.

        Returns:
            ok(True), or NOT_FOUND if the id is unknown
        """
        pass

    async def get_by_category(self, user_id: str, category_id: str) -> OperationResult:
        """List a user's transactions in one category."""
        result = await self.get_by_user(user_id)
        if not result.success:
            return result
        return OperationResult.ok(
            [tx for tx in result.value if tx.category_id == category_id]
        )

    async def get_by_date_range(
        self,
        user_id: str,
        start_date: str,
        end_date: str,
    ) -> OperationResult:
        """
        List a user's transactions dated between the bounds (inclusive).

        Bounds are ISO date strings, compared lexicographically.
        """
        result = await self.get_by_user(user_id)
        if not result.success:
            return result
        return OperationResult.ok(
            [tx for tx in result.value if start_date <= tx.date <= end_date]
        )


class RemoteTransactionStore(ABC):
    """
    Abstract interface for the remote mirror.

    Implementations raise `RemoteUnavailableError` (or any exception)
    when the remote cannot be reached; the layered repository decides
    what to do with the failure.
    """

    @abstractmethod
    async def push(self, transaction: Transaction) -> None:
        """Insert or replace a transaction in the mirror (upsert by id)."""
        pass

    @abstractmethod
    async def remove(self, transaction_id: str) -> None:
        """Remove a transaction from the mirror. Unknown ids are ignored."""
        pass

    @abstractmethod
    async def fetch_by_user(self, user_id: str) -> list[Transaction]:
        """Fetch every mirrored transaction of a user."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "NotFoundError",
    "RemoteTransactionStore",
    "RemoteUnavailableError",
    "StorageError",
    "TransactionRepository",
]
