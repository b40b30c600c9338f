"""Services package."""

from uangku.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryAuditStorage,
    InMemoryRemoteStore,
    LayeredTransactionRepository,
    LocalTransactionRepository,
    LocalTransactionStore,
    NotFoundError,
    RemoteTransactionStore,
    RemoteUnavailableError,
    StorageError,
    TransactionRepository,
)

__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "InMemoryAuditStorage",
    "InMemoryRemoteStore",
    "LayeredTransactionRepository",
    "LocalTransactionRepository",
    "LocalTransactionStore",
    "NotFoundError",
    "RemoteTransactionStore",
    "RemoteUnavailableError",
    "StorageError",
    "TransactionRepository",
]
