"""
Storage Services Package

Provides the repository contract, the authoritative local store, the
layered local+remote repository, and the remote mirror backends.
"""

from uangku.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RemoteTransactionStore,
    RemoteUnavailableError,
    StorageError,
    TransactionRepository,
)
from uangku.services.storage.local import (
    LocalTransactionRepository,
    LocalTransactionStore,
)
from uangku.services.storage.layered import LayeredTransactionRepository
from uangku.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRemoteStore,
)
from uangku.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RemoteTransactionStore",
    "TransactionRepository",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "RemoteUnavailableError",
    "StorageError",
    # Local and layered
    "LayeredTransactionRepository",
    "LocalTransactionRepository",
    "LocalTransactionStore",
    # In-memory backends
    "InMemoryAuditStorage",
    "InMemoryRemoteStore",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
]
