"""
Layered Repository: authoritative local store + best-effort remote mirror

WRITE PATH:
1. Write to local. A local failure is returned to the caller as-is.
2. On local success, mirror the write to the remote. A remote failure
   (including a timeout) is logged and swallowed. There is no retry queue
   and no reconciliation: local is the source of truth.

READ PATH:
1. Ask the remote, bounded by `remote_timeout`.
2. On any remote failure, fall back to local.
3. Single-id lookups (`get`) always read local. They feed undo payloads,
   which must reflect what the source of truth holds.

TRADEOFFS:
- Reads and writes are not guaranteed consistent with each other while
  the remote is flaky: a write whose mirror failed is missing from remote
  reads until it is written again.
- A crash between the local commit and the remote mirror leaves the
  remote stale.
- Deletion mirroring is a configuration choice (`mirror_deletes`). With
  it disabled, deleted transactions linger in the remote and will show up
  again on remote reads.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

import structlog

from uangku.models.result import OperationResult
from uangku.models.transaction import Transaction
from uangku.services.storage.interface import (
    RemoteTransactionStore,
    TransactionRepository,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_REMOTE_TIMEOUT = 5.0


class LayeredTransactionRepository(TransactionRepository):
    """
    Repository composing a local repository with a remote mirror.

    Never surfaces a remote failure to the caller.
    """

    def __init__(
        self,
        local: TransactionRepository,
        remote: RemoteTransactionStore,
        remote_timeout: Optional[float] = DEFAULT_REMOTE_TIMEOUT,
        mirror_deletes: bool = True,
    ):
        """
        Args:
            local: Authoritative repository.
            remote: Best-effort mirror.
            remote_timeout: Seconds before a remote call is abandoned.
                            None disables the bound.
            mirror_deletes: Whether deletions are propagated to the remote.
        """
        self._local = local
        self._remote = remote
        self._remote_timeout = remote_timeout
        self._mirror_deletes = mirror_deletes

    @property
    def local(self) -> TransactionRepository:
        return self._local

    @property
    def remote(self) -> RemoteTransactionStore:
        return self._remote

    async def _call_remote(self, awaitable: Awaitable[T]) -> T:
        if self._remote_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self._remote_timeout)

    async def _mirror(self, operation: str, awaitable: Awaitable[None], transaction_id: str) -> None:
        """Run a remote write, swallowing and logging any failure."""
        try:
            await self._call_remote(awaitable)
        except asyncio.TimeoutError:
            logger.warning(
                "remote_mirror_failed",
                operation=operation,
                transaction_id=transaction_id,
                error=f"timed out after {self._remote_timeout}s",
            )
        except Exception as e:
            logger.warning(
                "remote_mirror_failed",
                operation=operation,
                transaction_id=transaction_id,
                error=str(e),
            )

    async def save(self, transaction: Transaction) -> OperationResult:
        local_result = await self._local.save(transaction)
        if local_result.success:
            await self._mirror("save", self._remote.push(transaction), transaction.id)
        return local_result

    async def update(self, transaction_id: str, transaction: Transaction) -> OperationResult:
        local_result = await self._local.update(transaction_id, transaction)
        if local_result.success:
            if transaction.id != transaction_id:
                await self._mirror("update", self._remote.remove(transaction_id), transaction_id)
            await self._mirror("update", self._remote.push(transaction), transaction.id)
        return local_result

    async def delete(self, transaction_id: str) -> OperationResult:
        local_result = await self._local.delete(transaction_id)
        if local_result.success:
            if self._mirror_deletes:
                await self._mirror("delete", self._remote.remove(transaction_id), transaction_id)
            else:
                logger.debug("remote_delete_skipped", transaction_id=transaction_id)
        return local_result

    async def get(self, transaction_id: str) -> OperationResult:
        return await self._local.get(transaction_id)

    async def get_by_user(self, user_id: str) -> OperationResult:
        try:
            transactions = await self._call_remote(self._remote.fetch_by_user(user_id))
            return OperationResult.ok(list(transactions))
        except asyncio.TimeoutError:
            logger.warning(
                "remote_read_failed",
                user_id=user_id,
                error=f"timed out after {self._remote_timeout}s",
            )
        except Exception as e:
            logger.warning("remote_read_failed", user_id=user_id, error=str(e))

        return await self._local.get_by_user(user_id)
