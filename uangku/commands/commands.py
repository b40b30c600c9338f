"""
Transaction Commands

Each command wraps one mutating intent together with its inverse:

    AddTransactionCommand     save(tx)            <-> delete(tx.id)
    UpdateTransactionCommand  update(id, new)     <-> update(id, old)
    DeleteTransactionCommand  delete(id)          <-> save(deleted)
    BatchCommand              apply all in order  <-> invert all in reverse

CONTRACT:
- `apply()` and `invert()` return an `OperationResult` and never raise.
  Any fault inside is converted to STORAGE_FAILURE at this boundary.
- Commands are never mutated after construction. Undo/redo replays the
  same command object.
- `changes()` describes what a successful apply (or invert) did to the
  transaction snapshot, for the notification bus.
"""

from abc import ABC, abstractmethod
from typing import Iterable

import structlog

from uangku.models.result import OperationResult
from uangku.models.transaction import Transaction
from uangku.notifications.bus import SnapshotChange
from uangku.services.storage.interface import TransactionRepository


logger = structlog.get_logger(__name__)


async def _run_safely(operation, *, command: "Command", action: str) -> OperationResult:
    """Await a command operation, converting a raised fault into a failure."""
    try:
        return await operation()
    except Exception as e:
        logger.exception("command_fault", command=command.description, action=action)
        return OperationResult.from_exception(e)


class Command(ABC):
    """Base class for undoable ledger operations."""

    def __init__(self, description: str):
        self._description = description

    @property
    def description(self) -> str:
        return self._description

    async def apply(self) -> OperationResult:
        """Perform the operation."""
        return await _run_safely(self._apply, command=self, action="apply")

    async def invert(self) -> OperationResult:
        """Compensate a successful `apply()`."""
        return await _run_safely(self._invert, command=self, action="invert")

    @abstractmethod
    async def _apply(self) -> OperationResult:
        pass

    @abstractmethod
    async def _invert(self) -> OperationResult:
        pass

    @abstractmethod
    def changes(self, inverted: bool = False) -> list[SnapshotChange]:
        """Snapshot changes made by a successful apply (or invert)."""
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__}: {self._description}>"


class AddTransactionCommand(Command):
    """Record a new transaction. Undo deletes it by id."""

    def __init__(self, repository: TransactionRepository, transaction: Transaction):
        super().__init__(f"Add transaction {transaction.id}")
        self._repository = repository
        self._transaction = transaction

    @property
    def transaction(self) -> Transaction:
        return self._transaction

    async def _apply(self) -> OperationResult:
        return await self._repository.save(self._transaction)

    async def _invert(self) -> OperationResult:
        return await self._repository.delete(self._transaction.id)

    def changes(self, inverted: bool = False) -> list[SnapshotChange]:
        if inverted:
            return [SnapshotChange.removed(self._transaction.id)]
        return [SnapshotChange.added(self._transaction)]


class UpdateTransactionCommand(Command):
    """
    Replace a transaction. Undo writes the old value back.

    Both directions go through `repository.update`, so both share the
    NOT_FOUND semantics of an update.
    """

    def __init__(
        self,
        repository: TransactionRepository,
        transaction_id: str,
        new_transaction: Transaction,
        old_transaction: Transaction,
    ):
        super().__init__(f"Update transaction {transaction_id}")
        self._repository = repository
        self._transaction_id = transaction_id
        self._new = new_transaction
        self._old = old_transaction

    @property
    def transaction_id(self) -> str:
        return self._transaction_id

    @property
    def new_transaction(self) -> Transaction:
        return self._new

    @property
    def old_transaction(self) -> Transaction:
        return self._old

    async def _apply(self) -> OperationResult:
        return await self._repository.update(self._transaction_id, self._new)

    async def _invert(self) -> OperationResult:
        return await self._repository.update(self._new.id, self._old)

    def changes(self, inverted: bool = False) -> list[SnapshotChange]:
        if inverted:
            return [SnapshotChange.updated(self._new.id, self._old)]
        return [SnapshotChange.updated(self._transaction_id, self._new)]


class DeleteTransactionCommand(Command):
    """Delete a transaction. Undo saves the deleted value again."""

    def __init__(self, repository: TransactionRepository, deleted_transaction: Transaction):
        super().__init__(f"Delete transaction {deleted_transaction.id}")
        self._repository = repository
        self._deleted = deleted_transaction

    @property
    def transaction(self) -> Transaction:
        return self._deleted

    async def _apply(self) -> OperationResult:
        return await self._repository.delete(self._deleted.id)

    async def _invert(self) -> OperationResult:
        return await self._repository.save(self._deleted)

    def changes(self, inverted: bool = False) -> list[SnapshotChange]:
        if inverted:
            return [SnapshotChange.added(self._deleted)]
        return [SnapshotChange.removed(self._deleted.id)]


class BatchCommand(Command):
    """
    Several commands recorded as a single history entry.

    apply: runs sub-commands in order. On the first failure, every
    sub-command already applied is inverted in reverse order and the
    triggering failure is returned. Rollback failures are logged, not
    compensated further.

    invert: inverts every sub-command in reverse order. If one inverse
    fails, the sub-commands already inverted are re-applied (best effort)
    and the failure is returned, so a failed undo leaves the batch applied.
    """

    def __init__(self, commands: Iterable[Command], description: str = ""):
        commands = tuple(commands)
        super().__init__(description or f"Batch of {len(commands)} operations")
        self._commands = commands

    @property
    def commands(self) -> tuple[Command, ...]:
        return self._commands

    def __len__(self) -> int:
        return len(self._commands)

    async def _apply(self) -> OperationResult:
        applied: list[Command] = []
        for command in self._commands:
            result = await _run_safely(command.apply, command=command, action="apply")
            if not result.success:
                logger.warning(
                    "batch_apply_failed",
                    batch=self.description,
                    failed_command=command.description,
                    applied=len(applied),
                    error=result.error_message,
                )
                await self._compensate(reversed(applied), action="invert")
                return result
            applied.append(command)
        return OperationResult.ok(len(applied))

    async def _invert(self) -> OperationResult:
        inverted: list[Command] = []
        for command in reversed(self._commands):
            result = await _run_safely(command.invert, command=command, action="invert")
            if not result.success:
                logger.warning(
                    "batch_invert_failed",
                    batch=self.description,
                    failed_command=command.description,
                    inverted=len(inverted),
                    error=result.error_message,
                )
                await self._compensate(reversed(inverted), action="apply")
                return result
            inverted.append(command)
        return OperationResult.ok(len(inverted))

    async def _compensate(self, commands: Iterable[Command], action: str) -> None:
        """Best-effort rollback; failures are logged and swallowed."""
        for command in commands:
            operation = command.invert if action == "invert" else command.apply
            result = await _run_safely(operation, command=command, action=action)
            if not result.success:
                logger.error(
                    "batch_rollback_failed",
                    batch=self.description,
                    command=command.description,
                    action=action,
                    error=result.error_message,
                )

    def changes(self, inverted: bool = False) -> list[SnapshotChange]:
        if inverted:
            return [
                change
                for command in reversed(self._commands)
                for change in command.changes(inverted=True)
            ]
        return [change for command in self._commands for change in command.changes()]
