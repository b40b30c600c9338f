"""
Command History (undo/redo engine)

A bounded, linear, truncate-on-branch log of executed commands.

STATE:
- `_commands`: ordered commands
- `_position`: index of the last applied command

GUARANTEES:
- -1 <= position < len(commands)
- commands at index <= position are applied, above it are redo-able
- len(commands) <= max_size; the oldest entry is evicted first

A history is owned by one session. Concurrent execute/undo/redo calls
against the same history are not supported; callers serialize access.
"""

from typing import Optional

import structlog

from uangku.commands.commands import Command
from uangku.models.result import NoHistoryError, OperationResult
from uangku.notifications.bus import NotificationBus


logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class CommandHistory:
    """
    Executes commands and keeps them for undo/redo.

    If a `NotificationBus` is given, the snapshot changes of every
    successful execute/undo/redo are published to it.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_HISTORY_LIMIT,
        bus: Optional[NotificationBus] = None,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._bus = bus
        self._commands: list[Command] = []
        self._position = -1

    @property
    def position(self) -> int:
        return self._position

    @property
    def max_size(self) -> int:
        return self._max_size

    async def execute(self, command: Command) -> OperationResult:
        """
        Apply a command and record it.

        On failure the result is returned unchanged and the history is
        left untouched. On success any redo branch is discarded.
        """
        result = await command.apply()
        if not result.success:
            logger.info(
                "command_failed",
                command=command.description,
                error_kind=result.error_kind.value,
            )
            return result

        if self._position < len(self._commands) - 1:
            discarded = len(self._commands) - self._position - 1
            del self._commands[self._position + 1:]
            logger.debug("redo_branch_discarded", discarded=discarded)

        self._commands.append(command)
        self._position += 1

        if len(self._commands) > self._max_size:
            evicted = self._commands.pop(0)
            self._position = max(self._position - 1, -1)
            logger.debug("history_evicted", command=evicted.description)

        logger.info(
            "command_executed",
            command=command.description,
            position=self._position,
            size=len(self._commands),
        )
        self._publish(command, inverted=False)
        return result

    async def undo(self) -> OperationResult:
        """
        Invert the command at the cursor.

        Fails with NO_HISTORY when nothing is applied. If the inverse
        fails the cursor stays put and the failure is returned.
        """
        if not self.can_undo():
            return OperationResult.fail(NoHistoryError("No commands to undo"))

        command = self._commands[self._position]
        result = await command.invert()
        if not result.success:
            logger.warning(
                "undo_failed",
                command=command.description,
                error_kind=result.error_kind.value,
            )
            return result

        self._position -= 1
        logger.info("command_undone", command=command.description, position=self._position)
        self._publish(command, inverted=True)
        return result

    async def redo(self) -> OperationResult:
        """
        Re-apply the command just above the cursor.

        Fails with NO_HISTORY when nothing is redo-able. If the apply
        fails the cursor is rolled back and the failure is returned.
        """
        if not self.can_redo():
            return OperationResult.fail(NoHistoryError("No commands to redo"))

        self._position += 1
        command = self._commands[self._position]
        result = await command.apply()
        if not result.success:
            self._position -= 1
            logger.warning(
                "redo_failed",
                command=command.description,
                error_kind=result.error_kind.value,
            )
            return result

        logger.info("command_redone", command=command.description, position=self._position)
        self._publish(command, inverted=False)
        return result

    def can_undo(self) -> bool:
        return self._position >= 0

    def can_redo(self) -> bool:
        return self._position < len(self._commands) - 1

    def history_size(self) -> int:
        return len(self._commands)

    def clear_history(self) -> None:
        self._commands.clear()
        self._position = -1
        logger.info("history_cleared")

    def peek_undo(self) -> Optional[Command]:
        """The command `undo()` would invert, if any."""
        return self._commands[self._position] if self.can_undo() else None

    def peek_redo(self) -> Optional[Command]:
        """The command `redo()` would apply, if any."""
        return self._commands[self._position + 1] if self.can_redo() else None

    def _publish(self, command: Command, inverted: bool) -> None:
        if self._bus is not None:
            self._bus.apply_changes(command.changes(inverted=inverted))
