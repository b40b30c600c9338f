"""Undoable ledger commands and the command history."""

from uangku.commands.commands import (
    AddTransactionCommand,
    BatchCommand,
    Command,
    DeleteTransactionCommand,
    UpdateTransactionCommand,
)
from uangku.commands.history import DEFAULT_HISTORY_LIMIT, CommandHistory

__all__ = [
    "AddTransactionCommand",
    "BatchCommand",
    "Command",
    "CommandHistory",
    "DEFAULT_HISTORY_LIMIT",
    "DeleteTransactionCommand",
    "UpdateTransactionCommand",
]
