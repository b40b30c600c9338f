"""
Operation Results and Error Kinds

DESIGN DECISION: Every repository and command operation returns an
`OperationResult` carrying either a value or a typed `LedgerError`.
Exceptions are raised inside stores and converted at the repository /
command boundary; callers inspect the result instead of catching.

Error kinds:
- NOT_FOUND:          update/delete on an unknown id
- VALIDATION_FAILED:  malformed transaction payload
- NO_HISTORY:         undo/redo with nothing eligible
- STORAGE_FAILURE:    opaque local failure, fatal to the call
- REMOTE_UNAVAILABLE: remote mirror unreachable (never surfaced by the
                      layered repository; it falls back or swallows)
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class ErrorKind(str, Enum):
    """Typed failure categories."""
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    NO_HISTORY = "no_history"
    STORAGE_FAILURE = "storage_failure"
    REMOTE_UNAVAILABLE = "remote_unavailable"


# =============================================================================
# EXCEPTIONS
# =============================================================================

class LedgerError(Exception):
    """Base exception for ledger operations."""
    kind: ErrorKind = ErrorKind.STORAGE_FAILURE


class StorageError(LedgerError):
    """Local storage failed."""
    kind = ErrorKind.STORAGE_FAILURE


class NotFoundError(StorageError):
    """Entity not found in storage."""
    kind = ErrorKind.NOT_FOUND


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class RemoteUnavailableError(LedgerError):
    """Could not reach the remote mirror."""
    kind = ErrorKind.REMOTE_UNAVAILABLE


class NoHistoryError(LedgerError):
    """Nothing to undo or redo."""
    kind = ErrorKind.NO_HISTORY


class ValidationFailedError(LedgerError):
    """Transaction payload failed validation."""
    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, message: str, issues: Optional[list] = None):
        super().__init__(message)
        self.issues = issues or []


# =============================================================================
# RESULT
# =============================================================================

class OperationResult(BaseModel):
    """
    Success-with-value or typed failure.

    Usage:
        result = await repository.save(tx)
        if not result.success:
            log.warning("save_failed", kind=result.error_kind)
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    success: bool
    value: Any = None
    error: Optional[LedgerError] = None

    @model_validator(mode='after')
    def validate_shape(self) -> 'OperationResult':
        """A failure always carries an error, a success never does."""
        if self.success and self.error is not None:
            raise ValueError("Successful result cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("Failed result must carry an error")
        return self

    @classmethod
    def ok(cls, value: Any = True) -> "OperationResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: LedgerError) -> "OperationResult":
        return cls(success=False, error=error)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "OperationResult":
        """Convert any exception into a failure, unknown faults become STORAGE_FAILURE."""
        if isinstance(exc, LedgerError):
            return cls.fail(exc)
        error = StorageError(f"{type(exc).__name__}: {exc}")
        error.__cause__ = exc
        return cls.fail(error)

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None

    def unwrap(self) -> Any:
        """Return the value or raise the carried error."""
        if not self.success:
            raise self.error
        return self.value
