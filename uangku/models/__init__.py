"""
Data Models Package

This package contains all Pydantic models used in the UangKu ledger.
All data flowing through the system must conform to these schemas.
"""

from uangku.models.transaction import (
    ExpenseDetails,
    IncomeDetails,
    Transaction,
    TransactionFactory,
    TransactionKind,
    new_transaction_id,
)
from uangku.models.budget import (
    Budget,
    BudgetStatus,
    BudgetTier,
)
from uangku.models.result import (
    DuplicateError,
    ErrorKind,
    LedgerError,
    NoHistoryError,
    NotFoundError,
    OperationResult,
    RemoteUnavailableError,
    StorageError,
    ValidationFailedError,
)
from uangku.models.report import (
    Report,
    ReportType,
)
from uangku.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from uangku.models.validation import (
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Transaction models
    "ExpenseDetails",
    "IncomeDetails",
    "Transaction",
    "TransactionFactory",
    "TransactionKind",
    "new_transaction_id",
    # Budget models
    "Budget",
    "BudgetStatus",
    "BudgetTier",
    # Results and errors
    "DuplicateError",
    "ErrorKind",
    "LedgerError",
    "NoHistoryError",
    "NotFoundError",
    "OperationResult",
    "RemoteUnavailableError",
    "StorageError",
    "ValidationFailedError",
    # Reports
    "Report",
    "ReportType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
