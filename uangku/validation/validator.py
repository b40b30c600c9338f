"""
Two-Stage Transaction Validation

STAGE 1 - SCHEMA VALIDATION (`build`):
- Type checking, required fields, positive amount, ISO date
- Done by the pydantic `Transaction` model itself
- Failure is reported as VALIDATION_FAILED with one issue per error

STAGE 2 - SEMANTIC VALIDATION (`check`):
- Future date beyond the configured tolerance
- Unusually old date
- Amount above the configured sanity ceiling
- These are warnings: the transaction is well-formed, but suspicious

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import date as date_type, timedelta
from decimal import Decimal
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from uangku.config import AppSettings, get_settings
from uangku.models.result import OperationResult, ValidationFailedError
from uangku.models.transaction import (
    Transaction,
    TransactionKind,
    new_transaction_id,
)
from uangku.models.validation import ValidationIssue, ValidationResult


logger = structlog.get_logger(__name__)


def issues_from_error(error: ValidationError) -> list[ValidationIssue]:
    """Flatten a pydantic ValidationError into validation issues."""
    issues = []
    for err in error.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "transaction"
        issues.append(ValidationIssue(
            field=location,
            issue_type=err.get("type", "invalid_value"),
            message=err.get("msg", "Invalid value"),
            severity="error",
        ))
    return issues


class TransactionValidator:
    """
    Builds transactions from raw fields and flags suspicious ones.

    Stage 1 returns an `OperationResult` so callers never have to catch
    pydantic errors. Stage 2 returns a `ValidationResult`.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def build(
        self,
        kind: Any,
        description: Optional[str] = None,
        amount: Any = None,
        date: Optional[str] = None,
        category_id: Optional[str] = None,
        user_id: Optional[str] = None,
        source: str = "Unknown",
        payment_method: str = "Cash",
        transaction_id: Optional[str] = None,
    ) -> OperationResult:
        """
        Stage 1: build a validated transaction.

        Returns ok(Transaction) or a VALIDATION_FAILED result whose error
        carries the list of issues.
        """
        try:
            kind = TransactionKind(kind)
        except ValueError:
            issue = ValidationIssue(
                field="kind",
                issue_type="invalid_value",
                message=f"Unknown transaction kind: {kind!r}",
                severity="error",
                suggested_fix="Use 'income' or 'expense'",
            )
            return OperationResult.fail(
                ValidationFailedError(issue.message, issues=[issue])
            )

        if kind is TransactionKind.INCOME:
            details = {"kind": "income", "source": source}
        else:
            details = {"kind": "expense", "payment_method": payment_method}

        payload = {
            "id": transaction_id or new_transaction_id(),
            "description": description,
            "amount": amount,
            "date": date,
            "category_id": category_id,
            "user_id": user_id,
            "details": details,
        }
        payload = {key: value for key, value in payload.items() if value is not None}

        try:
            transaction = Transaction.model_validate(payload)
        except ValidationError as e:
            issues = issues_from_error(e)
            message = "; ".join(f"{issue.field}: {issue.message}" for issue in issues)
            logger.info("transaction_rejected", kind=kind.value, issues=len(issues))
            return OperationResult.fail(
                ValidationFailedError(f"Invalid transaction: {message}", issues=issues)
            )

        return OperationResult.ok(transaction)

    def check(self, transaction: Transaction) -> ValidationResult:
        """Stage 2: semantic checks on a well-formed transaction."""
        issues = []
        today = date_type.today()
        tx_date = transaction.transaction_date

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if tx_date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({tx_date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        min_reasonable_date = today - timedelta(days=365 * 2)
        if tx_date < min_reasonable_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Transaction date ({tx_date}) seems unusually old",
                severity="info",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if transaction.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({transaction.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return ValidationResult(
            transaction_id=transaction.id,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )
