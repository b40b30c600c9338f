"""Transaction validation package."""

from uangku.validation.validator import TransactionValidator, issues_from_error

__all__ = ["TransactionValidator", "issues_from_error"]
