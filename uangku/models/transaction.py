"""
Transaction Model for UangKu Ledger

A transaction is one income or expense entry for a user.

DESIGN DECISION: Transactions are immutable (frozen Pydantic models).
"Editing" a transaction builds a new value with the same id that
replaces the old one in storage.

The income/expense distinction is a tagged variant: the shared fields
live once on `Transaction`, and the variant-specific data (income source
or payment method) lives in `details`, discriminated by `kind`.
"""

from datetime import date as date_type
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


class TransactionKind(str, Enum):
    """The two transaction variants."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# VARIANT DETAILS
# =============================================================================

class IncomeDetails(BaseModel):
    """Data only an income carries."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    kind: Literal["income"] = "income"
    source: str = Field(
        default="Unknown",
        min_length=1,
        max_length=200,
        description="Where the money came from (employer, client, ...)"
    )


class ExpenseDetails(BaseModel):
    """Data only an expense carries."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    kind: Literal["expense"] = "expense"
    payment_method: str = Field(
        default="Cash",
        min_length=1,
        max_length=100,
        description="How the expense was paid (cash, bank transfer, ...)"
    )


TransactionDetails = Annotated[
    Union[IncomeDetails, ExpenseDetails],
    Field(discriminator="kind"),
]


# =============================================================================
# TRANSACTION
# =============================================================================

def new_transaction_id() -> str:
    """Generate a fresh transaction id."""
    return str(uuid4())


class Transaction(BaseModel):
    """
    A single income or expense entry.

    Owned by whichever repository persisted it. The notification bus only
    holds a transient snapshot of these values.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_transaction_id,
        min_length=1,
        description="Unique transaction id"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="What the transaction was for"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount; the variant decides the sign"
    )
    date: str = Field(
        ...,
        description="ISO date (YYYY-MM-DD)"
    )
    category_id: str = Field(
        ...,
        min_length=1,
        description="Category this transaction is filed under"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the transaction"
    )
    details: TransactionDetails

    @field_validator('date')
    @classmethod
    def validate_iso_date(cls, v: str) -> str:
        """Dates must be extended-format YYYY-MM-DD so they compare as text."""
        v = v.strip()
        try:
            parsed = date_type.fromisoformat(v)
        except ValueError:
            parsed = None
        if parsed is None or parsed.isoformat() != v:
            raise ValueError(f"Date must be an ISO date (YYYY-MM-DD), got: {v!r}")
        return v

    @property
    def kind(self) -> TransactionKind:
        return TransactionKind(self.details.kind)

    @property
    def is_income(self) -> bool:
        return isinstance(self.details, IncomeDetails)

    @property
    def is_expense(self) -> bool:
        return isinstance(self.details, ExpenseDetails)

    @property
    def source(self) -> Optional[str]:
        """Income source, None for expenses."""
        if isinstance(self.details, IncomeDetails):
            return self.details.source
        return None

    @property
    def payment_method(self) -> Optional[str]:
        """Payment method, None for incomes."""
        if isinstance(self.details, ExpenseDetails):
            return self.details.payment_method
        return None

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affects the balance."""
        return self.amount if self.is_income else -self.amount

    @property
    def transaction_date(self) -> date_type:
        return date_type.fromisoformat(self.date)

    def replace(self, **changes: Any) -> "Transaction":
        """
        Build a new transaction with some fields changed.

        The result is fully re-validated. The id is kept unless
        explicitly passed.
        """
        data = self.model_dump()
        data.update(changes)
        return Transaction.model_validate(data)


# =============================================================================
# FACTORY
# =============================================================================

class TransactionFactory:
    """
    Helper to create transactions of either variant with a generated id.

    Usage:
        tx = TransactionFactory.create_income("Salary", 5_000_000, "2025-06-01", "SALARY", "u1", "Employer")
        tx = TransactionFactory.create(TransactionKind.EXPENSE, ..., payment_method="Card")

    Raises pydantic.ValidationError on malformed input; use
    `TransactionValidator.build()` for a result-returning variant.
    """

    @staticmethod
    def create_income(
        description: str,
        amount: Decimal,
        date: str,
        category_id: str,
        user_id: str,
        source: str = "Unknown",
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        return Transaction(
            id=transaction_id or new_transaction_id(),
            description=description,
            amount=amount,
            date=date,
            category_id=category_id,
            user_id=user_id,
            details=IncomeDetails(source=source),
        )

    @staticmethod
    def create_expense(
        description: str,
        amount: Decimal,
        date: str,
        category_id: str,
        user_id: str,
        payment_method: str = "Cash",
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        return Transaction(
            id=transaction_id or new_transaction_id(),
            description=description,
            amount=amount,
            date=date,
            category_id=category_id,
            user_id=user_id,
            details=ExpenseDetails(payment_method=payment_method),
        )

    @staticmethod
    def create(
        kind: TransactionKind,
        description: str,
        amount: Decimal,
        date: str,
        category_id: str,
        user_id: str,
        source: str = "Unknown",
        payment_method: str = "Cash",
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        if TransactionKind(kind) is TransactionKind.INCOME:
            return TransactionFactory.create_income(
                description, amount, date, category_id, user_id,
                source=source, transaction_id=transaction_id,
            )
        return TransactionFactory.create_expense(
            description, amount, date, category_id, user_id,
            payment_method=payment_method, transaction_id=transaction_id,
        )
