"""
Core Finance Models

Transactions and capital divisions are the two top-level entity families
a user owns. Both are scoped to a user at the storage boundary only; the
in-memory models never carry a user id.

DESIGN DECISION: Amounts are floats, not Decimals. Dashboard totals are
plain floating-point sums and balance must equal income minus expenses
exactly, which only holds if every layer sums the same float values.
"""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from financeflow.models.base import FinanceModel


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class TransactionStatus(str, Enum):
    """Payment status. Only meaningful for expenses."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(FinanceModel):
    """
    A transaction as entered by the user, before it has an identifier.

    due_date and status are expense-only fields.
    """

    type: TransactionType
    amount: float = Field(
        ...,
        ge=0,
        description="Non-negative amount; direction comes from type"
    )
    description: str = Field(default="", max_length=500)
    category: str = Field(default="", max_length=100)
    date: dt.date = Field(
        ...,
        description="Calendar date the transaction happened"
    )
    is_recurring: bool = False
    due_date: Optional[dt.date] = None
    status: Optional[TransactionStatus] = None

    @model_validator(mode='after')
    def validate_expense_only_fields(self) -> 'TransactionDraft':
        """Due dates and payment status only apply to expenses."""
        if self.type == TransactionType.INCOME:
            if self.due_date is not None or self.status is not None:
                raise ValueError("Due date and status only apply to expenses")
        return self


class Transaction(TransactionDraft):
    """A stored transaction. Replaced whole, never deleted."""

    id: str = Field(..., min_length=1)

    @classmethod
    def from_draft(cls, draft: TransactionDraft, transaction_id: str) -> 'Transaction':
        return cls(id=transaction_id, **draft.model_dump())

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME


# =============================================================================
# CAPITAL DIVISIONS
# =============================================================================

class CapitalDivision(FinanceModel):
    """
    A named percentage bucket describing how income should be allocated.

    `amount` is derived for display (total income x percentage / 100).
    It is never authoritative and is not written to the remote store.
    Percentages are not required to sum to 100 across the set.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(default="", max_length=100)
    percentage: float = Field(
        ...,
        ge=0,
        le=100,
        description="Share of income, 0-100"
    )
    color: str = Field(default="#10B981", max_length=32)
    amount: float = Field(
        default=0.0,
        description="Derived display amount"
    )


def default_divisions() -> list[CapitalDivision]:
    """The starter set seeded when a signed-out user has no divisions."""
    return [
        CapitalDivision(id="1", name="Essential Expenses", percentage=50, color="#10B981"),
        CapitalDivision(id="2", name="Savings", percentage=20, color="#3B82F6"),
        CapitalDivision(id="3", name="Investments", percentage=20, color="#8B5CF6"),
        CapitalDivision(id="4", name="Leisure", percentage=10, color="#F59E0B"),
    ]


# =============================================================================
# DERIVED METRICS
# =============================================================================

class SpreadsheetTotals(BaseModel):
    """Lifetime totals across all spreadsheets."""

    total_income: float = 0.0
    total_expenses: float = 0.0
    total_investment_returns: float = 0.0


class DashboardData(BaseModel):
    """Headline numbers for the dashboard."""

    total_income: float = 0.0
    total_expenses: float = 0.0
    balance: float = 0.0
    pending_bills: float = 0.0
    overdue_count: int = Field(default=0, ge=0)


class MonthlySummary(BaseModel):
    """Income and expenses for one calendar month."""

    month: str = Field(..., description="Short month label, e.g. 'Oct'")
    month_number: int = Field(..., ge=1, le=12)
    year: int
    income: float = 0.0
    expenses: float = 0.0
    balance: float = 0.0
