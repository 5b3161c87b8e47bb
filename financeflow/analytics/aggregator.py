"""
Financial Data Aggregator

DESIGN DECISION: Every metric is a pure function of the collections
passed in. Nothing here reads storage or mutates its inputs, and "now"
is a parameter so month boundaries can be tested.

Two windows coexist on the dashboard, deliberately left as found:
- transaction income/expenses are for the current calendar month
- spreadsheet totals are lifetime totals
Pending bills and the overdue count also look at all transactions.

Spreadsheet cells are free text. Numbers are read the way a lenient
leading-number parse reads them: "12.5kg" is 12.5, "abc" is 0. A bad
cell never raises.
"""

import calendar
import re
from datetime import datetime, time, timezone
from typing import Iterable, Optional, Sequence

from financeflow.models import (
    CapitalDivision,
    DashboardData,
    MonthlySummary,
    Spreadsheet,
    SpreadsheetRow,
    SpreadsheetTotals,
    SpreadsheetType,
    Transaction,
    TransactionStatus,
    TransactionType,
)

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

# Row keys used by the default spreadsheet schemas
AMOUNT_KEY = "amount"
QUANTITY_KEY = "quantity"
AVG_PRICE_KEY = "avgPrice"
YIELD_KEY = "yield"


def parse_number(value: Optional[str]) -> float:
    """Leading numeric prefix of a cell, or 0.0 if there is none."""
    if not value:
        return 0.0
    match = _LEADING_NUMBER.match(value)
    if not match:
        return 0.0
    try:
        return float(match.group(1))
    except (ValueError, OverflowError):
        return 0.0


def _naive(now: Optional[datetime]) -> datetime:
    now = now or datetime.now()
    return now.replace(tzinfo=None) if now.tzinfo else now


def _investment_return(row: SpreadsheetRow) -> float:
    quantity = parse_number(row.get(QUANTITY_KEY))
    avg_price = parse_number(row.get(AVG_PRICE_KEY))
    yield_percent = parse_number(row.get(YIELD_KEY))
    return quantity * avg_price * yield_percent / 100


def compute_spreadsheet_totals(spreadsheets: Iterable[Spreadsheet]) -> SpreadsheetTotals:
    """
    Lifetime totals across all spreadsheets.

    income/expenses spreadsheets contribute their rows' amount;
    investments spreadsheets contribute quantity x avgPrice x yield / 100
    per row.
    """
    totals = SpreadsheetTotals()
    for spreadsheet in spreadsheets:
        if spreadsheet.type == SpreadsheetType.INCOME:
            totals.total_income += sum(parse_number(row.get(AMOUNT_KEY)) for row in spreadsheet.rows)
        elif spreadsheet.type == SpreadsheetType.EXPENSES:
            totals.total_expenses += sum(parse_number(row.get(AMOUNT_KEY)) for row in spreadsheet.rows)
        elif spreadsheet.type == SpreadsheetType.INVESTMENTS:
            totals.total_investment_returns += sum(_investment_return(row) for row in spreadsheet.rows)
    return totals


def filter_by_type(transactions: Iterable[Transaction], kind: TransactionType) -> list[Transaction]:
    return [t for t in transactions if t.type == TransactionType(kind)]


def _sum_amounts(transactions: Iterable[Transaction], kind: TransactionType) -> float:
    return sum((t.amount for t in transactions if t.type == kind), 0.0)


def _aware(now: Optional[datetime]) -> datetime:
    """now as an aware datetime; a naive one is read as local time."""
    now = now or datetime.now(timezone.utc)
    return now if now.tzinfo else now.astimezone()


def is_overdue(transaction: Transaction, now: Optional[datetime] = None) -> bool:
    """Unpaid expense whose due date, taken at UTC midnight, is before now."""
    if transaction.type != TransactionType.EXPENSE or transaction.due_date is None:
        return False
    due = datetime.combine(transaction.due_date, time.min, tzinfo=timezone.utc)
    return due < _aware(now) and transaction.status != TransactionStatus.PAID


def compute_dashboard(
    transactions: Sequence[Transaction],
    spreadsheets: Sequence[Spreadsheet],
    now: Optional[datetime] = None,
) -> DashboardData:
    """Headline dashboard numbers."""
    moment = _aware(now)
    now = _naive(now)
    spreadsheet_totals = compute_spreadsheet_totals(spreadsheets)

    monthly = [
        t for t in transactions
        if t.date.year == now.year and t.date.month == now.month
    ]

    total_income = (
        _sum_amounts(monthly, TransactionType.INCOME)
        + spreadsheet_totals.total_income
        + spreadsheet_totals.total_investment_returns
    )
    total_expenses = _sum_amounts(monthly, TransactionType.EXPENSE) + spreadsheet_totals.total_expenses

    pending_bills = sum(
        (
            t.amount for t in transactions
            if t.type == TransactionType.EXPENSE and t.status == TransactionStatus.PENDING
        ),
        0.0,
    )
    overdue_count = sum(1 for t in transactions if is_overdue(t, moment))

    return DashboardData(
        total_income=total_income,
        total_expenses=total_expenses,
        balance=total_income - total_expenses,
        pending_bills=pending_bills,
        overdue_count=overdue_count,
    )


def compute_monthly_series(
    transactions: Sequence[Transaction],
    months_back: int = 6,
    now: Optional[datetime] = None,
) -> list[MonthlySummary]:
    """
    Income/expenses for the trailing `months_back` months, oldest first,
    ending with the current month.
    """
    now = _naive(now)
    current = now.year * 12 + (now.month - 1)
    series = []
    for offset in range(months_back - 1, -1, -1):
        year, month_index = divmod(current - offset, 12)
        month = month_index + 1
        in_month = [t for t in transactions if t.date.year == year and t.date.month == month]
        income = _sum_amounts(in_month, TransactionType.INCOME)
        expenses = _sum_amounts(in_month, TransactionType.EXPENSE)
        series.append(
            MonthlySummary(
                month=calendar.month_abbr[month],
                month_number=month,
                year=year,
                income=income,
                expenses=expenses,
                balance=income - expenses,
            )
        )
    return series


def recent_activity(transactions: Sequence[Transaction], limit: int = 5) -> list[Transaction]:
    """Newest first by date; equal dates keep their collection order."""
    return sorted(transactions, key=lambda t: t.date, reverse=True)[:limit]


def allocate_divisions(
    divisions: Iterable[CapitalDivision],
    total_income: float,
) -> list[CapitalDivision]:
    """Copies of the divisions with their display amount filled in."""
    return [
        d.model_copy(update={"amount": max(0.0, total_income * d.percentage / 100)})
        for d in divisions
    ]


def total_percentage(divisions: Iterable[CapitalDivision]) -> float:
    """Sum of percentages. Not enforced to be 100; the UI only warns."""
    return sum((d.percentage for d in divisions), 0.0)
