"""
Tests for the financial data aggregator.

"now" is always passed explicitly so month windows are deterministic.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from financeflow.analytics import (
    allocate_divisions,
    compute_dashboard,
    compute_monthly_series,
    compute_spreadsheet_totals,
    filter_by_type,
    is_overdue,
    parse_number,
    recent_activity,
    total_percentage,
)
from financeflow.models import (
    CapitalDivision,
    Spreadsheet,
    SpreadsheetRow,
    SpreadsheetType,
    Transaction,
    TransactionStatus,
    TransactionType,
    default_columns,
    default_divisions,
)

NOW = datetime(2024, 3, 15, 12, 0)


def income(amount, on=date(2024, 3, 1), tid=None):
    return Transaction(id=tid or f"i-{amount}-{on}", type=TransactionType.INCOME, amount=amount, date=on)


def expense(amount, on=date(2024, 3, 1), status=None, due=None, tid=None):
    return Transaction(
        id=tid or f"e-{amount}-{on}",
        type=TransactionType.EXPENSE,
        amount=amount,
        date=on,
        status=status,
        due_date=due,
    )


def sheet(kind, rows, sid="s1"):
    return Spreadsheet(
        id=sid,
        name=kind.value,
        type=kind,
        columns=default_columns(kind),
        rows=[SpreadsheetRow(id=f"r{i}", values=values) for i, values in enumerate(rows)],
    )


class TestParseNumber:
    """Lenient numeric parsing of free-text cells."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("10", 10.0),
            ("  2.5", 2.5),
            ("12.5kg", 12.5),
            ("-3", -3.0),
            (".5", 0.5),
            ("1e3", 1000.0),
            ("abc", 0.0),
            ("", 0.0),
            (None, 0.0),
        ],
    )
    def test_parse_number(self, raw, expected):
        assert parse_number(raw) == expected


class TestSpreadsheetTotals:
    """Tests for compute_spreadsheet_totals."""

    def test_empty_collection_is_all_zero(self):
        totals = compute_spreadsheet_totals([])
        assert totals.total_income == 0
        assert totals.total_expenses == 0
        assert totals.total_investment_returns == 0

    def test_investment_row_return(self):
        """quantity 10 x avgPrice 5 x yield 10% = 5."""
        totals = compute_spreadsheet_totals(
            [sheet(SpreadsheetType.INVESTMENTS, [{"quantity": "10", "avgPrice": "5", "yield": "10"}])]
        )
        assert totals.total_investment_returns == pytest.approx(5.0)

    def test_non_numeric_investment_row_contributes_zero(self):
        totals = compute_spreadsheet_totals(
            [
                sheet(
                    SpreadsheetType.INVESTMENTS,
                    [
                        {"quantity": "abc", "avgPrice": "5", "yield": "10"},
                        {"quantity": "10", "avgPrice": "5", "yield": "10"},
                    ],
                )
            ]
        )
        assert totals.total_investment_returns == pytest.approx(5.0)

    def test_income_and_expense_amounts(self):
        totals = compute_spreadsheet_totals(
            [
                sheet(SpreadsheetType.INCOME, [{"amount": "100"}, {"amount": "50.5"}, {}], sid="a"),
                sheet(SpreadsheetType.EXPENSES, [{"amount": "30"}, {"amount": "n/a"}], sid="b"),
            ]
        )
        assert totals.total_income == pytest.approx(150.5)
        assert totals.total_expenses == pytest.approx(30.0)
        assert totals.total_investment_returns == 0


class TestDashboard:
    """Tests for compute_dashboard."""

    def test_basic_scenario(self):
        transactions = [
            income(1000),
            expense(300, status=TransactionStatus.PENDING),
        ]
        data = compute_dashboard(transactions, [], now=NOW)
        assert data.total_income == 1000
        assert data.total_expenses == 300
        assert data.balance == 700
        assert data.pending_bills == 300
        assert data.overdue_count == 0

    def test_empty_inputs(self):
        data = compute_dashboard([], [], now=NOW)
        assert data.model_dump() == {
            "total_income": 0.0,
            "total_expenses": 0.0,
            "balance": 0.0,
            "pending_bills": 0.0,
            "overdue_count": 0,
        }

    def test_balance_is_exact_difference(self):
        transactions = [income(0.1), income(0.2), expense(0.3), expense(1e-9), income(1234.567)]
        data = compute_dashboard(transactions, [], now=NOW)
        assert data.balance == data.total_income - data.total_expenses

    def test_only_current_month_transactions_count(self):
        transactions = [
            income(1000, on=date(2024, 3, 31)),
            income(500, on=date(2024, 2, 29)),
            income(700, on=date(2023, 3, 15)),
            expense(200, on=date(2024, 2, 1)),
        ]
        data = compute_dashboard(transactions, [], now=NOW)
        assert data.total_income == 1000
        assert data.total_expenses == 0

    def test_pending_bills_are_all_time(self):
        transactions = [
            expense(100, on=date(2023, 1, 1), status=TransactionStatus.PENDING),
            expense(50, status=TransactionStatus.PENDING),
            expense(25, status=TransactionStatus.PAID),
        ]
        data = compute_dashboard(transactions, [], now=NOW)
        assert data.pending_bills == 150

    def test_overdue_yesterday_pending(self):
        yesterday = (NOW - timedelta(days=1)).date()
        pending = expense(80, due=yesterday, status=TransactionStatus.PENDING)
        assert compute_dashboard([pending], [], now=NOW).overdue_count == 1

        paid = pending.model_copy(update={"status": TransactionStatus.PAID})
        assert compute_dashboard([paid], [], now=NOW).overdue_count == 0

    def test_overdue_excludes_missing_due_date_and_income(self):
        transactions = [
            expense(10, status=TransactionStatus.PENDING),
            income(10),
        ]
        assert compute_dashboard(transactions, [], now=NOW).overdue_count == 0

    def test_due_date_is_taken_at_utc_midnight(self):
        due_today = expense(10, due=NOW.date(), status=TransactionStatus.PENDING)
        utc_midnight = datetime.combine(NOW.date(), datetime.min.time(), tzinfo=timezone.utc)
        assert not is_overdue(due_today, utc_midnight)
        assert is_overdue(due_today, utc_midnight + timedelta(seconds=1))

        # 01:00 on the due date at UTC+5 is still the previous day in UTC
        east = timezone(timedelta(hours=5))
        due_day_in_east = datetime.combine(NOW.date(), datetime.min.time(), tzinfo=east)
        assert not is_overdue(due_today, due_day_in_east + timedelta(hours=1))
        # 22:00 the day before at UTC-5 is already past UTC midnight
        west = timezone(timedelta(hours=-5))
        day_before = datetime.combine(NOW.date() - timedelta(days=1), datetime.min.time(), tzinfo=west)
        assert is_overdue(due_today, day_before + timedelta(hours=22))

    def test_dashboard_overdue_uses_aware_now(self):
        due_today = expense(10, due=NOW.date(), status=TransactionStatus.PENDING)
        east = timezone(timedelta(hours=5))
        early = datetime.combine(NOW.date(), datetime.min.time(), tzinfo=east) + timedelta(hours=1)
        assert compute_dashboard([due_today], [], now=early).overdue_count == 0

    def test_aware_now_is_accepted(self):
        aware = NOW.replace(tzinfo=timezone.utc)
        data = compute_dashboard([income(10)], [], now=aware)
        assert data.total_income == 10

    def test_spreadsheets_are_lifetime_and_returns_count_as_income(self):
        spreadsheets = [
            sheet(SpreadsheetType.INCOME, [{"amount": "200"}], sid="a"),
            sheet(SpreadsheetType.EXPENSES, [{"amount": "40"}], sid="b"),
            sheet(SpreadsheetType.INVESTMENTS, [{"quantity": "10", "avgPrice": "5", "yield": "10"}], sid="c"),
        ]
        data = compute_dashboard([income(100), expense(10)], spreadsheets, now=NOW)
        assert data.total_income == pytest.approx(305.0)
        assert data.total_expenses == pytest.approx(50.0)
        assert data.balance == data.total_income - data.total_expenses


class TestMonthlySeries:
    """Tests for compute_monthly_series."""

    def test_six_entries_ending_with_current_month(self):
        series = compute_monthly_series([], 6, now=NOW)
        assert len(series) == 6
        assert [(m.year, m.month_number) for m in series] == [
            (2023, 10), (2023, 11), (2023, 12), (2024, 1), (2024, 2), (2024, 3),
        ]
        assert series[-1].month == "Mar"

    def test_crosses_year_boundary_from_january(self):
        series = compute_monthly_series([], 3, now=datetime(2024, 1, 5))
        assert [(m.year, m.month_number) for m in series] == [(2023, 11), (2023, 12), (2024, 1)]

    def test_sums_by_exact_month_and_year(self):
        transactions = [
            income(100, on=date(2024, 2, 10)),
            expense(40, on=date(2024, 2, 20)),
            income(999, on=date(2023, 2, 10)),
        ]
        february = compute_monthly_series(transactions, 6, now=NOW)[-2]
        assert february.income == 100
        assert february.expenses == 40
        assert february.balance == 60


class TestActivityAndDivisions:
    """Recent activity, type filters and division allocation."""

    def test_recent_activity_is_stable_descending(self):
        a = income(1, on=date(2024, 3, 1), tid="a")
        b = income(2, on=date(2024, 3, 5), tid="b")
        c = expense(3, on=date(2024, 3, 1), tid="c")
        d = expense(4, on=date(2024, 3, 5), tid="d")
        assert [t.id for t in recent_activity([a, b, c, d])] == ["b", "d", "a", "c"]

    def test_recent_activity_limit(self):
        transactions = [income(i, on=date(2024, 1, i + 1)) for i in range(10)]
        assert len(recent_activity(transactions, limit=5)) == 5

    def test_filter_by_type(self):
        transactions = [income(1), expense(2), income(3)]
        assert [t.amount for t in filter_by_type(transactions, TransactionType.INCOME)] == [1, 3]
        assert [t.amount for t in filter_by_type(transactions, "expense")] == [2]

    def test_allocate_divisions(self):
        allocated = allocate_divisions(default_divisions(), 2000)
        assert [d.amount for d in allocated] == [1000, 400, 400, 200]
        assert all(d.amount == 0 for d in default_divisions())

    def test_allocation_never_negative(self):
        allocated = allocate_divisions([CapitalDivision(id="1", percentage=50)], -100)
        assert allocated[0].amount == 0

    def test_total_percentage_is_not_enforced(self):
        divisions = [CapitalDivision(id="1", percentage=70), CapitalDivision(id="2", percentage=50)]
        assert total_percentage(divisions) == 120


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
