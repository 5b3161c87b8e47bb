"""Analytics package: pure metrics over the in-memory collections, plus the quick calculator."""

from financeflow.analytics.aggregator import (
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
from financeflow.analytics.calculator import Calculator, format_number

__all__ = [
    "Calculator",
    "allocate_divisions",
    "compute_dashboard",
    "compute_monthly_series",
    "compute_spreadsheet_totals",
    "filter_by_type",
    "format_number",
    "is_overdue",
    "parse_number",
    "recent_activity",
    "total_percentage",
]
