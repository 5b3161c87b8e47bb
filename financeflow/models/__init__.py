"""
Data Models Package

This package contains all Pydantic models used in FinanceFlow.
All data flowing between storage, the sync controller and the UI
conforms to these schemas.
"""

from financeflow.models.finance import (
    CapitalDivision,
    DashboardData,
    MonthlySummary,
    SpreadsheetTotals,
    Transaction,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
    default_divisions,
)
from financeflow.models.spreadsheet import (
    ColumnType,
    RowSchemaError,
    Spreadsheet,
    SpreadsheetColumn,
    SpreadsheetRow,
    SpreadsheetType,
    default_columns,
    default_spreadsheet_name,
)
from financeflow.models.sync import SyncOutcome, SyncResult

__all__ = [
    # Finance models
    "CapitalDivision",
    "DashboardData",
    "MonthlySummary",
    "SpreadsheetTotals",
    "Transaction",
    "TransactionDraft",
    "TransactionStatus",
    "TransactionType",
    "default_divisions",
    # Spreadsheet models
    "ColumnType",
    "RowSchemaError",
    "Spreadsheet",
    "SpreadsheetColumn",
    "SpreadsheetRow",
    "SpreadsheetType",
    "default_columns",
    "default_spreadsheet_name",
    # Sync results
    "SyncOutcome",
    "SyncResult",
]
