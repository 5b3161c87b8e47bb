"""
Spreadsheet Models

A spreadsheet is a user-defined table: an ordered list of typed columns
and an unordered set of rows. Row values are always stored as text; the
declared column type only matters when a value is read (e.g. summed).

DESIGN DECISION: Rows loaded from storage may carry keys that no longer
match a column (the column was renamed or removed). Those are tolerated
and ignored on read. New writes are checked with `validate_row` so no
fresh orphans are created.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from financeflow.models.base import FinanceModel


class SpreadsheetType(str, Enum):
    """Thematic type. Picks the default column schema and how rows are totalled."""
    INVESTMENTS = "investments"
    INCOME = "income"
    EXPENSES = "expenses"


class ColumnType(str, Enum):
    """How a column's text values are interpreted."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"


class RowSchemaError(ValueError):
    """A row uses keys that are not columns of its spreadsheet."""

    def __init__(self, spreadsheet_id: str, unknown_keys: list[str]):
        self.spreadsheet_id = spreadsheet_id
        self.unknown_keys = unknown_keys
        super().__init__(
            f"Row keys not in spreadsheet {spreadsheet_id} columns: {', '.join(unknown_keys)}"
        )


class SpreadsheetColumn(FinanceModel):
    """One column definition. Position is the index in Spreadsheet.columns."""

    key: str = Field(..., min_length=1, max_length=64)
    label: str = Field(default="", max_length=100)
    type: ColumnType = ColumnType.TEXT
    options: Optional[list[str]] = None

    @model_validator(mode='after')
    def validate_options(self) -> 'SpreadsheetColumn':
        """Enumerated options only make sense for select columns."""
        if self.options and self.type != ColumnType.SELECT:
            raise ValueError(f"Column '{self.key}' has options but is not a select column")
        return self


class SpreadsheetRow(FinanceModel):
    """A row: identifier plus column key -> text value."""

    id: str = Field(..., min_length=1)
    values: dict[str, str] = Field(default_factory=dict)

    @field_validator('values', mode='before')
    @classmethod
    def stringify_values(cls, v: Any) -> Any:
        """Everything is stored as text; numbers typed into JSON become strings."""
        if not isinstance(v, dict):
            return v
        return {str(k): "" if val is None else str(val) for k, val in v.items()}

    def get(self, key: str, default: str = "") -> str:
        return self.values.get(key, default)


class Spreadsheet(FinanceModel):
    """A user table with an editable column schema."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., max_length=200)
    type: SpreadsheetType
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    columns: list[SpreadsheetColumn] = Field(default_factory=list)
    rows: list[SpreadsheetRow] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_unique_column_keys(self) -> 'Spreadsheet':
        seen = set()
        for column in self.columns:
            if column.key in seen:
                raise ValueError(f"Duplicate column key: {column.key}")
            seen.add(column.key)
        return self

    @property
    def column_keys(self) -> list[str]:
        return [column.key for column in self.columns]

    def validate_row(self, values: dict[str, str]) -> None:
        """Raise RowSchemaError if values use keys outside the column schema."""
        known = set(self.column_keys)
        unknown = sorted(key for key in values if key not in known)
        if unknown:
            raise RowSchemaError(self.id, unknown)

    def find_row(self, row_id: str) -> Optional[SpreadsheetRow]:
        return next((row for row in self.rows if row.id == row_id), None)


# =============================================================================
# DEFAULT SCHEMAS
# =============================================================================

_DEFAULT_COLUMNS: dict[SpreadsheetType, list[dict]] = {
    SpreadsheetType.INVESTMENTS: [
        {"key": "asset", "label": "Asset", "type": "text"},
        {"key": "quantity", "label": "Quantity", "type": "number"},
        {"key": "avgPrice", "label": "Average Price", "type": "number"},
        {"key": "purchaseDate", "label": "Purchase Date", "type": "date"},
        {"key": "yield", "label": "Yield (%)", "type": "number"},
    ],
    SpreadsheetType.INCOME: [
        {"key": "source", "label": "Source", "type": "text"},
        {"key": "amount", "label": "Amount", "type": "number"},
        {"key": "date", "label": "Date", "type": "date"},
        {
            "key": "category",
            "label": "Category",
            "type": "select",
            "options": ["Salary", "Freelance", "Investments", "Sales", "Other"],
        },
        {"key": "notes", "label": "Notes", "type": "text"},
    ],
    SpreadsheetType.EXPENSES: [
        {"key": "description", "label": "Description", "type": "text"},
        {"key": "amount", "label": "Amount", "type": "number"},
        {"key": "dueDate", "label": "Due Date", "type": "date"},
        {
            "key": "status",
            "label": "Status",
            "type": "select",
            "options": ["Pending", "Paid", "Overdue"],
        },
        {
            "key": "category",
            "label": "Category",
            "type": "select",
            "options": ["Housing", "Food", "Transport", "Health", "Education", "Leisure", "Other"],
        },
    ],
}


def default_columns(spreadsheet_type: SpreadsheetType) -> list[SpreadsheetColumn]:
    """Fresh copy of the starter column schema for a spreadsheet type."""
    return [
        SpreadsheetColumn(**column)
        for column in _DEFAULT_COLUMNS[SpreadsheetType(spreadsheet_type)]
    ]


def default_spreadsheet_name(spreadsheet_type: SpreadsheetType) -> str:
    return f"New {SpreadsheetType(spreadsheet_type).value.capitalize()}"
