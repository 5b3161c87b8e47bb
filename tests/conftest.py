"""
Shared fixtures.

No real API calls in tests: the remote store runs over an in-memory
stand-in for a gspread workbook that records every worksheet call.
"""

import re
from typing import Optional

import gspread
import pytest

from financeflow.services import (
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
    InMemoryKeyValueStore,
    LocalFinanceStore,
    SessionContext,
)
from financeflow.sync import RetryQueue, SynchronizationController


class FakeWorksheet:
    """The subset of gspread.Worksheet the client uses, backed by a list of rows."""

    def __init__(self, workbook: "FakeWorkbook", title: str):
        self.workbook = workbook
        self.title = title
        self.rows: list[list[str]] = []

    def _touch(self, name: str) -> None:
        self.workbook.record(name)

    def get_all_values(self) -> list[list[str]]:
        self._touch("get_all_values")
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option="RAW"):
        self._touch("append_row")
        self.rows.append([str(v) for v in values])

    def append_rows(self, values, value_input_option="RAW"):
        self._touch("append_rows")
        self.rows.extend([str(v) for v in row] for row in values)

    def update(self, range_name=None, values=None, value_input_option="RAW"):
        self._touch("update")
        row_number = int(re.match(r"A(\d+)$", range_name).group(1))
        self.rows[row_number - 1] = [str(v) for v in values[0]]

    def delete_rows(self, start_index, end_index=None):
        self._touch("delete_rows")
        end_index = end_index or start_index
        del self.rows[start_index - 1:end_index]

    def records(self) -> list[dict[str, str]]:
        """Data rows keyed by header, for assertions."""
        header, *data = self.rows
        return [dict(zip(header, row)) for row in data]


class FakeWorkbook:
    """The subset of gspread.Spreadsheet the client uses."""

    def __init__(self):
        self.worksheets: dict[str, FakeWorksheet] = {}
        self.calls: list[str] = []
        self.fail_with: Optional[Exception] = None

    def record(self, name: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append(name)

    def worksheet(self, title: str) -> FakeWorksheet:
        if title not in self.worksheets:
            raise gspread.exceptions.WorksheetNotFound(title)
        return self.worksheets[title]

    def add_worksheet(self, title: str, rows: int, cols: int) -> FakeWorksheet:
        sheet = FakeWorksheet(self, title)
        self.worksheets[title] = sheet
        return sheet

    def table(self, name: str) -> FakeWorksheet:
        return self.worksheets[name]


@pytest.fixture
def workbook() -> FakeWorkbook:
    return FakeWorkbook()


@pytest.fixture
def session() -> SessionContext:
    return SessionContext()


@pytest.fixture
def remote_store(session, workbook) -> GoogleSheetsFinanceStore:
    return GoogleSheetsFinanceStore(session.current_user_id, GoogleSheetsClient(spreadsheet=workbook))


@pytest.fixture
def key_value_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def local_store(key_value_store) -> LocalFinanceStore:
    return LocalFinanceStore(key_value_store)


@pytest.fixture
def controller(session, local_store, remote_store) -> SynchronizationController:
    return SynchronizationController(
        session=session,
        local_store=local_store,
        remote_store=remote_store,
        retry_queue=RetryQueue(max_size=3, max_attempts=2),
    )
