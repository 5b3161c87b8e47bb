"""
Google Sheets Remote Store

DESIGN DECISION: A Google Sheets workbook is the remote backend. Each
table is a worksheet with a header row; every user-owned row carries a
user_id column and every query filters on it. That filter is the tenancy
boundary, so the user id is resolved on every call and a write without
one fails instead of touching unscoped rows.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: a spreadsheet delete removes columns, rows, then the
  header, in that order, so a failure part-way leaves orphans only in
  the child tables (which fetch ignores)
- Limited query capabilities (we filter in Python)

gspread is blocking; calls run in worker threads so the controller's
three concurrent load reads really overlap.
"""

import asyncio
import json
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from financeflow.config import GoogleSheetsSettings, get_settings
from financeflow.models import (
    CapitalDivision,
    Spreadsheet,
    SpreadsheetColumn,
    SpreadsheetRow,
    SpreadsheetType,
    Transaction,
    TransactionDraft,
)
from financeflow.services.storage.interface import (
    BackendConnectionError,
    FinanceStoreInterface,
    NotAuthenticatedError,
    NotFoundError,
    RemoteOperationFailedError,
    StorageError,
)

logger = structlog.get_logger(__name__)

DIVISIONS = "divisions"
TRANSACTIONS = "transactions"
SPREADSHEETS = "spreadsheets"
SPREADSHEET_COLUMNS = "spreadsheet_columns"
SPREADSHEET_ROWS = "spreadsheet_rows"

# Header row of each worksheet
TABLE_COLUMNS: dict[str, list[str]] = {
    DIVISIONS: ["id", "user_id", "name", "percentage", "color", "created_at"],
    TRANSACTIONS: [
        "id",
        "user_id",
        "type",
        "amount",
        "description",
        "category",
        "date",
        "is_recurring",
        "due_date",
        "status",
        "created_at",
    ],
    SPREADSHEETS: ["id", "user_id", "name", "type", "created_at"],
    SPREADSHEET_COLUMNS: ["id", "spreadsheet_id", "key", "label", "type", "options", "position"],
    SPREADSHEET_ROWS: ["id", "spreadsheet_id", "data"],
}

# (sheet row number, record) - row 1 is the header, so data starts at 2
SheetRecord = tuple[int, dict[str, str]]

api_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    reraise=True,
)


def is_canonical_id(value: Optional[str]) -> bool:
    """True for ids the backend issued (canonical 36-character UUIDs)."""
    if not value or len(value) != 36:
        return False
    try:
        return str(UUID(value)) == value.lower()
    except ValueError:
        return False


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication, creates missing table worksheets with their
    header row, and retries transient API errors.
    """

    def __init__(
        self,
        settings: Optional[GoogleSheetsSettings] = None,
        spreadsheet: Optional[gspread.Spreadsheet] = None,
    ):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet = spreadsheet
        self._settings = settings
        self._worksheets: dict[str, gspread.Worksheet] = {}

    def _get_settings(self) -> GoogleSheetsSettings:
        if self._settings is None:
            self._settings = get_settings().google_sheets
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            settings = self._get_settings()
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise BackendConnectionError(
                    f"Google credentials file not found: {settings.credentials_path}"
                )
            except Exception as e:
                raise BackendConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured workbook."""
        if self._spreadsheet is None:
            client = self.connect()
            spreadsheet_id = self._get_settings().spreadsheet_id
            try:
                self._spreadsheet = client.open_by_key(spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise BackendConnectionError(f"Spreadsheet not found: {spreadsheet_id}")
        return self._spreadsheet

    def get_table(self, table: str) -> gspread.Worksheet:
        """Get or create the worksheet for a table."""
        if table in self._worksheets:
            return self._worksheets[table]

        spreadsheet = self.get_spreadsheet()
        prefix = self._settings.worksheet_prefix if self._settings else ""
        title = f"{prefix}{table}"
        columns = TABLE_COLUMNS[table]
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(title=title, rows=1000, cols=len(columns))
            sheet.append_row(columns)
        self._worksheets[table] = sheet
        return sheet

    @api_retry
    def read_records(self, table: str) -> list[SheetRecord]:
        """All non-empty data rows of a table, keyed by header."""
        values = self.get_table(table).get_all_values()
        if not values:
            return []
        header = values[0]
        records = []
        for row_number, row in enumerate(values[1:], start=2):
            if not any(cell for cell in row):
                continue
            padded = row + [""] * (len(header) - len(row))
            records.append((row_number, dict(zip(header, padded))))
        return records

    @api_retry
    def append_records(self, table: str, records: list[dict[str, Any]]) -> None:
        if not records:
            return
        rows = [self._to_row(table, record) for record in records]
        self.get_table(table).append_rows(rows, value_input_option="RAW")

    @api_retry
    def update_record(self, table: str, row_number: int, record: dict[str, Any]) -> None:
        self.get_table(table).update(
            range_name=f"A{row_number}",
            values=[self._to_row(table, record)],
            value_input_option="RAW",
        )

    def delete_records(self, table: str, row_numbers: list[int]) -> None:
        """
        Delete rows bottom-up so earlier deletes don't shift later row numbers.

        Retries apply per row, never to the whole loop: once a row is gone
        every row number below it has moved.
        """
        sheet = self.get_table(table)
        for row_number in sorted(set(row_numbers), reverse=True):
            self._delete_row(sheet, row_number)

    @staticmethod
    @api_retry
    def _delete_row(sheet: gspread.Worksheet, row_number: int) -> None:
        sheet.delete_rows(row_number)

    @staticmethod
    def _to_row(table: str, record: dict[str, Any]) -> list[str]:
        return ["" if record.get(col) is None else str(record[col]) for col in TABLE_COLUMNS[table]]


class GoogleSheetsFinanceStore(FinanceStoreInterface):
    """
    Google Sheets implementation of the remote store gateway.

    Pure translation between worksheet records and models. All backend
    exceptions are re-raised as RemoteOperationFailedError.
    """

    def __init__(
        self,
        user_id_provider: Callable[[], Optional[str]],
        client: Optional[GoogleSheetsClient] = None,
    ):
        self._user_id_provider = user_id_provider
        self._client = client or GoogleSheetsClient()

    # --- Plumbing ----------------------------------------------------------

    def _user_id(self) -> Optional[str]:
        return self._user_id_provider()

    def _require_user(self) -> str:
        user_id = self._user_id()
        if not user_id:
            raise NotAuthenticatedError("not authenticated")
        return user_id

    async def _call(self, func: Callable, *args: Any) -> Any:
        """Run a blocking client call in a worker thread, normalizing errors."""
        try:
            return await asyncio.to_thread(func, *args)
        except StorageError:
            raise
        except Exception as e:
            raise RemoteOperationFailedError(f"{func.__name__} failed: {e}") from e

    async def _read(self, table: str) -> list[SheetRecord]:
        return await self._call(self._client.read_records, table)

    async def _owned(self, table: str, user_id: str) -> list[SheetRecord]:
        return [
            (row_number, record)
            for row_number, record in await self._read(table)
            if record.get("user_id") == user_id
        ]

    async def _owned_spreadsheet(self, spreadsheet_id: str, user_id: str) -> SheetRecord:
        for row_number, record in await self._owned(SPREADSHEETS, user_id):
            if record.get("id") == spreadsheet_id:
                return row_number, record
        raise NotFoundError(f"Spreadsheet not found: {spreadsheet_id}")

    # --- Capital divisions -------------------------------------------------

    def _record_to_division(self, record: dict[str, str]) -> CapitalDivision:
        return CapitalDivision(
            id=record["id"],
            name=record.get("name", ""),
            percentage=float(record.get("percentage") or 0),
            color=record.get("color") or "#10B981",
            amount=0.0,
        )

    async def fetch_divisions(self) -> list[CapitalDivision]:
        user_id = self._user_id()
        if not user_id:
            return []
        records = [record for _, record in await self._owned(DIVISIONS, user_id)]
        records.sort(key=lambda r: r.get("created_at", ""))
        divisions = []
        for record in records:
            try:
                divisions.append(self._record_to_division(record))
            except ValueError as e:
                logger.warning("malformed_remote_row", table=DIVISIONS, id=record.get("id"), error=str(e))
        return divisions

    async def upsert_divisions(self, divisions: list[CapitalDivision]) -> None:
        user_id = self._require_user()
        all_records = await self._read(DIVISIONS)
        by_id = {record.get("id"): (row_number, record) for row_number, record in all_records}

        inserts = []
        for division in divisions:
            record = {
                "user_id": user_id,
                "name": division.name,
                "percentage": division.percentage,
                "color": division.color,
            }
            existing = by_id.get(division.id) if is_canonical_id(division.id) else None
            if existing is not None:
                row_number, stored = existing
                if stored.get("user_id") != user_id:
                    raise RemoteOperationFailedError(
                        f"Permission denied for division {division.id}"
                    )
                record.update(id=division.id, created_at=stored.get("created_at") or _utc_now())
                await self._call(self._client.update_record, DIVISIONS, row_number, record)
            else:
                new_id = division.id if is_canonical_id(division.id) else str(uuid4())
                record.update(id=new_id, created_at=_utc_now())
                inserts.append(record)

        await self._call(self._client.append_records, DIVISIONS, inserts)

    # --- Transactions ------------------------------------------------------

    def _record_to_transaction(self, record: dict[str, str]) -> Transaction:
        return Transaction(
            id=record["id"],
            type=record["type"],
            amount=float(record.get("amount") or 0),
            description=record.get("description", ""),
            category=record.get("category", ""),
            date=date.fromisoformat(record["date"]),
            is_recurring=record.get("is_recurring", "").lower() == "true",
            due_date=date.fromisoformat(record["due_date"]) if record.get("due_date") else None,
            status=record.get("status") or None,
        )

    async def fetch_transactions(self) -> list[Transaction]:
        user_id = self._user_id()
        if not user_id:
            return []
        transactions = []
        for _, record in await self._owned(TRANSACTIONS, user_id):
            try:
                transactions.append(self._record_to_transaction(record))
            except (KeyError, ValueError) as e:
                logger.warning("malformed_remote_row", table=TRANSACTIONS, id=record.get("id"), error=str(e))
        transactions.sort(key=lambda t: t.date, reverse=True)
        return transactions

    async def add_transaction(self, draft: TransactionDraft) -> str:
        user_id = self._require_user()
        transaction_id = str(uuid4())
        record = {
            "id": transaction_id,
            "user_id": user_id,
            "type": draft.type.value,
            "amount": draft.amount,
            "description": draft.description,
            "category": draft.category,
            "date": draft.date.isoformat(),
            "is_recurring": draft.is_recurring,
            "due_date": draft.due_date.isoformat() if draft.due_date else None,
            "status": draft.status.value if draft.status else None,
            "created_at": _utc_now(),
        }
        await self._call(self._client.append_records, TRANSACTIONS, [record])
        return transaction_id

    # --- Spreadsheets ------------------------------------------------------

    @staticmethod
    def _column_records(spreadsheet_id: str, columns: list[SpreadsheetColumn]) -> list[dict]:
        return [
            {
                "id": str(uuid4()),
                "spreadsheet_id": spreadsheet_id,
                "key": column.key,
                "label": column.label,
                "type": column.type.value,
                "options": json.dumps(column.options) if column.options is not None else None,
                "position": position,
            }
            for position, column in enumerate(columns)
        ]

    @staticmethod
    def _record_to_column(record: dict[str, str]) -> SpreadsheetColumn:
        options = json.loads(record["options"]) if record.get("options") else None
        return SpreadsheetColumn(
            key=record["key"],
            label=record.get("label", ""),
            type=record.get("type") or "text",
            options=options,
        )

    @staticmethod
    def _record_to_row(record: dict[str, str]) -> SpreadsheetRow:
        data = json.loads(record["data"]) if record.get("data") else {}
        data.pop("id", None)
        return SpreadsheetRow(id=record["id"], values=data)

    async def fetch_spreadsheets(self) -> list[Spreadsheet]:
        user_id = self._user_id()
        if not user_id:
            return []
        headers = [record for _, record in await self._owned(SPREADSHEETS, user_id)]
        headers.sort(key=lambda r: r.get("created_at", ""))
        ids = {record["id"] for record in headers}
        if not ids:
            return []

        columns = [r for _, r in await self._read(SPREADSHEET_COLUMNS) if r.get("spreadsheet_id") in ids]
        rows = [r for _, r in await self._read(SPREADSHEET_ROWS) if r.get("spreadsheet_id") in ids]
        columns.sort(key=lambda r: int(r.get("position") or 0))

        try:
            return [
                Spreadsheet(
                    id=header["id"],
                    name=header.get("name", ""),
                    type=header["type"],
                    created_at=header.get("created_at") or _utc_now(),
                    columns=[
                        self._record_to_column(c) for c in columns if c["spreadsheet_id"] == header["id"]
                    ],
                    rows=[self._record_to_row(r) for r in rows if r["spreadsheet_id"] == header["id"]],
                )
                for header in headers
            ]
        except (KeyError, ValueError) as e:
            raise RemoteOperationFailedError(f"Malformed spreadsheet data: {e}") from e

    async def create_spreadsheet(
        self,
        name: str,
        spreadsheet_type: SpreadsheetType,
        columns: list[SpreadsheetColumn],
    ) -> str:
        user_id = self._require_user()
        spreadsheet_id = str(uuid4())
        header = {
            "id": spreadsheet_id,
            "user_id": user_id,
            "name": name,
            "type": SpreadsheetType(spreadsheet_type).value,
            "created_at": _utc_now(),
        }
        await self._call(self._client.append_records, SPREADSHEETS, [header])
        if columns:
            await self._call(
                self._client.append_records,
                SPREADSHEET_COLUMNS,
                self._column_records(spreadsheet_id, columns),
            )
        return spreadsheet_id

    async def rename_spreadsheet(self, spreadsheet_id: str, name: str) -> None:
        user_id = self._require_user()
        row_number, record = await self._owned_spreadsheet(spreadsheet_id, user_id)
        await self._call(self._client.update_record, SPREADSHEETS, row_number, {**record, "name": name})

    async def delete_spreadsheet(self, spreadsheet_id: str) -> None:
        user_id = self._require_user()
        row_number, _ = await self._owned_spreadsheet(spreadsheet_id, user_id)
        for table in (SPREADSHEET_COLUMNS, SPREADSHEET_ROWS):
            children = [n for n, r in await self._read(table) if r.get("spreadsheet_id") == spreadsheet_id]
            await self._call(self._client.delete_records, table, children)
        await self._call(self._client.delete_records, SPREADSHEETS, [row_number])

    async def upsert_columns(
        self,
        spreadsheet_id: str,
        columns: list[SpreadsheetColumn],
    ) -> None:
        user_id = self._require_user()
        await self._owned_spreadsheet(spreadsheet_id, user_id)
        existing = [
            n for n, r in await self._read(SPREADSHEET_COLUMNS) if r.get("spreadsheet_id") == spreadsheet_id
        ]
        await self._call(self._client.delete_records, SPREADSHEET_COLUMNS, existing)
        if not columns:
            return
        await self._call(
            self._client.append_records,
            SPREADSHEET_COLUMNS,
            self._column_records(spreadsheet_id, columns),
        )

    async def _find_row(self, spreadsheet_id: str, row_id: str) -> Optional[int]:
        for row_number, record in await self._read(SPREADSHEET_ROWS):
            if record.get("id") == row_id and record.get("spreadsheet_id") == spreadsheet_id:
                return row_number
        return None

    async def insert_row(self, spreadsheet_id: str, values: dict[str, str]) -> str:
        user_id = self._require_user()
        await self._owned_spreadsheet(spreadsheet_id, user_id)
        row_id = str(uuid4())
        data = {key: value for key, value in values.items() if key != "id"}
        await self._call(
            self._client.append_records,
            SPREADSHEET_ROWS,
            [{"id": row_id, "spreadsheet_id": spreadsheet_id, "data": json.dumps(data)}],
        )
        return row_id

    async def update_row(
        self,
        spreadsheet_id: str,
        row_id: str,
        values: dict[str, str],
    ) -> None:
        user_id = self._require_user()
        await self._owned_spreadsheet(spreadsheet_id, user_id)
        row_number = await self._find_row(spreadsheet_id, row_id)
        if row_number is None:
            raise NotFoundError(f"Row not found: {row_id}")
        data = {key: value for key, value in values.items() if key != "id"}
        await self._call(
            self._client.update_record,
            SPREADSHEET_ROWS,
            row_number,
            {"id": row_id, "spreadsheet_id": spreadsheet_id, "data": json.dumps(data)},
        )

    async def delete_row(self, spreadsheet_id: str, row_id: str) -> None:
        user_id = self._require_user()
        await self._owned_spreadsheet(spreadsheet_id, user_id)
        row_number = await self._find_row(spreadsheet_id, row_id)
        if row_number is not None:
            await self._call(self._client.delete_records, SPREADSHEET_ROWS, [row_number])
