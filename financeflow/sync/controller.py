"""
Synchronization Controller

The controller is the sole owner of the user's in-memory collections
(transactions, capital divisions, spreadsheets) and decides where they
come from and where changes go.

Loading:
- Signed out: read local storage; seed default divisions if none.
- Signed in: fetch all three collections from the remote store at once.
  Any failure falls back to the signed-out path as a whole, never to a
  mix of remote and local collections.
- Every sign-in/sign-out reloads by the same rule.

Writing (every mutation):
1. Apply the change in memory (optimistic)
2. Write the whole collection to local storage, signed in or not
3. If signed in, write remotely and refetch the affected collection

A remote failure never reaches the caller. The local state stays, the
write is queued for retry_pending(), and the returned SyncResult says
"degraded" so the UI can show it.
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Optional
from uuid import uuid4

from financeflow.analytics import (
    allocate_divisions,
    compute_dashboard,
    compute_monthly_series,
    compute_spreadsheet_totals,
    filter_by_type,
    recent_activity,
    total_percentage,
)
from financeflow.logs import SyncLogger
from financeflow.models import (
    CapitalDivision,
    DashboardData,
    MonthlySummary,
    Spreadsheet,
    SpreadsheetColumn,
    SpreadsheetRow,
    SpreadsheetTotals,
    SpreadsheetType,
    SyncResult,
    Transaction,
    TransactionDraft,
    TransactionType,
    default_columns,
    default_divisions,
    default_spreadsheet_name,
)
from financeflow.services.legacy import LegacyApiError, LegacyDivisionsClient
from financeflow.services.session import SessionContext
from financeflow.services.storage import (
    FinanceStoreInterface,
    LocalFinanceStore,
    NotFoundError,
)
from financeflow.sync.retry_queue import PendingOperation, ReplayReport, RetryQueue

TRANSACTIONS = "transactions"
DIVISIONS = "divisions"
SPREADSHEETS = "spreadsheets"

SOURCE_REMOTE = "remote"
SOURCE_LOCAL = "local"


def new_local_id() -> str:
    """Identifier for an entity created on this device.

    Deliberately not a canonical UUID, so the remote store treats it as new.
    """
    return f"local-{uuid4().hex}"


class SynchronizationController:
    """
    Owns the in-memory finance collections and reconciles them with
    local and remote storage.

    Single event loop only: collections are mutated from coroutines
    on one loop, never from threads.
    """

    def __init__(
        self,
        session: SessionContext,
        local_store: LocalFinanceStore,
        remote_store: Optional[FinanceStoreInterface] = None,
        legacy_client: Optional[LegacyDivisionsClient] = None,
        retry_queue: Optional[RetryQueue] = None,
        sync_logger: Optional[SyncLogger] = None,
        months_back: int = 6,
        recent_limit: int = 5,
    ):
        self._session = session
        self._local = local_store
        self._remote = remote_store
        self._legacy = legacy_client
        self._retry_queue = retry_queue if retry_queue is not None else RetryQueue()
        self._logger = sync_logger or SyncLogger()
        self._months_back = months_back
        self._recent_limit = recent_limit

        self._transactions: list[Transaction] = []
        self._divisions: list[CapitalDivision] = []
        self._spreadsheets: list[Spreadsheet] = []

        self._logger.bind_user(session.user_id)
        self._unsubscribe = session.subscribe(self._on_session_change)

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def authenticated(self) -> bool:
        """Signed in and a remote store is configured."""
        return self._session.authenticated and self._remote is not None

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def divisions(self) -> list[CapitalDivision]:
        return list(self._divisions)

    @property
    def spreadsheets(self) -> list[Spreadsheet]:
        return list(self._spreadsheets)

    @property
    def pending_sync_count(self) -> int:
        return len(self._retry_queue)

    def get_spreadsheet(self, spreadsheet_id: str) -> Spreadsheet:
        for spreadsheet in self._spreadsheets:
            if spreadsheet.id == spreadsheet_id:
                return spreadsheet
        raise NotFoundError(f"Spreadsheet not found: {spreadsheet_id}")

    def close(self) -> None:
        """Stop following session changes."""
        self._unsubscribe()

    # Every setter writes through to local storage in the same step

    def _set_transactions(self, transactions: list[Transaction]) -> None:
        self._transactions = list(transactions)
        self._local.save_transactions(self._transactions)

    def _set_divisions(self, divisions: list[CapitalDivision]) -> None:
        self._divisions = list(divisions)
        self._local.save_divisions(self._divisions)

    def _set_spreadsheets(self, spreadsheets: list[Spreadsheet]) -> None:
        self._spreadsheets = list(spreadsheets)
        self._local.save_spreadsheets(self._spreadsheets)

    # =========================================================================
    # LOADING
    # =========================================================================

    async def _on_session_change(self, authenticated: bool) -> None:
        self._logger.bind_user(self._session.user_id)
        self._logger.session_changed(authenticated)
        # Every callback is a user change; queued writes belong to the user who left
        self._retry_queue.clear()
        await self.load()

    async def load(self) -> str:
        """
        Reload all collections for the current session.

        Returns:
            "remote" or "local", the source the state came from
        """
        if self.authenticated:
            try:
                divisions, transactions, spreadsheets = await asyncio.gather(
                    self._remote.fetch_divisions(),
                    self._remote.fetch_transactions(),
                    self._remote.fetch_spreadsheets(),
                )
            except Exception as e:
                self._logger.load_fell_back(e)
            else:
                self._set_divisions(divisions)
                self._set_transactions(transactions)
                self._set_spreadsheets(spreadsheets)
                self._logger.load_completed(
                    SOURCE_REMOTE, len(transactions), len(divisions), len(spreadsheets)
                )
                return SOURCE_REMOTE

        self._load_local()
        return SOURCE_LOCAL

    def _load_local(self) -> None:
        self._transactions = self._local.load_transactions() or []
        self._spreadsheets = self._local.load_spreadsheets() or []

        divisions = self._local.load_divisions()
        seeded = not divisions
        if seeded:
            self._set_divisions(default_divisions())
        else:
            self._divisions = divisions

        self._logger.load_completed(
            SOURCE_LOCAL,
            len(self._transactions),
            len(self._divisions),
            len(self._spreadsheets),
            seeded_divisions=seeded,
        )

    async def _refresh(self, collections: Iterable[str]) -> None:
        """Replace the named collections with authoritative remote copies."""
        wanted = set(collections)
        names = [name for name in (DIVISIONS, TRANSACTIONS, SPREADSHEETS) if name in wanted]
        fetchers = {
            DIVISIONS: self._remote.fetch_divisions,
            TRANSACTIONS: self._remote.fetch_transactions,
            SPREADSHEETS: self._remote.fetch_spreadsheets,
        }
        setters = {
            DIVISIONS: self._set_divisions,
            TRANSACTIONS: self._set_transactions,
            SPREADSHEETS: self._set_spreadsheets,
        }
        results = await asyncio.gather(*(fetchers[name]() for name in names))
        for name, fresh in zip(names, results):
            setters[name](fresh)

    # =========================================================================
    # REMOTE WRITE-THROUGH
    # =========================================================================

    async def _sync(
        self,
        operation: str,
        action: Callable[[], Awaitable[Any]],
        refresh: Iterable[str],
        key: Optional[str] = None,
    ) -> SyncResult:
        """
        Run a remote write plus refetch after the local change is applied.

        key marks writes that replace a whole value; a newer write with the
        same key supersedes any queued older one, whether it lands or fails.
        """
        if not self.authenticated:
            return SyncResult.local_only(operation)

        refresh = frozenset(refresh)
        try:
            await action()
        except Exception as e:
            self._enqueue(
                PendingOperation(
                    name=operation,
                    action=action,
                    refresh=refresh,
                    user_id=self._session.user_id,
                    key=key,
                )
            )
            self._logger.remote_write_failed(operation, e, queued=True)
            return SyncResult.degraded(operation, e, queued=True)

        if key is not None:
            for stale in self._retry_queue.discard_key(key):
                self._logger.retry_dropped(stale.name, stale.replays, reason="superseded")

        try:
            await self._refresh(refresh)
        except Exception as e:
            # The write landed; only the refetch failed, so nothing to retry
            self._logger.remote_write_failed(f"{operation}:refresh", e, queued=False)
            return SyncResult.degraded(operation, e, queued=False)

        self._logger.remote_write_synced(operation)
        return SyncResult.synced(operation)

    def _enqueue(self, operation: PendingOperation) -> None:
        dropped = self._retry_queue.push(operation)
        if dropped is not None:
            self._logger.retry_dropped(dropped.name, dropped.replays, reason="queue_full")

    async def retry_pending(self) -> ReplayReport:
        """
        Replay queued remote writes once each, then refetch whatever
        collections the successful ones touched.
        """
        if not self.authenticated or not len(self._retry_queue):
            return ReplayReport()

        user_id = self._session.user_id
        for foreign in self._retry_queue.discard_where(lambda op: op.user_id != user_id):
            self._logger.retry_dropped(foreign.name, foreign.replays, reason="user_changed")

        report = await self._retry_queue.replay()
        for operation in report.replayed:
            self._logger.retry_replayed(operation.name, operation.replays + 1)
        for operation in report.failed:
            self._logger.retry_failed(operation.name, operation.replays, operation.last_error)
        for operation in report.dropped:
            self._logger.retry_dropped(operation.name, operation.replays, reason="max_attempts")

        if report.refresh:
            try:
                await self._refresh(report.refresh)
            except Exception as e:
                self._logger.remote_write_failed("retry_pending:refresh", e, queued=False)
        return report

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_transaction(self, draft: TransactionDraft) -> SyncResult:
        """Prepend a new transaction; insert remotely when signed in."""
        transaction = Transaction.from_draft(draft, new_local_id())
        self._set_transactions([transaction] + self._transactions)

        created: dict[str, str] = {}

        async def action() -> None:
            created["id"] = await self._remote.add_transaction(draft)

        result = await self._sync("add_transaction", action, {TRANSACTIONS})
        result.entity_id = created.get("id", transaction.id)
        return result

    def income_transactions(self) -> list[Transaction]:
        return filter_by_type(self._transactions, TransactionType.INCOME)

    def expense_transactions(self) -> list[Transaction]:
        return filter_by_type(self._transactions, TransactionType.EXPENSE)

    # =========================================================================
    # CAPITAL DIVISIONS
    # =========================================================================

    async def update_divisions(self, divisions: list[CapitalDivision]) -> SyncResult:
        """Replace the whole division set."""
        divisions = list(divisions)
        self._set_divisions(divisions)

        if not self.authenticated:
            await self._mirror_to_legacy(divisions)
            return SyncResult.local_only("update_divisions")

        async def action() -> None:
            await self._remote.upsert_divisions(divisions)

        return await self._sync("update_divisions", action, {DIVISIONS}, key=DIVISIONS)

    async def _mirror_to_legacy(self, divisions: list[CapitalDivision]) -> None:
        """Best-effort side write for signed-out installs; failures are ignored."""
        if self._legacy is None or not divisions:
            return
        try:
            await self._legacy.push_divisions(divisions)
        except LegacyApiError as e:
            self._logger.legacy_write_failed(e)

    def total_division_percentage(self) -> float:
        return total_percentage(self._divisions)

    def division_allocations(self, now: Optional[datetime] = None) -> list[CapitalDivision]:
        """Divisions with amounts derived from the dashboard's total income."""
        return allocate_divisions(self._divisions, self.dashboard(now).total_income)

    # =========================================================================
    # SPREADSHEETS
    # =========================================================================

    async def update_spreadsheets(self, spreadsheets: list[Spreadsheet]) -> SyncResult:
        """Replace the whole spreadsheet set locally. Never touches the remote store."""
        self._set_spreadsheets(spreadsheets)
        return SyncResult.local_only("update_spreadsheets")

    def _replace_spreadsheet(self, updated: Spreadsheet) -> None:
        self._set_spreadsheets([updated if s.id == updated.id else s for s in self._spreadsheets])

    async def create_spreadsheet(
        self,
        spreadsheet_type: SpreadsheetType,
        name: Optional[str] = None,
        columns: Optional[list[SpreadsheetColumn]] = None,
    ) -> SyncResult:
        """
        Create a spreadsheet with the type's default columns unless given.

        The result's entity_id is the remote id when synced, the local id
        otherwise.
        """
        spreadsheet_type = SpreadsheetType(spreadsheet_type)
        columns = list(columns) if columns is not None else default_columns(spreadsheet_type)
        name = name or default_spreadsheet_name(spreadsheet_type)
        spreadsheet = Spreadsheet(id=new_local_id(), name=name, type=spreadsheet_type, columns=columns)
        self._set_spreadsheets(self._spreadsheets + [spreadsheet])

        created: dict[str, str] = {}

        async def action() -> None:
            created["id"] = await self._remote.create_spreadsheet(name, spreadsheet_type, columns)

        result = await self._sync("create_spreadsheet", action, {SPREADSHEETS})
        result.entity_id = created.get("id", spreadsheet.id)
        return result

    async def rename_spreadsheet(self, spreadsheet_id: str, name: str) -> SyncResult:
        spreadsheet = self.get_spreadsheet(spreadsheet_id)
        self._replace_spreadsheet(spreadsheet.model_copy(update={"name": name}))

        async def action() -> None:
            await self._remote.rename_spreadsheet(spreadsheet_id, name)

        return await self._sync(
            "rename_spreadsheet", action, {SPREADSHEETS}, key=f"rename_spreadsheet:{spreadsheet_id}"
        )

    async def delete_spreadsheet(self, spreadsheet_id: str) -> SyncResult:
        self.get_spreadsheet(spreadsheet_id)
        self._set_spreadsheets([s for s in self._spreadsheets if s.id != spreadsheet_id])

        async def action() -> None:
            await self._remote.delete_spreadsheet(spreadsheet_id)

        return await self._sync("delete_spreadsheet", action, {SPREADSHEETS})

    async def set_spreadsheet_columns(
        self,
        spreadsheet_id: str,
        columns: list[SpreadsheetColumn],
    ) -> SyncResult:
        """Replace the column schema. Existing row values are left as they are."""
        spreadsheet = self.get_spreadsheet(spreadsheet_id)
        columns = list(columns)
        # Validate through the model (unique keys) before touching state
        updated = Spreadsheet(**{**spreadsheet.model_dump(), "columns": columns})
        self._replace_spreadsheet(updated)

        async def action() -> None:
            await self._remote.upsert_columns(spreadsheet_id, columns)

        return await self._sync(
            "set_spreadsheet_columns", action, {SPREADSHEETS}, key=f"set_spreadsheet_columns:{spreadsheet_id}"
        )

    async def add_spreadsheet_row(self, spreadsheet_id: str, values: dict[str, str]) -> SyncResult:
        """
        Append a row.

        Raises:
            RowSchemaError: If values use keys that are not columns
        """
        spreadsheet = self.get_spreadsheet(spreadsheet_id)
        row = SpreadsheetRow(id=new_local_id(), values=values)
        spreadsheet.validate_row(row.values)
        self._replace_spreadsheet(spreadsheet.model_copy(update={"rows": spreadsheet.rows + [row]}))

        created: dict[str, str] = {}

        async def action() -> None:
            created["id"] = await self._remote.insert_row(spreadsheet_id, row.values)

        result = await self._sync("add_spreadsheet_row", action, {SPREADSHEETS})
        result.entity_id = created.get("id", row.id)
        return result

    async def update_spreadsheet_row(
        self,
        spreadsheet_id: str,
        row_id: str,
        values: dict[str, str],
    ) -> SyncResult:
        """
        Replace a row's values.

        Raises:
            RowSchemaError: If values use keys that are not columns
            NotFoundError: If the row does not exist locally
        """
        spreadsheet = self.get_spreadsheet(spreadsheet_id)
        if spreadsheet.find_row(row_id) is None:
            raise NotFoundError(f"Row not found: {row_id}")
        updated_row = SpreadsheetRow(id=row_id, values=values)
        spreadsheet.validate_row(updated_row.values)
        rows = [updated_row if r.id == row_id else r for r in spreadsheet.rows]
        self._replace_spreadsheet(spreadsheet.model_copy(update={"rows": rows}))

        async def action() -> None:
            await self._remote.update_row(spreadsheet_id, row_id, updated_row.values)

        return await self._sync(
            "update_spreadsheet_row", action, {SPREADSHEETS}, key=f"update_spreadsheet_row:{row_id}"
        )

    async def delete_spreadsheet_row(self, spreadsheet_id: str, row_id: str) -> SyncResult:
        spreadsheet = self.get_spreadsheet(spreadsheet_id)
        rows = [r for r in spreadsheet.rows if r.id != row_id]
        self._replace_spreadsheet(spreadsheet.model_copy(update={"rows": rows}))

        async def action() -> None:
            await self._remote.delete_row(spreadsheet_id, row_id)

        return await self._sync("delete_spreadsheet_row", action, {SPREADSHEETS})

    # =========================================================================
    # DERIVED METRICS
    # =========================================================================

    def dashboard(self, now: Optional[datetime] = None) -> DashboardData:
        return compute_dashboard(self._transactions, self._spreadsheets, now)

    def spreadsheet_totals(self) -> SpreadsheetTotals:
        return compute_spreadsheet_totals(self._spreadsheets)

    def monthly_series(
        self,
        months_back: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[MonthlySummary]:
        return compute_monthly_series(self._transactions, months_back or self._months_back, now)

    def recent_activity(self, limit: Optional[int] = None) -> list[Transaction]:
        return recent_activity(self._transactions, limit or self._recent_limit)
