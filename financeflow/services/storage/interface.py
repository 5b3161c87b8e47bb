"""
Abstract Storage Interfaces

DESIGN DECISION: We define abstract interfaces for both storage tiers.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the sync controller decoupled from any backend

Two tiers exist:
- FinanceStoreInterface: the remote, per-user store (the gateway).
  Async, row-oriented, always scoped to the signed-in user.
- KeyValueStoreInterface: on-device storage. Synchronous, one opaque
  text blob per key.

Gateway implementations translate only; they never swallow errors.
"""

from abc import ABC, abstractmethod
from typing import Optional

from financeflow.models import (
    CapitalDivision,
    Spreadsheet,
    SpreadsheetColumn,
    SpreadsheetType,
    Transaction,
    TransactionDraft,
)


class FinanceStoreInterface(ABC):
    """
    Remote store gateway for one user's finance data.

    Every operation resolves the current user id when it runs. Reads
    return empty results when nobody is signed in; writes raise
    NotAuthenticatedError.
    """

    # --- Capital divisions -------------------------------------------------

    @abstractmethod
    async def fetch_divisions(self) -> list[CapitalDivision]:
        """
        Get the user's divisions ordered by creation time.

        Returns:
            Divisions with amount=0 (amount is derived, never stored)
        """
        pass

    @abstractmethod
    async def upsert_divisions(self, divisions: list[CapitalDivision]) -> None:
        """
        Insert or update divisions by id.

        Ids that are not canonical UUIDs are treated as new rows and get
        a backend-generated id.

        Raises:
            NotAuthenticatedError: If nobody is signed in
            RemoteOperationFailedError: If the backend call fails
        """
        pass

    # --- Transactions ------------------------------------------------------

    @abstractmethod
    async def fetch_transactions(self) -> list[Transaction]:
        """Get all of the user's transactions, newest date first."""
        pass

    @abstractmethod
    async def add_transaction(self, draft: TransactionDraft) -> str:
        """
        Insert one transaction.

        Returns:
            The backend-assigned identifier
        """
        pass

    # --- Spreadsheets ------------------------------------------------------

    @abstractmethod
    async def fetch_spreadsheets(self) -> list[Spreadsheet]:
        """
        Get the user's spreadsheets with their columns and rows.

        Columns come back ordered by stored position. Returns an empty
        list without querying columns/rows when the user owns none.
        """
        pass

    @abstractmethod
    async def create_spreadsheet(
        self,
        name: str,
        spreadsheet_type: SpreadsheetType,
        columns: list[SpreadsheetColumn],
    ) -> str:
        """
        Create a spreadsheet and its columns (position = list index).

        Returns:
            The new spreadsheet id
        """
        pass

    @abstractmethod
    async def rename_spreadsheet(self, spreadsheet_id: str, name: str) -> None:
        """
        Raises:
            NotFoundError: If the user owns no such spreadsheet
        """
        pass

    @abstractmethod
    async def delete_spreadsheet(self, spreadsheet_id: str) -> None:
        """Delete a spreadsheet together with its columns and rows."""
        pass

    @abstractmethod
    async def upsert_columns(
        self,
        spreadsheet_id: str,
        columns: list[SpreadsheetColumn],
    ) -> None:
        """Replace the spreadsheet's column set (delete all, then reinsert)."""
        pass

    @abstractmethod
    async def insert_row(self, spreadsheet_id: str, values: dict[str, str]) -> str:
        """
        Insert a row. The values are stored as one JSON blob.

        Returns:
            The new row id
        """
        pass

    @abstractmethod
    async def update_row(
        self,
        spreadsheet_id: str,
        row_id: str,
        values: dict[str, str],
    ) -> None:
        """Replace a row's stored values."""
        pass

    @abstractmethod
    async def delete_row(self, spreadsheet_id: str, row_id: str) -> None:
        pass


class KeyValueStoreInterface(ABC):
    """
    On-device persistent dictionary of text blobs.

    Synchronous on purpose: local writes happen in the same step as the
    in-memory mutation, so the two never diverge.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored blob, or None if the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotAuthenticatedError(StorageError):
    """A remote operation ran without a signed-in user."""
    pass


class RemoteOperationFailedError(StorageError):
    """The remote backend failed (network, API, permission)."""
    pass


class BackendConnectionError(RemoteOperationFailedError):
    """Could not connect to the remote backend."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage, or not owned by the current user."""
    pass


class MalformedPersistedDataError(StorageError):
    """A locally persisted blob could not be parsed or validated."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Malformed data under '{key}': {reason}")
