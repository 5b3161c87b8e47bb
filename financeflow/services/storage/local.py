"""
Local Persistence

On-device storage keeps one JSON blob per entity family:
financeflow_transactions, financeflow_divisions, financeflow_spreadsheets.
Each blob is the whole collection; there is no partial/delta format.

DESIGN DECISION: Local storage is a cache and an offline fallback, not a
source of truth that must be defended. A blob that fails to parse is
discarded (logged, treated as absent) and the caller falls back to
defaults; it is never surfaced as an error.
"""

import os
from pathlib import Path
from typing import Optional, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from financeflow.models import CapitalDivision, Spreadsheet, Transaction
from financeflow.services.storage.interface import (
    KeyValueStoreInterface,
    MalformedPersistedDataError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

TRANSACTIONS_KEY = "transactions"
DIVISIONS_KEY = "divisions"
SPREADSHEETS_KEY = "spreadsheets"


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Dictionary-backed store. Used when no data directory is configured, and in tests."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """
    One file per key under a data directory.

    Writes go to a temporary file first and are moved into place, so a
    crash mid-write leaves the previous blob intact.
    """

    def __init__(self, directory: str):
        self._directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class LocalFinanceStore:
    """
    Typed read/write of whole collections over a key-value store.

    load_* returns None when the key is absent or its blob is malformed,
    so callers can tell "nothing saved" apart from "saved an empty list".
    """

    _transactions = TypeAdapter(list[Transaction])
    _divisions = TypeAdapter(list[CapitalDivision])
    _spreadsheets = TypeAdapter(list[Spreadsheet])

    def __init__(self, store: KeyValueStoreInterface, key_prefix: str = "financeflow_"):
        self._store = store
        self._key_prefix = key_prefix

    def key(self, name: str) -> str:
        """Full storage key for an entity family."""
        return f"{self._key_prefix}{name}"

    # --- Transactions ------------------------------------------------------

    def load_transactions(self) -> Optional[list[Transaction]]:
        return self._load(TRANSACTIONS_KEY, self._transactions)

    def save_transactions(self, transactions: list[Transaction]) -> None:
        self._save(TRANSACTIONS_KEY, self._transactions, transactions)

    # --- Divisions ---------------------------------------------------------

    def load_divisions(self) -> Optional[list[CapitalDivision]]:
        return self._load(DIVISIONS_KEY, self._divisions)

    def save_divisions(self, divisions: list[CapitalDivision]) -> None:
        self._save(DIVISIONS_KEY, self._divisions, divisions)

    # --- Spreadsheets ------------------------------------------------------

    def load_spreadsheets(self) -> Optional[list[Spreadsheet]]:
        return self._load(SPREADSHEETS_KEY, self._spreadsheets)

    def save_spreadsheets(self, spreadsheets: list[Spreadsheet]) -> None:
        self._save(SPREADSHEETS_KEY, self._spreadsheets, spreadsheets)

    # --- Internals ---------------------------------------------------------

    def _decode(self, name: str, raw: str, adapter: TypeAdapter) -> list:
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            raise MalformedPersistedDataError(self.key(name), f"{e.error_count()} validation error(s)") from e

    def _load(self, name: str, adapter: TypeAdapter) -> Optional[list]:
        raw = self._store.get(self.key(name))
        if raw is None:
            return None
        try:
            return self._decode(name, raw, adapter)
        except MalformedPersistedDataError as e:
            logger.warning("local_blob_discarded", key=e.key, reason=e.reason)
            return None

    def _save(self, name: str, adapter: TypeAdapter, items: list) -> None:
        payload = adapter.dump_json(items, by_alias=True).decode("utf-8")
        self._store.set(self.key(name), payload)
