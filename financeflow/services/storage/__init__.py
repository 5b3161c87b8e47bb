"""
Storage Services Package

Provides abstract interfaces and concrete implementations for both
storage tiers: the remote per-user store (Google Sheets) and local
key-value persistence (JSON files).
"""

from financeflow.services.storage.interface import (
    BackendConnectionError,
    FinanceStoreInterface,
    KeyValueStoreInterface,
    MalformedPersistedDataError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteOperationFailedError,
    StorageError,
)
from financeflow.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
    is_canonical_id,
)
from financeflow.services.storage.local import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    LocalFinanceStore,
)

__all__ = [
    # Interfaces
    "FinanceStoreInterface",
    "KeyValueStoreInterface",
    # Exceptions
    "BackendConnectionError",
    "MalformedPersistedDataError",
    "NotAuthenticatedError",
    "NotFoundError",
    "RemoteOperationFailedError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStore",
    "is_canonical_id",
    # Local persistence
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "LocalFinanceStore",
]
