"""Services package."""

from financeflow.services.legacy import LegacyApiError, LegacyDivisionsClient
from financeflow.services.session import SessionContext
from financeflow.services.storage import (
    BackendConnectionError,
    FinanceStoreInterface,
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
    LocalFinanceStore,
    MalformedPersistedDataError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteOperationFailedError,
    StorageError,
)

__all__ = [
    # Session
    "SessionContext",
    # Legacy HTTP mirror
    "LegacyApiError",
    "LegacyDivisionsClient",
    # Storage services
    "BackendConnectionError",
    "FinanceStoreInterface",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStoreInterface",
    "LocalFinanceStore",
    "MalformedPersistedDataError",
    "NotAuthenticatedError",
    "NotFoundError",
    "RemoteOperationFailedError",
    "StorageError",
]
