"""Synchronization package: the controller and its retry queue."""

from financeflow.sync.controller import SynchronizationController, new_local_id
from financeflow.sync.retry_queue import PendingOperation, ReplayReport, RetryQueue

__all__ = [
    "PendingOperation",
    "ReplayReport",
    "RetryQueue",
    "SynchronizationController",
    "new_local_id",
]
