"""Logging package."""

from financeflow.logs.logger import SyncLogger, configure_logging

__all__ = ["SyncLogger", "configure_logging"]
