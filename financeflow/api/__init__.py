"""HTTP API package."""

from financeflow.api.legacy import DivisionsFile, create_app, main, sanitize_divisions

__all__ = ["DivisionsFile", "create_app", "main", "sanitize_divisions"]
