"""
Sync Logger

DESIGN DECISION: Sync failures are never raised to the UI, so the log is
the only place a silent fallback leaves a trace. Every decision the
controller makes (which source it loaded from, which remote write failed,
what the retry queue did) is logged as a structured event.

The logger:
- Writes JSON lines through structlog's stdlib integration
- Passes only strings, numbers and booleans, so rendering an event can't fail
- Binds the user id so events from one session can be grouped
"""

import logging
from typing import Optional

import structlog


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: str = "INFO") -> None:
    """Route structlog's stdlib output to stderr at the given level."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, log_level.upper(), logging.INFO))


class SyncLogger:
    """
    Structured log of synchronization events.

    One method per event keeps event names and fields consistent, which
    is what makes the JSON log greppable.
    """

    def __init__(self, name: str = "financeflow.sync"):
        self._logger = structlog.get_logger(name)

    def bind_user(self, user_id: Optional[str]) -> None:
        """Attach the current user id to every subsequent event."""
        self._logger = self._logger.bind(user_id=user_id)

    def session_changed(self, authenticated: bool) -> None:
        self._logger.info("session_changed", authenticated=authenticated)

    def load_completed(
        self,
        source: str,
        transactions: int,
        divisions: int,
        spreadsheets: int,
        seeded_divisions: bool = False,
    ) -> None:
        self._logger.info(
            "load_completed",
            source=source,
            transactions=transactions,
            divisions=divisions,
            spreadsheets=spreadsheets,
            seeded_divisions=seeded_divisions,
        )

    def load_fell_back(self, error: Exception) -> None:
        """Remote load failed; state came from local storage instead."""
        self._logger.warning(
            "load_fell_back_to_local",
            error=str(error),
            error_type=type(error).__name__,
        )

    def remote_write_failed(self, operation: str, error: Exception, queued: bool) -> None:
        self._logger.warning(
            "remote_write_failed",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            queued_for_retry=queued,
        )

    def remote_write_synced(self, operation: str) -> None:
        self._logger.debug("remote_write_synced", operation=operation)

    def retry_replayed(self, operation: str, attempts: int) -> None:
        self._logger.info("retry_replayed", operation=operation, attempts=attempts)

    def retry_failed(self, operation: str, attempts: int, error: Optional[str]) -> None:
        self._logger.warning(
            "retry_failed",
            operation=operation,
            attempts=attempts,
            error=str(error),
        )

    def retry_dropped(self, operation: str, attempts: int, reason: str) -> None:
        self._logger.error(
            "retry_dropped",
            operation=operation,
            attempts=attempts,
            reason=reason,
        )

    def legacy_write_failed(self, error: Exception) -> None:
        """Best-effort legacy side write failed; the caller carries on."""
        self._logger.debug("legacy_write_failed", error=str(error))
