"""
Main Orchestrator for FinanceFlow

This module ties together all the components: session, local and
remote storage, the legacy HTTP mirror, the retry queue and the
synchronization controller.

DESIGN DECISION: Missing configuration narrows what the app can do,
it never stops it from starting:
- No Google Sheets settings: local-only mode, sign-in still works but
  every change stays on the device
- No data directory: in-memory local storage
- Legacy mirror disabled: signed-out division edits stay local
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from financeflow.config import get_settings
from financeflow.logs import SyncLogger, configure_logging
from financeflow.services import (
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    LegacyDivisionsClient,
    LocalFinanceStore,
    SessionContext,
)
from financeflow.sync import RetryQueue, SynchronizationController

logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything the UI needs, already wired."""
    session: SessionContext
    controller: SynchronizationController
    remote_store: Optional[GoogleSheetsFinanceStore] = None
    legacy_client: Optional[LegacyDivisionsClient] = None


def _create_remote_store(session: SessionContext) -> Optional[GoogleSheetsFinanceStore]:
    try:
        sheets_settings = get_settings().google_sheets
    except Exception as e:
        # Storage not configured - continue without it
        logger.warning("remote_store_not_configured", error=str(e))
        return None
    client = GoogleSheetsClient(settings=sheets_settings)
    return GoogleSheetsFinanceStore(session.current_user_id, client)


def create_app_components(
    use_remote: bool = True,
    use_files: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_remote: Whether to initialize the Google Sheets remote store.
                    Set to False for local-only mode.
        use_files: Whether local storage writes JSON files under the
                   configured data directory, or stays in memory.

    Returns:
        AppComponents with a controller that has not loaded yet; await
        controller.load() before reading state.
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    session = SessionContext()

    local_settings = settings.local_storage
    if use_files and local_settings.data_dir:
        key_value_store = JsonFileKeyValueStore(local_settings.data_dir)
    else:
        key_value_store = InMemoryKeyValueStore()
    local_store = LocalFinanceStore(key_value_store, key_prefix=local_settings.key_prefix)

    remote_store = _create_remote_store(session) if use_remote else None

    legacy_settings = settings.legacy_api
    legacy_client = None
    if legacy_settings.enabled:
        legacy_client = LegacyDivisionsClient(
            base_url=legacy_settings.base_url,
            timeout=legacy_settings.timeout_seconds,
        )

    sync_settings = settings.sync
    retry_queue = RetryQueue(
        max_size=sync_settings.retry_queue_size,
        max_attempts=sync_settings.max_retry_attempts,
    )

    controller = SynchronizationController(
        session=session,
        local_store=local_store,
        remote_store=remote_store,
        legacy_client=legacy_client,
        retry_queue=retry_queue,
        sync_logger=SyncLogger(),
        months_back=sync_settings.months_back,
        recent_limit=sync_settings.recent_activity_limit,
    )

    logger.info(
        "app_components_created",
        remote=remote_store is not None,
        legacy=legacy_client is not None,
        local=type(key_value_store).__name__,
    )
    return AppComponents(
        session=session,
        controller=controller,
        remote_store=remote_store,
        legacy_client=legacy_client,
    )
