"""
Sync Result Models

Every mutating controller method returns a SyncResult instead of raising,
so the UI never blocks on the network but can still tell "saved everywhere"
apart from "saved on this device only".
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SyncOutcome(str, Enum):
    SYNCED = "synced"          # Remote write and refetch succeeded
    LOCAL_ONLY = "local_only"  # Signed out, or a local-only operation
    DEGRADED = "degraded"      # Remote failed; local state kept, write queued


class SyncResult(BaseModel):
    """Outcome of one controller mutation."""

    outcome: SyncOutcome
    operation: str = Field(..., description="Controller operation name")
    error_message: Optional[str] = None
    queued_for_retry: bool = False
    entity_id: Optional[str] = Field(default=None, description="Id of the created entity, remote id once synced")

    @property
    def is_synced(self) -> bool:
        return self.outcome == SyncOutcome.SYNCED

    @property
    def is_degraded(self) -> bool:
        return self.outcome == SyncOutcome.DEGRADED

    @classmethod
    def synced(cls, operation: str) -> 'SyncResult':
        return cls(outcome=SyncOutcome.SYNCED, operation=operation)

    @classmethod
    def local_only(cls, operation: str) -> 'SyncResult':
        return cls(outcome=SyncOutcome.LOCAL_ONLY, operation=operation)

    @classmethod
    def degraded(cls, operation: str, error: Exception, queued: bool) -> 'SyncResult':
        return cls(
            outcome=SyncOutcome.DEGRADED,
            operation=operation,
            error_message=str(error),
            queued_for_retry=queued,
        )
