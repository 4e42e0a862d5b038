# =============================================================================
# Services Module
# =============================================================================
# Service wrappers for the backfill run lifecycle.
# =============================================================================

from app.services.backfill_service import (
    BackfillRunService,
    RunInProgressError,
    RunState,
    get_backfill_service,
)

__all__ = [
    "BackfillRunService",
    "RunInProgressError",
    "RunState",
    "get_backfill_service",
]
