# =============================================================================
# Backfill Service - Run Management for the Dashboard
# =============================================================================
# Holds the one backfill that may run at a time, its pause/cancel control
# and its latest progress, on top of the shared BackfillService.
# =============================================================================

import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from libs.backfill import BackfillService, ProgressTracker, RunControl
from libs.backfill.stores import MongoDocumentStore, build_store
from libs.models import (
    BackfillRequest,
    BackfillSettings,
    MigrationRunResult,
    StoreBackend,
    StoreSettings,
)

from app.config import get_settings

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    CANCELLING = "cancelling"


class RunInProgressError(Exception):
    """A backfill or rollback is already running."""


class BackfillRunService:
    """Service for starting and steering backfill runs from the webapp."""

    def __init__(self, service: Optional[BackfillService] = None) -> None:
        if service is None:
            service = BackfillService(self._build_store(), settings=BackfillSettings())
        self._service = service
        self._lock = threading.Lock()
        self._control: Optional[RunControl] = None
        self._tracker = ProgressTracker()
        self._started_at: Optional[datetime] = None
        self._selected: Optional[list[str]] = None
        self._last_result: Optional[MigrationRunResult] = None
        self._last_error: Optional[str] = None

    @staticmethod
    def _build_store():
        settings = get_settings()
        if settings.backfill_store == StoreBackend.FIRESTORE.value:
            return build_store(StoreSettings(backend=StoreBackend.FIRESTORE))
        return MongoDocumentStore.from_connection_string(
            settings.mongo_connection_string,
            settings.mongo_database,
            socket_timeout_ms=settings.mongo_socket_timeout_ms,
        )

    @property
    def backfill(self) -> BackfillService:
        return self._service

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def start_run(self, request: BackfillRequest) -> Optional[list[str]]:
        """
        Reserve the run slot for a new backfill.

        Returns the selected collection names (None = all). The caller
        then hands the request to `execute_run`, usually in a background task.

        Raises:
            ValueError: If the preset or rate-limit mode is unknown
            RunInProgressError: If a run is already active
        """
        mode = request.mode or get_settings().backfill_default_mode
        BackfillSettings.for_mode(mode)
        selected = self._service.resolve_selection(request.collections, request.preset)

        with self._lock:
            if self._control is not None:
                raise RunInProgressError("A backfill run is already in progress")
            self._control = RunControl()
            self._tracker.reset()
            self._started_at = datetime.now(timezone.utc)
            self._selected = selected
            self._last_error = None
        return selected

    def execute_run(self, request: BackfillRequest) -> None:
        """Run the reserved backfill to completion. Blocking."""
        control = self._control
        if control is None:
            raise RuntimeError("execute_run called without start_run")

        mode = request.mode or get_settings().backfill_default_mode
        try:
            service = self._service.with_settings(BackfillSettings.for_mode(mode))
            self._last_result = service.execute_migration(
                on_progress=self._tracker,
                selected_collection_names=self._selected,
                control=control,
            )
        except Exception as e:
            logger.error(f"Backfill run failed: {e}")
            self._last_error = str(e)
        finally:
            with self._lock:
                self._control = None

    def rollback(self) -> Any:
        with self._lock:
            if self._control is not None:
                raise RunInProgressError("Cannot roll back while a run is in progress")
            self._control = RunControl()
        try:
            return self._service.rollback_migration(on_progress=self._tracker, control=self._control)
        finally:
            with self._lock:
                self._control = None

    # ------------------------------------------------------------------
    # Steering
    # ------------------------------------------------------------------

    def pause(self) -> bool:
        with self._lock:
            if self._control is None:
                return False
            self._control.pause()
            return True

    def resume(self) -> bool:
        with self._lock:
            if self._control is None:
                return False
            self._control.resume()
            return True

    def cancel(self) -> bool:
        with self._lock:
            if self._control is None:
                return False
            self._control.cancel()
            return True

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        with self._lock:
            control = self._control
        if control is None:
            return RunState.IDLE
        if control.is_cancelled:
            return RunState.CANCELLING
        if control.is_paused:
            return RunState.PAUSED
        return RunState.RUNNING

    def progress(self) -> dict:
        latest = self._tracker.latest
        return {
            "state": self.state.value,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "selected_collections": self._selected,
            "progress": latest.model_dump(mode="json") if latest else None,
            "percent": latest.percent if latest else 0,
            "last_result": (
                self._last_result.model_dump(mode="json") if self._last_result else None
            ),
            "last_error": self._last_error,
        }


# Singleton instance
_backfill_run_service: Optional[BackfillRunService] = None


def get_backfill_service() -> BackfillRunService:
    """Get or create the backfill run service singleton."""
    global _backfill_run_service
    if _backfill_run_service is None:
        _backfill_run_service = BackfillRunService()
    return _backfill_run_service
