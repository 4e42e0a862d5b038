# =============================================================================
# Run Control and Progress Tracking
# =============================================================================
# Cooperative cancellation / pause checked at page and batch boundaries, and
# a thread-safe observer that keeps the latest progress event.
# =============================================================================

import threading
from typing import Callable, Optional

from libs.models import ProgressEvent

from .errors import MigrationCancelled

__all__ = ["ProgressCallback", "RunControl", "ProgressTracker"]

ProgressCallback = Callable[[ProgressEvent], None]


class RunControl:
    """
    Cancellation and pause flags shared between a caller and a running backfill.

    A child control is cancelled when either it or its parent is cancelled,
    and is paused while its parent is paused.
    """

    def __init__(self, parent: Optional["RunControl"] = None) -> None:
        self._parent = parent
        self._cancelled = threading.Event()
        self._running = threading.Event()
        self._running.set()

    def child(self) -> "RunControl":
        return RunControl(parent=self)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.is_cancelled

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise MigrationCancelled("Migration cancelled")

    # ------------------------------------------------------------------
    # Pause / resume
    # ------------------------------------------------------------------

    def pause(self) -> None:
        self._running.clear()

    def resume(self) -> None:
        self._running.set()

    @property
    def is_paused(self) -> bool:
        if not self._running.is_set():
            return True
        return self._parent is not None and self._parent.is_paused

    def wait_if_paused(self, poll_seconds: float = 0.5) -> None:
        """Block while paused; raise MigrationCancelled if cancelled."""
        while self.is_paused and not self.is_cancelled:
            self._cancelled.wait(poll_seconds)
        self.raise_if_cancelled()

    def wait(self, seconds: float) -> None:
        """
        Sleep for `seconds`, returning early if cancelled.

        Raises:
            MigrationCancelled: If the control is cancelled before or during the wait
        """
        self.raise_if_cancelled()
        if seconds > 0:
            remaining = seconds
            # Poll in slices so a parent cancellation is observed promptly
            while remaining > 0 and not self.is_cancelled:
                step = min(remaining, 0.25)
                self._cancelled.wait(step)
                remaining -= step
        self.raise_if_cancelled()


class ProgressTracker:
    """Observer retaining the most recent ProgressEvent."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: Optional[ProgressEvent] = None

    def __call__(self, event: ProgressEvent) -> None:
        with self._lock:
            self._latest = event

    @property
    def latest(self) -> Optional[ProgressEvent]:
        with self._lock:
            return self._latest

    def reset(self) -> None:
        with self._lock:
            self._latest = None
