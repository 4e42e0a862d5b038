# =============================================================================
# Migration Orchestrator
# =============================================================================
# Runs the paged batch migrator over the selected collections one at a time,
# enforces a per-collection timeout, aggregates the results and persists the
# last-run audit record.
# =============================================================================

"""Sequential, failure-isolating backfill run across many collections."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from libs.models import (
    BackfillSettings,
    CollectionDescriptor,
    CollectionMigrationResult,
    MigrationRunRecord,
    MigrationRunResult,
    MigrationSummary,
    ProgressEvent,
)

from .control import ProgressCallback, RunControl
from .migrator import PagedBatchMigrator
from .registry import CollectionRegistry

__all__ = ["MigrationOrchestrator"]

logger = logging.getLogger(__name__)

# Slice length when waiting on a worker, so paused time can be left out
_POLL_SECONDS = 0.5


class MigrationOrchestrator:
    """
    Drive a backfill run across a registry of collections.

    Collections are processed strictly in registry order, one at a time.
    Every targeted collection yields exactly one result: a timeout,
    cancellation or unexpected exception becomes a failed result for that
    collection and the run moves on to the next one.

    Args:
        migrator: Per-collection engine (owns the store, settings and fields)
        registry: Target collections
        sleep: Replaces the pause between collections (tests pass a recorder)
    """

    def __init__(
        self,
        migrator: PagedBatchMigrator,
        registry: CollectionRegistry,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.migrator = migrator
        self.registry = registry
        self._sleep = sleep

    @property
    def settings(self) -> BackfillSettings:
        return self.migrator.settings

    def run(
        self,
        selected_collection_names: Optional[Iterable[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
        control: Optional[RunControl] = None,
    ) -> MigrationRunResult:
        """
        Migrate the selected collections (all when None) and persist the run record.

        Unknown collection names are ignored.
        """
        control = control or RunControl()
        if selected_collection_names is not None:
            selected_collection_names = list(selected_collection_names)
            unknown = self.registry.unknown_names(selected_collection_names)
            if unknown:
                logger.warning(f"Ignoring unknown collection name(s): {', '.join(unknown)}")

        targets = self.registry.select(selected_collection_names)
        started = time.monotonic()
        result = MigrationRunResult(start_time=datetime.now(timezone.utc))

        logger.info(f"Starting province backfill over {len(targets)} collection(s)")

        for index, collection in enumerate(targets):
            if control.is_cancelled:
                result.per_collection[collection.name] = CollectionMigrationResult.failure(
                    f"Run cancelled before {collection.name} started"
                )
                continue

            logger.info(f"Processing collection {index + 1}/{len(targets)}: {collection.name}")
            forward = self._progress_forwarder(
                on_progress, index, len(targets), len(result.per_collection)
            )
            result.per_collection[collection.name] = self._migrate_one(collection, forward, control)

            if index < len(targets) - 1:
                self._yield_between_collections(control)

        result.end_time = datetime.now(timezone.utc)
        result.duration_ms = int((time.monotonic() - started) * 1000)
        result.summary = MigrationSummary.from_results(result.per_collection)

        logger.info(
            f"Province backfill complete in {result.duration_ms}ms: "
            f"{result.summary.model_dump()}"
        )
        self._persist(result)
        return result

    def _migrate_one(
        self,
        collection: CollectionDescriptor,
        on_progress: Optional[ProgressCallback],
        control: RunControl,
    ) -> CollectionMigrationResult:
        collection_control = control.child()
        timeout = self.settings.collection_timeout_seconds
        # One worker per collection, so an abandoned worker never delays the next one
        worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="backfill")
        future = worker.submit(self.migrator.migrate, collection, on_progress, collection_control)

        try:
            return self._await_result(future, timeout, control)
        except FutureTimeoutError:
            collection_control.cancel()
            message = f"Migration timeout after {timeout:g}s for {collection.name}"
            logger.error(message)
            partial = self._wait_for_worker(future, collection.name)
            return CollectionMigrationResult.failure(
                message,
                migrated=partial.migrated if partial else 0,
                skipped=partial.skipped if partial else 0,
                errors=partial.errors if partial else None,
            )
        except Exception as e:
            logger.error(f"Critical error migrating {collection.name}: {e}")
            return CollectionMigrationResult.failure(str(e))
        finally:
            worker.shutdown(wait=False)

    @staticmethod
    def _await_result(
        future, timeout: float, control: RunControl
    ) -> CollectionMigrationResult:
        """
        Wait for the worker, counting only time the run was not paused.

        Raises:
            FutureTimeoutError: Once `timeout` seconds of unpaused time have passed
        """
        elapsed = 0.0
        while True:
            step = min(_POLL_SECONDS, timeout - elapsed)
            paused = control.is_paused
            tick = time.monotonic()
            try:
                return future.result(timeout=step)
            except FutureTimeoutError:
                if not (paused or control.is_paused):
                    elapsed += time.monotonic() - tick
                if elapsed >= timeout:
                    raise

    def _wait_for_worker(self, future, name: str) -> Optional[CollectionMigrationResult]:
        """
        Give a cancelled worker `timeout_grace_seconds` to stop at its next boundary.

        A worker still blocked in a store call after the grace period is
        abandoned. Its control stays cancelled, so it stages no further
        batch once the call returns.
        """
        grace = self.settings.timeout_grace_seconds
        try:
            return future.result(timeout=grace)
        except FutureTimeoutError:
            logger.error(f"Abandoning {name} worker still blocked {grace:g}s after its timeout")
            return None
        except Exception as e:
            logger.warning(f"Timed-out migration ended with an error: {e}")
            return None

    @staticmethod
    def _progress_forwarder(
        on_progress: Optional[ProgressCallback],
        index: int,
        total: int,
        completed: int,
    ) -> Optional[ProgressCallback]:
        if on_progress is None:
            return None

        def forward(event: ProgressEvent) -> None:
            on_progress(
                event.model_copy(
                    update={
                        "collection_index": index,
                        "total_collections": total,
                        "completed_collections": completed,
                    }
                )
            )

        return forward

    def _yield_between_collections(self, control: RunControl) -> None:
        seconds = self.settings.collection_delay_seconds
        if self._sleep is not None:
            self._sleep(seconds)
        elif seconds > 0 and not control.is_cancelled:
            time.sleep(seconds)

    def _persist(self, result: MigrationRunResult) -> None:
        record = MigrationRunRecord.from_result(result, version=self.settings.audit_version)
        try:
            self.migrator.store.persist_record(self.settings.audit_record_key, record.model_dump())
            logger.info(f"Saved run record '{self.settings.audit_record_key}' ({record.status})")
        except Exception as e:
            logger.error(f"Failed to save run record '{self.settings.audit_record_key}': {e}")
