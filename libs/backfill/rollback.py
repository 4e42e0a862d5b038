# =============================================================================
# Rollback Executor
# =============================================================================
# Removes the fields written by the backfill from every document carrying
# the migration marker. Deletions are committed in bounded sub-batches.
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from libs.models import (
    BackfillFields,
    BackfillSettings,
    CollectionDescriptor,
    CollectionRollbackResult,
    ProgressEvent,
    ProgressPhase,
    RollbackResult,
    RollbackSummary,
)

from .control import ProgressCallback, RunControl
from .errors import MigrationCancelled, StoreError
from .registry import CollectionRegistry
from .stores import DELETE_FIELD, DocumentStore

__all__ = ["RollbackExecutor"]

logger = logging.getLogger(__name__)


class RollbackExecutor:
    """
    Undo a backfill across the full registry.

    Only documents whose migrated-by field equals the marker are touched;
    documents the backfill never wrote keep every field. A failing
    collection is recorded and the rollback moves on.
    """

    def __init__(
        self,
        store: DocumentStore,
        registry: CollectionRegistry,
        settings: Optional[BackfillSettings] = None,
        fields: Optional[BackfillFields] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.settings = settings or BackfillSettings()
        self.fields = fields or BackfillFields()
        self._sleep = sleep

    def rollback(
        self,
        on_progress: Optional[ProgressCallback] = None,
        control: Optional[RunControl] = None,
    ) -> RollbackResult:
        control = control or RunControl()
        result = RollbackResult(start_time=datetime.now(timezone.utc))
        collections = list(self.registry)

        logger.info(f"Starting rollback over {len(collections)} collection(s)")

        for index, collection in enumerate(collections):
            result.per_collection[collection.name] = self._rollback_collection(
                collection, on_progress, control, index, len(collections)
            )

        result.end_time = datetime.now(timezone.utc)
        result.summary = self._summarize(result.per_collection)
        logger.info(f"Rollback complete: {result.summary.model_dump()}")
        return result

    def _rollback_collection(
        self,
        collection: CollectionDescriptor,
        on_progress: Optional[ProgressCallback],
        control: RunControl,
        index: int,
        total_collections: int,
    ) -> CollectionRollbackResult:
        """
        Roll back one collection.

        A failure or cancellation keeps the count of documents whose
        sub-batch was already committed.
        """
        name = collection.name
        rolled_back = 0

        def emit(total_estimated: int) -> None:
            if on_progress is None:
                return
            event = ProgressEvent(
                phase=ProgressPhase.ROLLBACK,
                collection_name=name,
                processed=rolled_back,
                total_estimated=total_estimated,
                migrated=rolled_back,
                collection_index=index,
                total_collections=total_collections,
                completed_collections=index,
            )
            try:
                on_progress(event)
            except Exception as e:
                logger.warning(f"Progress observer failed for {name}: {e}")

        try:
            control.raise_if_cancelled()
            matches = self.store.filter_query(
                collection.path, self.fields.migrated_by_field, "==", self.fields.marker
            )
            if not matches:
                logger.info(f"{name}: nothing to roll back")
                return CollectionRollbackResult(success=True)

            deletions = {field_name: DELETE_FIELD for field_name in self.fields.added_fields}
            batch_size = self.settings.rollback_batch_size

            for start in range(0, len(matches), batch_size):
                if start > 0:
                    self._delay(self.settings.batch_delay_seconds, control)
                control.raise_if_cancelled()
                batch = self.store.start_batch()
                for document in matches[start:start + batch_size]:
                    batch.update(document, deletions)
                try:
                    batch.commit()
                except StoreError as e:
                    rolled_back += e.applied
                    raise
                rolled_back += len(batch)
                emit(len(matches))

        except MigrationCancelled:
            logger.warning(f"Rollback cancelled at {name} after {rolled_back} document(s)")
            return CollectionRollbackResult(
                success=False,
                rolled_back=rolled_back,
                error=f"Rollback cancelled for {name}",
            )
        except Exception as e:
            logger.error(f"Rollback failed for {name} after {rolled_back} document(s): {e}")
            return CollectionRollbackResult(success=False, rolled_back=rolled_back, error=str(e))

        logger.info(f"{name}: rolled back {rolled_back} document(s)")
        return CollectionRollbackResult(success=True, rolled_back=rolled_back)

    def _delay(self, seconds: float, control: RunControl) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
            control.raise_if_cancelled()
        else:
            control.wait(seconds)

    @staticmethod
    def _summarize(per_collection: dict[str, CollectionRollbackResult]) -> RollbackSummary:
        failed = sum(1 for r in per_collection.values() if not r.success)
        return RollbackSummary(
            total_collections=len(per_collection),
            rolled_back_collections=sum(
                1 for r in per_collection.values() if r.success and r.rolled_back > 0
            ),
            failed_collections=failed,
            total_documents_rolled_back=sum(r.rolled_back for r in per_collection.values()),
        )
