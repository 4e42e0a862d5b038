# =============================================================================
# Paged Batch Migrator
# =============================================================================
# Walks one collection page by page in document-id order, derives the
# province for every document that does not carry it yet, and commits the
# updates in small batches separated by back-pressure delays.
# =============================================================================

"""Per-collection backfill engine."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from libs.models import (
    BackfillFields,
    BackfillSettings,
    CollectionDescriptor,
    CollectionMigrationResult,
    DocumentError,
    ProgressEvent,
)

from .control import ProgressCallback, RunControl
from .errors import MalformedDocumentError, MigrationCancelled, StoreError
from .resolver import BranchProvinceResolver
from .stores import DocumentStore, StoredDocument

__all__ = ["PagedBatchMigrator", "extract_branch_code"]

logger = logging.getLogger(__name__)


def extract_branch_code(
    data: dict[str, Any], branch_field: str, fallback_branch_field: str
) -> Optional[str]:
    """
    Read the branch code from a document, preferring the primary field.

    Empty values fall through to the fallback field. Integer codes are
    accepted and read as their decimal string.

    Raises:
        MalformedDocumentError: If the chosen field holds a non-scalar value
    """
    for field_name in (branch_field, fallback_branch_field):
        value = data.get(field_name)
        if not value:
            continue
        if isinstance(value, str):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        raise MalformedDocumentError(
            f"Field '{field_name}' holds {type(value).__name__}, expected a branch code string"
        )
    return None


class PagedBatchMigrator:
    """
    Backfills the derived province field into one collection.

    The walk is idempotent: documents already carrying a non-empty derived
    field are counted as skipped and never rewritten, so re-running after an
    interruption only does the remaining work.

    Args:
        store: Document store to read from and write to
        settings: Paging, batching and delay tunables
        fields: Names of the written fields and the migration marker
        resolver: Branch code → province lookup
        sleep: Replaces the cancellation-aware delay (tests pass a recorder)
        clock: Returns the timestamp written to the migrated-at field
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[BackfillSettings] = None,
        fields: Optional[BackfillFields] = None,
        resolver: Optional[BranchProvinceResolver] = None,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.settings = settings or BackfillSettings()
        self.fields = fields or BackfillFields()
        self.resolver = resolver or BranchProvinceResolver()
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Per-document derivation
    # ------------------------------------------------------------------

    def is_migrated(self, document: StoredDocument) -> bool:
        return bool(document.data.get(self.fields.derived_field))

    def build_update(
        self, document: StoredDocument, collection: CollectionDescriptor
    ) -> dict[str, Any]:
        """Fields to write on a document that has not been migrated yet."""
        branch_code = extract_branch_code(
            document.data, collection.branch_field, collection.fallback_branch_field
        )
        province_id = self.resolver.resolve(branch_code)
        return {
            self.fields.derived_field: province_id,
            self.fields.audit_field: province_id,
            self.fields.migrated_at_field: self._clock(),
            self.fields.migrated_by_field: self.fields.marker,
        }

    # ------------------------------------------------------------------
    # Collection walk
    # ------------------------------------------------------------------

    def migrate(
        self,
        collection: CollectionDescriptor,
        on_progress: Optional[ProgressCallback] = None,
        control: Optional[RunControl] = None,
    ) -> CollectionMigrationResult:
        """
        Migrate every document of `collection`.

        Per-document failures are recorded in `errors`. A failing page fetch
        or batch commit, or a cancellation, ends the collection with
        success=False and the counts committed so far.
        """
        control = control or RunControl()
        page_size = self.settings.page_size
        name = collection.name

        migrated = 0
        skipped = 0
        processed = 0
        fetched = 0
        errors: list[DocumentError] = []

        def emit(total_estimated: int) -> None:
            if on_progress is None:
                return
            event = ProgressEvent(
                collection_name=name,
                processed=processed,
                total_estimated=max(total_estimated, processed),
                migrated=migrated,
                skipped=skipped,
                errors=len(errors),
            )
            try:
                on_progress(event)
            except Exception as e:
                logger.warning(f"Progress observer failed for {name}: {e}")

        logger.info(f"Starting migration for {name} ({collection.path})")

        try:
            if not self.store.probe(collection.path):
                logger.info(f"{name}: no documents found")
                return CollectionMigrationResult(success=True)

            cursor: Optional[StoredDocument] = None
            while True:
                control.wait_if_paused()
                page = self.store.page_query(collection.path, page_size, after=cursor)
                if not page:
                    break

                fetched += len(page)
                estimate = fetched + (page_size if len(page) == page_size else 0)

                staged: list[tuple[StoredDocument, dict[str, Any]]] = []
                for document in page:
                    processed += 1
                    if self.is_migrated(document):
                        skipped += 1
                    else:
                        try:
                            staged.append((document, self.build_update(document, collection)))
                        except Exception as e:
                            logger.warning(f"{name}: cannot migrate document {document.id}: {e}")
                            errors.append(DocumentError(doc_id=document.id, error=str(e)))

                    if processed % self.settings.progress_interval == 0:
                        emit(estimate)

                batch_size = self.settings.batch_size
                chunks = [staged[i:i + batch_size] for i in range(0, len(staged), batch_size)]
                for index, chunk in enumerate(chunks):
                    if index > 0:
                        self._delay(self.settings.batch_delay_seconds, control)
                    control.raise_if_cancelled()
                    batch = self.store.start_batch()
                    for document, update in chunk:
                        batch.update(document, update)
                    try:
                        batch.commit()
                    except StoreError as e:
                        migrated += e.applied
                        raise
                    migrated += len(chunk)
                    logger.debug(f"{name}: committed batch {index + 1}/{len(chunks)}")
                    emit(estimate)

                cursor = page[-1]
                if len(page) < page_size:
                    break
                self._delay(self.settings.page_delay_seconds, control)

        except MigrationCancelled as e:
            logger.warning(f"{name}: {e} after {processed} document(s)")
            return CollectionMigrationResult.failure(
                f"Migration cancelled for {name}",
                migrated=migrated,
                skipped=skipped,
                errors=errors,
            )
        except Exception as e:
            logger.error(f"Failed to migrate {name}: {e}")
            return CollectionMigrationResult.failure(
                str(e), migrated=migrated, skipped=skipped, errors=errors
            )

        emit(processed)
        logger.info(
            f"{name}: migrated {migrated}, skipped {skipped}, "
            f"errors {len(errors)}, processed {processed}"
        )
        return CollectionMigrationResult(
            success=True, migrated=migrated, skipped=skipped, errors=errors
        )

    def _delay(self, seconds: float, control: RunControl) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
            control.raise_if_cancelled()
        else:
            control.wait(seconds)
        control.wait_if_paused()
