# =============================================================================
# Migration Validator
# =============================================================================
# Read-only pass over every registered collection counting documents with
# and without the derived field.
# =============================================================================

from __future__ import annotations

import logging
from typing import Optional

from libs.models import (
    BackfillFields,
    BackfillSettings,
    CollectionDescriptor,
    CollectionValidation,
    ValidationReport,
    ValidationSummary,
)

from .registry import CollectionRegistry
from .stores import DocumentStore, StoredDocument

__all__ = ["MigrationValidator"]

logger = logging.getLogger(__name__)


class MigrationValidator:
    """
    Report how much of each collection carries the derived field.

    Validation always covers the full registry, whatever subset a run
    targeted. A collection is valid when no document lacks the field; a
    fetch failure marks that collection invalid and the pass continues.
    """

    def __init__(
        self,
        store: DocumentStore,
        registry: CollectionRegistry,
        settings: Optional[BackfillSettings] = None,
        fields: Optional[BackfillFields] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.settings = settings or BackfillSettings()
        self.fields = fields or BackfillFields()

    def validate(self) -> ValidationReport:
        report = ValidationReport()

        for collection in self.registry:
            try:
                report.collections[collection.name] = self._validate_collection(collection)
            except Exception as e:
                logger.warning(f"Validation failed for {collection.name}: {e}")
                report.collections[collection.name] = CollectionValidation(
                    is_valid=False, error=str(e)
                )

        report.summary = self._summarize(report.collections)
        logger.info(f"Validation complete: {report.summary.model_dump()}")
        return report

    def _validate_collection(self, collection: CollectionDescriptor) -> CollectionValidation:
        page_size = self.settings.validation_page_size
        total = 0
        with_field = 0
        cursor: Optional[StoredDocument] = None

        while True:
            page = self.store.page_query(collection.path, page_size, after=cursor)
            for document in page:
                total += 1
                if document.data.get(self.fields.derived_field):
                    with_field += 1
            if len(page) < page_size:
                break
            cursor = page[-1]

        without_field = total - with_field
        return CollectionValidation(
            total=total,
            with_derived_field=with_field,
            without_derived_field=without_field,
            is_valid=without_field == 0,
        )

    @staticmethod
    def _summarize(collections: dict[str, CollectionValidation]) -> ValidationSummary:
        valid = sum(1 for v in collections.values() if v.is_valid)
        return ValidationSummary(
            total_collections=len(collections),
            valid_collections=valid,
            invalid_collections=len(collections) - valid,
            total_documents=sum(v.total for v in collections.values()),
            documents_with_derived_field=sum(v.with_derived_field for v in collections.values()),
            documents_without_derived_field=sum(
                v.without_derived_field for v in collections.values()
            ),
        )
