# =============================================================================
# Sample Previewer
# =============================================================================
# Shows, for the first few documents of each collection, what a backfill
# would write. Never writes.
# =============================================================================

from __future__ import annotations

import logging
from typing import Iterable, Optional

from libs.models import (
    BackfillFields,
    CollectionDescriptor,
    CollectionPreview,
    PreviewDocument,
)

from .migrator import extract_branch_code
from .registry import CollectionRegistry
from .resolver import BranchProvinceResolver
from .stores import DocumentStore

__all__ = ["SamplePreviewer"]

logger = logging.getLogger(__name__)


class SamplePreviewer:
    """Read-only preview of the derived values for a sample of documents."""

    def __init__(
        self,
        store: DocumentStore,
        registry: CollectionRegistry,
        fields: Optional[BackfillFields] = None,
        resolver: Optional[BranchProvinceResolver] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.fields = fields or BackfillFields()
        self.resolver = resolver or BranchProvinceResolver()

    def preview(
        self,
        collection_names: Optional[Iterable[str]] = None,
        limit: int = 3,
    ) -> list[CollectionPreview]:
        """
        Preview the first `limit` documents of each selected collection.

        Args:
            collection_names: Collections to sample (all when None; unknown names ignored)
            limit: Documents sampled per collection

        Raises:
            ValueError: If limit is not positive
        """
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")

        previews = []
        for collection in self.registry.select(collection_names):
            try:
                previews.append(self._preview_collection(collection, limit))
            except Exception as e:
                logger.warning(f"Preview failed for {collection.name}: {e}")
                previews.append(
                    CollectionPreview(name=collection.name, path=collection.path, error=str(e))
                )
        return previews

    def _preview_collection(self, collection: CollectionDescriptor, limit: int) -> CollectionPreview:
        preview = CollectionPreview(name=collection.name, path=collection.path)

        for document in self.store.page_query(collection.path, limit):
            current = document.data.get(self.fields.derived_field)
            try:
                branch_code = extract_branch_code(
                    document.data, collection.branch_field, collection.fallback_branch_field
                )
            except Exception as e:
                preview.documents.append(
                    PreviewDocument(
                        doc_id=document.id,
                        current_value=str(current) if current else None,
                        error=str(e),
                    )
                )
                continue

            preview.documents.append(
                PreviewDocument(
                    doc_id=document.id,
                    branch_code=branch_code,
                    current_value=str(current) if current else None,
                    proposed_value=self.resolver.resolve(branch_code),
                    will_update=not current,
                )
            )

        return preview
