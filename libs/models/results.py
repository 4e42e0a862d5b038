# =============================================================================
# Backfill Result Models
# =============================================================================
# Structured results returned by the migrator, orchestrator, validator,
# rollback executor and sample previewer, plus the progress event shape.
# =============================================================================

"""Result, report and progress models for the province backfill."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

__all__ = [
    "DocumentError",
    "CollectionMigrationResult",
    "MigrationSummary",
    "MigrationRunResult",
    "CollectionValidation",
    "ValidationSummary",
    "ValidationReport",
    "CollectionRollbackResult",
    "RollbackSummary",
    "RollbackResult",
    "ProgressPhase",
    "ProgressEvent",
    "PreviewDocument",
    "CollectionPreview",
]


# =============================================================================
# Migration
# =============================================================================

class DocumentError(BaseModel):
    """A per-document failure recorded during a migration."""

    doc_id: str
    error: str


class CollectionMigrationResult(BaseModel):
    """
    Outcome of migrating one collection.

    `success` is False only when a page fetch, a batch commit, a timeout or a
    cancellation stopped the collection. Per-document problems are listed in
    `errors` and leave `success` untouched.

    Attributes:
        success: Whether the collection was walked to its last page
        migrated: Documents updated by committed batches
        skipped: Documents that already carried the derived field
        errors: Per-document failures
        error: Collection-level failure message, if any
    """

    success: bool
    migrated: int = 0
    skipped: int = 0
    errors: list[DocumentError] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        migrated: int = 0,
        skipped: int = 0,
        errors: Optional[list[DocumentError]] = None,
    ) -> "CollectionMigrationResult":
        """Build a failed result, keeping whatever was committed before the failure."""
        return cls(
            success=False,
            migrated=migrated,
            skipped=skipped,
            errors=list(errors or []),
            error=message,
        )


class MigrationSummary(BaseModel):
    """Aggregate counts over every targeted collection."""

    total_collections: int = 0
    successful_collections: int = 0
    failed_collections: int = 0
    total_migrated: int = 0
    total_skipped: int = 0
    total_errors: int = 0

    @classmethod
    def from_results(
        cls, results: dict[str, CollectionMigrationResult]
    ) -> "MigrationSummary":
        successful = sum(1 for r in results.values() if r.success)
        return cls(
            total_collections=len(results),
            successful_collections=successful,
            failed_collections=len(results) - successful,
            total_migrated=sum(r.migrated for r in results.values()),
            total_skipped=sum(r.skipped for r in results.values()),
            total_errors=sum(len(r.errors) for r in results.values()),
        )


class MigrationRunResult(BaseModel):
    """
    Result of one orchestrated backfill run.

    `per_collection` is keyed by collection display name and populated in
    registry order.
    """

    start_time: datetime
    end_time: Optional[datetime] = None
    duration_ms: Optional[int] = None
    per_collection: dict[str, CollectionMigrationResult] = Field(default_factory=dict)
    summary: MigrationSummary = Field(default_factory=MigrationSummary)

    @property
    def completed_cleanly(self) -> bool:
        """True when no collection failed and no document errored."""
        return self.summary.failed_collections == 0 and self.summary.total_errors == 0


# =============================================================================
# Validation
# =============================================================================

class CollectionValidation(BaseModel):
    """Presence counts of the derived field for one collection."""

    total: int = 0
    with_derived_field: int = 0
    without_derived_field: int = 0
    is_valid: bool = False
    error: Optional[str] = None


class ValidationSummary(BaseModel):
    total_collections: int = 0
    valid_collections: int = 0
    invalid_collections: int = 0
    total_documents: int = 0
    documents_with_derived_field: int = 0
    documents_without_derived_field: int = 0


class ValidationReport(BaseModel):
    """Per-collection and aggregate validation of a backfill."""

    collections: dict[str, CollectionValidation] = Field(default_factory=dict)
    summary: ValidationSummary = Field(default_factory=ValidationSummary)

    @property
    def is_valid(self) -> bool:
        return self.summary.invalid_collections == 0


# =============================================================================
# Rollback
# =============================================================================

class CollectionRollbackResult(BaseModel):
    success: bool
    rolled_back: int = 0
    error: Optional[str] = None


class RollbackSummary(BaseModel):
    total_collections: int = 0
    rolled_back_collections: int = 0
    failed_collections: int = 0
    total_documents_rolled_back: int = 0


class RollbackResult(BaseModel):
    """Result of removing the backfilled fields from every registered collection."""

    start_time: datetime
    end_time: Optional[datetime] = None
    per_collection: dict[str, CollectionRollbackResult] = Field(default_factory=dict)
    summary: RollbackSummary = Field(default_factory=RollbackSummary)


# =============================================================================
# Progress
# =============================================================================

class ProgressPhase(str, Enum):
    MIGRATE = "migrate"
    ROLLBACK = "rollback"


class ProgressEvent(BaseModel):
    """
    Progress snapshot delivered to observers.

    Counts are cumulative for `collection_name` and never decrease within a
    collection. `total_estimated` is a lower-bound estimate because the size
    of a growing collection is not known up front.
    """

    phase: ProgressPhase = ProgressPhase.MIGRATE
    collection_name: str
    processed: int = 0
    total_estimated: int = 0
    migrated: int = 0
    skipped: int = 0
    errors: int = 0
    collection_index: Optional[int] = None
    total_collections: Optional[int] = None
    completed_collections: Optional[int] = None

    @property
    def percent(self) -> int:
        if self.total_estimated <= 0:
            return 0
        return min(100, round(self.processed * 100 / self.total_estimated))


# =============================================================================
# Sample preview
# =============================================================================

class PreviewDocument(BaseModel):
    doc_id: str
    branch_code: Optional[str] = None
    current_value: Optional[str] = None
    proposed_value: Optional[str] = None
    will_update: bool = False
    error: Optional[str] = None


class CollectionPreview(BaseModel):
    name: str
    path: str
    documents: list[PreviewDocument] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return bool(self.documents)
