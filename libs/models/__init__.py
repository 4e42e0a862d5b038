# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models and settings for the province backfill.
# =============================================================================

"""
Data models for the province backfill.

This library provides:
- CollectionDescriptor / BackfillFields: what is migrated and which fields are written
- Result models: per-collection and run results, validation and rollback reports
- ProgressEvent: progress snapshots delivered to observers
- MigrationRunRecord: the persisted last-run audit record
- Configuration models
"""

__version__ = "0.1.0"

# Collection models
from .collection import (
    BackfillFields,
    CollectionDescriptor,
)

# Result models
from .results import (
    CollectionMigrationResult,
    CollectionPreview,
    CollectionRollbackResult,
    CollectionValidation,
    DocumentError,
    MigrationRunResult,
    MigrationSummary,
    PreviewDocument,
    ProgressEvent,
    ProgressPhase,
    RollbackResult,
    RollbackSummary,
    ValidationReport,
    ValidationSummary,
)

# Run record models
from .run import (
    BackfillRequest,
    MigrationRunRecord,
    RunStatus,
)

# Configuration models
from .config import (
    RATE_LIMIT_PRESETS,
    BackfillSettings,
    FirestoreSettings,
    MongoSettings,
    StoreBackend,
    StoreSettings,
)

__all__ = [
    # Collection models
    "BackfillFields",
    "CollectionDescriptor",
    # Result models
    "CollectionMigrationResult",
    "CollectionPreview",
    "CollectionRollbackResult",
    "CollectionValidation",
    "DocumentError",
    "MigrationRunResult",
    "MigrationSummary",
    "PreviewDocument",
    "ProgressEvent",
    "ProgressPhase",
    "RollbackResult",
    "RollbackSummary",
    "ValidationReport",
    "ValidationSummary",
    # Run record models
    "BackfillRequest",
    "MigrationRunRecord",
    "RunStatus",
    # Configuration models
    "RATE_LIMIT_PRESETS",
    "BackfillSettings",
    "FirestoreSettings",
    "MongoSettings",
    "StoreBackend",
    "StoreSettings",
]
