"""
Province backfill core.

Adds a province id derived from each document's branch code to every
collection in the registry, page by page and batch by batch, and can
validate or roll back the result.
"""

from .control import ProgressCallback, ProgressTracker, RunControl
from .errors import BackfillError, MalformedDocumentError, MigrationCancelled, StoreError
from .migrator import PagedBatchMigrator, extract_branch_code
from .orchestrator import MigrationOrchestrator
from .preview import SamplePreviewer
from .registry import DEFAULT_COLLECTIONS, SELECTION_PRESETS, CollectionRegistry, default_registry
from .resolver import BRANCH_PROVINCE_MAP, DEFAULT_PROVINCE, BranchProvinceResolver
from .rollback import RollbackExecutor
from .service import BackfillService
from .validator import MigrationValidator

__all__ = [
    # Resolution
    "BRANCH_PROVINCE_MAP",
    "DEFAULT_PROVINCE",
    "BranchProvinceResolver",
    # Registry
    "DEFAULT_COLLECTIONS",
    "SELECTION_PRESETS",
    "CollectionRegistry",
    "default_registry",
    # Control
    "ProgressCallback",
    "ProgressTracker",
    "RunControl",
    # Engines
    "PagedBatchMigrator",
    "extract_branch_code",
    "MigrationOrchestrator",
    "MigrationValidator",
    "RollbackExecutor",
    "SamplePreviewer",
    "BackfillService",
    # Errors
    "BackfillError",
    "MalformedDocumentError",
    "MigrationCancelled",
    "StoreError",
]
