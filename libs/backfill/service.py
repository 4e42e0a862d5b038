# =============================================================================
# Backfill Service
# =============================================================================
# Facade binding one store, settings, field names, resolver and registry,
# used by the dagster ops, the webapp and the CLI.
# =============================================================================

"""Dashboard/CLI-facing entry points for the province backfill."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from libs.models import (
    BackfillFields,
    BackfillSettings,
    CollectionPreview,
    MigrationRunRecord,
    MigrationRunResult,
    RollbackResult,
    StoreSettings,
    ValidationReport,
)

from .control import ProgressCallback, RunControl
from .migrator import PagedBatchMigrator
from .orchestrator import MigrationOrchestrator
from .preview import SamplePreviewer
from .registry import CollectionRegistry, default_registry
from .resolver import BranchProvinceResolver
from .rollback import RollbackExecutor
from .stores import DocumentStore, build_store
from .validator import MigrationValidator

__all__ = ["BackfillService"]

logger = logging.getLogger(__name__)


class BackfillService:
    """
    Entry point for running, validating and rolling back the backfill.

    Args:
        store: Document store every operation runs against
        settings: Tunables (defaults read from BACKFILL_* environment variables)
        fields: Written field names and marker
        resolver: Branch code → province lookup
        registry: Target collections (defaults to the dealership registry)
        sleep: Replaces every back-pressure delay (tests pass a recorder)
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[BackfillSettings] = None,
        fields: Optional[BackfillFields] = None,
        resolver: Optional[BranchProvinceResolver] = None,
        registry: Optional[CollectionRegistry] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.store = store
        self.settings = settings or BackfillSettings()
        self.fields = fields or BackfillFields()
        self.resolver = resolver or BranchProvinceResolver()
        self.registry = registry or default_registry()
        self._sleep = sleep

    @classmethod
    def from_env(
        cls,
        settings: Optional[BackfillSettings] = None,
        store_settings: Optional[StoreSettings] = None,
    ) -> "BackfillService":
        """Build a service against the store configured in the environment."""
        settings = settings or BackfillSettings()
        return cls(build_store(store_settings, settings), settings=settings)

    def with_settings(self, settings: BackfillSettings) -> "BackfillService":
        """Copy of this service using different tunables."""
        return BackfillService(
            self.store,
            settings=settings,
            fields=self.fields,
            resolver=self.resolver,
            registry=self.registry,
            sleep=self._sleep,
        )

    def resolve_selection(
        self,
        collections: Optional[Iterable[str]] = None,
        preset: Optional[str] = None,
    ) -> Optional[list[str]]:
        """
        Combine explicit collection names and a selection preset.

        Returns None (every collection) when neither is given.

        Raises:
            ValueError: If the preset is unknown
        """
        if collections is None and not preset:
            return None
        names = list(collections or [])
        if preset:
            names.extend(name for name in self.registry.preset(preset) if name not in names)
        return names

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def execute_migration(
        self,
        on_progress: Optional[ProgressCallback] = None,
        selected_collection_names: Optional[Iterable[str]] = None,
        control: Optional[RunControl] = None,
    ) -> MigrationRunResult:
        migrator = PagedBatchMigrator(
            self.store,
            settings=self.settings,
            fields=self.fields,
            resolver=self.resolver,
            sleep=self._sleep,
        )
        orchestrator = MigrationOrchestrator(migrator, self.registry, sleep=self._sleep)
        return orchestrator.run(selected_collection_names, on_progress=on_progress, control=control)

    def validate_migration(self) -> ValidationReport:
        return MigrationValidator(
            self.store, self.registry, settings=self.settings, fields=self.fields
        ).validate()

    def rollback_migration(
        self,
        on_progress: Optional[ProgressCallback] = None,
        control: Optional[RunControl] = None,
    ) -> RollbackResult:
        executor = RollbackExecutor(
            self.store,
            self.registry,
            settings=self.settings,
            fields=self.fields,
            sleep=self._sleep,
        )
        return executor.rollback(on_progress=on_progress, control=control)

    def preview(
        self,
        collection_names: Optional[Iterable[str]] = None,
        limit: int = 3,
    ) -> list[CollectionPreview]:
        previewer = SamplePreviewer(
            self.store, self.registry, fields=self.fields, resolver=self.resolver
        )
        return previewer.preview(collection_names, limit=limit)

    def last_run(self) -> Optional[MigrationRunRecord]:
        """Read back the audit record of the last run, if any."""
        record = self.store.get_record(self.settings.audit_record_key)
        if record is None:
            return None
        return MigrationRunRecord.model_validate(record)
