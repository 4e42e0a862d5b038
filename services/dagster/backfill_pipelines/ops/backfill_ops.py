# =============================================================================
# Backfill Ops
# =============================================================================
# Run, validate and roll back the province backfill against the document
# store resource. Each op delegates to an undecorated core function.
# =============================================================================

"""Dagster ops for the province backfill."""

from typing import Any, Callable, Dict, Optional

from dagster import In, OpExecutionContext, Out, op

from libs.backfill import BackfillService
from libs.backfill.stores import DocumentStore
from libs.models import BackfillRequest, BackfillSettings, MigrationRunRecord

__all__ = [
    "run_backfill_op",
    "validate_backfill_op",
    "rollback_backfill_op",
]


def _build_service(
    store: DocumentStore,
    mode: Optional[str] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> BackfillService:
    settings = BackfillSettings.for_mode(mode) if mode else BackfillSettings()
    return BackfillService(store, settings=settings, sleep=sleep)


def _run_backfill(
    store: DocumentStore,
    request: Dict[str, Any],
    log,
    sleep: Optional[Callable[[float], None]] = None,
) -> Dict[str, Any]:
    """
    Core logic for the backfill run.

    This function is extracted for easier unit testing without Dagster context.

    Args:
        store: Document store to migrate
        request: BackfillRequest-shaped dict (collections, preset, mode, fail_on_errors)
        log: Logger instance (context.log)
        sleep: Replaces back-pressure delays

    Returns:
        The run record as a JSON-compatible dict

    Raises:
        ValueError: If the request, preset or mode is invalid
        RuntimeError: If fail_on_errors is set and any collection failed
    """
    parsed = BackfillRequest(**(request or {}))
    service = _build_service(store, parsed.mode, sleep)
    selected = service.resolve_selection(parsed.collections, parsed.preset)

    if selected is None:
        log.info(f"Backfilling all {len(service.registry)} registered collections")
    else:
        log.info(f"Backfilling {len(selected)} selected collection(s): {selected}")

    def report(event) -> None:
        if event.processed and event.processed == event.total_estimated:
            log.info(
                f"{event.collection_name}: processed {event.processed} "
                f"(migrated {event.migrated}, skipped {event.skipped}, errors {event.errors})"
            )

    result = service.execute_migration(on_progress=report, selected_collection_names=selected)
    record = MigrationRunRecord.from_result(result, version=service.settings.audit_version)
    summary = result.summary

    log.info(
        f"Backfill finished with status {record.status}: "
        f"{summary.successful_collections}/{summary.total_collections} collections succeeded, "
        f"{summary.total_migrated} migrated, {summary.total_skipped} skipped, "
        f"{summary.total_errors} document error(s)"
    )
    for name, collection_result in result.per_collection.items():
        if not collection_result.success:
            log.warning(f"{name} failed: {collection_result.error}")

    if parsed.fail_on_errors and summary.failed_collections > 0:
        raise RuntimeError(
            f"Backfill failed for {summary.failed_collections} collection(s)"
        )
    return record.model_dump(mode="json")


def _validate_backfill(store: DocumentStore, log) -> Dict[str, Any]:
    """Core logic for validation. Read-only."""
    report = BackfillService(store).validate_migration()
    summary = report.summary
    log.info(
        f"Validation: {summary.valid_collections}/{summary.total_collections} collections valid, "
        f"{summary.documents_without_derived_field} document(s) without province"
    )
    for name, validation in report.collections.items():
        if validation.error:
            log.warning(f"Validation of {name} failed: {validation.error}")
    return report.model_dump(mode="json")


def _rollback_backfill(
    store: DocumentStore,
    log,
    sleep: Optional[Callable[[float], None]] = None,
) -> Dict[str, Any]:
    """Core logic for rollback."""
    result = BackfillService(store, sleep=sleep).rollback_migration()
    summary = result.summary
    log.info(
        f"Rollback removed backfilled fields from {summary.total_documents_rolled_back} "
        f"document(s) in {summary.rolled_back_collections} collection(s)"
    )
    for name, collection_result in result.per_collection.items():
        if not collection_result.success:
            log.warning(f"Rollback of {name} failed: {collection_result.error}")
    return result.model_dump(mode="json")


@op(
    ins={"request": In(dagster_type=dict)},
    out={"run_record": Out(dagster_type=dict)},
    required_resource_keys={"document_store"},
)
def run_backfill_op(context: OpExecutionContext, request: dict) -> dict:
    """
    Backfill the province field into the requested collections.

    Args:
        context: Dagster op execution context
        request: Dict with optional collections, preset, mode and fail_on_errors

    Returns:
        The persisted run record (JSON-compatible)
    """
    return _run_backfill(
        store=context.resources.document_store.get_store(),
        request=request,
        log=context.log,
    )


@op(
    ins={"run_record": In(dagster_type=dict)},
    out={"validation_report": Out(dagster_type=dict)},
    required_resource_keys={"document_store"},
)
def validate_backfill_op(context: OpExecutionContext, run_record: dict) -> dict:
    """Validate every registered collection after a backfill run."""
    context.log.info(f"Validating after run started at {run_record.get('start_time')}")
    return _validate_backfill(
        store=context.resources.document_store.get_store(),
        log=context.log,
    )


@op(
    out={"rollback_result": Out(dagster_type=dict)},
    required_resource_keys={"document_store"},
)
def rollback_backfill_op(context: OpExecutionContext) -> dict:
    """Remove the backfilled fields from every document carrying the migration marker."""
    return _rollback_backfill(
        store=context.resources.document_store.get_store(),
        log=context.log,
    )
