"""Province backfill jobs (op-based)."""

from dagster import job

from ..ops import rollback_backfill_op, run_backfill_op, validate_backfill_op


@job(
    name="province_backfill_job",
    description="Backfill provinceId from branch codes across the dealership collections, then validate",
)
def province_backfill_job():
    """
    Backfill job.

    Pipeline flow:
    1. run_backfill_op: Migrates the requested collections page by page and persists the run record
    2. validate_backfill_op: Counts documents with and without the province across the full registry

    The request (collections, preset, mode, fail_on_errors) is passed as an
    op input to run_backfill_op via run config.
    """
    validate_backfill_op(run_backfill_op())


@job(
    name="province_rollback_job",
    description="Remove the backfilled province fields from every migrated document",
)
def province_rollback_job():
    rollback_backfill_op()
