"""Dagster Jobs - Pipeline Definitions."""

from .backfill_job import province_backfill_job, province_rollback_job

__all__ = [
    "province_backfill_job",
    "province_rollback_job",
]
