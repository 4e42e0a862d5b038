"""Dagster Ops - Reusable Computation Units."""

from .backfill_ops import rollback_backfill_op, run_backfill_op, validate_backfill_op

__all__ = [
    "run_backfill_op",
    "validate_backfill_op",
    "rollback_backfill_op",
]
