# =============================================================================
# Run Record Model
# =============================================================================
# Defines the audit record persisted once per backfill run. The record lives
# in a single, overwritten slot: it describes the last run, not every run.
# =============================================================================

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .results import MigrationRunResult


__all__ = ["BackfillRequest", "MigrationRunRecord", "RunStatus"]


class RunStatus(str, Enum):
    """Terminal status of a backfill run in the audit slot."""

    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed-with-errors"


class MigrationRunRecord(MigrationRunResult):
    """
    Audit record for the last backfill run.

    Carries the full run result plus the record version, the migration type
    and a status distinguishing a clean run from one with failed collections
    or per-document errors.

    Attributes:
        version: Version of the backfill that produced the record
        type: Kind of migration, always "field-backfill"
        status: completed / completed-with-errors
    """

    version: str = Field(..., description="Backfill version")
    type: str = Field("field-backfill", description="Migration type")
    status: RunStatus = Field(..., description="Terminal run status")

    model_config = ConfigDict(use_enum_values=True)

    @classmethod
    def from_result(cls, result: MigrationRunResult, version: str) -> "MigrationRunRecord":
        status = (
            RunStatus.COMPLETED
            if result.completed_cleanly
            else RunStatus.COMPLETED_WITH_ERRORS
        )
        return cls(**result.model_dump(), version=version, status=status)


class BackfillRequest(BaseModel):
    """
    Parameters of a backfill run requested by an operator.

    Attributes:
        collections: Collection display names to migrate (None = all)
        preset: Named selection preset, combined with `collections`
        mode: Rate-limit preset (conservative / normal / aggressive)
        fail_on_errors: Fail the pipeline step when any collection fails
    """

    collections: Optional[list[str]] = Field(None, description="Collection display names")
    preset: Optional[str] = Field(None, description="Selection preset name")
    mode: Optional[str] = Field(None, description="Rate-limit preset name")
    fail_on_errors: bool = Field(False, description="Fail when any collection fails")
