# =============================================================================
# Collection Models
# =============================================================================
# Describes the document collections targeted by the province backfill and
# the names of the fields the backfill writes.
# =============================================================================

"""Collection descriptors and backfill field names."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = ["CollectionDescriptor", "BackfillFields"]


class CollectionDescriptor(BaseModel):
    """
    A target collection for the backfill.

    Attributes:
        path: Fully qualified collection path (e.g. "sections/sales/vehicles")
        name: Human-readable label, unique within a registry
        branch_field: Primary field holding the branch code
        fallback_branch_field: Field consulted when the primary is absent
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Slash-separated collection path")
    name: str = Field(..., min_length=1, description="Display name")
    branch_field: str = Field("branchCode", description="Primary branch code field")
    fallback_branch_field: str = Field("branch", description="Fallback branch code field")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """
        A collection path alternates collection/document segments and
        therefore always has an odd number of non-empty segments.
        """
        segments = v.split("/")
        if any(not segment.strip() for segment in segments):
            raise ValueError(f"Collection path contains an empty segment: {v!r}")
        if len(segments) % 2 == 0:
            raise ValueError(
                f"Collection path must have an odd number of segments, got {len(segments)}: {v!r}"
            )
        return v


class BackfillFields(BaseModel):
    """Field names written by the backfill and the marker identifying it."""

    model_config = ConfigDict(frozen=True)

    derived_field: str = "provinceId"
    audit_field: str = "recordedProvince"
    migrated_at_field: str = "migratedAt"
    migrated_by_field: str = "migratedBy"
    marker: str = "phase3-migration"

    @property
    def added_fields(self) -> tuple[str, str, str, str]:
        """The four fields a migration adds and a rollback removes."""
        return (
            self.derived_field,
            self.audit_field,
            self.migrated_at_field,
            self.migrated_by_field,
        )
