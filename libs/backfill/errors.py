# =============================================================================
# Backfill Errors
# =============================================================================
# Exception types raised inside the backfill. Per-document and per-collection
# failures are contained and reported in result models; only configuration
# errors escape to callers.
# =============================================================================

__all__ = [
    "BackfillError",
    "MalformedDocumentError",
    "MigrationCancelled",
    "StoreError",
]


class BackfillError(Exception):
    """Base class for backfill failures."""


class MalformedDocumentError(BackfillError):
    """A document's fields cannot be used to derive the new value."""


class MigrationCancelled(BackfillError):
    """The run control was cancelled at a page or batch boundary."""


class StoreError(BackfillError):
    """
    A document store operation failed.

    Attributes:
        applied: Updates of a partially committed batch that did land
    """

    def __init__(self, message: str, applied: int = 0) -> None:
        super().__init__(message)
        self.applied = applied
