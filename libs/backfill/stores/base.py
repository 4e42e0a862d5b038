# =============================================================================
# Document Store Interface
# =============================================================================
# Abstract base classes for the document stores the backfill runs against.
# =============================================================================

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

__all__ = ["DELETE_FIELD", "StoredDocument", "WriteBatch", "DocumentStore"]


class _DeleteField:
    """Sentinel value: remove the field instead of setting it."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()


@dataclass(frozen=True)
class StoredDocument:
    """
    A document read from a store.

    Attributes:
        id: Document id as a string
        data: Document fields (without the store's id field)
        ref: Store-specific handle used as pagination cursor and write target
    """

    id: str
    data: dict[str, Any] = field(default_factory=dict)
    ref: Any = None


class WriteBatch(ABC):
    """
    A bounded group of updates committed together.

    A batch is single use: once committed it accepts no further updates.
    """

    @abstractmethod
    def update(self, document: StoredDocument, fields: Mapping[str, Any]) -> None:
        """
        Stage an update of `fields` on `document`.

        Values equal to DELETE_FIELD remove the field.
        """
        pass

    @abstractmethod
    def commit(self) -> None:
        """
        Apply every staged update.

        Atomicity depends on the adapter. Firestore batches apply all or
        nothing. MongoDB applies the updates in staging order and stops at
        the first failed write; the StoreError it raises carries the number
        of updates that landed in `applied`.
        """
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class DocumentStore(ABC):
    """
    Minimal document-store surface consumed by the backfill.

    Collection paths are slash separated ("sections/sales/vehicles").
    Adapters translate them to whatever their backend expects.
    """

    @abstractmethod
    def probe(self, path: str) -> bool:
        """Return True when the collection holds at least one document."""
        pass

    @abstractmethod
    def page_query(
        self,
        path: str,
        page_size: int,
        after: Optional[StoredDocument] = None,
    ) -> list[StoredDocument]:
        """
        Fetch up to `page_size` documents ordered by document id.

        Args:
            path: Collection path
            page_size: Maximum documents to return
            after: Last document of the previous page (cursor), or None for the first page
        """
        pass

    @abstractmethod
    def filter_query(
        self, path: str, field_name: str, operator: str, value: Any
    ) -> list[StoredDocument]:
        """Return every document whose `field_name` satisfies `operator value`."""
        pass

    @abstractmethod
    def start_batch(self) -> WriteBatch:
        pass

    @abstractmethod
    def persist_record(self, key: str, record: Mapping[str, Any]) -> None:
        """Upsert a single audit record under a fixed key, replacing any prior record."""
        pass

    @abstractmethod
    def get_record(self, key: str) -> Optional[dict[str, Any]]:
        pass
