"""MongoDB document store - pymongo adapter for the backfill."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from ..errors import StoreError
from .base import DELETE_FIELD, DocumentStore, StoredDocument, WriteBatch

__all__ = ["MongoDocumentStore", "MongoWriteBatch"]

logger = logging.getLogger(__name__)

_OPERATORS = {
    "==": "$eq",
    "!=": "$ne",
    "<": "$lt",
    "<=": "$lte",
    ">": "$gt",
    ">=": "$gte",
    "in": "$in",
}


def collection_name(path: str) -> str:
    """Map a slash-separated collection path to a MongoDB collection name."""
    return path.strip("/").replace("/", ".")


class MongoWriteBatch(WriteBatch):
    """
    Stages updates and applies them in staging order, stopping at the first
    failed write.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._operations: list[tuple[str, Any, dict[str, Any]]] = []
        self._committed = False

    def update(self, document: StoredDocument, fields: Mapping[str, Any]) -> None:
        if self._committed:
            raise RuntimeError("Cannot stage updates on a committed batch")
        if document.ref is None:
            raise ValueError(f"Document {document.id} has no store reference")

        to_set = {k: v for k, v in fields.items() if v is not DELETE_FIELD}
        to_unset = {k: "" for k, v in fields.items() if v is DELETE_FIELD}
        update_doc: dict[str, Any] = {}
        if to_set:
            update_doc["$set"] = to_set
        if to_unset:
            update_doc["$unset"] = to_unset

        collection, raw_id = document.ref
        self._operations.append((collection, raw_id, update_doc))

    def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Batch already committed")
        self._committed = True

        for index, (collection, raw_id, update_doc) in enumerate(self._operations):
            try:
                self._db[collection].update_one({"_id": raw_id}, update_doc)
            except PyMongoError as e:
                raise StoreError(
                    f"Batch commit failed at update {index + 1}/{len(self._operations)} "
                    f"(document {raw_id} in '{collection}'): {e}",
                    applied=index,
                ) from e
        logger.debug(f"Committed {len(self._operations)} update(s)")

    def __len__(self) -> int:
        return len(self._operations)


class MongoDocumentStore(DocumentStore):
    """
    DocumentStore backed by a MongoDB database.

    Documents are ordered and paginated by `_id`. The store reference carried
    by each StoredDocument is `(collection_name, _id)`.

    Note: `_id` values of different BSON types do not compare with `$gt`,
    so a collection must use one id type for pagination to see every document.
    """

    def __init__(self, db: Database, audit_collection: str = "migrations") -> None:
        self._db = db
        self._audit_collection = audit_collection

    @classmethod
    def from_connection_string(
        cls,
        connection_string: str,
        database: str,
        audit_collection: str = "migrations",
        socket_timeout_ms: int = 60000,
    ) -> "MongoDocumentStore":
        client = MongoClient(
            connection_string,
            serverSelectionTimeoutMS=10000,
            socketTimeoutMS=socket_timeout_ms,
        )
        return cls(client[database], audit_collection=audit_collection)

    def _get_collection(self, path: str) -> Collection:
        return self._db[collection_name(path)]

    @staticmethod
    def _to_document(name: str, raw: Mapping[str, Any]) -> StoredDocument:
        data = dict(raw)
        raw_id = data.pop("_id")
        return StoredDocument(id=str(raw_id), data=data, ref=(name, raw_id))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def probe(self, path: str) -> bool:
        return self._get_collection(path).find_one({}, projection={"_id": 1}) is not None

    def page_query(
        self,
        path: str,
        page_size: int,
        after: Optional[StoredDocument] = None,
    ) -> list[StoredDocument]:
        name = collection_name(path)
        query: dict[str, Any] = {}
        if after is not None:
            query["_id"] = {"$gt": after.ref[1]}

        cursor = self._db[name].find(query).sort("_id", ASCENDING).limit(page_size)
        return [self._to_document(name, doc) for doc in cursor]

    def filter_query(
        self, path: str, field_name: str, operator: str, value: Any
    ) -> list[StoredDocument]:
        if operator not in _OPERATORS:
            raise ValueError(f"Unsupported filter operator: {operator!r}")
        name = collection_name(path)
        cursor = self._db[name].find({field_name: {_OPERATORS[operator]: value}}).sort(
            "_id", ASCENDING
        )
        return [self._to_document(name, doc) for doc in cursor]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def start_batch(self) -> MongoWriteBatch:
        return MongoWriteBatch(self._db)

    def persist_record(self, key: str, record: Mapping[str, Any]) -> None:
        document = {k: v for k, v in record.items() if k != "_id"}
        self._db[self._audit_collection].replace_one({"_id": key}, document, upsert=True)

    def get_record(self, key: str) -> Optional[dict[str, Any]]:
        document = self._db[self._audit_collection].find_one({"_id": key})
        if not document:
            return None
        document.pop("_id", None)
        return document
