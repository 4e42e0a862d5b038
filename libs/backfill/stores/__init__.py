"""Document stores - the backfill's only shared mutable resource."""

from libs.models import BackfillSettings, FirestoreSettings, MongoSettings, StoreBackend, StoreSettings

from .base import DELETE_FIELD, DocumentStore, StoredDocument, WriteBatch
from .mongo import MongoDocumentStore, MongoWriteBatch

__all__ = [
    "DELETE_FIELD",
    "DocumentStore",
    "StoredDocument",
    "WriteBatch",
    "MongoDocumentStore",
    "MongoWriteBatch",
    "build_store",
]


def build_store(
    store_settings: StoreSettings | None = None,
    backfill_settings: BackfillSettings | None = None,
) -> DocumentStore:
    """
    Construct the configured document store from environment settings.

    The Firestore adapter is only imported when selected.
    """
    store_settings = store_settings or StoreSettings()
    backfill_settings = backfill_settings or BackfillSettings()
    audit_collection = backfill_settings.audit_collection

    if store_settings.backend == StoreBackend.FIRESTORE:
        from .firestore import FirestoreDocumentStore

        return FirestoreDocumentStore.from_settings(
            FirestoreSettings(), audit_collection=audit_collection
        )

    mongo = MongoSettings()
    return MongoDocumentStore.from_connection_string(
        mongo.connection_string,
        mongo.database,
        audit_collection=audit_collection,
        socket_timeout_ms=mongo.socket_timeout_ms,
    )
