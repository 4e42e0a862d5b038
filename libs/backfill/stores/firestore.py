"""Firestore document store - firebase-admin adapter for the backfill."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models import FirestoreSettings

from .base import DELETE_FIELD, DocumentStore, StoredDocument, WriteBatch

__all__ = ["FirestoreDocumentStore", "FirestoreWriteBatch", "initialize_firestore"]

logger = logging.getLogger(__name__)

# Firestore orders by document name when sorting on this field path
DOCUMENT_ID_FIELD = "__name__"


def initialize_firestore(settings: FirestoreSettings):
    """
    Initialize the Firebase Admin SDK once and return a Firestore client.

    Uses the service account file when configured, Application Default
    Credentials otherwise.
    """
    if not firebase_admin._apps:
        if settings.credentials_path:
            cred = credentials.Certificate(settings.credentials_path)
        else:
            cred = credentials.ApplicationDefault()
        options = {"projectId": settings.project_id} if settings.project_id else None
        firebase_admin.initialize_app(cred, options)
        logger.info("Initialized Firebase Admin SDK")
    return firestore.client()


class FirestoreWriteBatch(WriteBatch):
    """Wraps a Firestore WriteBatch, translating DELETE_FIELD."""

    def __init__(self, batch, timeout: Optional[float] = None) -> None:
        self._batch = batch
        self._timeout = timeout
        self._count = 0
        self._committed = False

    def update(self, document: StoredDocument, fields: Mapping[str, Any]) -> None:
        if self._committed:
            raise RuntimeError("Cannot stage updates on a committed batch")
        translated = {
            k: firestore.DELETE_FIELD if v is DELETE_FIELD else v
            for k, v in fields.items()
        }
        self._batch.update(document.ref.reference, translated)
        self._count += 1

    def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Batch already committed")
        self._committed = True
        self._batch.commit(timeout=self._timeout)

    def __len__(self) -> int:
        return self._count


class FirestoreDocumentStore(DocumentStore):
    """
    DocumentStore backed by Cloud Firestore.

    The store reference carried by each StoredDocument is the
    DocumentSnapshot itself, which Firestore accepts as a `start_after`
    cursor.
    """

    def __init__(
        self,
        client,
        audit_collection: str = "migrations",
        timeout: Optional[float] = None,
    ) -> None:
        self._client = client
        self._audit_collection = audit_collection
        self._timeout = timeout

    @classmethod
    def from_settings(
        cls, settings: FirestoreSettings, audit_collection: str = "migrations"
    ) -> "FirestoreDocumentStore":
        return cls(
            initialize_firestore(settings),
            audit_collection=audit_collection,
            timeout=settings.request_timeout_seconds,
        )

    @staticmethod
    def _to_document(snapshot) -> StoredDocument:
        return StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {}, ref=snapshot)

    def probe(self, path: str) -> bool:
        return any(True for _ in self._client.collection(path).limit(1).stream(timeout=self._timeout))

    def page_query(
        self,
        path: str,
        page_size: int,
        after: Optional[StoredDocument] = None,
    ) -> list[StoredDocument]:
        query = self._client.collection(path).order_by(DOCUMENT_ID_FIELD).limit(page_size)
        if after is not None:
            query = query.start_after(after.ref)
        return [self._to_document(snapshot) for snapshot in query.stream(timeout=self._timeout)]

    def filter_query(
        self, path: str, field_name: str, operator: str, value: Any
    ) -> list[StoredDocument]:
        query = self._client.collection(path).where(
            filter=FieldFilter(field_name, operator, value)
        )
        return [self._to_document(snapshot) for snapshot in query.stream(timeout=self._timeout)]

    def start_batch(self) -> FirestoreWriteBatch:
        return FirestoreWriteBatch(self._client.batch(), timeout=self._timeout)

    def persist_record(self, key: str, record: Mapping[str, Any]) -> None:
        self._client.collection(self._audit_collection).document(key).set(dict(record))

    def get_record(self, key: str) -> Optional[dict[str, Any]]:
        snapshot = self._client.collection(self._audit_collection).document(key).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()
