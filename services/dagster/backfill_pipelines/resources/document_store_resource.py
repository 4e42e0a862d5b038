"""Document Store Resource - the store the backfill reads and writes."""

from __future__ import annotations

from functools import cached_property

from dagster import ConfigurableResource
from pydantic import Field
from pymongo import MongoClient

from libs.backfill.stores import MongoDocumentStore

__all__ = ["DocumentStoreResource"]


class DocumentStoreResource(ConfigurableResource):
    """
    Dagster resource for the MongoDB document store holding the dealership
    collections.

    Ops receive a MongoDocumentStore through `get_store()` and never talk to
    pymongo directly.
    """

    connection_string: str = Field(..., description="MongoDB connection URI")
    database: str = Field("dealership_erp", description="MongoDB database name")
    audit_collection: str = Field("migrations", description="Collection holding the run record")
    socket_timeout_ms: int = Field(60000, description="Ceiling on a single MongoDB read or write")

    @cached_property
    def _client(self) -> MongoClient:
        return MongoClient(
            self.connection_string,
            serverSelectionTimeoutMS=10000,
            socketTimeoutMS=self.socket_timeout_ms,
        )

    def get_store(self) -> MongoDocumentStore:
        return MongoDocumentStore(
            self._client[self.database], audit_collection=self.audit_collection
        )
