"""
Shared pytest fixtures for the province backfill tests.

Provides an in-memory MongoDB (mongomock) behind MongoDocumentStore, a small
synthetic collection registry and zero-delay settings.
"""

from datetime import datetime, timezone

import mongomock
import pytest

from libs.backfill import CollectionRegistry
from libs.backfill.stores import MongoDocumentStore
from libs.backfill.stores.mongo import collection_name
from libs.models import BackfillSettings, CollectionDescriptor


FIXED_NOW = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def mongo_db():
    """In-memory MongoDB database for tests."""
    return mongomock.MongoClient()["dealership_erp"]


@pytest.fixture
def store(mongo_db):
    """MongoDocumentStore backed by mongomock."""
    return MongoDocumentStore(mongo_db, audit_collection="migrations")


@pytest.fixture
def seed(mongo_db):
    """
    Insert documents into a collection path.

    Usage: seed("sections/sales/vehicles", [{"_id": "a", "branchCode": "0450"}])
    Documents without an _id get zero-padded string ids in insertion order.
    """

    def _seed(path: str, documents: list[dict]) -> None:
        prepared = []
        for index, document in enumerate(documents):
            doc = dict(document)
            doc.setdefault("_id", f"doc-{index:04d}")
            prepared.append(doc)
        if prepared:
            mongo_db[collection_name(path)].insert_many(prepared)

    return _seed


@pytest.fixture
def read_all(mongo_db):
    """Read every document of a collection path, ordered by _id."""

    def _read(path: str) -> list[dict]:
        return list(mongo_db[collection_name(path)].find().sort("_id", 1))

    return _read


# =============================================================================
# Settings / Registry Fixtures
# =============================================================================

@pytest.fixture
def fast_settings():
    """Default paging and batching with every delay set to zero."""
    return BackfillSettings(
        page_size=50,
        batch_size=10,
        batch_delay_seconds=0,
        page_delay_seconds=0,
        collection_delay_seconds=0,
        collection_timeout_seconds=30,
    )


@pytest.fixture
def small_registry():
    """Three synthetic collections."""
    return CollectionRegistry([
        CollectionDescriptor(path="sections/sales/vehicles", name="Vehicle Sales"),
        CollectionDescriptor(path="sections/account/incomes", name="Income Records"),
        CollectionDescriptor(path="data/sales/customers", name="Customers"),
    ])


@pytest.fixture
def sleeps():
    """Recording replacement for back-pressure delays."""
    return []


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
