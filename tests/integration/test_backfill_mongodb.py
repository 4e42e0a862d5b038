"""
Integration tests for the province backfill against a live MongoDB.

Runs every operation end to end in a scratch database that is dropped
before and after each test.
"""

import pytest
from pymongo import MongoClient

from libs.backfill import BackfillService, CollectionRegistry
from libs.backfill.stores import MongoDocumentStore
from libs.backfill.stores.mongo import collection_name
from libs.models import BackfillSettings, CollectionDescriptor, MongoSettings


pytestmark = pytest.mark.integration

TEST_DATABASE = "backfill_integration_test"
VEHICLES = "sections/sales/vehicles"
CUSTOMERS = "data/sales/customers"


@pytest.fixture
def mongo_settings():
    """Load MongoDB settings from environment."""
    return MongoSettings()


@pytest.fixture
def mongo_db(mongo_settings):
    """Scratch database, dropped before and after the test."""
    client = MongoClient(mongo_settings.connection_string, serverSelectionTimeoutMS=5000)
    client.drop_database(TEST_DATABASE)
    yield client[TEST_DATABASE]
    client.drop_database(TEST_DATABASE)
    client.close()


@pytest.fixture
def service(mongo_db):
    registry = CollectionRegistry([
        CollectionDescriptor(path=VEHICLES, name="Vehicle Sales"),
        CollectionDescriptor(path=CUSTOMERS, name="Customers"),
    ])
    settings = BackfillSettings(
        page_size=50,
        batch_size=10,
        batch_delay_seconds=0,
        page_delay_seconds=0,
        collection_delay_seconds=0,
    )
    return BackfillService(
        MongoDocumentStore(mongo_db, audit_collection="migrations"),
        settings=settings,
        registry=registry,
    )


@pytest.fixture
def seeded(mongo_db):
    mongo_db[collection_name(VEHICLES)].insert_many(
        [{"_id": f"v-{i:04d}", "branchCode": "0450"} for i in range(130)]
    )
    mongo_db[collection_name(CUSTOMERS)].insert_many(
        [{"_id": f"c-{i:04d}", "branch": "NSN002"} for i in range(7)]
    )


class TestBackfillLifecycle:
    """Migrate, re-run, validate and roll back against MongoDB."""

    def test_full_lifecycle(self, service, seeded, mongo_db):
        first = service.execute_migration()
        assert first.completed_cleanly
        assert first.summary.total_migrated == 137

        second = service.execute_migration()
        assert second.summary.total_migrated == 0
        assert second.summary.total_skipped == 137

        assert service.validate_migration().is_valid
        assert service.last_run().status == "completed"

        rollback = service.rollback_migration()
        assert rollback.summary.total_documents_rolled_back == 137
        assert mongo_db[collection_name(VEHICLES)].count_documents({"provinceId": {"$exists": True}}) == 0
        assert not service.validate_migration().is_valid

    def test_migrated_documents(self, service, seeded, mongo_db):
        service.execute_migration(selected_collection_names=["Customers"])

        document = mongo_db[collection_name(CUSTOMERS)].find_one({"_id": "c-0000"})
        assert document["provinceId"] == "nakhon-sawan"
        assert document["recordedProvince"] == "nakhon-sawan"
        assert document["migratedBy"] == "phase3-migration"
        assert document["migratedAt"] is not None
        assert mongo_db[collection_name(VEHICLES)].count_documents({"provinceId": {"$exists": True}}) == 0
