# =============================================================================
# Unit Tests: Migration Orchestrator
# =============================================================================

import threading
import time
from unittest.mock import patch

import pytest

from libs.backfill import MigrationOrchestrator, PagedBatchMigrator, RunControl
from libs.models import BackfillSettings


VEHICLES = "sections/sales/vehicles"
INCOMES = "sections/account/incomes"
CUSTOMERS = "data/sales/customers"


def documents(count: int, branch_code: str = "0450") -> list[dict]:
    return [{"branchCode": branch_code} for _ in range(count)]


@pytest.fixture
def seeded(seed):
    seed(VEHICLES, documents(12))
    seed(INCOMES, documents(7, "NSN001"))
    seed(CUSTOMERS, documents(3))


@pytest.fixture
def orchestrator(store, small_registry, fast_settings, sleeps):
    migrator = PagedBatchMigrator(store, settings=fast_settings)
    return MigrationOrchestrator(migrator, small_registry, sleep=sleeps.append)


class TestRun:
    def test_migrates_every_collection_in_registry_order(self, orchestrator, seeded):
        result = orchestrator.run()

        assert list(result.per_collection) == ["Vehicle Sales", "Income Records", "Customers"]
        assert result.summary.total_collections == 3
        assert result.summary.successful_collections == 3
        assert result.summary.failed_collections == 0
        assert result.summary.total_migrated == 22
        assert result.completed_cleanly
        assert result.end_time >= result.start_time
        assert result.duration_ms >= 0

    def test_delay_between_collections(self, orchestrator, seeded, sleeps):
        orchestrator.run()
        # Migrations run with zero delays; only the two collection gaps are recorded
        assert sleeps == [0.0, 0.0]

    def test_selection_ignores_unknown_names(self, orchestrator, seeded):
        result = orchestrator.run(["Customers", "Ghost"])

        assert list(result.per_collection) == ["Customers"]
        assert result.summary.total_migrated == 3

    def test_selection_keeps_registry_order(self, orchestrator, seeded):
        result = orchestrator.run({"Customers", "Vehicle Sales"})
        assert list(result.per_collection) == ["Vehicle Sales", "Customers"]

    def test_summary_matches_per_collection(self, orchestrator, seeded):
        result = orchestrator.run()
        assert result.summary.total_migrated == sum(r.migrated for r in result.per_collection.values())
        assert (
            result.summary.successful_collections + result.summary.failed_collections
            == len(result.per_collection)
        )


class TestFailureIsolation:
    def test_store_failure_in_one_collection(self, orchestrator, store, seeded):
        original = store.page_query

        def flaky(path, page_size, after=None):
            if path == INCOMES:
                raise RuntimeError("quota exceeded")
            return original(path, page_size, after=after)

        with patch.object(store, "page_query", side_effect=flaky):
            result = orchestrator.run()

        assert result.per_collection["Vehicle Sales"].success
        assert result.per_collection["Vehicle Sales"].migrated == 12
        assert not result.per_collection["Income Records"].success
        assert result.per_collection["Income Records"].error == "quota exceeded"
        assert result.per_collection["Customers"].success
        assert result.per_collection["Customers"].migrated == 3
        assert result.summary.failed_collections == 1
        assert not result.completed_cleanly

    def test_unexpected_exception_from_migrator(self, orchestrator, seeded):
        original = orchestrator.migrator.migrate

        def exploding(collection, on_progress=None, control=None):
            if collection.name == "Income Records":
                raise KeyError("unexpected")
            return original(collection, on_progress, control)

        with patch.object(orchestrator.migrator, "migrate", side_effect=exploding):
            result = orchestrator.run()

        assert result.per_collection["Income Records"].success is False
        assert "unexpected" in result.per_collection["Income Records"].error
        assert result.per_collection["Customers"].success
        assert result.summary.failed_collections == 1

    def test_timeout_fails_only_that_collection(self, store, small_registry, seed):
        seed(VEHICLES, documents(30))
        seed(CUSTOMERS, documents(3))
        settings = BackfillSettings(
            page_size=50,
            batch_size=10,
            batch_delay_seconds=0,
            page_delay_seconds=0,
            collection_delay_seconds=0,
            collection_timeout_seconds=0.1,
        )
        # Each batch delay outlasts the collection timeout
        migrator = PagedBatchMigrator(store, settings=settings, sleep=lambda _: time.sleep(0.3))
        orchestrator = MigrationOrchestrator(migrator, small_registry, sleep=lambda _: None)

        result = orchestrator.run()

        vehicles = result.per_collection["Vehicle Sales"]
        assert vehicles.success is False
        assert "timeout" in vehicles.error.lower()
        assert "Vehicle Sales" in vehicles.error
        assert vehicles.migrated == 10
        assert result.per_collection["Customers"].success
        assert result.per_collection["Customers"].migrated == 3
        assert result.summary.failed_collections == 1

    def test_blocked_store_call_is_abandoned_after_grace(self, store, small_registry, seed):
        seed(VEHICLES, documents(5))
        seed(CUSTOMERS, documents(3))
        settings = BackfillSettings(
            page_size=50,
            batch_size=10,
            batch_delay_seconds=0,
            page_delay_seconds=0,
            collection_delay_seconds=0,
            collection_timeout_seconds=0.1,
            timeout_grace_seconds=0.2,
        )
        release = threading.Event()
        original = store.page_query

        def hanging(path, page_size, after=None):
            if path == VEHICLES:
                release.wait(5)
            return original(path, page_size, after=after)

        orchestrator = MigrationOrchestrator(
            PagedBatchMigrator(store, settings=settings), small_registry, sleep=lambda _: None
        )
        started = time.monotonic()
        try:
            with patch.object(store, "page_query", side_effect=hanging):
                result = orchestrator.run()
            elapsed = time.monotonic() - started
        finally:
            release.set()

        assert elapsed < 2
        vehicles = result.per_collection["Vehicle Sales"]
        assert vehicles.success is False
        assert "timeout" in vehicles.error.lower()
        assert vehicles.migrated == 0
        assert result.per_collection["Customers"].success
        assert result.per_collection["Customers"].migrated == 3

    def test_paused_time_does_not_count_toward_timeout(self, store, small_registry, seed):
        seed(CUSTOMERS, documents(3))
        settings = BackfillSettings(
            page_size=50,
            batch_size=10,
            batch_delay_seconds=0,
            page_delay_seconds=0,
            collection_delay_seconds=0,
            collection_timeout_seconds=1.0,
        )
        orchestrator = MigrationOrchestrator(
            PagedBatchMigrator(store, settings=settings), small_registry, sleep=lambda _: None
        )
        control = RunControl()
        control.pause()
        resume = threading.Timer(1.5, control.resume)
        resume.start()

        try:
            result = orchestrator.run(["Customers"], control=control)
        finally:
            resume.cancel()

        assert result.per_collection["Customers"].success
        assert result.per_collection["Customers"].migrated == 3
        assert result.duration_ms >= 1500

    def test_cancelled_run_fails_remaining_collections(self, orchestrator, seeded):
        control = RunControl()
        control.cancel()

        result = orchestrator.run(control=control)

        assert result.summary.total_collections == 3
        assert result.summary.failed_collections == 3
        assert result.summary.total_migrated == 0
        assert "cancelled" in result.per_collection["Customers"].error.lower()


class TestAuditRecord:
    def test_run_record_persisted(self, orchestrator, store, seeded):
        orchestrator.run()

        record = store.get_record("phase3-provinceId")
        assert record["status"] == "completed"
        assert record["type"] == "field-backfill"
        assert record["version"] == "3.0.0"
        assert record["summary"]["total_migrated"] == 22
        assert set(record["per_collection"]) == {"Vehicle Sales", "Income Records", "Customers"}

    def test_record_overwritten_by_next_run(self, orchestrator, store, seeded):
        orchestrator.run()
        orchestrator.run(["Customers"])

        record = store.get_record("phase3-provinceId")
        assert list(record["per_collection"]) == ["Customers"]
        assert record["summary"]["total_skipped"] == 3

    def test_record_status_with_errors(self, orchestrator, store, seed):
        seed(CUSTOMERS, [{"branchCode": ["bad"]}])

        orchestrator.run(["Customers"])

        assert store.get_record("phase3-provinceId")["status"] == "completed-with-errors"

    def test_persist_failure_does_not_change_result(self, orchestrator, store, seeded):
        with patch.object(store, "persist_record", side_effect=RuntimeError("audit store down")):
            result = orchestrator.run()

        assert result.completed_cleanly
        assert result.summary.total_migrated == 22


class TestProgressContext:
    def test_events_carry_collection_position(self, orchestrator, seeded):
        events = []

        orchestrator.run(on_progress=events.append)

        final_by_collection = {}
        for event in events:
            final_by_collection[event.collection_name] = event
        assert final_by_collection["Vehicle Sales"].collection_index == 0
        assert final_by_collection["Customers"].collection_index == 2
        assert final_by_collection["Customers"].completed_collections == 2
        assert all(e.total_collections == 3 for e in events)
