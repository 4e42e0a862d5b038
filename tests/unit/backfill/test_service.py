# =============================================================================
# Unit Tests: Backfill Service facade
# =============================================================================

import pytest

from libs.backfill import BackfillService, ProgressTracker
from libs.models import BackfillSettings


VEHICLES = "sections/sales/vehicles"
INCOMES = "sections/account/incomes"


@pytest.fixture
def service(store, fast_settings, small_registry):
    return BackfillService(
        store, settings=fast_settings, registry=small_registry, sleep=lambda _: None
    )


def test_uses_default_registry(store):
    assert len(BackfillService(store).registry) == 30


def test_execute_validate_rollback_cycle(service, seed):
    seed(VEHICLES, [{"branchCode": "0450"} for _ in range(15)])
    seed(INCOMES, [{"branch": "NSN003"} for _ in range(4)])
    tracker = ProgressTracker()

    result = service.execute_migration(on_progress=tracker)
    assert result.summary.total_migrated == 19
    assert tracker.latest is not None

    report = service.validate_migration()
    assert report.is_valid
    assert report.summary.documents_with_derived_field == 19

    rollback = service.rollback_migration()
    assert rollback.summary.total_documents_rolled_back == 19

    report = service.validate_migration()
    assert report.summary.documents_without_derived_field == 19


def test_selected_collections(service, seed):
    seed(VEHICLES, [{"branchCode": "0450"}])
    seed(INCOMES, [{"branchCode": "0450"}])

    result = service.execute_migration(selected_collection_names=["Income Records"])

    assert list(result.per_collection) == ["Income Records"]


def test_last_run(service, seed):
    assert service.last_run() is None
    seed(VEHICLES, [{"branchCode": "0450"}])

    service.execute_migration()
    record = service.last_run()

    assert record.status == "completed"
    assert record.summary.total_migrated == 1
    assert record.per_collection["Vehicle Sales"].migrated == 1


def test_preview(service, seed):
    seed(VEHICLES, [{"branchCode": "NSN001"}])
    previews = service.preview(["Vehicle Sales"])
    assert previews[0].documents[0].proposed_value == "nakhon-sawan"


class TestResolveSelection:
    def test_nothing_selects_all(self, store):
        assert BackfillService(store).resolve_selection() is None

    def test_explicit_names(self, store):
        assert BackfillService(store).resolve_selection(["Customers"]) == ["Customers"]

    def test_preset_merged_without_duplicates(self, store):
        names = BackfillService(store).resolve_selection(["Income Records", "Customers"], "accounting")
        assert names == ["Income Records", "Customers", "Expense Records", "Income Items"]

    def test_unknown_preset(self, store):
        with pytest.raises(ValueError):
            BackfillService(store).resolve_selection(preset="nope")


def test_with_settings_keeps_bindings(service):
    slower = service.with_settings(BackfillSettings.for_mode("conservative"))
    assert slower.settings.page_size == 25
    assert slower.registry is service.registry
    assert slower.store is service.store
