"""
Unit tests for the run_backfill command-line entry point.

Each command runs against a BackfillService over mongomock; output is
checked through capsys.
"""

import json
from unittest.mock import patch

import pytest

from libs.backfill import BackfillService
from scripts.run_backfill import build_parser, main

VEHICLES = "sections/sales/vehicles"
CUSTOMERS = "data/sales/customers"


@pytest.fixture
def service(store, fast_settings, small_registry, sleeps):
    return BackfillService(store, settings=fast_settings, registry=small_registry, sleep=sleeps.append)


@pytest.fixture
def seeded(seed):
    seed(VEHICLES, [{"branchCode": "0450"} for _ in range(12)])
    seed(CUSTOMERS, [{"branch": "NSN001"} for _ in range(3)])


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_migrate_options(self):
        args = build_parser().parse_args(
            ["migrate", "--collections", "Vehicle Sales", "Customers", "--mode", "conservative", "--confirm"]
        )
        assert args.collections == ["Vehicle Sales", "Customers"]
        assert args.mode == "conservative"
        assert args.confirm is True

    def test_unknown_mode_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["migrate", "--mode", "reckless"])


class TestCommands:
    def test_collections(self, service, capsys):
        assert main(["collections"], service=service) == 0
        listed = json.loads(capsys.readouterr().out)
        assert listed[0] == {"name": "Vehicle Sales", "path": VEHICLES}
        assert len(listed) == 3

    def test_migrate_dry_run_writes_nothing(self, service, seeded, read_all, capsys):
        assert main(["migrate", "--collections", "Customers", "Ghost"], service=service) == 0

        captured = capsys.readouterr()
        plan = json.loads(captured.out)
        assert plan == {"dry_run": True, "would_migrate": ["Customers"], "unknown_collections": ["Ghost"]}
        assert "--confirm" in captured.err
        assert all("provinceId" not in d for d in read_all(CUSTOMERS))

    def test_migrate_confirm(self, service, seeded, read_all, capsys):
        assert main(["migrate", "--confirm"], service=service) == 0

        result = json.loads(capsys.readouterr().out)
        assert result["summary"]["total_migrated"] == 15
        assert all(d["provinceId"] == "nakhon-ratchasima" for d in read_all(VEHICLES))

    def test_migrate_preset_with_mode(self, service, seeded, capsys):
        assert main(["migrate", "--preset", "sales", "--mode", "aggressive", "--confirm"], service=service) == 0

        result = json.loads(capsys.readouterr().out)
        assert list(result["per_collection"]) == ["Vehicle Sales"]

    def test_migrate_with_errors_exits_nonzero(self, service, seed, capsys):
        seed(CUSTOMERS, [{"branchCode": ["bad"]}])

        assert main(["migrate", "--collections", "Customers", "--confirm"], service=service) == 1

    def test_validate(self, service, seeded, capsys):
        assert main(["validate"], service=service) == 1
        capsys.readouterr()

        main(["migrate", "--confirm"], service=service)
        capsys.readouterr()

        assert main(["validate"], service=service) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["summary"]["documents_without_derived_field"] == 0

    def test_rollback_dry_run(self, service, seeded, capsys):
        main(["migrate", "--confirm"], service=service)
        capsys.readouterr()

        assert main(["rollback"], service=service) == 0

        captured = capsys.readouterr()
        plan = json.loads(captured.out)
        assert plan["dry_run"] is True
        assert plan["would_roll_back"] == service.registry.names
        assert "roll back" in captured.err
        assert service.validate_migration().is_valid

    def test_rollback_confirm(self, service, seeded, read_all, capsys):
        main(["migrate", "--confirm"], service=service)
        capsys.readouterr()

        assert main(["rollback", "--confirm"], service=service) == 0

        result = json.loads(capsys.readouterr().out)
        assert result["summary"]["total_documents_rolled_back"] == 15
        assert all("provinceId" not in d for d in read_all(CUSTOMERS))

    def test_preview(self, service, seeded, capsys):
        assert main(["preview", "--collections", "Vehicle Sales", "--limit", "2"], service=service) == 0

        previews = json.loads(capsys.readouterr().out)
        assert len(previews) == 1
        assert len(previews[0]["documents"]) == 2

    def test_last_run(self, service, seeded, capsys):
        assert main(["last-run"], service=service) == 1
        assert "No backfill run recorded yet" in capsys.readouterr().err

        main(["migrate", "--confirm"], service=service)
        capsys.readouterr()

        assert main(["last-run"], service=service) == 0
        assert json.loads(capsys.readouterr().out)["status"] == "completed"

    def test_store_failure_exits_nonzero(self, service, store):
        with patch.object(store, "get_record", side_effect=RuntimeError("connection refused")):
            assert main(["last-run"], service=service) == 1
