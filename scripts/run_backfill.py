#!/usr/bin/env python
"""
Run, validate or roll back the province backfill from the command line.

Usage:
    python scripts/run_backfill.py collections
    python scripts/run_backfill.py preview --collections "Vehicle Sales" --limit 5
    python scripts/run_backfill.py migrate --preset accounting --mode conservative
    python scripts/run_backfill.py migrate --confirm
    python scripts/run_backfill.py validate
    python scripts/run_backfill.py rollback --confirm
    python scripts/run_backfill.py last-run

The document store is selected with BACKFILL_STORE (mongo by default) and
configured from the MONGO_* or GOOGLE_APPLICATION_CREDENTIALS /
FIREBASE_PROJECT_ID environment variables. Tunables come from BACKFILL_*.

Exit code is 0 when the operation completed cleanly, 1 otherwise.
"""

import argparse
import json
import logging
import sys
from typing import Any, Optional

from libs.backfill import SELECTION_PRESETS, BackfillService
from libs.models import RATE_LIMIT_PRESETS, BackfillSettings

logger = logging.getLogger("run_backfill")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Province backfill for the dealership collections")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser("migrate", help="Backfill provinceId into the selected collections")
    migrate.add_argument("--collections", nargs="+", help="Collection display names (default: all)")
    migrate.add_argument("--preset", choices=sorted(SELECTION_PRESETS), help="Named collection selection")
    migrate.add_argument(
        "--mode",
        choices=list(RATE_LIMIT_PRESETS),
        help="Rate-limit preset (default: BACKFILL_* settings)",
    )
    migrate.add_argument(
        "--confirm",
        action="store_true",
        help="Actually write (without this, dry run only)",
    )

    subparsers.add_parser("validate", help="Count documents with and without provinceId")

    rollback = subparsers.add_parser("rollback", help="Remove the backfilled fields")
    rollback.add_argument(
        "--confirm",
        action="store_true",
        help="Actually remove fields (without this, dry run only)",
    )

    preview = subparsers.add_parser("preview", help="Show what a backfill would write")
    preview.add_argument("--collections", nargs="+", help="Collection display names (default: all)")
    preview.add_argument("--limit", type=int, default=3, help="Documents per collection (default: 3)")

    subparsers.add_parser("collections", help="List the registered collections")
    subparsers.add_parser("last-run", help="Show the audit record of the last run")

    return parser


def emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def run_command(args: argparse.Namespace, service: BackfillService) -> int:
    """
    Execute one parsed command against `service`.

    Returns:
        Exit code (0 for a clean result, 1 otherwise)
    """
    if args.command == "collections":
        emit([{"name": c.name, "path": c.path} for c in service.registry])
        return 0

    if args.command == "preview":
        previews = service.preview(args.collections, limit=args.limit)
        emit([p.model_dump(mode="json") for p in previews])
        return 0 if all(p.error is None for p in previews) else 1

    if args.command == "last-run":
        record = service.last_run()
        if record is None:
            print("No backfill run recorded yet", file=sys.stderr)
            return 1
        emit(record.model_dump(mode="json"))
        return 0

    if args.command == "validate":
        report = service.validate_migration()
        emit(report.model_dump(mode="json"))
        return 0 if report.is_valid else 1

    if args.command == "rollback":
        if not args.confirm:
            emit({"dry_run": True, "would_roll_back": service.registry.names})
            print("Dry run - add --confirm to actually roll back.", file=sys.stderr)
            return 0
        result = service.rollback_migration()
        emit(result.model_dump(mode="json"))
        return 0 if result.summary.failed_collections == 0 else 1

    if args.command == "migrate":
        if args.mode:
            service = service.with_settings(BackfillSettings.for_mode(args.mode))
        selected = service.resolve_selection(args.collections, args.preset)
        targets = service.registry.select(selected)
        unknown = service.registry.unknown_names(selected or [])

        if not args.confirm:
            emit({
                "dry_run": True,
                "would_migrate": [c.name for c in targets],
                "unknown_collections": unknown,
            })
            print("Dry run - add --confirm to actually migrate.", file=sys.stderr)
            return 0

        result = service.execute_migration(selected_collection_names=selected)
        emit(result.model_dump(mode="json"))
        return 0 if result.completed_cleanly else 1

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[list[str]] = None, service: Optional[BackfillService] = None) -> int:
    """
    CLI entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if service is None:
            service = BackfillService.from_env()
        return run_command(args, service)
    except Exception as e:
        logger.error(f"Backfill command '{args.command}' failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
