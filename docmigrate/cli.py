"""Command-line entry point for the migration engine."""

import argparse
import json
import logging
import signal
import sys
from typing import List, Optional

from .config import FirestoreSettings, JobSettings, ParseSettings
from .exceptions import FatalMigrationError, TransformError
from .extractors import BaseExtractor, JSONExtractor, ParseExtractor
from .loaders import BaseLoader, FirestoreLoader, JSONLoader
from .models.migration import EntityKind, MigrationResult
from .models.record import SourceRecord
from .orchestrator import MigrationOrchestrator
from .services.mappings import PROFILE_KIND_BY_USER_TYPE
from .services.transformer import TransformEngine

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Migrate users, profiles and appointments from Parse Server to Firestore"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migration
    run_parser = subparsers.add_parser("run", help="Run a migration")
    run_parser.add_argument("--config", help="Path to a JSON job file")
    run_parser.add_argument("--dry-run", action="store_true", help="Show what would be migrated without writing")
    run_parser.add_argument("--batch-size", type=int, help="Records per batch (default: 50)")
    run_parser.add_argument("--delay", type=float, help="Seconds to wait between batches (default: 1.0)")
    run_parser.add_argument("--kinds", help="Comma-separated entity kinds (default: all)")
    run_parser.add_argument("--user-type", type=int, help="Migrate only one user type and its profiles (1=admin, 2=client, 3=professional)")
    run_parser.add_argument("--no-skip-existing", action="store_true", help="Overwrite records already in the target")
    run_parser.add_argument("--workers", type=int, help="Run up to N entity kinds concurrently")
    run_parser.add_argument("--source", choices=["parse", "json"], default="parse", help="Source store")
    run_parser.add_argument("--source-dir", help="Directory of JSON exports (with --source json)")
    run_parser.add_argument("--target", choices=["firestore", "json"], default="firestore", help="Target store")
    run_parser.add_argument("--target-dir", help="Output directory (with --target json)")
    run_parser.add_argument("--use-emulator", action="store_true", help="Use the Firestore emulator")
    run_parser.add_argument("--report-dir", help="Directory for the JSON migration report")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Preview transformation
    preview_parser = subparsers.add_parser("preview", help="Preview the mapping of sample records")
    preview_parser.add_argument("--input", required=True, help="Path to a JSON file of raw records")
    preview_parser.add_argument("--kind", required=True, help="Entity kind of the records")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.command == "run":
        return run_migration(args)
    elif args.command == "preview":
        return run_preview(args)

    parser.print_help()
    return 1


def build_settings(args) -> JobSettings:
    """Merge the job file with command-line overrides."""
    settings = JobSettings.from_json_file(args.config) if args.config else JobSettings()
    overrides = {}

    if args.dry_run:
        overrides["dry_run"] = True
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if args.delay is not None:
        overrides["inter_batch_delay"] = args.delay
    if args.kinds:
        overrides["entity_kinds"] = [k.strip() for k in args.kinds.split(",") if k.strip()]
    if args.no_skip_existing:
        overrides["skip_existing"] = False
    if args.workers is not None:
        overrides["parallel_workers"] = args.workers
    if args.user_type is not None:
        entity_filter = dict(settings.entity_filter)
        entity_filter[EntityKind.USER.value] = {"userType": args.user_type}
        overrides["entity_filter"] = entity_filter
        overrides["entity_kinds"] = scope_to_user_type(
            overrides.get("entity_kinds", settings.entity_kinds), args.user_type
        )
    if args.report_dir:
        overrides["report_dir"] = args.report_dir

    # Re-validate the merged values
    return JobSettings(**{**settings.model_dump(), **overrides})


def scope_to_user_type(kinds: List[str], user_type: int) -> List[str]:
    """Keep users and the profile kind owned by that user type."""
    allowed = {EntityKind.USER}
    profile_kind = PROFILE_KIND_BY_USER_TYPE.get(str(user_type))
    if profile_kind:
        allowed.add(profile_kind)

    scoped = [k for k in kinds if EntityKind.parse(k) in allowed]
    dropped = [k for k in kinds if k not in scoped]
    if dropped:
        logger.info(f"--user-type {user_type}: not migrating {', '.join(dropped)}")
    return scoped


def create_extractor(args) -> BaseExtractor:
    if args.source == "json":
        if not args.source_dir:
            raise ValueError("--source-dir is required with --source json")
        return JSONExtractor(args.source_dir)
    return ParseExtractor(ParseSettings.from_env())


def create_loader(args) -> BaseLoader:
    if args.target == "json":
        if not args.target_dir:
            raise ValueError("--target-dir is required with --target json")
        return JSONLoader(args.target_dir)
    return FirestoreLoader(FirestoreSettings.from_env(use_emulator=args.use_emulator))


def run_migration(args) -> int:
    """Run a migration from flags and an optional job file."""
    try:
        settings = build_settings(args)
        job = settings.to_job()
        extractor = create_extractor(args)
        loader = create_loader(args)
    except ValueError as e:
        # pydantic's ValidationError is a ValueError
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    orchestrator = MigrationOrchestrator(job, extractor, loader, report_dir=settings.report_dir)

    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: orchestrator.cancel())
    try:
        result = orchestrator.run_migration()
    except FatalMigrationError as e:
        print(f"Migration failed: {e}", file=sys.stderr)
        if e.result is not None:
            print_summary(e.result)
        if args.verbose:
            logger.exception("Fatal migration error")
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print_summary(result)
    if orchestrator.report_path:
        print(f"\nDetailed report saved to: {orchestrator.report_path}")
    if result.errors:
        print(f"\nWarning: {result.errors} errors occurred during migration")
    return 0


def print_summary(result: MigrationResult) -> None:
    print("\n" + "=" * 60)
    print("MIGRATION DRY RUN" if result.dry_run else "MIGRATION COMPLETE")
    print("=" * 60)
    print(f"Status: {result.status.value}")
    for kind, kind_result in result.kinds.items():
        print(
            f"  {kind.value}: {kind_result.total} total, {kind_result.migrated} migrated, "
            f"{kind_result.skipped} skipped, {kind_result.errors} errors"
        )
    for report in result.validation:
        state = "ok" if report.matched else "MISMATCH"
        print(f"  validate {report.kind.value}: source {report.source_count}, target {report.target_count} [{state}]")
    if result.duration_seconds:
        print(f"Duration: {result.duration_seconds:.2f} seconds")


def run_preview(args) -> int:
    """Print the mapped form of sample records."""
    kind = EntityKind.parse(args.kind)

    with open(args.input) as f:
        input_data = json.load(f)

    if isinstance(input_data, dict):
        input_data = input_data.get("results", [input_data])

    transformer = TransformEngine()

    for data in input_data:
        record = SourceRecord(
            source_id=str(data.get("objectId") or ""),
            kind=kind,
            data=data,
        )
        try:
            result = transformer.transform_record(record)
            print(json.dumps(result.to_dict(), indent=2, default=str))
        except TransformError as e:
            print(f"Transform error: {e}")
        print("-" * 40)

    return 0


if __name__ == "__main__":
    sys.exit(main())
