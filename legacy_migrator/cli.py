"""Command-line driver for configured migrations."""

import argparse
import logging
import sys
from typing import List, Optional

from .config import MigrationConfig
from .exceptions import ConfigurationError, MigrationError, SourceError
from .models.migration import MigrationOptions, MigrationReport
from .registry import MigrationRegistry

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RECORD_FAILURES = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="legacy-migrate",
        description="Migrate records from a legacy database into a new one",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migrations
    run_parser = subparsers.add_parser("run", help="Run one or more migrations")
    run_parser.add_argument("--config", required=True, help="Path to migration config file")
    run_parser.add_argument(
        "--kind",
        action="append",
        dest="kinds",
        help="Record kind to migrate (repeatable; default: all, in config order)",
    )
    run_parser.add_argument("--offset", type=int, default=0, help="Source records to skip")
    run_parser.add_argument("--limit", type=int, default=None, help="Maximum source records to visit")
    run_parser.add_argument("--label", help="Label used in the summary line")
    run_parser.add_argument(
        "--dedupe-key",
        action="append",
        dest="dedupe_keys",
        help="Target attribute identifying an already migrated record (repeatable)",
    )
    run_parser.add_argument("--dry-run", action="store_true", help="Map and validate without writing")
    run_parser.add_argument(
        "--allow-failures",
        action="store_true",
        help="Exit 0 even when some records failed",
    )
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # List configured kinds
    list_parser = subparsers.add_parser("list", help="List configured migrations")
    list_parser.add_argument("--config", required=True, help="Path to migration config file")

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

    try:
        if args.command == "run":
            return run_migrations(args)
        elif args.command == "list":
            return list_migrations(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FATAL
    except SourceError as e:
        print(f"Source error: {e}", file=sys.stderr)
        return EXIT_FATAL

    parser.print_help()
    return EXIT_FATAL


def run_migrations(args) -> int:
    """Run the selected kinds from a config file."""
    config = MigrationConfig.from_json_file(args.config)
    options = MigrationOptions(
        offset=args.offset,
        limit=args.limit,
        label=args.label,
        dedupe_keys=tuple(args.dedupe_keys or ()),
    )
    registry = MigrationRegistry.from_config(config, dry_run=True if args.dry_run else None)

    try:
        kinds = args.kinds or registry.kinds
        for kind in kinds:
            registry.get(kind)

        reports = []
        for kind in kinds:
            try:
                report = registry.run(kind, options)
            except MigrationError as e:
                if e.report is not None:
                    print_report(e.report)
                raise
            print_report(report)
            reports.append(report)
    finally:
        registry.dispose()

    failed = sum(r.failed for r in reports)
    if failed and not args.allow_failures:
        return EXIT_RECORD_FAILURES
    return EXIT_OK


def list_migrations(args) -> int:
    """Print the configured kinds."""
    config = MigrationConfig.from_json_file(args.config)

    for kind, migration in config.migrations.items():
        source = migration.source_table or migration.source_file
        print(f"{kind}: {source} -> {migration.target_table}")

    return EXIT_OK


def print_report(report: MigrationReport) -> None:
    """Print the summary line and failure details of a report."""
    print(report.summary())
    for failure in report.failures:
        print(f"  - record {failure.record_id} ({failure.error_type}): {failure.message}")
    if report.dry_run:
        print("  (dry run: nothing was written)")


if __name__ == "__main__":
    sys.exit(main())
