"""Command line interface for the Webflow to Payload migration."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import load_environment
from .exceptions import ConfigurationError
from .models.migration import MIGRATION_ORDER, EntityType, MigrationConfig, MigrationRun, MigrationStatus
from .orchestrator import MigrationOrchestrator
from .services.comparison import format_comparison

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configure root logging for a CLI invocation."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # urllib3 logs every retry at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--env-file", help="Dotenv file to load (default: .env and .env.local)")
    common.add_argument("--output-dir", help="Directory for reports and transformed records")
    common.add_argument("--mapping", help="Path to a mapping JSON file overriding the built-in mapping")
    common.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    common.add_argument("--log-file", help="Also write log output to this file")

    parser = argparse.ArgumentParser(
        prog="webflow-payload",
        description="Migrate Webflow CMS collections into Payload CMS",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    entity_choices = [e.value for e in MIGRATION_ORDER]

    # Run migration
    run_parser = subparsers.add_parser("run", parents=[common], help="Run a migration")
    run_parser.add_argument("--dry-run", action="store_true", help="Simulate without writing to Payload")
    run_parser.add_argument(
        "--only",
        nargs="+",
        choices=entity_choices,
        metavar="ENTITY",
        help=f"Restrict the run to these entity types ({', '.join(entity_choices)})",
    )
    run_parser.add_argument("--include-drafts", action="store_true", help="Also migrate draft contributors")
    run_parser.add_argument("--skip-images", action="store_true", help="Do not migrate images")
    run_parser.add_argument(
        "--strict-status",
        action="store_true",
        help="Skip projects with an unrecognized status instead of defaulting them to active",
    )

    # Images only
    images_parser = subparsers.add_parser("images", parents=[common], help="Migrate images only")
    images_parser.add_argument("--dry-run", action="store_true", help="Simulate without uploading")

    # Audit
    compare_parser = subparsers.add_parser("compare", parents=[common], help="Compare Webflow and Payload contents")
    compare_parser.add_argument(
        "--only",
        nargs="+",
        choices=[e for e in entity_choices if e != EntityType.IMAGES.value],
        metavar="ENTITY",
        help="Restrict the comparison to these entity types",
    )
    compare_parser.add_argument("--json", action="store_true", help="Print results as JSON")

    # Preview transformation
    preview_parser = subparsers.add_parser(
        "preview",
        parents=[common],
        help="Transform a local JSON dump of Webflow items and print the Payload documents",
    )
    preview_parser.add_argument("--input", required=True, help="JSON file with a list of Webflow items")
    preview_parser.add_argument(
        "--entity",
        required=True,
        choices=[e for e in entity_choices if e != EntityType.IMAGES.value],
        help="Entity type of the items",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.log_file)

    handlers = {
        "run": run_migration,
        "images": run_images,
        "compare": run_compare,
        "preview": run_preview,
    }

    try:
        return handlers[args.command](args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1


def _config_from_args(args, **overrides) -> MigrationConfig:
    load_environment(args.env_file)
    return MigrationConfig.from_env(
        output_dir=args.output_dir,
        mapping_file=args.mapping,
        **overrides,
    )


def run_migration(args) -> int:
    """Run a migration configured from the environment."""
    config = _config_from_args(
        args,
        dry_run=args.dry_run,
        entities=args.only,
        include_drafts=args.include_drafts,
        migrate_images=not args.skip_images,
        default_unknown_status_to_active=not args.strict_status,
    )
    return _execute(config)


def run_images(args) -> int:
    """Migrate images for already migrated contributors and projects."""
    config = _config_from_args(
        args,
        dry_run=args.dry_run,
        entities=[EntityType.IMAGES.value],
        migrate_images=True,
    )
    return _execute(config)


def _execute(config: MigrationConfig) -> int:
    problems = config.validate()
    for problem in problems:
        logger.warning(problem)

    result = MigrationOrchestrator(config).run_migration()
    print_summary(result)
    # A step that failed outright fails the command; per-record failures do not.
    if result.status == MigrationStatus.FAILED:
        return 1
    if any(step.status == MigrationStatus.FAILED for step in result.steps):
        return 1
    return 0


def print_summary(result: MigrationRun) -> None:
    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE" + (" (DRY RUN)" if result.dry_run else ""))
    print("=" * 60)
    print(f"Status: {result.status.value}")
    for step in result.steps:
        print(
            f"  {step.entity:<18} {step.status.value:<22} "
            f"created={step.records_created} updated={step.records_updated} "
            f"skipped={step.records_skipped} failed={step.records_failed}"
        )
    print(f"Records Processed: {result.total_records_processed}")
    print(f"Created: {result.total_records_created}")
    print(f"Updated: {result.total_records_updated}")
    print(f"Skipped: {result.total_records_skipped}")
    print(f"Failed: {result.total_records_failed}")
    if result.duration_seconds:
        print(f"Duration: {result.duration_seconds:.2f} seconds")
    if result.report_path:
        print(f"Report: {result.report_path}")


def run_compare(args) -> int:
    """Print how far Payload is from the active Webflow items."""
    config = _config_from_args(args, entities=args.only, migrate_images=False)
    config.require_credentials()

    results = MigrationOrchestrator(config).compare()
    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        print(format_comparison(results))
    return 0


def run_preview(args) -> int:
    """Transform items from a local file without calling either API."""
    with open(args.input) as f:
        input_data = json.load(f)

    if isinstance(input_data, dict):
        input_data = input_data.get("items", [input_data])

    config = MigrationConfig(mapping_file=args.mapping, save_report=False)
    if args.output_dir:
        config.output_dir = args.output_dir

    for result in MigrationOrchestrator(config).preview_transformation(input_data, args.entity):
        print(json.dumps(result.to_dict(), indent=2, default=str))
        print("-" * 40)
    return 0


if __name__ == "__main__":
    sys.exit(main())
