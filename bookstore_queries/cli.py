"""Command line entry point.

Commands:
  run      Execute the query sequence (default)
  seed     Load the sample books into the collection
  config   Print the effective configuration
"""

import argparse
import logging
import sys

from pydantic import ValidationError

from .config.settings import Settings, get_settings
from .database.connection import ConnectionManager
from .exceptions import ConfigurationError, QueryRunnerError
from .runner import QueryRunner
from .seed import seed_books
from .structured_logging import configure_logging

logger = logging.getLogger(__name__)


def _target_options(default) -> argparse.ArgumentParser:
    """Connection and logging overrides, accepted before or after the command.

    Subcommand copies use ``argparse.SUPPRESS`` so an option given before the
    command is not reset by the subcommand's default.
    """
    options = argparse.ArgumentParser(add_help=False)
    options.add_argument("--uri", default=default, help="MongoDB URI (overrides MONGODB_URI)")
    options.add_argument(
        "--database", default=default, help="Database name (overrides MONGODB_DATABASE)"
    )
    options.add_argument(
        "--collection", default=default, help="Collection name (overrides MONGODB_COLLECTION)"
    )
    options.add_argument(
        "--log-level",
        default=default,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides LOG_LEVEL)",
    )
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookstore-queries",
        description="Run predefined CRUD, aggregation and index queries against a books collection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[_target_options(default=None)],
        epilog="""
Examples:
  # Load sample data, then run every query
  bookstore-queries seed
  bookstore-queries run

  # Point at another server and database
  bookstore-queries run --uri mongodb://db.internal:27017 --database shop

  # Query parameters come from the environment
  QUERIES__GENRE=Fantasy QUERIES__PAGE_NUMBER=1 bookstore-queries run
        """,
    )

    command_options = _target_options(default=argparse.SUPPRESS)
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser(
        "run", parents=[command_options], help="Execute the query sequence (default)"
    )
    seed_parser = subparsers.add_parser(
        "seed", parents=[command_options], help="Load the sample books"
    )
    seed_parser.add_argument(
        "--no-drop",
        action="store_true",
        help="Keep existing documents instead of dropping the collection first",
    )
    subparsers.add_parser(
        "config", parents=[command_options], help="Print the effective configuration"
    )
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with command line overrides applied and re-validated."""
    overrides = {
        "mongodb_uri": args.uri,
        "mongodb_database": args.database,
        "mongodb_collection": args.collection,
        "log_level": args.log_level,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}

    settings = get_settings()
    if not overrides:
        return settings
    return Settings.model_validate({**settings.model_dump(), **overrides})


def run_queries(settings: Settings, run_id: str | None = None) -> int:
    report = QueryRunner(settings.to_runner_config(), run_id=run_id).run()
    if not report.succeeded:
        logger.debug(f"Run report error: {report.error.to_dict()}")
    return 0


def run_seed(settings: Settings, drop: bool) -> int:
    config = settings.to_runner_config()
    try:
        with ConnectionManager(config.connection) as collection:
            inserted = seed_books(collection, drop=drop)
    except QueryRunnerError as e:
        logger.error(f"Seeding failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Seeding failed: {e}", exc_info=True)
        return 1

    print(f"Seeded {inserted} books into {config.connection.target}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except ValidationError as e:
        configure_logging()
        error = ConfigurationError(
            message="Configuration validation failed",
            details={"error_count": e.error_count()},
            original_exception=e,
        )
        logger.error(f"✗ {error}")
        return 1

    correlation_filter = configure_logging(
        level=settings.log_level, structured=settings.log_structured
    )

    command = args.command or "run"
    if command == "config":
        settings.print_config()
        return 0
    if command == "seed":
        return run_seed(settings, drop=not args.no_drop)
    return run_queries(settings, run_id=correlation_filter.correlation_id)


if __name__ == "__main__":
    sys.exit(main())
