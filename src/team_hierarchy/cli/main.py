"""
CLI Interface Module

Provides the command-line interface for the Team Hierarchy Engine: database
setup and seeding, team writes, team tree view maintenance, hierarchy and
layout queries, statistics and listings.

Hierarchy, layout and statistics results are written to stdout as JSON (or
to a file with ``--output``); logs go to stderr.
"""

import argparse
import logging
import os
import sys
from contextlib import contextmanager
from typing import Any

from .. import __version__
from ..database.database_manager import DatabaseManager
from ..database.query_filters import TeamQueryFilters
from ..database.seed import SeedConfig, seed_teams
from ..export.json_exporter import HierarchyJSONExporter
from ..service.team_service import TeamService
from ..utils.config_loader import Config
from ..utils.error_handlers import (
    ConfigurationError,
    CycleDetectedError,
    DatabaseError,
    ValidationError,
)
from ..utils.file_utils import ensure_directory


logger = logging.getLogger(__name__)

# Constants
DEFAULT_CONFIG_PATH = "config/system_config.yaml"
LOG_FILE_NAME = "team_hierarchy.log"
DEFAULT_PAGE_SIZE = 20
SEPARATOR_WIDTH = 60
WIDE_SEPARATOR_WIDTH = 80


def setup_logging(log_level: str = "INFO") -> None:
    """Configure logging for the CLI application.

    Application output goes to stdout, logs go to stderr.

    Args:
        log_level: Logging level as string (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def attach_file_logging(log_dir: str) -> None:
    """Also write logs to ``log_dir/team_hierarchy.log``.

    Calling it again for the same directory does not add a second handler.
    """
    ensure_directory(log_dir)
    log_path = os.path.abspath(os.path.join(log_dir, LOG_FILE_NAME))
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if getattr(handler, "baseFilename", None) == log_path:
            return

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root_logger.addHandler(file_handler)


@contextmanager
def get_team_service(config_path: str):
    """Context manager for a configured TeamService.

    Args:
        config_path: Path to system configuration file.

    Yields:
        tuple: (SystemConfig, TeamService) objects.

    Raises:
        ConfigurationError: If the configuration is invalid.
        DatabaseError: If the database connection fails.
    """
    db = None
    try:
        config = Config.load(config_path)
        errors = Config.validate(config)
        if errors:
            raise ConfigurationError(f"Configuration invalid: {'; '.join(errors)}")
        if config.logging.get("log_dir"):
            attach_file_logging(config.logging["log_dir"])
        db = DatabaseManager(config.database["path"])
        yield config, TeamService.from_config(config, db)
    finally:
        if db is not None:
            db.close()


def handle_error(context: str, error: Exception) -> int:
    """Centralized error handling for commands.

    Args:
        context: Description of the operation that failed.
        error: Exception that was raised.

    Returns:
        Exit code 1.
    """
    if isinstance(error, FileNotFoundError):
        logger.error(f"{context}: File not found - {error}")
    elif isinstance(error, ValueError):
        logger.error(f"{context}: Invalid value - {error}")
    elif isinstance(error, CycleDetectedError):
        logger.error(f"{context}: {error} (teams: {error.team_ids})")
    elif isinstance(error, (ConfigurationError, DatabaseError, ValidationError)):
        logger.error(f"{context}: {error}")
    else:
        logger.error(f"{context}: {error}", exc_info=True)
    return 1


def emit_json(exporter: HierarchyJSONExporter, kind: str, data: Any, output) -> None:
    """Write an export envelope to ``output`` or print it to stdout."""
    if output:
        path = exporter.export(kind, data, output)
        print(f"✓ Exported {kind} to: {path}")
    else:
        print(exporter.to_string(kind, data))


def main() -> int:
    """Execute the main CLI entry point.

    Returns:
        Exit code: 0 for success, 1 for handled failures, 130 on interrupt.

    Example:
        $ team-hierarchy seed --count 200 --seed 7
        $ team-hierarchy hierarchy --team "Global Data Team"
    """
    parser = setup_argument_parser()
    args = parser.parse_args()

    if args.version:
        print(f"Team Hierarchy Engine v{__version__}")
        return 0

    setup_logging(args.log_level)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        command_map = {
            "init-db": command_init_db,
            "seed": command_seed,
            "add-team": command_add_team,
            "set-parent": command_set_parent,
            "refresh-view": command_refresh_view,
            "drop-view": command_drop_view,
            "hierarchy": command_hierarchy,
            "layout": command_layout,
            "stats": command_stats,
            "list": command_list_teams,
            "validate-config": command_validate_config,
        }

        handler = command_map.get(args.command)
        if handler:
            return handler(args)
        parser.print_help()
        return 1

    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        return 130
    except Exception as e:
        return handle_error("Command execution failed", e)


def command_init_db(args: argparse.Namespace) -> int:
    """Create the database file and schema."""
    try:
        with get_team_service(args.config) as (config, service):
            print(f"✓ Database ready: {config.database['path']}")
            print(f"  Teams: {service.get_team_count()}")
            return 0
    except Exception as e:
        return handle_error("Database initialization failed", e)


def command_seed(args: argparse.Namespace) -> int:
    """Populate the database with a random team forest.

    Values not given on the command line come from the ``seed`` section of
    the configuration.
    """
    try:
        with get_team_service(args.config) as (config, service):
            seed_config = SeedConfig(
                team_count=(
                    args.count
                    if args.count is not None
                    else config.seed.get("team_count", 100)
                ),
                parent_probability=(
                    args.parent_probability
                    if args.parent_probability is not None
                    else config.seed.get("parent_probability", 0.5)
                ),
                random_seed=(
                    args.seed
                    if args.seed is not None
                    else config.seed.get("random_seed")
                ),
            )
            team_ids = seed_teams(service.db, seed_config, clear_existing=args.clear)
            print(f"✓ Created {len(team_ids)} teams")

            if not args.skip_view:
                records = service.update_materialized_view()
                print(f"✓ Team tree view holds {len(records)} records")
            return 0
    except Exception as e:
        return handle_error("Seeding failed", e)


def command_add_team(args: argparse.Namespace) -> int:
    try:
        with get_team_service(args.config) as (_, service):
            team_id = service.create_team(args.name, args.parent_id)
            print(f"✓ Created team {team_id}: {args.name}")
            return 0
    except Exception as e:
        return handle_error("Adding team failed", e)


def command_set_parent(args: argparse.Namespace) -> int:
    """Move a team under another team, or make it a root without --parent-id."""
    try:
        with get_team_service(args.config) as (_, service):
            service.set_team_parent(args.team_id, args.parent_id)
            target = args.parent_id if args.parent_id is not None else "root"
            print(f"✓ Team {args.team_id} moved under {target}")
            return 0
    except Exception as e:
        return handle_error("Setting parent failed", e)


def command_refresh_view(args: argparse.Namespace) -> int:
    try:
        with get_team_service(args.config) as (_, service):
            records = service.update_materialized_view()
            print(f"✓ Team tree view refreshed with {len(records)} records")
            return 0
    except Exception as e:
        return handle_error("Refreshing team tree view failed", e)


def command_drop_view(args: argparse.Namespace) -> int:
    try:
        with get_team_service(args.config) as (_, service):
            service.drop_materialized_view()
            print("✓ Team tree view dropped")
            return 0
    except Exception as e:
        return handle_error("Dropping team tree view failed", e)


def command_hierarchy(args: argparse.Namespace) -> int:
    """Print the full forest, or the slice around --team, as JSON."""
    try:
        with get_team_service(args.config) as (_, service):
            use_cache = False if args.no_cache else None
            if args.team:
                trees = service.get_scoped_hierarchy(args.team, use_cache=use_cache)
            else:
                trees = service.get_full_hierarchy(use_cache=use_cache)

            exporter = HierarchyJSONExporter(args.format)
            emit_json(
                exporter,
                "hierarchy",
                HierarchyJSONExporter.format_hierarchy(trees),
                args.output,
            )
            return 0
    except Exception as e:
        return handle_error("Hierarchy query failed", e)


def command_layout(args: argparse.Namespace) -> int:
    try:
        with get_team_service(args.config) as (_, service):
            layout = service.get_hierarchy_layout(args.team)
            exporter = HierarchyJSONExporter(args.format)
            emit_json(exporter, "layout", layout.to_dict(), args.output)
            return 0
    except Exception as e:
        return handle_error("Layout failed", e)


def command_stats(args: argparse.Namespace) -> int:
    """Print team tree statistics and the largest teams."""
    try:
        with get_team_service(args.config) as (_, service):
            stats = service.get_team_tree_statistics()

            print("\n" + "=" * SEPARATOR_WIDTH)
            print("TEAM TREE STATISTICS")
            print("=" * SEPARATOR_WIDTH)
            print(f"Total Teams: {stats.total_teams}")
            print(f"Root Teams: {stats.total_root_teams}")
            print(f"Leaf Teams: {stats.total_leaf_teams}")
            print(f"Max Depth: {stats.max_depth}")
            print(f"Average Depth: {stats.avg_depth:.2f}")
            print(f"Largest Team Size: {stats.largest_team_size}")
            print(f"Average Team Size: {stats.avg_team_size:.2f}")
            print(f"Teams With 10+ Descendants: {stats.teams_with_10_plus_descendants}")
            print(f"Teams Without Descendants: {stats.teams_with_no_descendants}")

            storage = service.get_storage_stats()
            print(f"\nCached Records: {storage['cached_records']}")
            print(f"Database Size: {storage['database_size_mb']:.2f} MB")

            if args.top > 0:
                print(f"\nLargest {args.top} teams:")
                for record in service.get_team_tree(limit=args.top):
                    print(
                        f"  {record.descendant_count:>6}  "
                        f"[{record.size_category.value:<6}] {record.path_names}"
                    )

            print("=" * SEPARATOR_WIDTH + "\n")
            return 0
    except Exception as e:
        return handle_error("Statistics query failed", e)


def command_list_teams(args: argparse.Namespace) -> int:
    """List one page of teams ordered by name."""
    try:
        filters = TeamQueryFilters(
            name=args.name, page=args.page, page_size=args.page_size
        )
    except ValueError as e:
        return handle_error("Invalid listing options", e)

    try:
        with get_team_service(args.config) as (_, service):
            page = service.get_teams_paginated(filters)

            print("\n" + "=" * WIDE_SEPARATOR_WIDTH)
            print(
                f"Found {page.total} team(s) - page {page.page} of {page.total_pages}"
            )
            print("=" * WIDE_SEPARATOR_WIDTH)
            print(f"{'ID':<8} {'Name':<40} {'Parent':<20} {'Children':<10}")
            print("-" * WIDE_SEPARATOR_WIDTH)

            for team in page.teams:
                parent = team.parent.name if team.parent else "-"
                print(
                    f"{team.id:<8} {team.name[:40]:<40} "
                    f"{parent[:20]:<20} {team.child_count:<10}"
                )

            print("=" * WIDE_SEPARATOR_WIDTH)
            return 0
    except Exception as e:
        return handle_error("List command failed", e)


def command_validate_config(args: argparse.Namespace) -> int:
    """Validate the configuration file.

    Returns:
        Exit code: 0 if configuration is valid, 1 if errors found.
    """
    logger.info(f"Validating configuration: {args.config}")

    try:
        config = Config.load(args.config)
        errors = Config.validate(config)
    except Exception as e:
        return handle_error("Configuration validation failed", e)

    if errors:
        print("✗ Configuration invalid:")
        for error in errors:
            print(f"  - {error}")
        return 1

    print("✓ Configuration valid")
    return 0


def setup_argument_parser() -> argparse.ArgumentParser:
    """Configure the argument parser with all CLI commands and options.

    Returns:
        Configured ArgumentParser instance ready to parse sys.argv.
    """
    parser = argparse.ArgumentParser(
        description="Team Hierarchy Engine - CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a database with 500 random teams
  %(prog)s seed --count 500 --seed 42

  # Slice of the forest around one team
  %(prog)s hierarchy --team "Global Data Team"

  # Positioned nodes for the full forest
  %(prog)s layout --output out/layout.json

  # Second page of teams whose name contains "data"
  %(prog)s list --name data --page 2
        """,
    )

    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help="Path to configuration file (default: %(default)s)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: %(default)s)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "init-db",
        help="Create the database",
        description="Create the database file and schema if missing.",
    )

    seed_parser = subparsers.add_parser(
        "seed",
        help="Populate the database with random teams",
        description="Create a random acyclic team forest.",
    )
    seed_parser.add_argument("--count", type=int, help="Number of teams to create")
    seed_parser.add_argument(
        "--parent-probability",
        type=float,
        help="Chance that a team gets a parent among earlier teams",
    )
    seed_parser.add_argument("--seed", type=int, help="Random seed")
    seed_parser.add_argument(
        "--clear", action="store_true", help="Delete existing teams first"
    )
    seed_parser.add_argument(
        "--skip-view",
        action="store_true",
        help="Do not refresh the team tree view afterwards",
    )

    add_parser = subparsers.add_parser("add-team", help="Create a team")
    add_parser.add_argument("name", help="Team name")
    add_parser.add_argument("--parent-id", type=int, help="Parent team id")

    parent_parser = subparsers.add_parser(
        "set-parent",
        help="Move a team",
        description="Move a team under a parent, or make it a root.",
    )
    parent_parser.add_argument("team_id", type=int, help="Team to move")
    parent_parser.add_argument(
        "--parent-id", type=int, help="New parent id (omit to make a root)"
    )

    subparsers.add_parser(
        "refresh-view",
        help="Refresh the team tree view",
        description="Recompute the team tree view, creating it when missing.",
    )
    subparsers.add_parser("drop-view", help="Drop the team tree view")

    hierarchy_parser = subparsers.add_parser(
        "hierarchy",
        help="Print the team hierarchy as JSON",
        description="Print the full forest or the slice around one team.",
    )
    hierarchy_parser.add_argument("--team", help="Name of the team to focus on")
    hierarchy_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Build from live teams instead of the team tree view",
    )

    layout_parser = subparsers.add_parser(
        "layout",
        help="Print positioned nodes and edges as JSON",
    )
    layout_parser.add_argument("--team", help="Name of the team to focus on")

    for json_parser in (hierarchy_parser, layout_parser):
        json_parser.add_argument("--output", help="Write JSON to this file")
        json_parser.add_argument(
            "--format",
            choices=["pretty", "compact"],
            default="pretty",
            help="JSON formatting (default: %(default)s)",
        )

    stats_parser = subparsers.add_parser("stats", help="Print team tree statistics")
    stats_parser.add_argument(
        "--top",
        type=int,
        default=5,
        help="Also list the N largest teams (default: %(default)s)",
    )

    list_parser = subparsers.add_parser(
        "list",
        help="List teams",
        description="List teams ordered by name, one page at a time.",
    )
    list_parser.add_argument("--name", help="Case-insensitive name filter")
    list_parser.add_argument(
        "--page", type=int, default=1, help="Page number (default: %(default)s)"
    )
    list_parser.add_argument(
        "--page-size",
        type=int,
        default=DEFAULT_PAGE_SIZE,
        help="Teams per page (default: %(default)s)",
    )

    subparsers.add_parser(
        "validate-config",
        help="Validate system configuration",
        description="Validate system configuration file for correctness.",
    )

    return parser


if __name__ == "__main__":
    sys.exit(main())
