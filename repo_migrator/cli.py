"""Command line entry point for the repository migrator.

Each subcommand is one step of the CI workflow: ``discover`` plans the
batches, ``migrate`` runs one batch, ``merge`` folds the batch snapshots
back into the canonical state, and the cleanup commands tidy the target
organization.
"""

import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv

from .clients.codeberg import CodebergClient
from .clients.github import GitHubClient
from .core.config_loader import MigrationConfig, load_config
from .core.exceptions import MigratorError
from .core.logging_config import get_logger, setup_logging
from .core.settings import MigratorSettings
from .core.subprocess_manager import managed_subprocess
from .migration.branch_sync import GitMirrorSyncer
from .migration.runner import PhaseRunner
from .services.cleanup import CleanupService
from .services.discovery import DiscoveryService
from .services.migration import MigrationService
from .services.outputs import write_github_outputs
from .state.merger import merge_directory
from .state.store import StateStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="repo-migrator", description="Migrate GitHub organization repositories to Codeberg"
    )
    parser.add_argument("--config", default=None, help="Batch configuration file (CONFIG_PATH)")
    parser.add_argument("--state", default=None, help="Migration state file (STATE_PATH)")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (LOG_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", help="Discover repos and plan batches")
    discover.add_argument("--output", default=None, help="Batch plan file (OUTPUT_PATH)")

    migrate = subparsers.add_parser("migrate", help="Migrate selected repos")
    migrate.add_argument(
        "--repos", default=None, help="Comma-separated repos to process (REPO_LIST)"
    )

    merge = subparsers.add_parser("merge", help="Merge batch state files into the main state")
    merge.add_argument(
        "--batch-states-dir", default=None, help="Directory of batch-*.json files"
    )

    subparsers.add_parser("status", help="Print migration state statistics")

    for name, help_text in (
        ("cleanup-inactive", "Delete inactive repos from the target organization"),
        ("cleanup-migrating", "Delete repos stuck migrating on the target"),
    ):
        cleanup = subparsers.add_parser(name, help=help_text)
        cleanup.add_argument(
            "--dry-run", action="store_true", default=None, help="Report without deleting"
        )
        if name == "cleanup-inactive":
            cleanup.add_argument(
                "--inactive-days", type=int, default=None, help="Inactivity threshold (INACTIVE_DAYS)"
            )

    return parser.parse_args(argv)


def _apply_args(settings: MigratorSettings, args: argparse.Namespace) -> None:
    """Command line flags override environment settings."""
    if args.config:
        settings.config_path = args.config
    if args.state:
        settings.state_path = args.state
    if args.log_level:
        settings.log_level = args.log_level
    if getattr(args, "output", None):
        settings.output_path = args.output
    if getattr(args, "repos", None):
        settings.repo_list = args.repos
    if getattr(args, "batch_states_dir", None):
        settings.batch_states_dir = args.batch_states_dir
    if getattr(args, "dry_run", None):
        settings.dry_run = True
    if getattr(args, "inactive_days", None) is not None:
        settings.inactive_days = args.inactive_days


def _store(settings: MigratorSettings) -> StateStore:
    store = StateStore(settings.state_path, settings.source_org or "", settings.target_org or "")
    store.load()
    return store


def _github(settings: MigratorSettings) -> GitHubClient:
    return GitHubClient(
        settings.source_token or "",
        settings.source_org or "",
        base_url=settings.github_api_url,
        timeout=settings.http_timeout,
    )


def _codeberg(settings: MigratorSettings) -> CodebergClient:
    return CodebergClient(
        settings.target_token or "",
        settings.target_org or "",
        base_url=settings.codeberg_api_url,
        source_token=settings.source_token,
        timeout=settings.http_timeout,
    )


async def run_discover(settings: MigratorSettings, config: MigrationConfig) -> int:
    settings.require("source_token", "source_org", "target_org")
    store = _store(settings)
    async with _github(settings) as github:
        service = DiscoveryService(github, store, config)
        await service.discover()
        plan = service.plan()
    service.write_plan(plan, settings.output_path, settings.github_output)
    return 0


async def run_migrate(settings: MigratorSettings, config: MigrationConfig) -> int:
    settings.require("source_token", "target_token", "source_org", "target_org")
    store = _store(settings)
    async with (
        managed_subprocess() as subprocesses,
        _github(settings) as github,
        _codeberg(settings) as codeberg,
    ):
        syncer = GitMirrorSyncer(
            settings.codeberg_url,
            settings.target_org or "",
            settings.work_dir,
            source_token=settings.source_token,
            target_token=settings.target_token,
            subprocess_manager=subprocesses,
            timeout=settings.git_timeout,
        )
        runner = PhaseRunner(store, codeberg, syncer, config.migrate_options)
        service = MigrationService(github, runner, store, config)
        summary = await service.run(settings.repo_names or None)
    return summary.exit_code


def run_merge(settings: MigratorSettings) -> int:
    store = _store(settings)
    merged = merge_directory(store, settings.batch_states_dir)
    store.save()

    stats = store.stats()
    get_logger("cli").info("Merge complete", files=len(merged), **stats)
    write_github_outputs(
        settings.github_output,
        {
            "total": stats["total"],
            "completed": stats["completed"],
            "failed": stats["failed"],
            "pending": stats["pending"],
        },
    )
    return 0


def run_status(settings: MigratorSettings, config: MigrationConfig) -> int:
    store = _store(settings)
    stats = store.stats(config.exclude_inactive_days)
    for key, value in stats.items():
        print(f"{key}: {value}")
    return 0


async def run_cleanup(settings: MigratorSettings, command: str) -> int:
    settings.require("target_token", "target_org")
    async with _codeberg(settings) as codeberg:
        service = CleanupService(codeberg, dry_run=settings.dry_run)
        if command == "cleanup-inactive":
            report = await service.cleanup_inactive(settings.inactive_days)
        else:
            report = await service.cleanup_migrating()
    write_github_outputs(settings.github_output, report.as_outputs())
    return 1 if report.failed else 0


def run_command(args: argparse.Namespace, settings: MigratorSettings) -> int:
    """Run the selected subcommand and return its exit code."""
    if args.command == "merge":
        return run_merge(settings)

    config = load_config(settings.config_path)
    if args.command == "discover":
        return asyncio.run(run_discover(settings, config))
    if args.command == "migrate":
        return asyncio.run(run_migrate(settings, config))
    if args.command == "status":
        return run_status(settings, config)
    return asyncio.run(run_cleanup(settings, args.command))


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = parse_args(argv)

    settings = MigratorSettings()
    _apply_args(settings, args)
    setup_logging(log_dir=settings.log_dir, log_level=settings.log_level)
    logger = get_logger("cli")
    logger.info("Starting command", command=args.command, pid=os.getpid())

    try:
        return run_command(args, settings)
    except MigratorError as e:
        logger.error("Command failed", command=args.command, error=str(e))
        return 1
    except ValueError as e:
        logger.error("Invalid configuration", command=args.command, error=str(e))
        return 1
    except Exception as e:
        logger.exception("Unexpected error", command=args.command, error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
