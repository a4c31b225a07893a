"""Vibecoder command-line entry point.

Usage::

    python -m vibecoder run tasks.json --workspace ./my-project --language python
    python -m vibecoder history src/app.py --workspace ./my-project
    python -m vibecoder revert src/app.py 2 --workspace ./my-project
    python -m vibecoder models --settings vibe-settings.json
    python -m vibecoder providers

``tasks.json`` holds the upstream task list: a JSON array of
``{"prompt": ..., "file": ..., "testCommand": ...}`` objects.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError
from rich.table import Table

from vibecoder.config import Settings
from vibecoder.errors import ConfigurationError, VibeError
from vibecoder.file_store import VersionedFileStore
from vibecoder.llm import available_providers, create_client
from vibecoder.log import Logger
from vibecoder.models import Task
from vibecoder.orchestrator import AutoCoder
from vibecoder.recovery import ErrorRecovery
from vibecoder.terminal import CommandRunner
from vibecoder.utils import (
    console,
    load_json_list,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)

DEFAULT_SETTINGS_FILE = ".vibe/settings.json"


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def load_tasks(path: str | Path) -> list[Task]:
    """Read the upstream task list.

    Raises:
        ConfigurationError: If the file is missing or malformed.
    """
    task_path = Path(path)
    if not task_path.exists():
        raise ConfigurationError(f"Task file not found: {task_path}")
    try:
        raw = load_json_list(task_path)
        return [Task.model_validate(item) for item in raw]
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigurationError(f"Invalid task file {task_path}: {exc}") from exc


def build_autocoder(
    workspace: Path,
    settings: Settings,
    logger: Logger,
    runner: CommandRunner | None = None,
) -> AutoCoder:
    """Construct the client, file store, runner, recovery engine and pipeline."""
    files = VersionedFileStore(workspace, logger)
    runner = runner or CommandRunner(logger)
    llm = create_client(settings, logger)
    recovery = ErrorRecovery(llm, files, runner, settings, logger)
    return AutoCoder(
        llm,
        runner,
        recovery,
        files,
        logger,
        performance=settings.performance_mode,
    )


def _load_settings(args: argparse.Namespace) -> Settings:
    path = Path(args.settings) if args.settings else Path(args.workspace) / DEFAULT_SETTINGS_FILE
    try:
        return Settings.from_env(path)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid settings file {path}: {exc}") from exc


def _make_logger(settings: Settings, args: argparse.Namespace) -> Logger:
    level = "debug" if getattr(args, "verbose", False) else settings.log_level
    return Logger(level, log_file=args.log_file)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _cmd_run(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    if args.performance:
        settings.performance = args.performance
    logger = _make_logger(settings, args)
    tasks = load_tasks(args.tasks)
    workspace = Path(args.workspace)

    async with CommandRunner(logger) as runner:
        coder = build_autocoder(workspace, settings, logger, runner)
        run = await coder.start_auto_mode(
            tasks,
            language=args.language,
            performance=settings.performance_mode,
            model=args.model,
            log=lambda message: console.print(f"  {message}", highlight=False),
        )

    if run is None:
        return 1
    print_summary_table(
        {
            "Tasks": str(run.tasks_total),
            "Passed": str(run.tasks_passed),
            "Unrecoverable": str(run.tasks_failed),
            "Provider": settings.provider,
        },
        title="Run Results",
    )
    if run.tasks_failed:
        print_warning(f"Could not auto-fix: {', '.join(run.failed_files)}")
    return 0


def _cmd_history(args: argparse.Namespace) -> int:
    logger = Logger("warn")
    store = VersionedFileStore(Path(args.workspace), logger)
    records = store.get_change_history(args.file)
    if not records:
        print_warning("No recorded changes.")
        return 0

    table = Table(title="Change history", show_header=True, header_style="bold cyan")
    table.add_column("File", style="cyan")
    table.add_column("Version", justify="right")
    table.add_column("Action")
    table.add_column("Timestamp", style="dim")
    table.add_column("Backup", style="dim")
    for record in records:
        table.add_row(
            record.file_path,
            str(record.version),
            record.action,
            record.timestamp,
            record.backup_path or "-",
        )
    console.print(table)
    return 0


def _cmd_revert(args: argparse.Namespace) -> int:
    logger = Logger("info")
    store = VersionedFileStore(Path(args.workspace), logger)
    record = store.revert_to_version(args.file, args.version)
    print_success(f"Reverted {record.file_path} to version {args.version} (now v{record.version})")
    return 0


async def _cmd_models(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    logger = _make_logger(settings, args)
    client = create_client(settings, logger)
    if not client.supports("get_available_models"):
        print_warning(f"Provider '{client.provider}' cannot list models.")
        return 1
    for name in await client.get_available_models():
        console.print(name)
    return 0


def _cmd_providers(args: argparse.Namespace) -> int:
    for name in available_providers():
        console.print(name)
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vibecoder",
        description="Vibecoder -- generate, test and auto-repair code with pluggable LLMs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m vibecoder run tasks.json -w ./my-project\n"
            "  python -m vibecoder history src/app.py -w ./my-project\n"
            "  python -m vibecoder revert src/app.py 2 -w ./my-project\n"
        ),
    )
    parser.add_argument("--log-file", default=None, help="Append JSON log lines to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at debug level")
    sub = parser.add_subparsers(dest="command", required=True)

    def workspace_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument("--workspace", "-w", default=".", help="Workspace directory (default: .)")

    def settings_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--settings",
            default=None,
            help=f"Settings JSON (default: <workspace>/{DEFAULT_SETTINGS_FILE})",
        )

    run = sub.add_parser("run", help="Run the task pipeline")
    run.add_argument("tasks", help="Path to the task list JSON file")
    workspace_arg(run)
    settings_arg(run)
    run.add_argument("--language", "-l", default="python", help="Target language (default: python)")
    run.add_argument("--performance", choices=["high", "balanced", "efficient"], default=None)
    run.add_argument("--model", default=None, help="Model id for the configured provider")

    history = sub.add_parser("history", help="Show the change log")
    history.add_argument("file", nargs="?", default=None, help="Only this workspace file")
    workspace_arg(history)

    revert = sub.add_parser("revert", help="Restore the content from before a version")
    revert.add_argument("file", help="Workspace-relative file path")
    revert.add_argument("version", type=int, help="Version number to revert to")
    workspace_arg(revert)

    models = sub.add_parser("models", help="List models for the configured provider")
    workspace_arg(models)
    settings_arg(models)

    sub.add_parser("providers", help="List registered providers")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for ``python -m vibecoder``."""
    args = build_parser().parse_args(argv)
    try:
        if args.command == "run":
            return asyncio.run(_cmd_run(args))
        if args.command == "history":
            return _cmd_history(args)
        if args.command == "revert":
            return _cmd_revert(args)
        if args.command == "models":
            return asyncio.run(_cmd_models(args))
        return _cmd_providers(args)
    except (VibeError, ValidationError, OSError) as exc:
        print_error(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
