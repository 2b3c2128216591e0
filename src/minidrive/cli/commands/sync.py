"""Command module for minidrive sync operations."""

import asyncio
from pathlib import Path
from typing import Dict, Iterable

import typer
from loguru import logger
from rich.tree import Tree

from minidrive import db
from minidrive.cli.app import app, console, load_config, mirror_root
from minidrive.config import MirrorConfig
from minidrive.daemon import MirrorDaemon
from minidrive.deps import mirror_services
from minidrive.services.exceptions import ScanError
from minidrive.sync.utils import ImportReport, RestoreReport


def add_paths_to_tree(tree: Tree, paths: Iterable[str], style: str) -> None:
    """Add paths to tree, grouped by their top-level directory."""
    by_dir: Dict[str, list] = {}
    for path in sorted(paths):
        parts = path.split("/", 1)
        dir_name = parts[0] if len(parts) > 1 else ""
        by_dir.setdefault(dir_name, []).append(parts[-1])

    for dir_name, names in sorted(by_dir.items()):
        branch = tree.add(f"[bold]{dir_name}/[/bold]") if dir_name else tree
        for name in names:
            branch.add(f"[{style}]{name}[/{style}]")


def display_import_report(report: ImportReport, verbose: bool = False) -> None:
    if report.total == 0:
        console.print("[green]Store is up to date[/green]")
        return

    console.print(
        f"Imported {report.total} entries "
        f"([green]{len(report.new_directories)} directories[/green], "
        f"[green]{len(report.new_files)} files[/green], {report.bytes_imported} bytes)"
    )
    if not report.saved:
        console.print("[red]The store rejected the changes, see the log for details[/red]")

    if verbose:
        tree = Tree("[bold]Imported[/bold]")
        if report.new_directories:
            add_paths_to_tree(tree.add("[green]Directories[/green]"), report.new_directories, "green")
        if report.new_files:
            add_paths_to_tree(tree.add("[green]Files[/green]"), report.new_files, "green")
        console.print(tree)


def display_restore_report(report: RestoreReport, verbose: bool = False) -> None:
    if report.total == 0 and not report.errors:
        console.print("[green]Directory is up to date[/green]")
        return

    console.print(
        f"Restored {report.total} entries "
        f"([green]{len(report.directories)} directories[/green], "
        f"[green]{len(report.files)} files[/green])"
    )
    if report.errors:
        console.print(f"[red]{len(report.errors)} entries could not be restored[/red]")

    if verbose:
        tree = Tree("[bold]Restored[/bold]")
        if report.directories:
            add_paths_to_tree(tree.add("[green]Directories[/green]"), report.directories, "green")
        if report.files:
            add_paths_to_tree(tree.add("[green]Files[/green]"), report.files, "green")
        if report.errors:
            failed = tree.add("[red]Failed[/red]")
            for path, error in sorted(report.errors.items()):
                failed.add(f"[red]{path}[/red]: {error}")
        console.print(tree)


async def run_import(config: MirrorConfig, root_path: Path) -> ImportReport:
    report = ImportReport()
    async with mirror_services(config) as services:
        await services.import_service.import_tree(root_path, report)
    return report


async def run_restore(config: MirrorConfig, root_path: Path) -> RestoreReport:
    async with mirror_services(config) as services:
        return await services.restore_service.restore_tree(root_path)


async def run_daemon(config: MirrorConfig, root_path: Path) -> None:
    async with mirror_services(config) as services:
        await db.create_notification_trigger(services.engine, config.channel)
        daemon = MirrorDaemon(services, root_path)
        await daemon.run()


@app.command(name="import")
def import_command(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show every imported entry"),
) -> None:
    """Import directories and files found on disk but not in the store."""
    config = load_config(ctx)
    root_path = mirror_root(config)
    try:
        report = asyncio.run(run_import(config, root_path))
    except ScanError as e:
        logger.error(f"Import failed: {e}")
        console.print(f"[red]Import failed:[/red] {e}")
        raise typer.Exit(1)
    display_import_report(report, verbose)


@app.command()
def restore(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show every restored entry"),
) -> None:
    """Recreate on disk the directories and files only found in the store."""
    config = load_config(ctx)
    root_path = mirror_root(config)
    report = asyncio.run(run_restore(config, root_path))
    display_restore_report(report, verbose)


@app.command()
def run(ctx: typer.Context) -> None:
    """Restore, import, then keep the directory and the store in sync until interrupted."""
    config = load_config(ctx)
    root_path = mirror_root(config)
    console.print(f"[cyan]Mirroring {root_path}... press Ctrl+C to stop[/cyan]")
    try:
        asyncio.run(run_daemon(config, root_path))
    except ScanError as e:
        logger.error(f"Startup import failed: {e}")
        console.print(f"[red]Startup import failed:[/red] {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:  # pragma: no cover
        console.print("\n[yellow]Stopped[/yellow]")
