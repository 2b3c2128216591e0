"""Read-only view of the mirrored tree as stored."""

import asyncio
from typing import Optional

import typer
from rich.table import Table
from rich.tree import Tree

from minidrive.cli.app import app, console, load_config
from minidrive.config import MirrorConfig
from minidrive.deps import mirror_services
from minidrive.tree import DirectoryNode


def build_rich_tree(directory: DirectoryNode, branch: Tree, show_files: bool) -> None:
    for child in directory.sorted_directories():
        sub_branch = branch.add(f"[bold blue]{child.name}/[/bold blue] ({child.get_size()})")
        build_rich_tree(child, sub_branch, show_files)
    if show_files:
        for file in directory.sorted_files():
            branch.add(f"{file.name} [dim]{file.size} bytes[/dim]")


def files_table(directory: DirectoryNode) -> Table:
    """Direct files of one directory with their sizes."""
    table = Table(title=directory.path_with_name)
    table.add_column("File")
    table.add_column("Size in bytes", justify="right")
    for file in directory.sorted_files():
        table.add_row(file.name, str(file.size))
    return table


async def load_tree(config: MirrorConfig) -> Optional[DirectoryNode]:
    async with mirror_services(config) as services:
        return await services.tree_service.load_root()


@app.command()
def tree(
    ctx: typer.Context,
    path: Optional[str] = typer.Argument(None, help="Directory to list, relative to the mirror root"),
    files: bool = typer.Option(False, "--files", "-f", help="Include files in the tree"),
) -> None:
    """Show the directories stored in the mirror, or the files of one directory."""
    config = load_config(ctx)
    root = asyncio.run(load_tree(config))
    if root is None:
        console.print("[yellow]The store is empty[/yellow]")
        return

    if path:
        directory = root.find_directory(path)
        if directory is None:
            console.print(f"[red]No directory '{path}' in the store[/red]")
            raise typer.Exit(1)
        console.print(files_table(directory))
        return

    rich_tree = Tree(f"[bold]{root.name}[/bold] ({root.get_size()})")
    build_rich_tree(root, rich_tree, files)
    console.print(rich_tree)
