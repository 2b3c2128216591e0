"""Database commands for minidrive."""

import asyncio

import typer

from minidrive import db
from minidrive.cli.app import app, console, load_config
from minidrive.config import MirrorConfig
from minidrive.db import DatabaseType


async def run_provision(config: MirrorConfig) -> bool:
    db_type = DatabaseType.from_url(config.database_url)
    async with db.engine_session_factory(
        db_path=config.database_path, db_type=db_type, database_url=config.database_url
    ) as (engine, _):
        return await db.create_notification_trigger(engine, config.channel)


@app.command()
def provision(ctx: typer.Context) -> None:
    """Create the tables and the trigger announcing new files."""
    config = load_config(ctx)
    if asyncio.run(run_provision(config)):
        console.print(f"[green]Notification trigger installed on channel '{config.channel}'[/green]")
    else:
        console.print("[yellow]Tables ready; this database has no notification channel[/yellow]")
