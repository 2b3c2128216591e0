from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from minidrive.config import CONFIG_FILE_NAME, ConfigManager, MirrorConfig
from minidrive.services.exceptions import ConfigurationError
from minidrive.utils import setup_logging

console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        import minidrive

        typer.echo(f"minidrive version: {minidrive.__version__}")
        raise typer.Exit()


app = typer.Typer(name="minidrive")


@app.callback()
def app_callback(
    ctx: typer.Context,
    config_file: Path = typer.Option(
        Path(CONFIG_FILE_NAME),
        "--config",
        "-c",
        help="JSON configuration file",
        envvar="MINIDRIVE_CONFIG",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """minidrive - mirror a directory tree into a database and back."""
    ctx.obj = ConfigManager(config_file)


def load_config(ctx: typer.Context) -> MirrorConfig:
    """Load configuration and set up logging, exiting on configuration errors."""
    manager: ConfigManager = ctx.obj or ConfigManager()
    try:
        config = manager.config
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    setup_logging(log_level=config.log_level, log_file=config.log_path)
    return config


def mirror_root(config: MirrorConfig) -> Path:
    try:
        return config.mirror_root()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)
