"""Main CLI entry point for minidrive."""  # pragma: no cover

from minidrive.cli.app import app  # pragma: no cover

# Register commands
from minidrive.cli.commands import db, sync, tree  # pragma: no cover

__all__ = ["app", "db", "sync", "tree"]  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    app()
