"""CLI commands for minidrive."""

from . import db, sync, tree

__all__ = ["db", "sync", "tree"]
