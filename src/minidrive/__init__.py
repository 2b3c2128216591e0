"""minidrive - mirror a local directory tree into a relational store."""

__version__ = "0.1.0"
