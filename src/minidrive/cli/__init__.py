"""Command line interface for minidrive."""
