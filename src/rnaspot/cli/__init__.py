"""rnaspot CLI — command-line entry point."""

from rnaspot.cli.main import cli

__all__ = ["cli"]
