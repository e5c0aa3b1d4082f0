"""rnaspot CLI — top-level Click group."""

from __future__ import annotations

import click


@click.group()
@click.version_option(package_name="rnaspot")
@click.option("--verbose", "-v", is_flag=True, help="Show full tracebacks on errors.")
def cli(verbose: bool) -> None:
    """rnaspot — RNAScope spot detection in annotated images."""
    from rnaspot.cli import utils

    utils.verbose = verbose


def _register_commands() -> None:
    """Register all subcommands — imports deferred to avoid loading heavy deps at startup."""
    from rnaspot.cli.detect import detect
    from rnaspot.cli.inspect_cmd import inspect_cmd

    cli.add_command(detect)
    cli.add_command(inspect_cmd)


_register_commands()
