"""cookshelf CLI: cookbook dependency resolution.

Entry point for the ``cookshelf`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    install  Resolve the Berksfile and write Berksfile.lock.json.
    resolve  Resolve the Berksfile and print the result.
    graph    Print the install order of the resolved cookbooks.
    list     Show the cookbooks pinned in the lockfile.
    outdated Show locked cookbooks with newer versions available.

Usage::

    cookshelf install
    cookshelf -v resolve --format json
    cookshelf --config ./cookshelf.yaml graph --tree
    cookshelf outdated --format json
"""

from __future__ import annotations

import logging
import sys

import click

from cookshelf import __version__
from cookshelf.cli.common import EXIT_INVALID_INPUT
from cookshelf.cli.graph_cmd import graph_command
from cookshelf.cli.install import install_command
from cookshelf.cli.list_cmd import list_command
from cookshelf.cli.outdated_cmd import outdated_command
from cookshelf.cli.resolve_cmd import resolve_command
from cookshelf.config import load_config
from cookshelf.exceptions import ConfigError

_LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


def _configure_logging(verbose: int) -> None:
    logging.basicConfig(
        level=_LOG_LEVELS[min(verbose, len(_LOG_LEVELS) - 1)],
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug).")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Configuration file (default: $COOKSHELF_CONFIG or ~/.cookshelf/config.yaml).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: int, config_path: str | None) -> None:
    """cookshelf: resolve cookbook dependencies from a Berksfile.

    Selects the newest compatible version of every cookbook a Berksfile
    needs, across Supermarket, git, and local path sources, and records
    the result in a lockfile.
    """
    _configure_logging(verbose)
    try:
        ctx.obj = load_config(config_path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_INVALID_INPUT)


# Register all subcommands
cli.add_command(install_command)
cli.add_command(resolve_command)
cli.add_command(graph_command)
cli.add_command(list_command)
cli.add_command(outdated_command)
