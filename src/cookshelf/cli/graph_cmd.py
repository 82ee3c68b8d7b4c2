"""``cookshelf graph``: show the resolved dependency graph.

Prints the install order (dependencies before dependents) and, with
``--tree``, the dependency tree below each top-level cookbook.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from cookshelf.cli.common import (
    EXIT_OK,
    EXIT_RESOLUTION_FAILED,
    berksfile_option,
    get_config,
    resolver_options,
    run_resolution,
)
from cookshelf.cli.output import print_dependency_tree, print_errors, print_install_order
from cookshelf.parsers.berksfile import load_berksfile


@click.command("graph")
@berksfile_option
@click.option("--tree", is_flag=True, help="Also print the dependency tree.")
@resolver_options
@click.pass_context
def graph_command(
    ctx: click.Context,
    berksfile: str,
    tree: bool,
    workers: int | None,
    timeout: float | None,
) -> None:
    """Print the install order of the resolved cookbooks."""
    manifest = Path(berksfile)
    resolution = run_resolution(get_config(ctx), manifest, workers=workers, timeout=timeout)
    print_install_order(resolution)
    if tree:
        requirements = load_berksfile(manifest).requirements(manifest.resolve().parent)
        roots = [r.name for r in requirements]
        print_dependency_tree(resolution, roots)
    print_errors(resolution.errors)
    sys.exit(EXIT_RESOLUTION_FAILED if resolution.has_errors() else EXIT_OK)
