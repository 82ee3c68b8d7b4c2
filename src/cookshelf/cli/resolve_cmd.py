"""``cookshelf resolve``: resolve a Berksfile without writing anything.

Usage::

    cookshelf resolve
    cookshelf resolve --berksfile path/to/Berksfile --format json
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from cookshelf.cli.common import (
    EXIT_OK,
    EXIT_RESOLUTION_FAILED,
    berksfile_option,
    format_option,
    get_config,
    resolver_options,
    run_resolution,
)
from cookshelf.cli.output import print_resolution, resolution_to_json


@click.command("resolve")
@berksfile_option
@format_option
@resolver_options
@click.pass_context
def resolve_command(
    ctx: click.Context,
    berksfile: str,
    output_format: str,
    workers: int | None,
    timeout: float | None,
) -> None:
    """Resolve the Berksfile and print the selected versions.

    Exit code 0 on success, 1 if any cookbook failed to resolve.
    """
    resolution = run_resolution(get_config(ctx), Path(berksfile), workers=workers, timeout=timeout)
    if output_format == "json":
        click.echo(json.dumps(resolution_to_json(resolution), indent=2, sort_keys=True))
    else:
        print_resolution(resolution)
    sys.exit(EXIT_RESOLUTION_FAILED if resolution.has_errors() else EXIT_OK)
