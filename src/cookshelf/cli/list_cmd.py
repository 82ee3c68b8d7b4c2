"""``cookshelf list``: show the cookbooks pinned in the lockfile.

Usage::

    cookshelf list
    cookshelf list nginx apt --format json
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from cookshelf.cli.common import (
    EXIT_INVALID_INPUT,
    EXIT_OK,
    berksfile_option,
    format_option,
    load_lockfile,
    lockfile_option,
)
from cookshelf.cli.output import locked_to_json, print_locked


@click.command("list")
@click.argument("names", nargs=-1)
@berksfile_option
@lockfile_option
@format_option
def list_command(
    names: tuple[str, ...],
    berksfile: str,
    lockfile: str | None,
    output_format: str,
) -> None:
    """List locked cookbooks, their versions and sources.

    With NAMES, only those cookbooks are shown. Exit code 2 when the
    lockfile is missing or a requested cookbook is not locked.
    """
    lf = load_lockfile(Path(berksfile), lockfile)
    missing = [name for name in names if not lf.has_cookbook(name)]
    if missing:
        click.echo(f"Error: not in the lockfile: {', '.join(missing)}", err=True)
        sys.exit(EXIT_INVALID_INPUT)

    selected = sorted(set(names)) if names else lf.cookbook_names
    cookbooks = [lf.get_cookbook(name) for name in selected]
    if output_format == "json":
        click.echo(json.dumps(locked_to_json(cookbooks), indent=2, sort_keys=True))
    else:
        print_locked(cookbooks)
    sys.exit(EXIT_OK)
