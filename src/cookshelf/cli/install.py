"""``cookshelf install``: resolve a Berksfile and write its lockfile.

Parses the Berksfile, resolves every cookbook it needs (transitively)
against the configured sources, prints the result, and writes a
deterministic ``Berksfile.lock.json`` next to the Berksfile.

Exit Codes:
    0: Lockfile written.
    1: Resolution failed; no lockfile is written.
    2: Invalid Berksfile, metadata, or configuration.
    3: Resolution timed out.
"""

from __future__ import annotations

import logging
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
from cookshelf.cli.output import print_resolution
from cookshelf.core.lockfile import DEFAULT_LOCKFILE_NAME, Lockfile
from cookshelf.exceptions import LockfileError

logger = logging.getLogger(__name__)


@click.command("install")
@berksfile_option
@click.option(
    "--lockfile", "-l",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"Output path for the lockfile (default: <berksfile dir>/{DEFAULT_LOCKFILE_NAME}).",
)
@resolver_options
@click.pass_context
def install_command(
    ctx: click.Context,
    berksfile: str,
    lockfile: str | None,
    workers: int | None,
    timeout: float | None,
) -> None:
    """Resolve the Berksfile and write the lockfile.

    Exit code 0 on success, 1 on resolution failure, 2 on invalid input,
    3 on timeout.
    """
    config = get_config(ctx)
    manifest = Path(berksfile)
    resolution = run_resolution(config, manifest, workers=workers, timeout=timeout)
    print_resolution(resolution)

    if resolution.has_errors():
        click.echo("\nNo lockfile written.", err=True)
        sys.exit(EXIT_RESOLUTION_FAILED)

    out_path = Path(lockfile) if lockfile else manifest.resolve().parent / DEFAULT_LOCKFILE_NAME
    previous = None
    if out_path.is_file():
        try:
            previous = Lockfile.read(out_path)
        except LockfileError as exc:
            logger.warning("Ignoring unreadable lockfile %s: %s", out_path, exc)
    lf = Lockfile.from_resolution(resolution)
    lf.write(out_path)

    if previous is not None:
        changes = previous.diff(lf)
        for name in changes["added"]:
            click.echo(f"  + {name}")
        for name in changes["removed"]:
            click.echo(f"  - {name}")
        for change in changes["changed"]:
            click.echo(f"  ~ {change['name']} {change['field']}: {change['old']} -> {change['new']}")

    click.echo(f"\nLockfile written to: {out_path}")
    sys.exit(EXIT_OK)
