"""``cookshelf outdated``: show locked cookbooks with newer versions.

Compares the versions pinned in the lockfile with the newest versions the
Berksfile's sources offer. Cookbooks the Berksfile pins to a path or git
location are checked against that location only.

Usage::

    cookshelf outdated
    cookshelf outdated nginx --format json
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from cookshelf.cli.common import (
    EXIT_INVALID_INPUT,
    EXIT_OK,
    berksfile_option,
    format_option,
    get_config,
    load_lockfile,
    lockfile_option,
)
from cookshelf.cli.output import print_outdated
from cookshelf.core.lockfile import check_outdated
from cookshelf.core.lockfile.outdated import DEFAULT_MAX_WORKERS
from cookshelf.exceptions import ConfigError, ParseError, SourceConfigError
from cookshelf.parsers.berksfile import load_berksfile
from cookshelf.sources.base import CookbookSource
from cookshelf.sources.factory import SourceFactory

logger = logging.getLogger(__name__)


@click.command("outdated")
@click.argument("names", nargs=-1)
@berksfile_option
@lockfile_option
@format_option
@click.option(
    "--workers", "-w",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum concurrent source queries.",
)
@click.pass_context
def outdated_command(
    ctx: click.Context,
    names: tuple[str, ...],
    berksfile: str,
    lockfile: str | None,
    output_format: str,
    workers: int | None,
) -> None:
    """Show locked cookbooks for which a newer version is available.

    With NAMES, only those cookbooks are checked. Exit code 2 when the
    Berksfile or lockfile is missing or invalid.
    """
    config = get_config(ctx)
    manifest = Path(berksfile)
    lf = load_lockfile(manifest, lockfile)
    missing = [name for name in names if not lf.has_cookbook(name)]
    if missing:
        click.echo(f"Error: not in the lockfile: {', '.join(missing)}", err=True)
        sys.exit(EXIT_INVALID_INPUT)

    try:
        parsed = load_berksfile(manifest)
        base_dir = manifest.resolve().parent
        factory = SourceFactory.from_config(config, base_dir=base_dir)
        sources = factory.global_sources(parsed.sources, config.default_sources)
        overrides = {r.name: r.source for r in parsed.requirements(base_dir) if r.source is not None}
    except (ParseError, ConfigError, SourceConfigError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_INVALID_INPUT)

    def sources_for(name: str) -> list[CookbookSource]:
        location = overrides.get(name)
        return [factory.create(location)] if location is not None else sources

    logger.info("Checking %d cookbooks for newer versions", len(names) or lf.cookbook_count)
    outdated = asyncio.run(
        check_outdated(
            lf,
            sources_for,
            names=list(names) or None,
            max_workers=workers or config.concurrency or DEFAULT_MAX_WORKERS,
        )
    )
    if output_format == "json":
        click.echo(json.dumps([item.to_dict() for item in outdated], indent=2, sort_keys=True))
    else:
        print_outdated(outdated)
    sys.exit(EXIT_OK)
