"""Helpers shared by the CLI commands.

Exit Codes:
    0: Success.
    1: Resolution finished with per-package errors.
    2: The Berksfile, lockfile, cookbook metadata, or configuration is
       invalid or missing.
    3: Resolution was cancelled (timeout).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from cookshelf.config import Config
from cookshelf.core.dependency.resolution import Resolution
from cookshelf.core.dependency.resolver import DependencyResolver, resolve_sync
from cookshelf.core.lockfile import DEFAULT_LOCKFILE_NAME, Lockfile
from cookshelf.exceptions import ConfigError, LockfileError, ParseError, ResolutionCancelled, SourceConfigError
from cookshelf.parsers.berksfile import load_berksfile
from cookshelf.sources.factory import SourceFactory

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RESOLUTION_FAILED = 1
EXIT_INVALID_INPUT = 2
EXIT_CANCELLED = 3


def berksfile_option(func):  # type: ignore[no-untyped-def]
    return click.option(
        "--berksfile", "-b",
        type=click.Path(dir_okay=False),
        default="Berksfile",
        show_default=True,
        help="Path to the Berksfile.",
    )(func)


def resolver_options(func):  # type: ignore[no-untyped-def]
    func = click.option(
        "--timeout",
        type=float,
        default=None,
        help="Abort resolution after this many seconds.",
    )(func)
    return click.option(
        "--workers", "-w",
        type=click.IntRange(min=1),
        default=None,
        help="Maximum concurrent source queries.",
    )(func)


def get_config(ctx: click.Context) -> Config:
    config = ctx.find_object(Config)
    return config if config is not None else Config()


def run_resolution(
    config: Config,
    berksfile: Path,
    *,
    workers: int | None = None,
    timeout: float | None = None,
) -> Resolution:
    """Parse *berksfile* and resolve it.

    Exits the process with ``EXIT_INVALID_INPUT`` or ``EXIT_CANCELLED`` on
    call-level failures. Per-package errors are left in the returned
    resolution.
    """
    try:
        manifest = load_berksfile(berksfile)
        base_dir = berksfile.resolve().parent
        factory = SourceFactory.from_config(config, base_dir=base_dir)
        sources = factory.global_sources(manifest.sources, config.default_sources)
        requirements = manifest.requirements(base_dir)
        resolver = DependencyResolver(
            sources,
            max_workers=workers or config.concurrency,
            source_factory=factory.create,
        )
        logger.debug("Resolving %d requirements from %s", len(requirements), berksfile)
        return resolve_sync(
            resolver,
            requirements,
            timeout=timeout if timeout is not None else config.resolve_timeout,
        )
    except (ParseError, ConfigError, SourceConfigError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_INVALID_INPUT)
    except ResolutionCancelled as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_CANCELLED)


def lockfile_option(func):  # type: ignore[no-untyped-def]
    return click.option(
        "--lockfile", "-l",
        type=click.Path(dir_okay=False),
        default=None,
        help=f"Path to the lockfile (default: <berksfile dir>/{DEFAULT_LOCKFILE_NAME}).",
    )(func)


def format_option(func):  # type: ignore[no-untyped-def]
    return click.option(
        "--format", "-f", "output_format",
        type=click.Choice(["text", "json"]),
        default="text",
        show_default=True,
        help="Output format.",
    )(func)


def load_lockfile(berksfile: Path, lockfile: str | None) -> Lockfile:
    """Read the lockfile belonging to *berksfile*.

    Exits the process with ``EXIT_INVALID_INPUT`` when it is missing or
    unreadable.
    """
    path = Path(lockfile) if lockfile else berksfile.resolve().parent / DEFAULT_LOCKFILE_NAME
    if not path.is_file():
        click.echo(f"Error: no lockfile at {path}; run 'cookshelf install' first.", err=True)
        sys.exit(EXIT_INVALID_INPUT)
    try:
        return Lockfile.read(path)
    except LockfileError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_INVALID_INPUT)
