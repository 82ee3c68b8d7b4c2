"""Outdated check: compare locked versions with what sources now offer.

For every locked cookbook the sources are queried in priority order and the
newest release of the first source that knows the cookbook is compared with
the locked version. A cookbook locked at a pre-release is also compared
against newer pre-releases.

Cookbooks whose sources fail are skipped with a warning; the check never
fails as a whole because one cookbook could not be looked up.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from cookshelf.core.dependency.constraints import (
    Constraint,
    Version,
    newest_satisfying,
    parse_version,
)
from cookshelf.exceptions import CookbookNotFoundError, CookshelfError

if TYPE_CHECKING:
    from cookshelf.core.lockfile.lockfile import Lockfile
    from cookshelf.sources.base import CookbookSource

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


@dataclass
class OutdatedCookbook:
    """A locked cookbook with a newer version available.

    Attributes:
        name: Cookbook name.
        current: Locked version.
        latest: Newest version offered by the source.
        source: Name of the source offering ``latest``.
    """

    name: str
    current: str
    latest: str
    source: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "current_version": self.current,
            "latest_version": self.latest,
            "source": self.source,
        }


def _newest(versions: list[Version], current: Version) -> Version | None:
    if current.prerelease:
        return max(versions, default=None)
    return newest_satisfying(versions, [Constraint.any()])


async def _check_one(
    name: str,
    current: Version,
    sources: list[CookbookSource],
) -> OutdatedCookbook | None:
    for src in sources:
        try:
            versions = await src.list_versions(name)
        except CookbookNotFoundError:
            continue
        latest = _newest(versions, current)
        if latest is None:
            continue
        if latest > current:
            return OutdatedCookbook(name=name, current=str(current), latest=str(latest), source=src.name)
        return None
    logger.warning("No source offers %s", name)
    return None


async def check_outdated(
    lockfile: Lockfile,
    sources_for: Callable[[str], list[CookbookSource]],
    *,
    names: list[str] | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[OutdatedCookbook]:
    """Find locked cookbooks for which a newer version is available.

    Args:
        lockfile: The lockfile to check.
        sources_for: Returns the sources to query for a cookbook name,
            highest priority first.
        names: Only check these cookbooks (default: every locked one).
        max_workers: Maximum concurrent source queries.

    Returns:
        Outdated cookbooks sorted by name.
    """
    wanted = sorted(names) if names else lockfile.cookbook_names
    semaphore = asyncio.Semaphore(max(1, max_workers))

    async def _bounded(name: str) -> OutdatedCookbook | None:
        locked = lockfile.get_cookbook(name)
        if locked is None:
            logger.warning("%s is not in the lockfile", name)
            return None
        async with semaphore:
            try:
                return await _check_one(name, parse_version(locked.version), sources_for(name))
            except CookshelfError as exc:
                logger.warning("Skipping %s: %s", name, exc)
                return None

    results = await asyncio.gather(*(_bounded(name) for name in wanted))
    return [r for r in results if r is not None]
