"""The cookbook source capability.

Defines the ``CookbookSource`` abstract base class that every concrete
source (Supermarket registry, git repository, local path) implements. The
resolver only ever talks to this interface.

Sources are shared across the workers of a resolution and must be safe for
concurrent use.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from cookshelf.core.dependency.constraints import Version
from cookshelf.core.dependency.models import Cookbook, SourceLocation

logger = logging.getLogger(__name__)


class CookbookSource(ABC):
    """Abstract base class for cookbook sources.

    Subclasses must implement ``name``, ``location``, ``list_versions`` and
    ``fetch_cookbook``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable identity (e.g. 'supermarket (https://...)')."""

    @property
    @abstractmethod
    def location(self) -> SourceLocation:
        """Location recorded as the origin of cookbooks from this source."""

    @abstractmethod
    async def list_versions(self, name: str) -> list[Version]:
        """Return every available version of *name*, newest first.

        Raises:
            CookbookNotFoundError: If the source does not know the cookbook.
            SourceUnavailableError: If the source cannot be queried.
        """

    @abstractmethod
    async def fetch_cookbook(self, name: str, version: Version) -> Cookbook:
        """Return the metadata of *name* at *version*.

        Raises:
            CookbookNotFoundError: If the version does not exist.
            SourceUnavailableError: If the source cannot be queried.
            InvalidMetadataError: If the source returns malformed metadata.
        """

    @staticmethod
    def newest_first(versions: list[Version]) -> list[Version]:
        """Sort and de-duplicate *versions*, highest first."""
        unique: dict[Version, Version] = {}
        for v in versions:
            unique.setdefault(v, v)
        return sorted(unique.values(), reverse=True)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
