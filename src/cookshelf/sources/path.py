"""Local filesystem cookbook source.

The configured path is either a cookbook itself (it holds a metadata file)
or a directory whose sub-directories are cookbooks. A cookbook found on a
path has exactly one version: the one its metadata declares.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from cookshelf.core.dependency.constraints import Version
from cookshelf.core.dependency.models import Cookbook, SourceLocation
from cookshelf.exceptions import CookbookNotFoundError, InvalidMetadataError, SourceConfigError
from cookshelf.parsers.metadata import CookbookMetadata, has_metadata, read_metadata
from cookshelf.sources.base import CookbookSource

logger = logging.getLogger(__name__)


class PathSource(CookbookSource):
    """Source serving cookbooks from a local directory.

    Raises:
        SourceConfigError: If *path* does not exist.
    """

    def __init__(self, path: Path | str) -> None:
        base = Path(path).expanduser().resolve()
        if not base.exists():
            raise SourceConfigError(f"path does not exist: {base}")
        self._base = base

    @property
    def name(self) -> str:
        return f"path ({self._base})"

    @property
    def base_path(self) -> Path:
        return self._base

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(type="path", path=str(self._base))

    def find_cookbook(self, name: str) -> CookbookMetadata:
        """Locate and read the metadata of cookbook *name*.

        The base path itself is checked first, then each sub-directory in
        name order. A sub-directory matches when its metadata declares
        *name* or when the directory itself is called *name*.

        Raises:
            CookbookNotFoundError: If no matching cookbook exists.
        """
        if has_metadata(self._base):
            try:
                metadata = read_metadata(self._base)
            except InvalidMetadataError:
                logger.debug("Ignoring unreadable metadata in %s", self._base)
            else:
                if metadata.name == name:
                    return metadata

        if self._base.is_dir():
            for entry in sorted(self._base.iterdir()):
                if not entry.is_dir() or not has_metadata(entry):
                    continue
                if entry.name == name:
                    return read_metadata(entry)
                try:
                    metadata = read_metadata(entry)
                except InvalidMetadataError:
                    continue
                if metadata.name == name:
                    return metadata

        raise CookbookNotFoundError(name, source=self.name)

    async def list_versions(self, name: str) -> list[Version]:
        metadata = await asyncio.to_thread(self.find_cookbook, name)
        return [metadata.version]

    async def fetch_cookbook(self, name: str, version: Version) -> Cookbook:
        metadata = await asyncio.to_thread(self.find_cookbook, name)
        if metadata.version != version:
            raise CookbookNotFoundError(name, str(version), source=self.name)
        return metadata.to_cookbook(self.location)
