"""Supermarket registry source.

Talks to the public Supermarket (https://supermarket.chef.io) or a private
Supermarket server through its JSON API:

- ``GET /api/v1/cookbooks/<name>`` lists version URLs; the version is the
  last path segment of each URL.
- ``GET /api/v1/cookbooks/<name>/versions/<version>`` returns the
  dependencies and the tarball ``file`` URL of one version.

Usage::

    source = SupermarketSource("https://supermarket.chef.io")
    versions = await source.list_versions("nginx")
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlparse

from cookshelf import PUBLIC_SUPERMARKET
from cookshelf.core.dependency.constraints import (
    Constraint,
    Version,
    parse_constraint,
    parse_version,
)
from cookshelf.core.dependency.models import Cookbook, SourceLocation
from cookshelf.exceptions import InvalidMetadataError, ParseError
from cookshelf.sources.base import CookbookSource
from cookshelf.sources.http_client import (
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    fetch_json,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

COOKBOOK_ENDPOINT: str = "{base}/api/v1/cookbooks/{name}"
VERSION_ENDPOINT: str = "{base}/api/v1/cookbooks/{name}/versions/{version}"

# Header carrying the user id for authenticated (private) Supermarkets.
API_KEY_HEADER: str = "X-Ops-Userid"


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------


def _version_from_url(version_url: str) -> Version | None:
    """Extract the version from ``.../versions/<version>``; None if invalid."""
    segment = urlparse(version_url).path.rstrip("/").rsplit("/", 1)[-1]
    try:
        return parse_version(segment)
    except ParseError:
        logger.debug("Skipping unparsable version URL %s", version_url)
        return None


def parse_dependencies(name: str, raw: Any) -> dict[str, Constraint]:
    """Parse a ``{dependency: constraint}`` object from a registry response."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise InvalidMetadataError(name, "'dependencies' must be an object")
    deps = {}
    for dep_name, text in sorted(raw.items()):
        try:
            deps[dep_name] = parse_constraint(text if isinstance(text, str) else str(text))
        except ParseError as exc:
            raise InvalidMetadataError(name, f"dependency {dep_name}: {exc}") from exc
    return deps


# ---------------------------------------------------------------------------
# Supermarket Source
# ---------------------------------------------------------------------------


class SupermarketSource(CookbookSource):
    """Source backed by a Supermarket server's HTTP API."""

    def __init__(
        self,
        base_url: str = PUBLIC_SUPERMARKET,
        *,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        verify: bool = True,
    ) -> None:
        self._base_url = (base_url or PUBLIC_SUPERMARKET).rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._retry_count = retry_count
        self._retry_delay = retry_delay
        self._verify = verify

    @property
    def name(self) -> str:
        return f"supermarket ({self._base_url})"

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(type="supermarket", url=self._base_url)

    async def _get(self, url: str, name: str) -> Any:
        headers = {API_KEY_HEADER: self._api_key} if self._api_key else None
        return await fetch_json(
            url,
            source=self.name,
            name=name,
            headers=headers,
            timeout=self._timeout,
            retry_count=self._retry_count,
            retry_delay=self._retry_delay,
            verify=self._verify,
        )

    async def list_versions(self, name: str) -> list[Version]:
        """List the versions the registry offers for *name*, newest first."""
        url = COOKBOOK_ENDPOINT.format(base=self._base_url, name=quote(name, safe=""))
        data = await self._get(url, name)
        if not isinstance(data, dict):
            raise InvalidMetadataError(name, "cookbook response is not an object")

        versions = []
        for version_url in data.get("versions") or []:
            if not isinstance(version_url, str):
                continue
            v = _version_from_url(version_url)
            if v is not None:
                versions.append(v)
        logger.debug("%s lists %d versions of %s", self.name, len(versions), name)
        return self.newest_first(versions)

    async def fetch_cookbook(self, name: str, version: Version) -> Cookbook:
        """Fetch dependencies and tarball URL of *name* at *version*."""
        url = VERSION_ENDPOINT.format(
            base=self._base_url,
            name=quote(name, safe=""),
            version=quote(str(version), safe=""),
        )
        data = await self._get(url, name)
        if not isinstance(data, dict):
            raise InvalidMetadataError(name, "version response is not an object")

        return Cookbook(
            name=name,
            version=version,
            dependencies=parse_dependencies(name, data.get("dependencies")),
            source=self.location,
            tarball_url=data.get("file") or data.get("tarball_file_url") or "",
        )
