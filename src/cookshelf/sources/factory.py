"""Construction of cookbook sources from locations and URLs.

The set of source kinds is closed; which one is built is decided here, from
configuration, and never by the resolver.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from cookshelf import PUBLIC_SUPERMARKET
from cookshelf.core.dependency.models import SourceLocation
from cookshelf.exceptions import SourceConfigError
from cookshelf.sources.base import CookbookSource
from cookshelf.sources.chef_server import ChefServerSource
from cookshelf.sources.git import GitSource
from cookshelf.sources.http_client import DEFAULT_RETRY_COUNT, DEFAULT_RETRY_DELAY, DEFAULT_TIMEOUT
from cookshelf.sources.path import PathSource
from cookshelf.sources.supermarket import SupermarketSource

if TYPE_CHECKING:
    from cookshelf.config import Config

logger = logging.getLogger(__name__)


class SourceFactory:
    """Builds ``CookbookSource`` instances with shared settings.

    Args:
        timeout: HTTP timeout for registry sources.
        retry_count: HTTP retries for registry sources.
        retry_delay: Base delay between HTTP retries.
        verify: Verify TLS certificates.
        cache_path: Root of the on-disk cache (git checkouts live below it).
        base_dir: Directory relative ``path`` locations are resolved against.
        chef_server_url: Default organization URL for ``chef_server`` locations.
        client_name: Chef API client name for ``chef_server`` sources.
        client_key: Path to the Chef API client key.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        verify: bool = True,
        cache_path: Path | str | None = None,
        base_dir: Path | str | None = None,
        chef_server_url: str = "",
        client_name: str = "",
        client_key: str = "",
    ) -> None:
        self._timeout = timeout
        self._retry_count = retry_count
        self._retry_delay = retry_delay
        self._verify = verify
        self._cache_path = Path(cache_path).expanduser() if cache_path else None
        self._base_dir = Path(base_dir) if base_dir else None
        self._chef_server_url = chef_server_url
        self._client_name = client_name
        self._client_key = client_key

    @classmethod
    def from_config(cls, config: Config, *, base_dir: Path | str | None = None) -> SourceFactory:
        return cls(
            timeout=config.api_timeout,
            retry_count=config.retry_count,
            retry_delay=config.retry_delay,
            verify=config.ssl_verify,
            cache_path=config.cache_path,
            base_dir=base_dir,
            chef_server_url=config.chef_server_url,
            client_name=config.client_name,
            client_key=config.client_key,
        )

    # -- Builders ----------------------------------------------------------------

    def supermarket(self, url: str = "", api_key: str | None = None) -> SupermarketSource:
        return SupermarketSource(
            url or PUBLIC_SUPERMARKET,
            api_key=api_key,
            timeout=self._timeout,
            retry_count=self._retry_count,
            retry_delay=self._retry_delay,
            verify=self._verify,
        )

    def chef_server(self, url: str = "") -> ChefServerSource:
        return ChefServerSource(
            url or self._chef_server_url,
            client_name=self._client_name,
            client_key=self._client_key,
            timeout=self._timeout,
            retry_count=self._retry_count,
            retry_delay=self._retry_delay,
            verify=self._verify,
        )

    def _path(self, raw: str) -> PathSource:
        path = Path(raw).expanduser()
        if not path.is_absolute() and self._base_dir is not None:
            path = self._base_dir / path
        return PathSource(path)

    def _git(self, location: SourceLocation, *, github: bool) -> GitSource:
        return GitSource(
            location.url,
            branch=location.option("branch"),
            tag=location.option("tag"),
            ref=location.ref,
            rel=location.path,
            github=github,
            cache_dir=self._cache_path / "git" if self._cache_path else None,
        )

    def create(self, location: SourceLocation) -> CookbookSource:
        """Build the source described by *location*.

        Raises:
            SourceConfigError: For unknown source types, or invalid settings
                (e.g. a missing path or Chef Server credentials).
        """
        kind = location.type
        logger.debug("Creating %s source for %s", kind, location)
        if kind == "supermarket":
            return self.supermarket(location.url, location.option("api_key") or None)
        if kind == "path":
            return self._path(location.path or location.url)
        if kind in ("git", "github"):
            return self._git(location, github=kind == "github")
        if kind == "chef_server":
            return self.chef_server(location.url)
        raise SourceConfigError(f"unknown source type: {kind}")

    def from_url(self, url: str) -> CookbookSource:
        """Build a source from a bare URL.

        ``http(s)://`` is a Supermarket, ``git://`` and ``git@`` are git
        repositories, ``file://`` is a local path. Anything else is treated
        as a Supermarket URL.
        """
        if url.startswith(("git://", "git@")):
            return self.create(SourceLocation(type="git", url=url))
        if url.startswith("file://"):
            return self.create(SourceLocation(type="path", path=url[len("file://"):]))
        return self.supermarket(url)

    def global_sources(self, locations: list[SourceLocation], defaults: list[str]) -> list[CookbookSource]:
        """Sources for cookbooks without an override, highest priority first.

        *locations* (e.g. the ``source`` lines of a Berksfile) take
        precedence; *defaults* are used only when it is empty. A registry
        location whose URL is not http(s) is built with ``from_url``.
        """
        if not locations:
            return [self.from_url(url) for url in defaults]
        sources = []
        for loc in locations:
            if loc.type == "supermarket" and loc.url and not loc.url.startswith(("http://", "https://")):
                sources.append(self.from_url(loc.url))
            else:
                sources.append(self.create(loc))
        return sources
