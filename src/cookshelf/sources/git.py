"""Git repository cookbook source.

Drives the ``git`` executable through asyncio subprocesses:

- Versions are the repository tags that parse as versions
  (``git ls-remote --tags``), so no clone is needed to list them.
- When a branch, tag or ref is pinned, or the repository has no version
  tags, the one version offered is the one declared by the metadata of the
  checked-out tree.
- Metadata is read from a shallow checkout kept under the cache directory.

GitHub shorthand (``user/repo``) is expanded to an https URL.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from cookshelf.core.dependency.constraints import Version, parse_version
from cookshelf.core.dependency.models import Cookbook, SourceLocation
from cookshelf.exceptions import (
    CookbookNotFoundError,
    ParseError,
    SourceConfigError,
    SourceUnavailableError,
)
from cookshelf.parsers.metadata import CookbookMetadata, read_metadata
from cookshelf.sources.base import CookbookSource

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path("~/.cookshelf/cache/git")

GITHUB_URL = "https://github.com/{repo}.git"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def expand_github(repo: str) -> str:
    """Expand ``user/repo`` to a clone URL; full URLs are returned as-is."""
    if repo.startswith(("http://", "https://", "git@", "git://", "ssh://")):
        return repo
    return GITHUB_URL.format(repo=repo.removesuffix(".git"))


class GitSource(CookbookSource):
    """Source serving one cookbook from a git repository.

    Args:
        uri: Clone URL (or ``user/repo`` when *github* is set).
        branch: Branch to check out.
        tag: Tag to check out.
        ref: Commit (or any revision) to check out.
        rel: Sub-directory of the repository holding the cookbook.
        github: Expand *uri* as GitHub shorthand.
        cache_dir: Where checkouts are kept.
        git: Name or path of the git executable.
    """

    def __init__(
        self,
        uri: str,
        *,
        branch: str = "",
        tag: str = "",
        ref: str = "",
        rel: str = "",
        github: bool = False,
        cache_dir: Path | str | None = None,
        git: str = "git",
    ) -> None:
        if not uri:
            raise SourceConfigError("git source requires a repository URI")
        self._uri = expand_github(uri) if github else uri
        self._branch = branch
        self._tag = tag
        self._ref = ref
        self._rel = rel
        self._cache_dir = Path(cache_dir or DEFAULT_CACHE_DIR).expanduser()
        self._git = git
        self._tags: dict[Version, str] | None = None
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def name(self) -> str:
        pinned = self._ref or self._tag or self._branch
        return f"git ({self._uri}@{pinned})" if pinned else f"git ({self._uri})"

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def pinned(self) -> str:
        """The revision to check out, or "" when versions come from tags."""
        return self._ref or self._tag or self._branch

    @property
    def location(self) -> SourceLocation:
        options = {k: v for k, v in (("branch", self._branch), ("tag", self._tag)) if v}
        return SourceLocation.create("git", url=self._uri, ref=self._ref, path=self._rel, options=options)

    # -- git plumbing ----------------------------------------------------------

    async def _run_git(self, *args: str, cwd: Path | None = None) -> str:
        """Run git and return its stdout.

        Raises:
            SourceUnavailableError: If git is missing or exits non-zero.
        """
        logger.debug("git %s", " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                self._git,
                *args,
                cwd=str(cwd) if cwd else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise SourceUnavailableError(self.name, f"cannot run {self._git}: {exc}") from exc
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            reason = stderr.decode(errors="replace").strip() or f"git exited with {proc.returncode}"
            raise SourceUnavailableError(self.name, reason)
        return stdout.decode(errors="replace")

    def _checkout_dir(self, revision: str) -> Path:
        safe_uri = _UNSAFE_CHARS.sub("_", self._uri)
        return self._cache_dir / safe_uri / (_UNSAFE_CHARS.sub("_", revision) or "HEAD")

    async def _checkout(self, revision: str) -> Path:
        """Return a checkout of *revision* ("" for the default branch)."""
        target = self._checkout_dir(revision)
        lock = self._locks.setdefault(str(target), asyncio.Lock())
        async with lock:
            if (target / ".git").is_dir():
                return target
            target.parent.mkdir(parents=True, exist_ok=True)
            # Branches and tags can be cloned shallow; arbitrary refs cannot.
            named = revision in (self._branch, self._tag) or revision in self._tag_names()
            if revision and named:
                await self._run_git("clone", "--quiet", "--depth", "1", "--branch", revision, self._uri, str(target))
            else:
                await self._run_git("clone", "--quiet", self._uri, str(target))
                if revision:
                    await self._run_git("checkout", "--quiet", revision, cwd=target)
            return target

    def _tag_names(self) -> set[str]:
        return set(self._tags.values()) if self._tags else set()

    async def _list_tags(self) -> dict[Version, str]:
        if self._tags is not None:
            return self._tags
        output = await self._run_git("ls-remote", "--tags", self._uri)
        tags: dict[Version, str] = {}
        for line in output.splitlines():
            _, _, ref = line.partition("\t")
            if not ref.startswith("refs/tags/") or ref.endswith("^{}"):
                continue
            tag = ref[len("refs/tags/"):]
            try:
                tags.setdefault(parse_version(tag), tag)
            except ParseError:
                continue
        self._tags = tags
        return tags

    async def _read_metadata(self, revision: str) -> CookbookMetadata:
        checkout = await self._checkout(revision)
        directory = checkout / self._rel if self._rel else checkout
        return await asyncio.to_thread(read_metadata, directory)

    # -- CookbookSource ----------------------------------------------------------

    async def list_versions(self, name: str) -> list[Version]:
        if not self.pinned:
            tags = await self._list_tags()
            if tags:
                return self.newest_first(list(tags))
        metadata = await self._read_metadata(self.pinned)
        if metadata.name != name:
            raise CookbookNotFoundError(name, source=self.name)
        return [metadata.version]

    async def fetch_cookbook(self, name: str, version: Version) -> Cookbook:
        revision = self.pinned
        if not revision:
            revision = (await self._list_tags()).get(version, "")
        metadata = await self._read_metadata(revision)
        if metadata.name != name:
            raise CookbookNotFoundError(name, str(version), source=self.name)
        if metadata.version != version:
            logger.debug(
                "%s: metadata of %s declares %s, using %s", self.name, revision, metadata.version, version
            )
        cookbook = metadata.to_cookbook(self.location)
        cookbook.version = version
        return cookbook
