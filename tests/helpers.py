"""Shared test helpers: an in-memory cookbook source and cookbook builders."""

from __future__ import annotations

import asyncio
from pathlib import Path

from cookshelf.core.dependency import (
    Cookbook,
    Requirement,
    SourceLocation,
    Version,
    parse_constraint,
    parse_version,
)
from cookshelf.exceptions import CookbookNotFoundError, CookshelfError
from cookshelf.sources.base import CookbookSource


class StubSource(CookbookSource):
    """In-memory source for resolver tests.

    *catalog* maps cookbook name -> version string -> dependencies
    (dependency name -> constraint text)::

        StubSource("main", {"app": {"1.0.0": {"lib": ">= 1.0"}}, "lib": {"1.0.0": {}}})

    Args:
        label: Source name suffix.
        catalog: Available cookbooks.
        failures: Cookbook name -> exception raised by ``list_versions``.
        fetch_failures: Cookbook name -> exception raised by ``fetch_cookbook``.
        delay: Seconds to sleep before every answer.
    """

    def __init__(
        self,
        label: str = "stub",
        catalog: dict[str, dict[str, dict[str, str]]] | None = None,
        *,
        failures: dict[str, Exception] | None = None,
        fetch_failures: dict[str, Exception] | None = None,
        delay: float = 0.0,
    ) -> None:
        self._label = label
        self._catalog = catalog or {}
        self._failures = failures or {}
        self._fetch_failures = fetch_failures or {}
        self._delay = delay
        self.list_calls: list[str] = []
        self.fetch_calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return f"stub ({self._label})"

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(type="supermarket", url=f"https://{self._label}.example")

    async def list_versions(self, name: str) -> list[Version]:
        self.list_calls.append(name)
        if self._delay:
            await asyncio.sleep(self._delay)
        if name in self._failures:
            raise self._failures[name]
        if name not in self._catalog:
            raise CookbookNotFoundError(name, source=self.name)
        return self.newest_first([parse_version(v) for v in self._catalog[name]])

    async def fetch_cookbook(self, name: str, version: Version) -> Cookbook:
        self.fetch_calls.append((name, str(version)))
        if self._delay:
            await asyncio.sleep(self._delay)
        if name in self._fetch_failures:
            raise self._fetch_failures[name]
        for text, deps in self._catalog.get(name, {}).items():
            if parse_version(text) == version:
                return Cookbook(
                    name=name,
                    version=version,
                    dependencies={dep: parse_constraint(c) for dep, c in deps.items()},
                )
        raise CookbookNotFoundError(name, str(version), source=self.name)


def req(name: str, constraint: str = "", source: SourceLocation | None = None) -> Requirement:
    """Shorthand for ``Requirement.parse``."""
    return Requirement.parse(name, constraint, source)


def error_types(errors: list[CookshelfError]) -> list[str]:
    return [type(e).__name__ for e in errors]


def write_cookbook(
    directory: Path,
    name: str,
    version: str = "1.0.0",
    depends: dict[str, str] | None = None,
) -> Path:
    """Create a cookbook with a ``metadata.rb`` in ``directory/name``."""
    cookbook_dir = directory / name
    cookbook_dir.mkdir(parents=True, exist_ok=True)
    lines = [f"name '{name}'", f"version '{version}'"]
    for dep, constraint in (depends or {}).items():
        lines.append(f"depends '{dep}', '{constraint}'" if constraint else f"depends '{dep}'")
    (cookbook_dir / "metadata.rb").write_text("\n".join(lines) + "\n")
    return cookbook_dir
