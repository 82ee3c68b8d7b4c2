"""Resolution: the output of dependency resolution.

A ``Resolution`` is assembled by the resolver through its builder methods
and sealed before it is returned. Callers must check ``has_errors()``
before using it to write a lock file or download cookbooks.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from cookshelf.core.dependency.constraints import Version
from cookshelf.core.dependency.models import Cookbook, SourceLocation
from cookshelf.exceptions import (
    CookbookNotFoundError,
    CookshelfError,
    CycleError,
    InvalidMetadataError,
    SourceUnavailableError,
    UnsatisfiableConstraintError,
    VersionConflictError,
)

# Sort rank of each error kind in ``Resolution.errors``.
_ERROR_RANK: dict[type, int] = {
    CookbookNotFoundError: 0,
    SourceUnavailableError: 1,
    InvalidMetadataError: 2,
    UnsatisfiableConstraintError: 3,
    VersionConflictError: 4,
    CycleError: 5,
}


def _error_key(error: CookshelfError) -> tuple[int, str, str]:
    rank = _ERROR_RANK.get(type(error), len(_ERROR_RANK))
    return rank, getattr(error, "name", "") or "", str(error)


@dataclass(frozen=True)
class ResolvedCookbook:
    """A cookbook pinned to one version.

    Attributes:
        name: Cookbook name.
        version: Selected version.
        source: Location of the source the cookbook was selected from.
        source_name: Diagnostic name of that source.
        dependencies: Dependency name -> selected version (None when the
            dependency itself failed to resolve).
        cookbook: The metadata fetched for the selected version.
    """

    name: str
    version: Version
    source: SourceLocation | None = None
    source_name: str = ""
    dependencies: dict[str, Version | None] = field(default_factory=dict)
    cookbook: Cookbook | None = None


class Resolution:
    """Resolved cookbooks, install order, and collected per-package errors."""

    def __init__(self) -> None:
        self._cookbooks: dict[str, ResolvedCookbook] = {}
        self._errors: list[CookshelfError] = []
        self._install_order: list[str] = []
        self._sealed = False

    # -- Builder ---------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._sealed:
            raise RuntimeError("resolution is sealed and can no longer be modified")

    def add_cookbook(self, cookbook: ResolvedCookbook) -> None:
        self._ensure_open()
        self._cookbooks[cookbook.name] = cookbook

    def add_error(self, error: CookshelfError) -> None:
        self._ensure_open()
        self._errors.append(error)

    def set_install_order(self, names: list[str]) -> None:
        self._ensure_open()
        self._install_order = list(names)

    def seal(self) -> None:
        """Freeze the resolution; errors are put into a stable order."""
        self._errors.sort(key=_error_key)
        self._sealed = True

    # -- Queries -------------------------------------------------------------

    @property
    def cookbooks(self) -> dict[str, ResolvedCookbook]:
        return dict(self._cookbooks)

    @property
    def errors(self) -> list[CookshelfError]:
        return list(self._errors)

    @property
    def install_order(self) -> list[str]:
        """Cookbook names with dependencies before dependents.

        Empty when the graph contained a cycle.
        """
        return list(self._install_order)

    def get_cookbook(self, name: str) -> ResolvedCookbook | None:
        return self._cookbooks.get(name)

    def has_cookbook(self, name: str) -> bool:
        return name in self._cookbooks

    def has_errors(self) -> bool:
        return bool(self._errors)

    def cookbook_count(self) -> int:
        return len(self._cookbooks)

    def all_cookbooks(self) -> list[ResolvedCookbook]:
        return [self._cookbooks[name] for name in sorted(self._cookbooks)]

    def versions(self) -> dict[str, str]:
        """Cookbook name -> selected version string."""
        return {name: str(rc.version) for name, rc in sorted(self._cookbooks.items())}

    def __repr__(self) -> str:
        return f"Resolution(cookbooks={self.cookbook_count()}, errors={len(self._errors)})"
