"""Requirement, cookbook metadata and source location models.

These are pure data holders with no resolution logic, so every other module
may import them without circular-dependency concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from cookshelf.core.dependency.constraints import Constraint, Version, parse_constraint
from cookshelf.exceptions import ParseError

SOURCE_TYPES = frozenset({"supermarket", "chef_server", "git", "github", "path"})


@dataclass(frozen=True)
class SourceLocation:
    """Where a cookbook comes from.

    Attributes:
        type: One of "supermarket", "chef_server", "git", "github", "path".
        url: Registry URL or git URI.
        ref: Git branch, tag or commit to check out.
        path: Local path, or sub-directory inside a git repository.
        options: Extra type-specific settings (credentials, branch, tag...).
    """

    type: str
    url: str = ""
    ref: str = ""
    path: str = ""
    options: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def create(
        cls,
        type: str,
        url: str = "",
        ref: str = "",
        path: str = "",
        options: dict[str, Any] | None = None,
    ) -> SourceLocation:
        """Build a location, normalizing *options* into a hashable form."""
        return cls(
            type=type,
            url=url,
            ref=ref,
            path=path,
            options=tuple(sorted((options or {}).items())),
        )

    def option(self, key: str, default: str = "") -> str:
        value = dict(self.options).get(key, default)
        return value if isinstance(value, str) else default

    @property
    def key(self) -> str:
        """Stable identity used to memoize sources built from this location."""
        opts = ",".join(f"{k}={v}" for k, v in self.options)
        return f"{self.type}|{self.url}|{self.ref}|{self.path}|{opts}"

    def __str__(self) -> str:
        target = self.url or self.path
        return f"{self.type} ({target})" if target else self.type


@dataclass
class Cookbook:
    """Metadata for one cookbook version as returned by a source.

    Attributes:
        name: Cookbook name.
        version: Version, or None for a cookbook whose version is not known yet.
        dependencies: Dependency name -> constraint.
        source: Location the metadata was fetched from.
        tarball_url: Download URL for registry cookbooks.
        path: Local directory for path and git cookbooks.
    """

    name: str
    version: Version | None = None
    dependencies: dict[str, Constraint] = field(default_factory=dict)
    source: SourceLocation | None = None
    tarball_url: str = ""
    path: str = ""

    def add_dependency(self, name: str, constraint: Constraint) -> None:
        self.dependencies[name] = constraint

    def has_dependency(self, name: str) -> bool:
        return name in self.dependencies

    def validate(self) -> None:
        """Check the metadata is usable for resolution.

        Raises:
            ParseError: On an empty name, missing version, or empty
                dependency name.
        """
        if not self.name:
            raise ParseError("cookbook name cannot be empty")
        if self.version is None:
            raise ParseError(f"cookbook {self.name} must have a version", text=self.name)
        for dep_name in self.dependencies:
            if not dep_name:
                raise ParseError(f"cookbook {self.name} has a dependency with an empty name", text=self.name)

    def __str__(self) -> str:
        if self.version is not None:
            return f"{self.name} ({self.version})"
        return self.name


@dataclass(frozen=True)
class Requirement:
    """A cookbook that must be present, the versions it may take, and
    optionally the one source it must come from."""

    name: str
    constraint: Constraint = field(default_factory=Constraint.any)
    source: SourceLocation | None = None

    @classmethod
    def parse(
        cls, name: str, constraint: str = "", source: SourceLocation | None = None
    ) -> Requirement:
        return cls(name=name, constraint=parse_constraint(constraint), source=source)

    def __str__(self) -> str:
        return f"{self.name} {self.constraint}"
