"""Lockfile data models: LockedCookbook and LockfileMetadata.

Pure data holders with no business logic, safe to import from anywhere in
the lockfile package.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from cookshelf.core.dependency.models import SourceLocation


# ---------------------------------------------------------------------------
# LockedCookbook: A single entry in the lockfile
# ---------------------------------------------------------------------------


@dataclass
class LockedCookbook:
    """One cookbook pinned to an exact version.

    Attributes:
        name: Cookbook name (e.g., "nginx").
        version: Resolved version (e.g., "2.7.6").
        source_type: Kind of source it was resolved from ("supermarket",
            "path", "git", "github").
        source_url: Registry URL or git URI ("" for path sources).
        source_path: Local directory, or sub-directory inside a git repo.
        branch: Git branch, when pinned.
        tag: Git tag, when pinned.
        ref: Git revision, when pinned.
        dependencies: Dependency name -> resolved version.
    """

    name: str
    version: str
    source_type: str = "supermarket"
    source_url: str = ""
    source_path: str = ""
    branch: str = ""
    tag: str = ""
    ref: str = ""
    dependencies: dict[str, str] = field(default_factory=dict)

    @property
    def source_key(self) -> str:
        """Key under which the cookbook is grouped in the lockfile."""
        return self.source_url or self.source_path or self.source_type

    @classmethod
    def from_location(
        cls,
        name: str,
        version: str,
        location: SourceLocation | None,
        dependencies: dict[str, str] | None = None,
    ) -> LockedCookbook:
        if location is None:
            return cls(name=name, version=version, dependencies=dict(dependencies or {}))
        return cls(
            name=name,
            version=version,
            source_type=location.type,
            source_url=location.url,
            source_path=location.path,
            branch=location.option("branch"),
            tag=location.option("tag"),
            ref=location.ref,
            dependencies=dict(dependencies or {}),
        )


# ---------------------------------------------------------------------------
# LockfileMetadata: Top-level metadata section
# ---------------------------------------------------------------------------


@dataclass
class LockfileMetadata:
    """Metadata section of the lockfile.

    Attributes:
        total_cookbooks: Expected number of cookbook entries. Used during
            validation to detect incomplete writes.
        resolution_strategy: The algorithm that produced the lockfile
            ("greedy" for the resolver, "manual" for hand-authored files).
        install_order: Cookbook names, dependencies first.
    """

    total_cookbooks: int = 0
    resolution_strategy: str = "greedy"
    install_order: list[str] = field(default_factory=list)
