"""cookshelf exception hierarchy.

All public exceptions inherit from CookshelfError, giving callers a single
base class to catch when they want to handle any cookshelf-specific failure
without swallowing unrelated errors.

Per-package resolution failures (not found, unavailable sources, version
conflicts, cycles) are not raised out of ``DependencyResolver.resolve()``;
they are collected as instances in ``Resolution.errors``. Each carries
structured attributes in addition to its message.
"""

from __future__ import annotations

from typing import Any


class CookshelfError(Exception):
    """Base exception for all cookshelf errors."""


class ConfigError(CookshelfError):
    """Raised when configuration cannot be loaded or has invalid values."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class ParseError(CookshelfError):
    """Raised when a version, constraint, or manifest cannot be parsed.

    Attributes:
        text: The offending input, when known.
        line: 1-based line number for manifest errors, else None.
    """

    def __init__(self, message: str, *, text: str | None = None, line: int | None = None) -> None:
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.text = text
        self.line = line


class InvalidMetadataError(ParseError):
    """Raised when a source returns malformed cookbook metadata."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"invalid metadata for cookbook {name}: {reason}", text=name)
        self.name = name
        self.reason = reason


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class SourceError(CookshelfError):
    """Base class for failures reported by a cookbook source."""


class CookbookNotFoundError(SourceError):
    """Raised when a cookbook (or a specific version) cannot be found.

    Attributes:
        name: Cookbook name.
        version: Version string, or "" when the cookbook itself is missing.
        source: Name of the source that was consulted, if any.
    """

    def __init__(self, name: str, version: str = "", source: str = "") -> None:
        if version:
            message = f"cookbook {name} version {version} not found"
        else:
            message = f"cookbook {name} not found"
        if source:
            message = f"{message} in {source}"
        super().__init__(message)
        self.name = name
        self.version = version
        self.source = source


class SourceUnavailableError(SourceError):
    """Raised when a source cannot be reached or answers with a server error."""

    def __init__(self, source: str, reason: str, name: str = "") -> None:
        super().__init__(f"source {source} unavailable: {reason}")
        self.source = source
        self.reason = reason
        self.name = name


class SourceConfigError(SourceError):
    """Raised when a source location is invalid or unsupported."""


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class ResolutionError(CookshelfError):
    """Base class for dependency resolution failures.

    Attributes:
        name: The cookbook the failure is about ("" for structural errors).
    """

    def __init__(self, message: str, name: str = "") -> None:
        super().__init__(message)
        self.name = name


class UnsatisfiableConstraintError(ResolutionError):
    """No available version satisfies the (single) constraint for a cookbook."""

    def __init__(self, name: str, constraint: Any, available: list[Any]) -> None:
        shown = ", ".join(str(v) for v in available) or "none"
        super().__init__(
            f"no version of {name} satisfies constraint {constraint} "
            f"(available: {shown})",
            name,
        )
        self.constraint = constraint
        self.available = list(available)


class VersionConflictError(ResolutionError):
    """Accumulated constraints for one cookbook admit no common version.

    Attributes:
        constraints: ``(constraint, requested_by)`` pairs involved.
        selected: The previously selected version, or None when the conflict
            was detected before any selection was made.
    """

    def __init__(
        self,
        name: str,
        constraints: list[tuple[Any, str]],
        selected: Any | None = None,
    ) -> None:
        described = ", ".join(f"{c} (from {who})" for c, who in constraints)
        if selected is not None:
            message = (
                f"version conflict for {name}: {selected} was selected but "
                f"constraints {described} are incompatible with it"
            )
        else:
            message = f"version conflict for {name}: no version satisfies {described}"
        super().__init__(message, name)
        self.constraints = list(constraints)
        self.selected = selected


class CycleError(ResolutionError):
    """The dependency graph contains a cycle.

    Attributes:
        cycle: Cookbook names along the cycle, first name repeated last.
    """

    def __init__(self, cycle: list[str]) -> None:
        path = " -> ".join(cycle) if cycle else "unknown"
        super().__init__(f"circular dependency detected: {path}", cycle[0] if cycle else "")
        self.cycle = list(cycle)


class ResolutionCancelled(CookshelfError):
    """Raised when a resolution is cancelled or its deadline expires."""


class LockfileError(CookshelfError):
    """Raised for lock file generation, parsing, or validation failures."""
