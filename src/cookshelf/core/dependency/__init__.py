"""Cookbook dependency resolution.

This package holds the resolution engine: version and constraint algebra,
the dependency graph, the concurrent worklist resolver and the resolution
result it produces. Public names are re-exported here so callers can write
``from cookshelf.core.dependency import X``.

Sources (``cookshelf.sources``) plug into the resolver through the
``CookbookSource`` interface; nothing in this package performs I/O itself.
"""

from cookshelf.core.dependency.cache import ResolutionCache
from cookshelf.core.dependency.constraints import (
    Constraint,
    Version,
    newest_satisfying,
    parse_constraint,
    parse_version,
    satisfies_all,
)
from cookshelf.core.dependency.graph import (
    CookbookNode,
    DependencyGraph,
)
from cookshelf.core.dependency.models import (
    Cookbook,
    Requirement,
    SourceLocation,
)
from cookshelf.core.dependency.resolution import (
    Resolution,
    ResolvedCookbook,
)
from cookshelf.core.dependency.resolver import (
    DependencyResolver,
    resolve_sync,
)

__all__ = [
    "Constraint",
    "Cookbook",
    "CookbookNode",
    "DependencyGraph",
    "DependencyResolver",
    "Requirement",
    "Resolution",
    "ResolutionCache",
    "ResolvedCookbook",
    "SourceLocation",
    "Version",
    "newest_satisfying",
    "parse_constraint",
    "parse_version",
    "resolve_sync",
    "satisfies_all",
]
