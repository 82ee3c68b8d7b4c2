"""Concurrent fixed-point dependency resolver.

Turns a list of requirements into a consistent, cycle-free set of cookbook
versions by driving a worklist to a fixed point:

1. Pending ``(name, constraint)`` items are drained in batches and grouped
   by name.
2. A name that is already selected is re-validated against the new
   constraints. It is kept when they admit it, otherwise a version conflict
   is recorded.
3. Every other name is handed to a bounded pool of worker coroutines that
   query sources in priority order and pick the newest version satisfying
   all constraints accumulated for the name.
4. Worker outcomes are committed one at a time in name order. A selection
   adds graph nodes and edges and enqueues the cookbook's own dependencies.

The policy is greedy ("newest compatible") with no backtracking. When a
different, older choice for one cookbook would have avoided a conflict
elsewhere, the conflict is reported rather than searched around.

Per-package failures are collected in ``Resolution.errors``. Only
cancellation (deadline) and configuration faults abort the call.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections import deque
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable

from cookshelf.core.dependency.cache import ResolutionCache
from cookshelf.core.dependency.constraints import Constraint, Version, newest_satisfying
from cookshelf.core.dependency.graph import DependencyGraph
from cookshelf.core.dependency.models import Cookbook, Requirement, SourceLocation
from cookshelf.core.dependency.resolution import Resolution, ResolvedCookbook
from cookshelf.exceptions import (
    CookbookNotFoundError,
    CookshelfError,
    CycleError,
    InvalidMetadataError,
    ParseError,
    ResolutionCancelled,
    SourceConfigError,
    SourceError,
    SourceUnavailableError,
    UnsatisfiableConstraintError,
    VersionConflictError,
)

if TYPE_CHECKING:
    from cookshelf.sources.base import CookbookSource

logger = logging.getLogger(__name__)

TOP_LEVEL = "top-level requirement"

DEFAULT_MAX_CANDIDATES = 100


def default_worker_count() -> int:
    """Twice the CPU count; source queries are I/O bound."""
    return (os.cpu_count() or 1) * 2


# ---------------------------------------------------------------------------
# Internal state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _WorkItem:
    name: str
    constraint: Constraint
    requested_by: str


@dataclass
class _Selection:
    version: Version
    source: CookbookSource
    cookbook: Cookbook


@dataclass
class _Outcome:
    name: str
    cookbook: Cookbook | None = None
    source: CookbookSource | None = None
    error: CookshelfError | None = None


@dataclass
class _State:
    """Everything one ``resolve()`` call owns. Never shared between calls."""

    overrides: dict[str, SourceLocation]
    pending: deque[_WorkItem] = field(default_factory=deque)
    constraints: dict[str, list[tuple[Constraint, str]]] = field(default_factory=dict)
    selected: dict[str, _Selection] = field(default_factory=dict)
    failed: set[str] = field(default_factory=set)
    graph: DependencyGraph = field(default_factory=DependencyGraph)
    resolution: Resolution = field(default_factory=Resolution)


# ---------------------------------------------------------------------------
# DependencyResolver
# ---------------------------------------------------------------------------


class DependencyResolver:
    """Greedy worklist resolver over a prioritized list of sources.

    Args:
        sources: Global sources, highest priority first.
        max_workers: Maximum concurrent source queries; 0 picks
            ``default_worker_count()``.
        max_candidates: Newest versions considered per cookbook and source.
        source_factory: Builds a source for a requirement's source override.
            Defaults to ``cookshelf.sources.factory.SourceFactory().create``.
        cache: Version/metadata memo. A fresh one is created when omitted.
    """

    def __init__(
        self,
        sources: Iterable[CookbookSource],
        *,
        max_workers: int = 0,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        source_factory: Callable[[SourceLocation], CookbookSource] | None = None,
        cache: ResolutionCache | None = None,
    ) -> None:
        self._sources = list(sources)
        self._workers = max_workers if max_workers > 0 else default_worker_count()
        self._max_candidates = max_candidates
        self._source_factory = source_factory
        self._override_sources: dict[str, CookbookSource] = {}
        self.cache = cache if cache is not None else ResolutionCache()

    @property
    def sources(self) -> list[CookbookSource]:
        return list(self._sources)

    @property
    def worker_count(self) -> int:
        return self._workers

    def set_max_workers(self, workers: int) -> None:
        """Change the worker pool size; values below 1 are ignored."""
        if workers > 0:
            self._workers = workers
            logger.debug("Set resolver worker count to %d", workers)

    # -- Entry point -----------------------------------------------------------

    async def resolve(
        self,
        requirements: Iterable[Requirement],
        *,
        timeout: float | None = None,
    ) -> Resolution:
        """Resolve *requirements* into a sealed ``Resolution``.

        Args:
            requirements: Top-level requirements, in manifest order.
            timeout: Overall deadline in seconds. None means no deadline.

        Returns:
            The resolution. Check ``has_errors()`` before using it.

        Raises:
            ResolutionCancelled: If the deadline expires (or already has).
            SourceConfigError: If requirements need global sources and none
                are configured.
        """
        reqs = list(requirements)
        if timeout is not None and timeout <= 0:
            raise ResolutionCancelled("resolution deadline already expired")
        if not self._sources and any(r.source is None for r in reqs):
            raise SourceConfigError("no cookbook sources configured")

        logger.debug(
            "Starting dependency resolution of %d requirements with %d workers",
            len(reqs),
            self._workers,
        )
        try:
            return await asyncio.wait_for(self._resolve(reqs), timeout)
        except asyncio.TimeoutError as exc:
            raise ResolutionCancelled(f"resolution timed out after {timeout}s") from exc

    # -- Worklist loop ---------------------------------------------------------

    async def _resolve(self, requirements: list[Requirement]) -> Resolution:
        overrides: dict[str, SourceLocation] = {}
        for req in requirements:
            if req.source is not None:
                overrides.setdefault(req.name, req.source)

        state = _State(overrides=overrides)
        for req in requirements:
            state.pending.append(_WorkItem(req.name, req.constraint, TOP_LEVEL))

        semaphore = asyncio.Semaphore(self._workers)
        while state.pending:
            dispatch = self._next_batch(state)
            if not dispatch:
                continue
            outcomes = await self._run_workers(
                self._bounded(semaphore, self._select(name, list(state.constraints[name]), state))
                for name in dispatch
            )
            for outcome in outcomes:
                self._commit(state, outcome)

        self._finish(state)
        return state.resolution

    def _next_batch(self, state: _State) -> list[str]:
        """Drain pending items; return the names that need a source query."""
        grouped: dict[str, list[_WorkItem]] = {}
        while state.pending:
            item = state.pending.popleft()
            grouped.setdefault(item.name, []).append(item)

        dispatch: list[str] = []
        for name in sorted(grouped):
            items = grouped[name]
            if name in state.failed:
                logger.debug("Skipping %s: resolution already failed", name)
                continue
            accumulated = state.constraints.setdefault(name, [])
            accumulated.extend((i.constraint, i.requested_by) for i in items)
            if name in state.selected:
                self._revalidate(state, name, items)
            else:
                dispatch.append(name)
        return dispatch

    def _revalidate(self, state: _State, name: str, items: list[_WorkItem]) -> None:
        """Keep an existing selection, or record a conflict with it."""
        selected = state.selected[name].version
        incompatible = [
            (i.constraint, i.requested_by) for i in items if not i.constraint.satisfies(selected)
        ]
        if not incompatible:
            return
        error = VersionConflictError(name, incompatible, selected=selected)
        logger.warning("%s", error)
        state.resolution.add_error(error)

    @staticmethod
    async def _run_workers(work: Iterable[Awaitable[_Outcome]]) -> list[_Outcome]:
        """Await every worker; on any failure cancel and reap the rest."""
        tasks = [asyncio.ensure_future(w) for w in work]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    @staticmethod
    async def _bounded(semaphore: asyncio.Semaphore, work: Awaitable[_Outcome]) -> _Outcome:
        async with semaphore:
            return await work

    # -- Worker ----------------------------------------------------------------

    async def _select(
        self, name: str, constraints: list[tuple[Constraint, str]], state: _State
    ) -> _Outcome:
        """Pick the newest version of *name* satisfying all *constraints*.

        Sources are consulted in priority order and the first one offering a
        satisfying version wins; later sources are never used to find a
        newer one.
        """
        override = state.overrides.get(name)
        if override is not None:
            try:
                candidates = [self._source_for(override)]
            except SourceError as exc:
                return _Outcome(name, error=exc)
        else:
            candidates = self._sources

        wanted = [c for c, _ in constraints]
        available: list[Version] = []
        unavailable: list[CookshelfError] = []

        for src in candidates:
            try:
                versions = await self._get_versions(src, name)
            except CookbookNotFoundError:
                logger.debug("%s not found in %s", name, src.name)
                continue
            except (SourceUnavailableError, ParseError) as exc:
                logger.debug("Failed to list %s from %s: %s", name, src.name, exc)
                unavailable.append(exc)
                continue
            except (TimeoutError, asyncio.TimeoutError):
                unavailable.append(SourceUnavailableError(src.name, "request timed out", name))
                continue

            available.extend(versions)
            best = newest_satisfying(versions, wanted)
            if best is None:
                continue
            try:
                cookbook = await self._fetch(src, name, best)
            except (SourceError, ParseError) as exc:
                return _Outcome(name, error=exc)
            except (TimeoutError, asyncio.TimeoutError):
                return _Outcome(name, error=SourceUnavailableError(src.name, "request timed out", name))
            return _Outcome(name, cookbook=cookbook, source=src)

        return _Outcome(name, error=self._selection_error(name, constraints, available, unavailable, override))

    @staticmethod
    def _selection_error(
        name: str,
        constraints: list[tuple[Constraint, str]],
        available: list[Version],
        unavailable: list[CookshelfError],
        override: SourceLocation | None,
    ) -> CookshelfError:
        if not available:
            if unavailable:
                return unavailable[0]
            return CookbookNotFoundError(name, source=str(override) if override else "")

        distinct: dict[str, tuple[Constraint, str]] = {}
        for constraint, who in constraints:
            distinct.setdefault(str(constraint), (constraint, who))
        shown = sorted(set(available), reverse=True)
        if len(distinct) > 1:
            return VersionConflictError(name, list(distinct.values()))
        constraint = next(iter(distinct.values()))[0]
        return UnsatisfiableConstraintError(name, constraint, shown)

    def _source_for(self, location: SourceLocation) -> CookbookSource:
        cached = self._override_sources.get(location.key)
        if cached is not None:
            return cached
        factory = self._source_factory
        if factory is None:
            from cookshelf.sources.factory import SourceFactory

            factory = SourceFactory().create
        source = factory(location)
        self._override_sources[location.key] = source
        return source

    async def _get_versions(self, src: CookbookSource, name: str) -> list[Version]:
        key = ResolutionCache.versions_key(src.name, name)
        cached = self.cache.get_versions(key)
        if cached is not None:
            return cached

        versions = sorted(set(await src.list_versions(name)), reverse=True)
        versions = versions[: self._max_candidates]
        self.cache.set_versions(key, versions)
        return versions

    async def _fetch(self, src: CookbookSource, name: str, version: Version) -> Cookbook:
        key = ResolutionCache.metadata_key(src.name, name, version)
        cached = self.cache.get_metadata(key)
        if cached is not None:
            return cached

        cookbook = await src.fetch_cookbook(name, version)
        try:
            cookbook.validate()
        except ParseError as exc:
            raise InvalidMetadataError(name, str(exc)) from exc
        if cookbook.source is None:
            cookbook = replace(cookbook, source=src.location)
        self.cache.set_metadata(key, cookbook)
        return cookbook

    # -- Commit ----------------------------------------------------------------

    def _commit(self, state: _State, outcome: _Outcome) -> None:
        """Apply one worker outcome to the shared graph and selection map."""
        name = outcome.name
        if outcome.error is not None or outcome.cookbook is None or outcome.source is None:
            error = outcome.error or CookbookNotFoundError(name)
            logger.warning("Failed to resolve %s: %s", name, error)
            state.failed.add(name)
            state.resolution.add_error(error)
            return

        cookbook = outcome.cookbook
        assert cookbook.version is not None
        logger.info("Using %s (%s) from %s", name, cookbook.version, outcome.source.name)
        state.selected[name] = _Selection(cookbook.version, outcome.source, cookbook)

        node = state.graph.add_cookbook(cookbook)
        node.resolved = True
        for dep_name, constraint in sorted(cookbook.dependencies.items()):
            dep_node = state.graph.get_cookbook(dep_name)
            if dep_node is None:
                dep_node = state.graph.add_cookbook(Cookbook(name=dep_name))
            state.graph.add_dependency(node, dep_node, constraint)
            state.pending.append(_WorkItem(dep_name, constraint, str(node)))

    def _finish(self, state: _State) -> None:
        """Validate the graph and project it into the resolution."""
        resolution = state.resolution
        graph = state.graph

        cycle = graph.find_cycle()
        if cycle:
            error = CycleError(cycle)
            logger.warning("%s", error)
            resolution.add_error(error)
        else:
            order = [n.name for n in graph.topological_sort() if n.name in state.selected]
            resolution.set_install_order(order)

        for name in sorted(state.selected):
            selection = state.selected[name]
            deps: dict[str, Version | None] = {}
            for dep_name in sorted(selection.cookbook.dependencies):
                dep = state.selected.get(dep_name)
                deps[dep_name] = dep.version if dep is not None else None
            resolution.add_cookbook(
                ResolvedCookbook(
                    name=name,
                    version=selection.version,
                    source=selection.cookbook.source or selection.source.location,
                    source_name=selection.source.name,
                    dependencies=deps,
                    cookbook=selection.cookbook,
                )
            )

        resolution.seal()
        logger.debug(
            "Resolution finished: %d cookbooks, %d errors",
            resolution.cookbook_count(),
            len(resolution.errors),
        )


def resolve_sync(
    resolver: DependencyResolver,
    requirements: Iterable[Requirement],
    *,
    timeout: float | None = None,
) -> Resolution:
    """Run ``resolver.resolve()`` to completion from synchronous code."""
    coro: Any = resolver.resolve(requirements, timeout=timeout)
    return asyncio.run(coro)
