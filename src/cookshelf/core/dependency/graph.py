"""Dependency graph of cookbooks and graph algorithms.

Nodes are identified by dense integer ids and edges live in adjacency tables
keyed by id, so nodes never hold references to each other. At most one node
exists per cookbook name. The structure tolerates cycles; cycle-freeness is
only required to produce an install order.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Iterator

from cookshelf.core.dependency.constraints import Constraint, Version
from cookshelf.core.dependency.models import Cookbook
from cookshelf.exceptions import CycleError


# ---------------------------------------------------------------------------
# CookbookNode: A vertex in the graph
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class CookbookNode:
    """A cookbook in the graph.

    ``version`` is None while the node is only a placeholder for a
    dependency that has not been selected yet.
    """

    id: int
    name: str
    version: Version | None = None
    cookbook: Cookbook | None = None
    resolved: bool = False

    def __str__(self) -> str:
        if self.version is not None:
            return f"{self.name} ({self.version})"
        return self.name

    def __repr__(self) -> str:
        return f"CookbookNode(id={self.id}, {str(self)!r})"


# ---------------------------------------------------------------------------
# DependencyGraph
# ---------------------------------------------------------------------------


class DependencyGraph:
    """Directed graph of "depends on" edges between cookbooks.

    An edge ``a -> b`` means cookbook ``a`` depends on cookbook ``b`` and
    carries the constraint that justified it.

    Thread safety: This class is NOT thread-safe. The resolver serializes
    all mutations through its coordinator.
    """

    def __init__(self) -> None:
        self._nodes: dict[int, CookbookNode] = {}
        self._by_name: dict[str, int] = {}
        self._out: dict[int, dict[int, Constraint | None]] = {}
        self._in: dict[int, dict[int, Constraint | None]] = {}
        self._next_id = 0

    # -- Nodes -------------------------------------------------------------

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self._out.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def add_cookbook(self, cookbook: Cookbook) -> CookbookNode:
        """Insert a node for *cookbook*, or update the existing one.

        The graph keeps one node per name. When a node already exists its
        version and metadata are replaced; deciding whether that replacement
        is legitimate is the caller's job.

        Args:
            cookbook: Cookbook metadata (version may be None for placeholders).

        Returns:
            The node for ``cookbook.name``.
        """
        existing = self._by_name.get(cookbook.name)
        if existing is not None:
            node = self._nodes[existing]
            node.cookbook = cookbook
            node.version = cookbook.version
            return node

        node = CookbookNode(
            id=self._next_id,
            name=cookbook.name,
            version=cookbook.version,
            cookbook=cookbook,
        )
        self._next_id += 1
        self._nodes[node.id] = node
        self._by_name[node.name] = node.id
        self._out[node.id] = {}
        self._in[node.id] = {}
        return node

    def get_cookbook(self, name: str) -> CookbookNode | None:
        """Return the node for *name*, or None."""
        node_id = self._by_name.get(name)
        return self._nodes[node_id] if node_id is not None else None

    def nodes(self) -> list[CookbookNode]:
        """All nodes, sorted by name."""
        return sorted(self._nodes.values(), key=lambda n: n.name)

    def all_cookbooks(self) -> Iterator[Cookbook]:
        """One-shot iterator over a snapshot of the graph's cookbook metadata."""
        snapshot = [n.cookbook for n in self.nodes() if n.cookbook is not None]
        return iter(snapshot)

    def _check(self, node: CookbookNode) -> None:
        if self._nodes.get(node.id) is not node:
            raise KeyError(f"node {node} does not belong to this graph")

    # -- Edges -------------------------------------------------------------

    def add_dependency(
        self,
        from_node: CookbookNode,
        to_node: CookbookNode,
        constraint: Constraint | None = None,
    ) -> None:
        """Add the edge ``from_node -> to_node``.

        Adding an edge that already exists is a no-op; the constraint of the
        first insertion is kept.

        Raises:
            KeyError: If either node is not part of this graph.
        """
        self._check(from_node)
        self._check(to_node)
        if to_node.id in self._out[from_node.id]:
            return
        self._out[from_node.id][to_node.id] = constraint
        self._in[to_node.id][from_node.id] = constraint

    def has_dependency(self, from_node: CookbookNode, to_node: CookbookNode) -> bool:
        return to_node.id in self._out.get(from_node.id, {})

    def edge_constraint(self, from_node: CookbookNode, to_node: CookbookNode) -> Constraint | None:
        """Constraint recorded on the edge, or None if absent or unconstrained."""
        return self._out.get(from_node.id, {}).get(to_node.id)

    def get_dependencies(self, node: CookbookNode) -> set[CookbookNode]:
        """Direct dependencies of *node*."""
        return {self._nodes[i] for i in self._out.get(node.id, {})}

    def get_dependents(self, node: CookbookNode) -> set[CookbookNode]:
        """Cookbooks that depend directly on *node*."""
        return {self._nodes[i] for i in self._in.get(node.id, {})}

    # -- Algorithms ----------------------------------------------------------

    def find_cycle(self) -> list[str]:
        """Return the names along one cycle, or an empty list if acyclic.

        Uses iterative DFS coloring. Nodes are visited in name order so the
        reported cycle is deterministic. The first name is repeated at the
        end (e.g. ``["app", "lib", "app"]``).
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        color = {node_id: WHITE for node_id in self._nodes}

        def _successors(node_id: int) -> list[int]:
            return sorted(self._out[node_id], key=lambda i: self._nodes[i].name)

        for root in sorted(self._nodes, key=lambda i: self._nodes[i].name):
            if color[root] != WHITE:
                continue
            path: list[int] = [root]
            stack: list[Iterator[int]] = [iter(_successors(root))]
            color[root] = GRAY
            while stack:
                advanced = False
                for nxt in stack[-1]:
                    if color[nxt] == GRAY:
                        start = path.index(nxt)
                        names = [self._nodes[i].name for i in path[start:]]
                        return names + [self._nodes[nxt].name]
                    if color[nxt] == WHITE:
                        color[nxt] = GRAY
                        path.append(nxt)
                        stack.append(iter(_successors(nxt)))
                        advanced = True
                        break
                if not advanced:
                    color[path.pop()] = BLACK
                    stack.pop()
        return []

    def has_cycles(self) -> bool:
        """True if any node can reach itself through one or more edges."""
        return bool(self.find_cycle())

    def topological_sort(self) -> list[CookbookNode]:
        """Order nodes so every cookbook follows all of its dependencies.

        Leaves of the dependency relation come first, which is the order
        needed for installation. Ties are broken by name.

        Raises:
            CycleError: If the graph has a cycle. No partial order is returned.
        """
        remaining = {node_id: len(targets) for node_id, targets in self._out.items()}
        ready = [(self._nodes[i].name, i) for i, count in remaining.items() if count == 0]
        heapq.heapify(ready)
        order: list[CookbookNode] = []

        while ready:
            _, node_id = heapq.heappop(ready)
            order.append(self._nodes[node_id])
            for dependent in self._in[node_id]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, (self._nodes[dependent].name, dependent))

        if len(order) != len(self._nodes):
            raise CycleError(self.find_cycle())
        return order

    def clone(self) -> DependencyGraph:
        """Deep copy of nodes and edges, keeping node ids.

        Cookbook metadata objects are shared; they are treated as read-only.
        """
        copy = DependencyGraph()
        for node_id, node in self._nodes.items():
            copy._nodes[node_id] = CookbookNode(
                id=node.id,
                name=node.name,
                version=node.version,
                cookbook=node.cookbook,
                resolved=node.resolved,
            )
            copy._by_name[node.name] = node_id
        copy._out = {i: dict(targets) for i, targets in self._out.items()}
        copy._in = {i: dict(sources) for i, sources in self._in.items()}
        copy._next_id = self._next_id
        return copy
