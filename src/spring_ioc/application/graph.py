"""Dependency graph ordering and cycle detection."""

import heapq
from collections import defaultdict
from typing import Dict, List, Optional, Set

from spring_ioc.domain import DependencyCycleError, DependencyEdge


class DependencyGraph:
    """Directed graph of bean identities, edges point from a bean to what it needs.

    Lazy edges are recorded but do not constrain the construction order.
    Ties between ready nodes are broken by insertion order, which keeps the
    order deterministic for identical inputs.

    Attributes:
        edges: Every recorded edge, lazy ones included.
    """

    def __init__(self) -> None:
        """Initialize an empty graph."""
        self._rank: Dict[str, int] = {}
        self._deps: Dict[str, List[str]] = defaultdict(list)
        self.edges: List[DependencyEdge] = []

    def add_node(self, node: str) -> None:
        """Add a node; adding it again keeps its first position.

        Args:
            node: Bean identity.
        """
        if node not in self._rank:
            self._rank[node] = len(self._rank)

    def add_edge(self, edge: DependencyEdge) -> None:
        """Record an edge; both ends must already be nodes.

        Raises:
            KeyError: If either end is unknown.
        """
        if edge.source not in self._rank or edge.target not in self._rank:
            raise KeyError(f"Unknown node in edge {edge.source} -> {edge.target}")
        self.edges.append(edge)
        if not edge.lazy and edge.target not in self._deps[edge.source]:
            self._deps[edge.source].append(edge.target)

    def dependencies(self, node: str) -> List[str]:
        """Return the non-lazy dependencies of a node."""
        return list(self._deps.get(node, []))

    @property
    def nodes(self) -> List[str]:
        """Nodes in insertion order."""
        return sorted(self._rank, key=self._rank.__getitem__)

    def construction_order(self) -> List[str]:
        """Return nodes with every dependency before its dependents.

        Uses Kahn's algorithm.

        Raises:
            DependencyCycleError: If the non-lazy edges form a cycle.
        """
        pending = {node: len(self._deps.get(node, [])) for node in self._rank}
        dependents: Dict[str, List[str]] = defaultdict(list)
        for node, deps in self._deps.items():
            for dep in deps:
                dependents[dep].append(node)

        ready = [(self._rank[node], node) for node, count in pending.items() if count == 0]
        heapq.heapify(ready)
        order: List[str] = []
        while ready:
            _, node = heapq.heappop(ready)
            order.append(node)
            for dependent in dependents[node]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    heapq.heappush(ready, (self._rank[dependent], dependent))

        if len(order) != len(self._rank):
            remaining = {node for node, count in pending.items() if count > 0}
            raise DependencyCycleError(self.find_cycle(remaining))
        return order

    def find_cycle(self, candidates: Optional[Set[str]] = None) -> List[str]:
        """Return one cycle as a path whose first node is repeated at the end.

        Args:
            candidates: Nodes to search; defaults to every node.
        """
        allowed = set(self._rank) if candidates is None else candidates
        state: Dict[str, int] = {}
        path: List[str] = []

        def visit(node: str) -> Optional[List[str]]:
            state[node] = 1
            path.append(node)
            for dep in self._deps.get(node, []):
                if dep not in allowed:
                    continue
                if state.get(dep) == 1:
                    return path[path.index(dep) :] + [dep]
                if dep not in state:
                    found = visit(dep)
                    if found:
                        return found
            path.pop()
            state[node] = 2
            return None

        for node in sorted(allowed, key=self._rank.__getitem__):
            if node not in state:
                found = visit(node)
                if found:
                    return found
        return []
