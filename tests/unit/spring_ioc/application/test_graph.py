"""Unit tests for DependencyGraph."""

import pytest

from spring_ioc.application.graph import DependencyGraph
from spring_ioc.domain import DependencyCycleError, DependencyEdge, EdgeKind


def graph_of(nodes, edges, lazy=()):
    graph = DependencyGraph()
    for node in nodes:
        graph.add_node(node)
    for source, target in edges:
        graph.add_edge(DependencyEdge(source=source, target=target, kind=EdgeKind.CONSTRUCTOR_ARG))
    for source, target in lazy:
        graph.add_edge(DependencyEdge(source=source, target=target, kind=EdgeKind.CONSTRUCTOR_ARG, lazy=True))
    return graph


class TestConstructionOrder:
    """Test cases for ordering."""

    def test_dependencies_first(self):
        """Test that every dependency precedes its dependents."""
        graph = graph_of(["service", "repo", "db"], [("service", "repo"), ("repo", "db")])

        assert graph.construction_order() == ["db", "repo", "service"]

    def test_ties_follow_insertion_order(self):
        """Test that independent nodes keep their insertion order."""
        graph = graph_of(["c", "a", "b"], [])

        assert graph.construction_order() == ["c", "a", "b"]

    def test_diamond(self):
        """Test a diamond shaped graph."""
        graph = graph_of(
            ["top", "left", "right", "bottom"],
            [("top", "left"), ("top", "right"), ("left", "bottom"), ("right", "bottom")],
        )

        assert graph.construction_order() == ["bottom", "left", "right", "top"]

    def test_duplicate_edges_count_once(self):
        """Test that the same edge recorded twice does not block ordering."""
        graph = graph_of(["a", "b"], [("a", "b"), ("a", "b")])

        assert graph.construction_order() == ["b", "a"]
        assert graph.dependencies("a") == ["b"]
        assert len(graph.edges) == 2

    def test_lazy_edges_do_not_order(self):
        """Test that lazy edges are kept but ignored for ordering."""
        graph = graph_of(["a", "b"], [("b", "a")], lazy=[("a", "b")])

        assert graph.construction_order() == ["a", "b"]
        assert graph.dependencies("a") == []

    def test_unknown_node(self):
        """Test that edges need known nodes."""
        graph = graph_of(["a"], [])

        with pytest.raises(KeyError):
            graph.add_edge(DependencyEdge(source="a", target="missing", kind=EdgeKind.CONSTRUCTOR_ARG))


class TestCycles:
    """Test cases for cycle detection."""

    def test_cycle_raises_with_path(self):
        """Test that a cycle is reported with its path."""
        graph = graph_of(["a", "b", "c", "d"], [("a", "b"), ("b", "c"), ("c", "a"), ("d", "a")])

        with pytest.raises(DependencyCycleError) as exc_info:
            graph.construction_order()

        assert exc_info.value.chain == ["a", "b", "c", "a"]

    def test_self_loop(self):
        """Test a bean depending on itself."""
        graph = graph_of(["a"], [("a", "a")])

        assert graph.find_cycle() == ["a", "a"]

    def test_no_cycle(self):
        """Test that an acyclic graph has no cycle."""
        graph = graph_of(["a", "b"], [("a", "b")])

        assert graph.find_cycle() == []
