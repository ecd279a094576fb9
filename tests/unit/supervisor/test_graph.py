"""Unit tests for the service dependency graph."""

import pytest

from fleetwarden.exceptions import DependencyCycleError, ServiceNotFoundError
from fleetwarden.supervisor import DependencyGraph
from tests.fakes import service


@pytest.fixture
def diamond() -> DependencyGraph:
    """db <- (api, worker) <- web."""
    return DependencyGraph(
        [
            service("db"),
            service("api", "db"),
            service("worker", "db"),
            service("web", "api", "worker"),
        ]
    )


class TestConstruction:
    def test_preserves_definition_order(self, diamond: DependencyGraph) -> None:
        assert diamond.names == ("db", "api", "worker", "web")
        assert list(diamond) == ["db", "api", "worker", "web"]
        assert len(diamond) == 4

    def test_contains(self, diamond: DependencyGraph) -> None:
        assert "api" in diamond
        assert "nope" not in diamond

    def test_rejects_duplicate_names(self) -> None:
        with pytest.raises(ValueError, match="Duplicate service definition 'db'"):
            _ = DependencyGraph([service("db"), service("db")])

    def test_rejects_unknown_dependency(self) -> None:
        with pytest.raises(ServiceNotFoundError) as exc_info:
            _ = DependencyGraph([service("app", "ghost")])

        assert exc_info.value.service_name == "ghost"

    def test_rejects_cycle(self) -> None:
        with pytest.raises(DependencyCycleError) as exc_info:
            _ = DependencyGraph([service("a", "c"), service("b", "a"), service("c", "b")])

        assert set(exc_info.value.cycle) == {"a", "b", "c"}
        assert "Circular dependency" in str(exc_info.value)

    def test_rejects_self_dependency(self) -> None:
        with pytest.raises(DependencyCycleError):
            _ = DependencyGraph([service("a", "a")])

    def test_empty_graph(self) -> None:
        graph = DependencyGraph([])

        assert len(graph) == 0
        assert graph.topological_order() == []


class TestQueries:
    def test_definition_lookup(self, diamond: DependencyGraph) -> None:
        assert diamond.definition("api").dependencies == frozenset({"db"})

    def test_definition_unknown_raises(self, diamond: DependencyGraph) -> None:
        with pytest.raises(ServiceNotFoundError, match="'ghost' not found"):
            _ = diamond.definition("ghost")

    def test_direct_dependencies_and_dependents(self, diamond: DependencyGraph) -> None:
        assert diamond.dependencies("web") == frozenset({"api", "worker"})
        assert diamond.dependents("db") == frozenset({"api", "worker"})
        assert diamond.dependents("web") == frozenset()

    def test_transitive_closures(self, diamond: DependencyGraph) -> None:
        assert diamond.ancestors("web") == frozenset({"api", "worker", "db"})
        assert diamond.descendants("db") == frozenset({"api", "worker", "web"})

    def test_to_dict(self, diamond: DependencyGraph) -> None:
        data = diamond.to_dict()

        assert data["db"] == {"dependencies": [], "dependents": ["api", "worker"]}
        assert data["web"] == {"dependencies": ["api", "worker"], "dependents": []}


class TestTopologicalOrder:
    def test_dependencies_precede_dependents(self, diamond: DependencyGraph) -> None:
        order = diamond.topological_order()

        for name in order:
            for dep in diamond.dependencies(name):
                assert order.index(dep) < order.index(name)

    def test_ties_follow_definition_order(self, diamond: DependencyGraph) -> None:
        assert diamond.topological_order() == ["db", "api", "worker", "web"]

    def test_subset_ignores_outside_edges(self, diamond: DependencyGraph) -> None:
        assert diamond.topological_order(["web", "api"]) == ["api", "web"]

    def test_subset_with_unknown_name_raises(self, diamond: DependencyGraph) -> None:
        with pytest.raises(ServiceNotFoundError):
            _ = diamond.topological_order(["api", "ghost"])


class TestDependentsStopOrder:
    def test_deepest_dependents_first(self, chain_graph: DependencyGraph) -> None:
        assert chain_graph.dependents_stop_order("db") == ["app", "indexer"]

    def test_excludes_target(self, diamond: DependencyGraph) -> None:
        order = diamond.dependents_stop_order("db")

        assert "db" not in order
        assert order.index("web") < order.index("api")
        assert order.index("web") < order.index("worker")
        assert sorted(order) == ["api", "web", "worker"]

    def test_leaf_has_no_dependents(self, diamond: DependencyGraph) -> None:
        assert diamond.dependents_stop_order("web") == []
