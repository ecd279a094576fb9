"""Service dependency graph.

Builds a directed graph over service definitions where every edge points
from a dependency to its dependent. The graph is validated once at
construction (unknown dependencies and cycles are rejected) and is
immutable afterwards.
"""

from __future__ import annotations

from collections import deque
from types import MappingProxyType
from typing import TYPE_CHECKING, final

import rustworkx as rx

from fleetwarden.exceptions import DependencyCycleError, ServiceNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from ._models import ServiceDefinition


@final
class DependencyGraph:
    """Immutable dependency graph over a fleet of service definitions.

    Attributes:
        definitions: Read-only mapping of service name to definition,
            in definition order.
    """

    __slots__ = ("_graph", "_indices", "definitions")

    def __init__(self, definitions: Iterable[ServiceDefinition]) -> None:
        """Build and validate the graph.

        Args:
            definitions: Service definitions. Names must be unique.

        Raises:
            ValueError: If two definitions share a name.
            ServiceNotFoundError: If a dependency names an undefined service.
            DependencyCycleError: If the dependencies contain a cycle.
        """
        ordered: dict[str, ServiceDefinition] = {}
        for definition in definitions:
            if definition.name in ordered:
                msg = f"Duplicate service definition '{definition.name}'"
                raise ValueError(msg)
            ordered[definition.name] = definition

        self.definitions: Mapping[str, ServiceDefinition] = MappingProxyType(ordered)
        self._graph: rx.PyDiGraph[str, None] = rx.PyDiGraph(check_cycle=False)
        self._indices: dict[str, int] = {
            name: self._graph.add_node(name) for name in ordered
        }

        for definition in ordered.values():
            if definition.name in definition.dependencies:
                msg = f"Circular dependency detected: {definition.name} -> {definition.name}"
                raise DependencyCycleError(msg, cycle=[definition.name])
            for dep in sorted(definition.dependencies):
                if dep not in self._indices:
                    msg = f"Service '{definition.name}' depends on unknown service '{dep}'"
                    raise ServiceNotFoundError(msg, service_name=dep)
                _ = self._graph.add_edge(
                    self._indices[dep], self._indices[definition.name], None
                )

        if not rx.is_directed_acyclic_graph(self._graph):
            cycle = self._find_cycle()
            msg = f"Circular dependency detected: {' -> '.join([*cycle, cycle[0]])}"
            raise DependencyCycleError(msg, cycle=cycle)

    def _find_cycle(self) -> list[str]:
        # digraph_find_cycle only searches from its source node
        for index in self._indices.values():
            cycle_edges = rx.digraph_find_cycle(self._graph, index)
            if len(cycle_edges) > 0:
                return [self._graph[source] for source, _target in cycle_edges]
        return list(self._indices)

    def __contains__(self, name: object) -> bool:
        return name in self._indices

    def __len__(self) -> int:
        return len(self._indices)

    def __iter__(self) -> Iterator[str]:
        return iter(self.definitions)

    @property
    def names(self) -> tuple[str, ...]:
        """Return service names in definition order."""
        return tuple(self.definitions)

    def _index(self, name: str) -> int:
        index = self._indices.get(name)
        if index is None:
            msg = f"Service '{name}' not found"
            raise ServiceNotFoundError(msg, service_name=name)
        return index

    def definition(self, name: str) -> ServiceDefinition:
        """Get a service definition by name.

        Raises:
            ServiceNotFoundError: If no service exists with that name.
        """
        _ = self._index(name)
        return self.definitions[name]

    def dependencies(self, name: str) -> frozenset[str]:
        """Return the direct dependencies of a service."""
        index = self._index(name)
        return frozenset(self._graph[i] for i in self._graph.predecessor_indices(index))

    def dependents(self, name: str) -> frozenset[str]:
        """Return the services that depend directly on a service."""
        index = self._index(name)
        return frozenset(self._graph[i] for i in self._graph.successor_indices(index))

    def ancestors(self, name: str) -> frozenset[str]:
        """Return every service a service depends on, transitively."""
        index = self._index(name)
        return frozenset(self._graph[i] for i in rx.ancestors(self._graph, index))

    def descendants(self, name: str) -> frozenset[str]:
        """Return every service that depends on a service, transitively."""
        index = self._index(name)
        return frozenset(self._graph[i] for i in rx.descendants(self._graph, index))

    def dependents_stop_order(self, name: str) -> list[str]:
        """Order the dependents closure of a service for stopping.

        Walks the dependents depth-first and emits each service after all
        of its own dependents, so the deepest dependents come first. The
        service itself is not included.

        Args:
            name: The service whose dependents should be stopped.

        Returns:
            Dependent service names, safe to stop in list order.
        """
        _ = self._index(name)
        visited: set[str] = {name}
        order: list[str] = []

        def visit(service: str) -> None:
            for dependent in self._sorted(self.dependents(service)):
                if dependent in visited:
                    continue
                visited.add(dependent)
                visit(dependent)
                order.append(dependent)

        visit(name)
        return order

    def topological_order(self, names: Iterable[str] | None = None) -> list[str]:
        """Return services ordered so dependencies precede their dependents.

        Uses Kahn's algorithm restricted to ``names``: nodes whose remaining
        in-degree (dependencies within the subset) is zero are removed
        repeatedly. Ties resolve in definition order.

        Args:
            names: Subset of services to order. Orders the full graph if None.

        Returns:
            Service names in dependency order.

        Raises:
            ServiceNotFoundError: If a name is not part of the graph.
            DependencyCycleError: If the subset cannot be ordered.
        """
        subset = set(self.definitions) if names is None else set(names)
        for name in subset:
            _ = self._index(name)

        in_degree = {
            name: len(self.dependencies(name) & subset) for name in self._sorted(subset)
        }
        ready = deque(name for name, degree in in_degree.items() if degree == 0)
        order: list[str] = []

        while ready:
            service = ready.popleft()
            order.append(service)
            for dependent in self._sorted(self.dependents(service) & subset):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    ready.append(dependent)

        if len(order) < len(subset):
            remaining = [name for name in self._sorted(subset) if name not in order]
            msg = f"Circular dependency detected in: {', '.join(remaining)}"
            raise DependencyCycleError(msg, cycle=remaining)

        return order

    def _sorted(self, names: Iterable[str]) -> list[str]:
        """Sort names by definition order."""
        return sorted(names, key=self._indices.__getitem__)

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        """Return the adjacency in both directions."""
        return {
            name: {
                "dependencies": self._sorted(self.dependencies(name)),
                "dependents": self._sorted(self.dependents(name)),
            }
            for name in self.definitions
        }
