import pytest
from hypothesis import given, strategies as st

from fleetwarden.exceptions import DependencyCycleError
from fleetwarden.supervisor import DependencyGraph, ServiceDefinition
from tests.fakes import service


@st.composite
def fleets(draw: st.DrawFn, max_size: int = 8) -> list[ServiceDefinition]:
    """Draw an acyclic fleet in a shuffled definition order.

    Service ``s<i>`` may only depend on services with a lower index.
    """
    size = draw(st.integers(min_value=1, max_value=max_size))
    names = [f"s{i}" for i in range(size)]
    definitions = [
        service(name, *draw(st.sets(st.sampled_from(names[:i])) if i else st.just(set())))
        for i, name in enumerate(names)
    ]
    return draw(st.permutations(definitions))


@given(definitions=fleets())
def test_topological_order_puts_dependencies_first(definitions: list[ServiceDefinition]) -> None:
    graph = DependencyGraph(definitions)

    order = graph.topological_order()

    assert sorted(order) == sorted(d.name for d in definitions)
    position = {name: i for i, name in enumerate(order)}
    for definition in definitions:
        for dep in definition.dependencies:
            assert position[dep] < position[definition.name]


@given(definitions=fleets(), data=st.data())
def test_subset_order_is_consistent(
    definitions: list[ServiceDefinition], data: st.DataObject
) -> None:
    graph = DependencyGraph(definitions)
    subset = data.draw(st.sets(st.sampled_from([d.name for d in definitions])))

    order = graph.topological_order(subset)

    assert set(order) == subset
    position = {name: i for i, name in enumerate(order)}
    for name in subset:
        for dep in graph.dependencies(name) & subset:
            assert position[dep] < position[name]


@given(definitions=fleets(), data=st.data())
def test_stop_order_covers_descendants_deepest_first(
    definitions: list[ServiceDefinition], data: st.DataObject
) -> None:
    graph = DependencyGraph(definitions)
    target = data.draw(st.sampled_from([d.name for d in definitions]))

    order = graph.dependents_stop_order(target)

    assert len(order) == len(set(order))
    assert set(order) == graph.descendants(target)
    position = {name: i for i, name in enumerate(order)}
    for name in order:
        for dependent in graph.dependents(name):
            assert position[dependent] < position[name]


@given(definitions=fleets())
def test_ancestors_mirror_descendants(definitions: list[ServiceDefinition]) -> None:
    graph = DependencyGraph(definitions)

    for name in graph:
        for ancestor in graph.ancestors(name):
            assert name in graph.descendants(ancestor)


@given(definitions=fleets(max_size=6), data=st.data())
def test_back_edge_is_rejected(definitions: list[ServiceDefinition], data: st.DataObject) -> None:
    graph = DependencyGraph(definitions)
    candidates = [(name, d) for name in graph for d in graph.descendants(name)]
    if not candidates:
        return
    upstream, downstream = data.draw(st.sampled_from(candidates))

    rewired = [
        service(d.name, *d.dependencies, downstream) if d.name == upstream else d
        for d in definitions
    ]

    with pytest.raises(DependencyCycleError):
        _ = DependencyGraph(rewired)
