"""Shared test fixtures for fleetwarden tests."""

from collections.abc import Callable, Sequence

import pytest

from fleetwarden.supervisor import (
    DependencyGraph,
    ExponentialBackoff,
    HealthMonitor,
    ServiceController,
    ServiceDefinition,
)
from tests.fakes import FakeProbe, FakeRuntime, service

MonitorFactory = Callable[..., HealthMonitor]
ControllerFactory = Callable[..., ServiceController]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def chain_graph() -> DependencyGraph:
    """db <- indexer <- app."""
    return DependencyGraph(
        [service("db"), service("indexer", "db"), service("app", "indexer")]
    )


@pytest.fixture
def make_monitor(runtime: FakeRuntime, probe: FakeProbe) -> MonitorFactory:
    """Return a factory for monitors with zero retry backoff."""

    def _make(definitions: Sequence[ServiceDefinition], **kwargs: object) -> HealthMonitor:
        options: dict[str, object] = {
            "backoff": ExponentialBackoff(base=0.0, max_delay=0.0),
            "check_timeout": 1.0,
        }
        options.update(kwargs)
        return HealthMonitor(definitions, runtime, probe, **options)  # pyright: ignore[reportArgumentType]

    return _make


@pytest.fixture
def make_controller(runtime: FakeRuntime, make_monitor: MonitorFactory) -> ControllerFactory:
    """Return a factory for controllers with no settle or health-wait delays."""

    def _make(graph: DependencyGraph, **kwargs: object) -> ServiceController:
        monitor = kwargs.pop("monitor", None) or make_monitor(list(graph.definitions.values()))
        options: dict[str, object] = {
            "operation_timeout": 5.0,
            "graceful_stop_timeout": 1.0,
            "health_wait_timeout": 0.5,
            "health_wait_interval": 0.01,
            "settle_delay": 0.0,
        }
        options.update(kwargs)
        return ServiceController(graph, runtime, monitor, **options)  # pyright: ignore[reportArgumentType]

    return _make
