from collections.abc import Iterator
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from fleetwarden.config import Config
from fleetwarden.daemon import FleetSupervisor, build_fleet, create_control_app
from tests.fakes import FakeProbe, FakeRuntime

CHAIN_FLEET = {
    "monitor": {
        "retry_attempts": 2,
        "attempts_per_cycle": 1,
        "base_retry_delay": 0.0,
        "max_retry_delay": 0.0,
        "check_timeout": 1.0,
    },
    "controller": {
        "operation_timeout": 5.0,
        "graceful_stop_timeout": 1.0,
        "health_wait_timeout": 0.3,
        "health_wait_interval": 0.01,
        "settle_delay": 0.0,
    },
    "services": [
        {"name": "db", "check_protocol": "db", "endpoint": "db:5432", "criticality": "core"},
        {
            "name": "indexer",
            "check_protocol": "rpc",
            "endpoint": "http://indexer:8545",
            "criticality": "prod",
            "dependencies": ["db"],
        },
        {
            "name": "app",
            "display_name": "Web App",
            "check_protocol": "http",
            "endpoint": "http://app:8080",
            "dependencies": ["indexer"],
        },
    ],
}


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def fleet(runtime: FakeRuntime, probe: FakeProbe) -> FleetSupervisor:
    """A db <- indexer <- app fleet backed by the in-memory runtime and probe."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda _r: httpx.Response(200)))
    return build_fleet(Config.from_dict(CHAIN_FLEET), client, runtime=runtime, probe=probe)


@pytest.fixture
def api(fleet: FleetSupervisor) -> Iterator[TestClient]:
    """Control API client sharing one event loop for the whole test."""
    with TestClient(create_control_app(fleet)) as client:
        yield client


def poll(api: TestClient, fleet: FleetSupervisor) -> dict[str, str]:
    """Run one health cycle on the API's event loop and return each state."""
    assert api.portal is not None
    statuses = api.portal.call(fleet.poll_once)
    return {s.name: s.status.value for s in statuses}
