from pathlib import Path

import pendulum
import pytest

from tests.fakes import FrozenClock


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def frozen_clock(monkeypatch: pytest.MonkeyPatch) -> FrozenClock:
    """Freeze pendulum.now() at 2024-01-01T00:00:00Z until advanced."""
    clock = FrozenClock(pendulum.datetime(2024, 1, 1, tz="UTC"))
    monkeypatch.setattr("pendulum.now", clock)
    return clock
