from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from fleetwarden.cli import create_app

FLEET_TOML = """\
[logging]
level = "error"

[monitor]
base_retry_delay = 0.0
max_retry_delay = 0.0
check_timeout = 1.0

[runtime]
docker_binary = "/nonexistent/bin/docker"

[[services]]
name = "db"
check_protocol = "db"
endpoint = "db:5432"
criticality = "core"

[[services]]
name = "indexer"
check_protocol = "rpc"
endpoint = "http://indexer:8545"
dependencies = ["db"]

[[services]]
name = "app"
check_protocol = "http"
endpoint = "http://app:8080"
dependencies = ["indexer"]
"""

CYCLE_TOML = """\
[[services]]
name = "a"
check_protocol = "tcp"
endpoint = "a:1"
dependencies = ["b"]

[[services]]
name = "b"
check_protocol = "tcp"
endpoint = "b:1"
dependencies = ["a"]
"""


@pytest.fixture
def console() -> Console:
    return Console(
        width=100,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command from an empty directory without FLEETWARDEN_* variables."""
    monkeypatch.chdir(tmp_path)
    for name in ("FLEETWARDEN_STRICT_CONFIG", "FLEETWARDEN_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def fleet_config(tmp_path: Path) -> Path:
    path = tmp_path / "fleet.toml"
    _ = path.write_text(FLEET_TOML)
    return path


@pytest.fixture
def cycle_config(tmp_path: Path) -> Path:
    path = tmp_path / "cycle.toml"
    _ = path.write_text(CYCLE_TOML)
    return path


@pytest.fixture
def fleetwarden_cli(console: Console) -> Callable[..., int]:
    """Run the CLI through its global options and return the exit code.

    A command that returns normally counts as exit code 0.
    """
    app = create_app(console=console, error_console=console, exit_on_error=False)

    def _run(*args: str) -> int:
        try:
            app.meta(list(args))
        except SystemExit as e:
            if e.code is None:
                return 0
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run
