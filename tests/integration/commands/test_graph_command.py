"""Integration tests for the graph command."""

from collections.abc import Callable
from pathlib import Path

import orjson
import pytest

from fleetwarden.cli import ExitCode


class TestGraphCommand:
    def test_json_output_lists_start_order(
        self,
        fleetwarden_cli: Callable[..., int],
        fleet_config: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = fleetwarden_cli("--config", str(fleet_config), "graph", "--format", "json")

        assert code == ExitCode.SUCCESS
        payload = orjson.loads(capsys.readouterr().out)
        assert payload["start_order"] == ["db", "indexer", "app"]
        assert payload["services"]["indexer"] == {
            "dependencies": ["db"],
            "dependents": ["app"],
        }

    def test_table_output(
        self,
        fleetwarden_cli: Callable[..., int],
        fleet_config: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = fleetwarden_cli("--config", str(fleet_config), "graph")

        assert code == ExitCode.SUCCESS
        out = capsys.readouterr().out
        assert "required by" in out
        assert "indexer" in out

    def test_no_services(
        self, fleetwarden_cli: Callable[..., int], capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = fleetwarden_cli("graph")

        assert code == ExitCode.SUCCESS
        assert "No services configured." in capsys.readouterr().out

    def test_cycle_is_a_validation_error(
        self,
        fleetwarden_cli: Callable[..., int],
        cycle_config: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = fleetwarden_cli("--config", str(cycle_config), "graph")

        assert code == ExitCode.VALIDATION_ERROR
        err = capsys.readouterr().err
        assert "Warning: Failed to load config" in err
        assert "Circular dependency detected" in err

    def test_strict_mode_fails_to_load(
        self,
        fleetwarden_cli: Callable[..., int],
        cycle_config: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("FLEETWARDEN_STRICT_CONFIG", "1")

        code = fleetwarden_cli("--config", str(cycle_config), "graph")

        assert code == ExitCode.LOAD_ERROR

    def test_missing_config_file(
        self, fleetwarden_cli: Callable[..., int], tmp_path: Path
    ) -> None:
        code = fleetwarden_cli("--config", str(tmp_path / "absent.toml"), "graph")

        assert code == ExitCode.LOAD_ERROR

    def test_config_in_working_directory(
        self,
        fleetwarden_cli: Callable[..., int],
        fleet_config: Path,
        isolated_cwd: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        _ = (isolated_cwd / "fleetwarden.toml").write_text(fleet_config.read_text())

        code = fleetwarden_cli("graph", "--format", "json")

        assert code == ExitCode.SUCCESS
        assert orjson.loads(capsys.readouterr().out)["start_order"][0] == "db"
