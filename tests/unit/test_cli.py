"""Unit tests for CLI wiring and shared command helpers."""

from io import StringIO

import orjson
import pytest
from rich.console import Console

from fleetwarden.cli import CLIContext, ExitCode, create_app
from fleetwarden.cli._commands import (
    exit_with_error,
    format_json,
    format_table,
    graph_table,
    status_table,
)
from fleetwarden.config import Config
from fleetwarden.supervisor import DependencyGraph, HealthState, ServiceStatus
from tests.fakes import service


class TestCreateApp:
    def test_registers_commands(self) -> None:
        app = create_app()

        for name in ("run", "check", "graph"):
            assert app[name] is not None


class TestExitCode:
    def test_values(self) -> None:
        assert ExitCode.SUCCESS == 0
        assert ExitCode.LOAD_ERROR == 1
        assert ExitCode.VALIDATION_ERROR == 2
        assert ExitCode.NOT_FOUND == 3
        assert ExitCode.UNHEALTHY == 4
        assert ExitCode.INTERNAL_ERROR == 5

    def test_exit_with_error(self) -> None:
        output = StringIO()
        console = Console(file=output, no_color=True, width=120)

        with pytest.raises(SystemExit) as exc_info:
            exit_with_error("no services", ExitCode.NOT_FOUND, console=console)

        assert exc_info.value.code == ExitCode.NOT_FOUND
        assert "Error: no services" in output.getvalue()


class TestFormatters:
    def test_format_json_indents(self) -> None:
        result = format_json({"start_order": ["db", "app"]})

        assert "\n" in result
        assert orjson.loads(result) == {"start_order": ["db", "app"]}

    def test_format_json_compact(self) -> None:
        assert format_json([1, 2], indent=False) == "[1,2]"

    def test_format_table(self) -> None:
        result = format_table(["service", "status"], [["db", "healthy"], ["app", "stopped"]])

        lines = result.strip().splitlines()
        assert "service" in lines[0]
        assert "status" in lines[0]
        assert "db" in lines[2]
        assert "stopped" in lines[3]

    def test_format_table_renders_none_as_dash(self) -> None:
        result = format_table(["service", "last check"], [["db", None]])

        assert "| db " in result
        assert "| -" in result

    def test_status_table(self) -> None:
        statuses = [
            ServiceStatus(
                name="db", status=HealthState.HEALTHY, last_check="2024-01-01T00:00:00Z"
            ),
            ServiceStatus(
                name="app", status=HealthState.UNHEALTHY, consecutive_failures=3, error="boom"
            ),
        ]

        lines = status_table(statuses).strip().splitlines()

        assert "failures" in lines[0]
        assert "2024-01-01" in lines[2]
        assert "unhealthy" in lines[3]
        assert "boom" in lines[3]

    def test_graph_table_in_start_order(self) -> None:
        graph = DependencyGraph([service("app", "db"), service("db")])

        lines = graph_table(graph).strip().splitlines()

        assert "db" in lines[2]
        assert "app" in lines[2]
        assert lines[3].split("|")[2].strip() == "app"
        assert lines[3].split("|")[3].strip() == "db"


class TestCLIContext:
    def test_default_context(self) -> None:
        CLIContext.reset()

        ctx = CLIContext.get_current()

        assert ctx.config_error is None
        assert ctx.config.services == []

    def test_set_and_reset(self) -> None:
        ctx = CLIContext(config=Config.from_dict({}), config_error="broken")
        CLIContext.set_current(ctx)
        try:
            assert CLIContext.get_current() is ctx
        finally:
            CLIContext.reset()

        assert CLIContext.get_current() is not ctx
