"""fleetwarden CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ._check import app as check_app
from ._context import CLIContext, OutputFormat
from ._graph import app as graph_app
from ._run import app as run_app
from ._shared import (
    ExitCode,
    FormattableData,
    exit_with_error,
    format_json,
    format_table,
    get_error_console,
    graph_table,
    status_table,
)

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "CLIContext",
    "ExitCode",
    "FormattableData",
    "OutputFormat",
    "check_app",
    "exit_with_error",
    "format_json",
    "format_table",
    "get_error_console",
    "graph_app",
    "graph_table",
    "register_commands",
    "run_app",
    "status_table",
]


def register_commands(app: App) -> None:
    _ = app.command(run_app)
    _ = app.command(check_app)
    _ = app.command(graph_app)
