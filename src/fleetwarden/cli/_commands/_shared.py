# pyright: reportExplicitAny=false
"""Helpers shared by the fleetwarden commands.

Exit codes, JSON and Markdown-table rendering for service statuses and the
dependency graph, and error reporting on stderr.
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Never

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from rich.console import Console

    from fleetwarden.supervisor import DependencyGraph, ServiceStatus

# Uses Any to match orjson's signature
FormattableData = dict[str, Any] | list[Any]

__all__ = [
    "ExitCode",
    "FormattableData",
    "exit_with_error",
    "format_json",
    "format_table",
    "get_error_console",
    "graph_table",
    "status_table",
]


class ExitCode(IntEnum):
    """Process exit codes of the fleetwarden commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    UNHEALTHY = 4
    INTERNAL_ERROR = 5


def format_json(data: FormattableData, *, indent: bool = True) -> str:
    """Serialize command output with orjson."""
    import orjson

    return orjson.dumps(data, option=orjson.OPT_INDENT_2 if indent else 0).decode("utf-8")


def format_table(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    """Render rows as a Markdown table.

    Cells are converted with ``str``; None renders as ``-``.
    """
    from pytablewriter import MarkdownTableWriter

    matrix = [["-" if cell is None else str(cell) for cell in row] for row in rows]
    writer = MarkdownTableWriter(headers=list(headers), value_matrix=matrix, margin=1)
    return writer.dumps()


def status_table(statuses: Iterable[ServiceStatus]) -> str:
    """Render health snapshots, one row per service."""
    return format_table(
        ["service", "status", "failures", "last check", "error"],
        (
            (s.name, s.status.value, s.consecutive_failures, s.last_check, s.error or "")
            for s in statuses
        ),
    )


def graph_table(graph: DependencyGraph) -> str:
    """Render the dependency graph in start order."""
    adjacency = graph.to_dict()
    return format_table(
        ["#", "service", "depends on", "required by"],
        (
            (
                position,
                name,
                ", ".join(adjacency[name]["dependencies"]) or None,
                ", ".join(adjacency[name]["dependents"]) or None,
            )
            for position, name in enumerate(graph.topological_order(), start=1)
        ),
    )


def get_error_console() -> Console:
    """Get a Rich console configured for error output to stderr."""
    from rich.console import Console

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print ``Error: <message>`` and exit with ``code``.

    Raises:
        SystemExit: Always.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)
