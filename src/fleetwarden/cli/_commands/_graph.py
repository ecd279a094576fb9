# pyright: reportUnusedCallResult=false
"""Graph command - validate and print the service dependency graph."""

from __future__ import annotations

from typing import Annotated

from cyclopts import App, Parameter

from ._context import CLIContext, OutputFormat
from ._shared import ExitCode, exit_with_error, format_json, graph_table

app = App(name="graph", help="Validate the service dependency graph", help_on_error=True)


@app.default
def graph(
    *,
    format: Annotated[  # noqa: A002
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format."),
    ] = OutputFormat.TABLE,
) -> None:
    """Validate the dependency graph and print services in start order.

    Exits with VALIDATION_ERROR if the configuration failed to load, which
    includes unknown dependencies and dependency cycles.
    """
    ctx = CLIContext.get_current()
    if ctx.config_error is not None:
        exit_with_error(ctx.config_error, ExitCode.VALIDATION_ERROR)

    dependency_graph = ctx.config.build_graph()

    if format == OutputFormat.JSON:
        payload = {
            "start_order": dependency_graph.topological_order(),
            "services": dependency_graph.to_dict(),
        }
        print(format_json(payload))  # noqa: T201
    elif len(dependency_graph) == 0:
        print("No services configured.")  # noqa: T201
    else:
        print(graph_table(dependency_graph))  # noqa: T201
