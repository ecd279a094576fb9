# pyright: reportUnusedCallResult=false
"""Check command - run a single health polling cycle."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

import anyio
import httpx
from cyclopts import App, Parameter

from fleetwarden.supervisor import HealthState

from ._context import CLIContext, OutputFormat
from ._shared import ExitCode, exit_with_error, format_json, status_table

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from fleetwarden.config import Config
    from fleetwarden.supervisor import ServiceStatus

app = App(name="check", help="Run one health check cycle", help_on_error=True)


async def _poll(
    config: Config,
    names: list[str] | None,
    logger: FilteringBoundLogger | None,
) -> list[ServiceStatus]:
    from fleetwarden.daemon import build_fleet  # noqa: PLC0415

    async with httpx.AsyncClient() as client:
        fleet = build_fleet(config, client, logger=logger)
        definitions = [fleet.graph.definition(n) for n in names] if names else None
        return await fleet.monitor.poll_all(definitions)


@app.default
def check(
    *,
    service: Annotated[
        list[str] | None,
        Parameter(name=["--service", "-s"], help="Only check these services."),
    ] = None,
    format: Annotated[  # noqa: A002
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format."),
    ] = OutputFormat.TABLE,
) -> None:
    """Check every configured service once and print its health.

    Exits with UNHEALTHY if any checked service is not healthy.
    """
    ctx = CLIContext.get_current()
    if ctx.config_error is not None:
        exit_with_error(ctx.config_error, ExitCode.VALIDATION_ERROR)

    known = {d.name for d in ctx.config.services}
    unknown = sorted(set(service or ()) - known)
    if unknown:
        exit_with_error(f"Unknown service(s): {', '.join(unknown)}", ExitCode.NOT_FOUND)

    statuses = anyio.run(_poll, ctx.config, service, ctx.logger)

    if format == OutputFormat.JSON:
        print(format_json([s.to_dict() for s in statuses]))  # noqa: T201
    elif statuses:
        print(status_table(statuses))  # noqa: T201
    else:
        print("No services configured.")  # noqa: T201

    if any(s.status != HealthState.HEALTHY for s in statuses):
        raise SystemExit(ExitCode.UNHEALTHY)
