"""Run command - supervise the fleet until interrupted."""

from __future__ import annotations

from functools import partial
from typing import Annotated

import anyio
from cyclopts import App, Parameter
from rich.console import Console

from ._context import CLIContext
from ._shared import ExitCode, exit_with_error

app = App(name="run", help="Supervise the fleet and serve the control API", help_on_error=True)


@app.default
def run(
    *,
    quiet: Annotated[
        bool,
        Parameter(help="Do not print alerts and status updates to the console."),
    ] = False,
) -> None:
    """Poll service health, emit alerts and serve the control API.

    Runs until SIGINT or SIGTERM. The control server listens on the
    configured ``server.host`` and ``server.port`` unless ``server.enabled``
    is false.
    """
    from fleetwarden.daemon import run_daemon  # noqa: PLC0415

    ctx = CLIContext.get_current()
    if ctx.config_error is not None:
        exit_with_error(ctx.config_error, ExitCode.VALIDATION_ERROR)

    config = ctx.config
    if not config.services:
        exit_with_error("No services configured.", ExitCode.VALIDATION_ERROR)

    console = None if quiet else Console()
    if console is not None:
        server = config.server
        console.print(f"Supervising {len(config.services)} service(s)")
        if server.enabled:
            console.print(f"  Control API: http://{server.host}:{server.port}")
        console.print()

    anyio.run(partial(run_daemon, config, logger=ctx.logger, console=console))
