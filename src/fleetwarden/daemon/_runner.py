"""Async runner for the daemon.

This module provides the async entry point that runs the fleet supervisor
and its control server together using anyio.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import anyio
import httpx
import uvicorn

from fleetwarden.alerts import ConsoleSink

from ._app import create_control_app
from ._fleet import build_fleet

if TYPE_CHECKING:
    from rich.console import Console
    from structlog.typing import FilteringBoundLogger

    from fleetwarden.config import Config


async def run_daemon(
    config: Config,
    *,
    logger: FilteringBoundLogger | None = None,
    console: Console | None = None,
) -> None:
    """Run the fleet supervisor and, if enabled, its control server.

    Blocks until SIGINT or SIGTERM.

    Args:
        config: Loaded configuration.
        logger: Structured logger shared by all components.
        console: Console to render broadcast messages to. Nothing is
            rendered if None.
    """
    async with httpx.AsyncClient() as client:
        fleet = build_fleet(config, client, logger=logger)

        control_server: uvicorn.Server | None = None
        if config.server.enabled:
            uvicorn_config = uvicorn.Config(
                app=create_control_app(fleet),
                host=config.server.host,
                port=config.server.port,
                log_level="warning",
                access_log=False,
            )
            control_server = uvicorn.Server(uvicorn_config)

        async with anyio.create_task_group() as tg:
            if control_server is not None:
                # Start the control server first so it's ready before polling
                tg.start_soon(control_server.serve)
                await anyio.sleep(0.1)

            if console is not None:
                tg.start_soon(ConsoleSink(console).consume, fleet.hub.subscribe())

            # Blocks until shutdown
            await fleet.run()

            if control_server is not None:
                control_server.should_exit = True
