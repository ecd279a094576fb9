"""The command-line interface for fleetwarden."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from fleetwarden.config import LogFormat, LogLevel, safe_load_config
from fleetwarden.utils import create_logger

from ._commands import CLIContext, register_commands

_HELP = "Supervise a fleet of containerized services."


def _build_overrides(
    log_level: LogLevel | None,
    log_format: LogFormat | None,
) -> dict[str, object] | None:
    logging: dict[str, object] = {}
    if log_level is not None:
        logging["level"] = log_level.value
    if log_format is not None:
        logging["format"] = log_format.value
    return {"logging": logging} if logging else None


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Create the fleetwarden CLI application.

    Args:
        console: Console for normal output.
        error_console: Console for error output.
        exit_on_error: Whether parse errors exit the process.

    Returns:
        The configured cyclopts App.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="fleetwarden",
        help=_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
        log_level: Annotated[
            LogLevel | None, Parameter(name="--log-level", help="Override logging.level")
        ] = None,
        log_format: Annotated[
            LogFormat | None, Parameter(name="--log-format", help="Override logging.format")
        ] = None,
    ) -> None:
        """Launch the fleetwarden CLI with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            config: Explicit path to config file.
            log_level: Log level override.
            log_format: Log format override.
        """
        loaded_config, config_error = safe_load_config(
            config_path=config,
            cli_overrides=_build_overrides(log_level, log_format),
        )

        logging_config = loaded_config.logging
        cli_logger = create_logger(
            level=logging_config.level.value,
            log_format=logging_config.format.value,
            log_file=logging_config.file,
        )

        ctx = CLIContext(
            config=loaded_config,
            config_path=config,
            config_error=config_error,
            logger=cli_logger,
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


def main() -> None:
    """Default entrypoint for the `fleetwarden` CLI."""
    app = create_app()
    app.meta()
