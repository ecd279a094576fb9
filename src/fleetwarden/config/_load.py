"""Error-tolerant configuration loading for the command line."""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from fleetwarden.exceptions import ConfigError

from ._models import Config

if TYPE_CHECKING:
    from pathlib import Path


def _fail_or_warn(error_msg: str, *, strict: bool) -> tuple[Config, str]:
    if strict:
        print(f"Error: {error_msg}", file=sys.stderr)  # noqa: T201
        sys.exit(1)
    print(f"Warning: Failed to load config: {error_msg}", file=sys.stderr)  # noqa: T201
    return Config.from_dict({}), error_msg


def safe_load_config(
    *,
    config_path: Path | None = None,
    cli_overrides: dict[str, object] | None = None,
) -> tuple[Config, str | None]:
    """Load configuration with error handling.

    Behaviour on failure depends on FLEETWARDEN_STRICT_CONFIG:
    - If unset or "0": warn to stderr and return the default config
    - If "1": fail fast with sys.exit(1)

    An explicit ``config_path`` that does not exist always exits.

    Args:
        config_path: Explicit path to config file (--config flag).
        cli_overrides: Highest-precedence overrides from the command line.

    Returns:
        Tuple of (Config, error_message). On success, error_message is None.
    """
    strict_mode = os.environ.get("FLEETWARDEN_STRICT_CONFIG", "0") == "1"

    if config_path is not None and not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    try:
        config = Config.load(config_path=config_path, cli_overrides=cli_overrides)
    except ConfigError as e:
        return _fail_or_warn(str(e), strict=strict_mode)
    except OSError as e:
        return _fail_or_warn(f"Failed to load config: {e}", strict=strict_mode)
    return config, None
