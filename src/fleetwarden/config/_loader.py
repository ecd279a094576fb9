# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""TOML configuration file loading, merging and environment parsing."""

from __future__ import annotations

import json
import os
import tomllib
from typing import TYPE_CHECKING, Any

from fleetwarden.exceptions import ConfigLoadError

from ._defaults import ENV_PREFIX

if TYPE_CHECKING:
    from pathlib import Path

# Environment variables read directly by other layers, never config keys
_RESERVED_ENV_KEYS = frozenset({"DEBUG", "LOG_LEVEL", "STRICT_CONFIG"})


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a TOML file.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed TOML content as dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file cannot be parsed.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file {path}: {e}"
        line: int | None = getattr(e, "lineno", None)
        column: int | None = getattr(e, "colno", None)
        raise ConfigLoadError(msg, path=path, line=line, column=column) from e


def copy_value(value: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Return a deep copy of a configuration value (dicts and lists only)."""
    if isinstance(value, dict):
        return {k: copy_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [copy_value(item) for item in value]
    return value


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Merge ``override`` into ``base`` without modifying either.

    Merge rules:
        - Dictionaries are merged recursively
        - Arrays (including ``services``) are replaced entirely
        - Scalars are replaced with the override value
        - Keys missing from ``override`` keep the base value
    """
    result: dict[str, Any] = {k: copy_value(v) for k, v in base.items()}  # pyright: ignore[reportExplicitAny]
    for key, override_val in override.items():
        base_val = result.get(key)
        if isinstance(base_val, dict) and isinstance(override_val, dict):
            result[key] = deep_merge(base_val, override_val)
        else:
            result[key] = copy_value(override_val)
    return result


def set_nested_key(
    d: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Set a value at a dotted key path, creating intermediate tables.

    Example:
        >>> d = {}
        >>> set_nested_key(d, "monitor.interval", 10)
        >>> d
        {'monitor': {'interval': 10}}
    """
    *parents, leaf = key_path.split(".")
    current = d
    for part in parents:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[leaf] = value


def parse_string_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Parse a string value with type inference.

    Order of inference: boolean (true/false), integer, float (must contain a
    decimal point), JSON array or object, then plain string.

    Examples:
        >>> parse_string_value("true")
        True
        >>> parse_string_value("6380")
        6380
        >>> parse_string_value("2.5")
        2.5
        >>> parse_string_value('["db", "indexer"]')
        ['db', 'indexer']
    """
    lower_value = value.lower()
    if lower_value in ("true", "false"):
        return lower_value == "true"

    try:
        return int(value)
    except ValueError:
        pass

    if "." in value:
        try:
            return float(value)
        except ValueError:
            pass

    if (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    ):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    return value


def parse_env_vars(prefix: str = ENV_PREFIX) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse prefixed environment variables into a nested config dictionary.

    ``FLEETWARDEN_MONITOR__INTERVAL=10`` becomes ``{"monitor": {"interval": 10}}``.
    ``FLEETWARDEN_DEBUG``, ``FLEETWARDEN_LOG_LEVEL`` and
    ``FLEETWARDEN_STRICT_CONFIG`` are skipped.

    Args:
        prefix: Environment variable prefix.

    Returns:
        Dictionary of parsed values.
    """
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        config_key = key[len(prefix) :]
        if not config_key or config_key in _RESERVED_ENV_KEYS:
            continue
        set_nested_key(result, config_key.replace("__", ".").lower(), parse_string_value(value))
    return result
