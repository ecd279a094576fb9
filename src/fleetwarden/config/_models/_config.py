# pyright: reportExplicitAny=false, reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Configuration container with typed access.

This module provides the main Config class that serves as the primary
interface for accessing fleetwarden configuration values.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, overload

from pydantic import BaseModel, ConfigDict, PrivateAttr

from fleetwarden.config._defaults import CONFIG_FILENAME, DEFAULT_CONFIG
from fleetwarden.config._loader import copy_value, deep_merge, parse_env_vars, read_toml_file

from ._common import ConfigSource, ConfigSourceName

if TYPE_CHECKING:
    from typing import Self

    from fleetwarden.config._validation import ConfigSchema
    from fleetwarden.supervisor import DependencyGraph, ServiceDefinition

    from ._sections import (
        AlertsConfig,
        ControllerConfig,
        LoggingConfig,
        MonitorConfig,
        RuntimeConfig,
        ServerConfig,
        SourcesConfig,
    )


def _validated(data: dict[str, Any], *, source: str | None = None) -> ConfigSchema:
    # Deferred import to avoid circular dependency
    from fleetwarden.config._validation import (  # noqa: PLC0415
        raise_if_validation_errors,
        validate_config,
    )

    schema, issues = validate_config(data)
    raise_if_validation_errors(issues, source=source)
    if schema is None:  # pragma: no cover
        msg = "Configuration validation produced no schema"
        raise AssertionError(msg)
    return schema


class Config(BaseModel):
    """Configuration container with typed access.

    Instances are immutable. Use the factory methods from_dict(),
    from_file() and load() rather than the constructor.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    _data: dict[str, Any] = PrivateAttr(default_factory=dict)
    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())
    _schema: Any = PrivateAttr(default=None)

    def __init__(
        self,
        *,
        _data: dict[str, Any],
        _schema: ConfigSchema,
        _sources: tuple[ConfigSource, ...] = (),
    ) -> None:
        """Initialize configuration container.

        Args:
            _data: The complete merged configuration dictionary.
            _schema: The validated schema for ``_data``.
            _sources: Sources that contributed to this configuration.
        """
        super().__init__()
        self._data = _data
        self._schema = _schema
        self._sources = _sources

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create configuration from a dictionary merged over the defaults.

        Raises:
            ConfigValidationError: If validation fails.
        """
        merged = deep_merge(DEFAULT_CONFIG, data)
        return cls(_data=merged, _schema=_validated(merged))

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Load configuration from a single TOML file merged over the defaults.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If validation fails.
        """
        data = read_toml_file(path)
        merged = deep_merge(DEFAULT_CONFIG, data)
        source = ConfigSource(name=ConfigSourceName.FILE, path=path, exists=True, values=data)
        return cls(_data=merged, _schema=_validated(merged, source=str(path)), _sources=(source,))

    @classmethod
    def load(
        cls,
        *,
        config_path: Path | None = None,
        cwd: Path | None = None,
        include_env: bool = True,
        cli_overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Load merged configuration from all sources.

        Sources merge lowest to highest precedence: defaults, the config file
        (``config_path`` or ``./fleetwarden.toml`` if present), environment
        variables, then CLI overrides.

        Args:
            config_path: Explicit config file. Must exist when given.
            cwd: Directory searched for ``fleetwarden.toml``. Defaults to the
                current directory.
            include_env: Include ``FLEETWARDEN_*`` environment variables.
            cli_overrides: Highest-precedence values from the command line.

        Returns:
            Merged configuration object.

        Raises:
            FileNotFoundError: If ``config_path`` does not exist.
            ConfigLoadError: If the config file cannot be parsed.
            ConfigValidationError: If the merged config fails validation.
        """
        file_path = config_path or (cwd or Path.cwd()) / CONFIG_FILENAME
        file_exists = file_path.is_file()
        if config_path is not None and not file_exists:
            msg = f"Config file not found: {config_path}"
            raise FileNotFoundError(msg)

        env_values = parse_env_vars() if include_env else {}
        sources = [
            ConfigSource(ConfigSourceName.DEFAULT, None, True, DEFAULT_CONFIG),
            ConfigSource(
                ConfigSourceName.FILE,
                file_path,
                file_exists,
                read_toml_file(file_path) if file_exists else {},
            ),
            ConfigSource(ConfigSourceName.ENV, None, bool(env_values), env_values),
            ConfigSource(ConfigSourceName.CLI, None, bool(cli_overrides), cli_overrides or {}),
        ]

        merged: dict[str, Any] = {}
        for source in sources:
            if source.values:
                merged = deep_merge(merged, source.values)

        return cls(
            _data=merged,
            _schema=_validated(merged),
            _sources=tuple(reversed(sources)),
        )

    @property
    def sources(self) -> list[ConfigSource]:
        """Return contributing sources, highest precedence first."""
        return list(self._sources)

    @property
    def logging(self) -> LoggingConfig:
        """Return the logging configuration section."""
        return self._schema.logging

    @property
    def monitor(self) -> MonitorConfig:
        """Return the health monitor configuration section."""
        return self._schema.monitor

    @property
    def controller(self) -> ControllerConfig:
        """Return the service controller configuration section."""
        return self._schema.controller

    @property
    def alerts(self) -> AlertsConfig:
        """Return the alert manager configuration section."""
        return self._schema.alerts

    @property
    def sources_config(self) -> SourcesConfig:
        """Return the metric and sync source configuration section."""
        return self._schema.sources

    @property
    def server(self) -> ServerConfig:
        """Return the control server configuration section."""
        return self._schema.server

    @property
    def runtime(self) -> RuntimeConfig:
        """Return the container runtime configuration section."""
        return self._schema.runtime

    @property
    def services(self) -> list[ServiceDefinition]:
        """Return service definitions in configuration order."""
        return [s.to_definition() for s in self._schema.services]

    def build_graph(self) -> DependencyGraph:
        """Build the dependency graph for the configured services."""
        from fleetwarden.supervisor import DependencyGraph  # noqa: PLC0415

        return DependencyGraph(self.services)

    @overload
    def get(self, key: str) -> Any: ...

    @overload
    def get[T](self, key: str, default: T) -> Any | T: ...

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key.

        Examples:
            >>> config.get("monitor.interval")
            5.0
            >>> config.get("nonexistent", "fallback")
            'fallback'
        """
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def to_dict(self) -> dict[str, Any]:
        """Return a deep copy of the merged configuration."""
        return copy_value(self._data)
