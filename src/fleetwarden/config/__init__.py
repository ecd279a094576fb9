"""Fleetwarden configuration.

This module provides layered configuration (defaults, ``fleetwarden.toml``,
``FLEETWARDEN_*`` environment variables, CLI overrides) with typed,
validated access.

Example:
    >>> from fleetwarden.config import Config
    >>> config = Config.load()
    >>> config.monitor.interval
    5.0
"""

from fleetwarden.exceptions import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
)

from ._defaults import CONFIG_FILENAME, DEFAULT_CONFIG, ENV_PREFIX
from ._load import safe_load_config
from ._loader import (
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    AlertsConfig,
    Config,
    ConfigSource,
    ConfigSourceName,
    ControllerConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MonitorConfig,
    RuntimeConfig,
    ServerConfig,
    ServiceConfig,
    SourcesConfig,
    ThresholdConfig,
    ThresholdsConfig,
)
from ._validation import ConfigSchema, ValidationIssue, validate_config

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "AlertsConfig",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigSchema",
    "ConfigSource",
    "ConfigSourceName",
    "ConfigValidationError",
    "ControllerConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "MonitorConfig",
    "RuntimeConfig",
    "ServerConfig",
    "ServiceConfig",
    "SourcesConfig",
    "ThresholdConfig",
    "ThresholdsConfig",
    "ValidationIssue",
    "deep_merge",
    "parse_env_vars",
    "parse_string_value",
    "read_toml_file",
    "safe_load_config",
    "set_nested_key",
]
