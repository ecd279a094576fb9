"""Configuration models."""

from ._common import ConfigSource, ConfigSourceName, LogFormat, LogLevel
from ._config import Config
from ._sections import (
    AlertsConfig,
    ControllerConfig,
    LoggingConfig,
    MonitorConfig,
    RuntimeConfig,
    ServerConfig,
    SourcesConfig,
    ThresholdConfig,
    ThresholdsConfig,
)
from ._services import ServiceConfig

__all__ = [
    "AlertsConfig",
    "Config",
    "ConfigSource",
    "ConfigSourceName",
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
]
