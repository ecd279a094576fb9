"""Configuration section models.

Each section is a frozen Pydantic model that ignores unknown keys. Field
defaults mirror DEFAULT_CONFIG.
"""

from __future__ import annotations

from typing import ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fleetwarden.alerts import ResourceKind, ThresholdLevel
from fleetwarden.supervisor import ExponentialBackoff

from ._common import LogFormat, LogLevel


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""


class MonitorConfig(BaseModel):
    """Health monitor configuration section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    interval: float = Field(default=5.0, gt=0, description="Seconds between polling cycles.")
    retry_attempts: int = Field(
        default=3, ge=1, description="Consecutive failures before a service is unhealthy."
    )
    attempts_per_cycle: int = Field(default=3, ge=1, description="Check attempts per cycle.")
    base_retry_delay: float = Field(default=1.0, ge=0, description="First retry delay.")
    max_retry_delay: float = Field(default=30.0, ge=0, description="Retry delay cap.")
    check_timeout: float = Field(default=5.0, gt=0, description="Seconds per check attempt.")

    def backoff(self) -> ExponentialBackoff:
        """Build the retry backoff described by this section."""
        return ExponentialBackoff(base=self.base_retry_delay, max_delay=self.max_retry_delay)


class ControllerConfig(BaseModel):
    """Service controller configuration section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    operation_timeout: float = Field(default=60.0, gt=0)
    graceful_stop_timeout: float = Field(default=30.0, ge=0)
    health_wait_timeout: float = Field(default=30.0, ge=0)
    health_wait_interval: float = Field(default=2.0, gt=0)
    settle_delay: float = Field(default=2.0, ge=0)
    operation_ttl: float = Field(default=86400.0, gt=0)
    cleanup_interval: float = Field(default=3600.0, gt=0)


class ThresholdConfig(BaseModel):
    """Warning and critical levels for one resource."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    warning: float = Field(ge=0)
    critical: float = Field(ge=0)
    margin: float = Field(default=5.0, ge=0)

    @model_validator(mode="after")
    def _warning_below_critical(self) -> Self:
        if self.warning > self.critical:
            msg = f"warning ({self.warning:g}) must not exceed critical ({self.critical:g})"
            raise ValueError(msg)
        return self


class ThresholdsConfig(BaseModel):
    """Resource threshold table."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    cpu: ThresholdConfig = ThresholdConfig(warning=80.0, critical=90.0, margin=5.0)
    memory: ThresholdConfig = ThresholdConfig(warning=85.0, critical=90.0, margin=5.0)
    disk: ThresholdConfig = ThresholdConfig(warning=80.0, critical=90.0, margin=5.0)
    load: ThresholdConfig = ThresholdConfig(warning=8.0, critical=10.0, margin=1.0)

    def to_table(self) -> dict[ResourceKind, ThresholdLevel]:
        """Convert to the threshold table used by the alert manager."""
        return {
            kind: ThresholdLevel(**getattr(self, kind.value).model_dump())
            for kind in ResourceKind
        }


class AlertsConfig(BaseModel):
    """Alert manager configuration section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    history_size: int = Field(default=1000, ge=1)
    listener_buffer: int = Field(default=100, ge=0)
    emit_state_changes: bool = False
    sync_source: str = "node"
    thresholds: ThresholdsConfig = ThresholdsConfig()


class SourcesConfig(BaseModel):
    """Resource metric and sync-status source configuration section.

    Attributes:
        metrics_interval: Seconds between host metric samples.
        disk_path: Filesystem path whose usage is reported as disk.
        sync_url: URL returning the node's sync status. Empty disables it.
        sync_interval: Seconds between sync status polls.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    metrics_interval: float = Field(default=5.0, gt=0)
    disk_path: str = "/"
    sync_url: str = ""
    sync_interval: float = Field(default=10.0, gt=0)


class ServerConfig(BaseModel):
    """Control API server configuration section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    host: str = "127.0.0.1"
    port: int = Field(default=6380, ge=1, le=65535)
    enabled: bool = True


class RuntimeConfig(BaseModel):
    """Container runtime configuration section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    docker_binary: str = "docker"
