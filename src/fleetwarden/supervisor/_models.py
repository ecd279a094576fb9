"""Data models for the supervisor system.

This module defines the core data types for fleet management:
- CheckProtocol: How a service's health is probed
- CriticalityTag: Static label used to derive alert priority
- HealthState: Observed health states of a service
- ServiceDefinition: Immutable service definition
- ServiceStatus: Mutable per-service health snapshot
- OperationType / OperationStatus / OperationRecord: Control audit trail
- ServiceResult / ControlResult: Outcomes returned by control calls
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class CheckProtocol(StrEnum):
    """Health check protocols.

    - RPC: JSON ping posted to the service endpoint
    - HTTP: GET of the service health path
    - TCP: Raw connect to the endpoint's host and port
    - DB: Database readiness probe run inside the container
    """

    RPC = "rpc"
    HTTP = "http"
    TCP = "tcp"
    DB = "db"


class CriticalityTag(StrEnum):
    """Criticality labels for services, most critical first."""

    CORE = "core"
    PROD = "prod"
    EXPLORER = "explorer"
    OTHER = "other"


class HealthState(StrEnum):
    """Observed service health states.

    - STARTING: Container is running but has not passed enough checks yet
    - HEALTHY: Container is running and its health check passes
    - UNHEALTHY: Container is running and has exceeded the failure threshold
    - STOPPED: No running container exists for the service
    """

    STARTING = "starting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    STOPPED = "stopped"


class OperationType(StrEnum):
    """Kinds of control operations."""

    START = "start"
    STOP = "stop"
    RESTART = "restart"
    RESTART_ALL = "restart_all"


class OperationStatus(StrEnum):
    """Lifecycle of an operation record."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ServiceDefinition:
    """Static definition of a supervised service.

    Attributes:
        name: Unique service (and container) name.
        display_name: Human-readable name used in alerts.
        check_protocol: Protocol used to probe health.
        endpoint: Base URL (rpc/http), ``host:port`` or URL (tcp/db).
        criticality: Criticality tag for alert priority.
        dependencies: Names of the services this one depends on.
        health_path: Path appended to the endpoint for HTTP checks.
    """

    name: str
    display_name: str
    check_protocol: CheckProtocol
    endpoint: str
    criticality: CriticalityTag = CriticalityTag.OTHER
    dependencies: frozenset[str] = field(default_factory=frozenset)
    health_path: str = "/health"

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        return {
            "name": self.name,
            "display_name": self.display_name,
            "check_protocol": self.check_protocol.value,
            "endpoint": self.endpoint,
            "criticality": self.criticality.value,
            "dependencies": sorted(self.dependencies),
        }


@dataclass(slots=True)
class ServiceStatus:
    """Mutable health snapshot of one service.

    Created on the first poll and overwritten every cycle.

    Attributes:
        name: Service name.
        status: Observed health state.
        last_check: ISO 8601 timestamp of the check that produced this snapshot.
        consecutive_failures: Failed check attempts since the last success.
        error: Last check error, if any.
    """

    name: str
    status: HealthState = HealthState.STARTING
    last_check: str | None = None
    consecutive_failures: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        return {
            "name": self.name,
            "status": self.status.value,
            "last_check": self.last_check,
            "consecutive_failures": self.consecutive_failures,
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class ServiceResult:
    """Outcome for one service inside a multi-service operation.

    Attributes:
        service: Service name.
        success: Whether every step for the service succeeded.
        error: First error encountered, if any.
    """

    service: str
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        data: dict[str, object] = {"service": self.service, "success": self.success}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(slots=True)
class OperationRecord:
    """Audit record for one control call.

    Attributes:
        id: Opaque unique identifier.
        type: Kind of operation.
        service: Target service, or None for restart_all.
        status: Lifecycle status.
        start_time: ISO 8601 timestamp of record creation.
        end_time: ISO 8601 timestamp of finalization.
        error: Failure message for failed operations.
        results: Per-service outcomes (restart_all only).
    """

    id: str
    type: OperationType
    service: str | None
    start_time: str
    status: OperationStatus = OperationStatus.PENDING
    end_time: str | None = None
    error: str | None = None
    results: list[ServiceResult] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        """Return True once the record has been finalized."""
        return self.status in (OperationStatus.COMPLETED, OperationStatus.FAILED)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        return {
            "id": self.id,
            "type": self.type.value,
            "service": self.service,
            "status": self.status.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "error": self.error,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass(frozen=True, slots=True)
class ControlResult:
    """Successful outcome of a control call.

    Attributes:
        success: True when every requested action succeeded.
        operation_id: Identifier of the operation record.
        message: Human-readable summary.
        timestamp: ISO 8601 completion timestamp.
        service: Target service, or None for restart_all.
        warnings: Non-fatal problems (e.g. health wait timed out).
        results: Per-service outcomes (restart_all only).
        succeeded: Number of successful services (restart_all only).
        total: Number of services attempted (restart_all only).
    """

    success: bool
    operation_id: str
    message: str
    timestamp: str
    service: str | None = None
    warnings: tuple[str, ...] = ()
    results: tuple[ServiceResult, ...] = ()
    succeeded: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        data: dict[str, object] = {
            "success": self.success,
            "operation_id": self.operation_id,
            "message": self.message,
            "timestamp": self.timestamp,
            "service": self.service,
            "warnings": list(self.warnings),
        }
        if self.results:
            data["results"] = [r.to_dict() for r in self.results]
            data["succeeded"] = self.succeeded
            data["total"] = self.total
        return data


@dataclass(frozen=True, slots=True)
class ContainerInfo:
    """Runtime view of a service container.

    Attributes:
        name: Container name.
        running: Whether the container is running.
        state: Raw runtime state string (e.g. "running", "exited").
        started_at: Runtime-reported start timestamp, if any.
        image: Container image reference, if known.
    """

    name: str
    running: bool
    state: str = "unknown"
    started_at: str | None = None
    image: str | None = None
