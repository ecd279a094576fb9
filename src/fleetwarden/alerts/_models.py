"""Data models for the alert system.

This module defines the alert vocabulary and the snapshots the Alert
Manager diffs against:
- Severity / Priority / AlertType: Alert classification
- ResourceKind / ThresholdLevel: Two-level resource threshold table
- Alert: An emitted alert, mutable only in its acknowledgement fields
- ResourceSnapshot / SyncSnapshot: Inputs from the metric and sync sources
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from fleetwarden.exceptions import InvalidSeverityLevelError

if TYPE_CHECKING:
    from collections.abc import Mapping


class Severity(StrEnum):
    """Alert severities, least severe first."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        """Convert a user-supplied severity name.

        Raises:
            InvalidSeverityLevelError: If the name is not a known severity.
        """
        try:
            return cls(str(value).lower())
        except ValueError as e:
            valid = ", ".join(s.value for s in cls)
            msg = f"Invalid severity '{value}'. Must be one of: {valid}"
            raise InvalidSeverityLevelError(msg, value=value) from e


class Priority(IntEnum):
    """Alert priorities, 1 (lowest) to 4 (highest)."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


class AlertType(StrEnum):
    """Kinds of alerts the manager emits."""

    SERVICE_FAILURE = "service_failure"
    SERVICE_RECOVERY = "service_recovery"
    SERVICE_STATE_CHANGE = "service_state_change"
    RESOURCE_THRESHOLD = "resource_threshold"
    RESOURCE_RECOVERY = "resource_recovery"
    SYNC_LOST = "sync_lost"
    SYNC_RECOVERED = "sync_recovered"


class ResourceKind(StrEnum):
    """Host resources tracked against thresholds."""

    CPU = "cpu"
    MEMORY = "memory"
    DISK = "disk"
    LOAD = "load"

    @property
    def unit(self) -> str:
        """Return the display unit for values of this resource."""
        return "" if self is ResourceKind.LOAD else "%"


@dataclass(frozen=True, slots=True)
class ThresholdLevel:
    """Warning and critical thresholds for one resource.

    Attributes:
        warning: Value at or above which a warning fires.
        critical: Value at or above which a critical alert fires.
        margin: Hysteresis margin. Recovery requires the value to drop
            below ``warning - margin``.
    """

    warning: float
    critical: float
    margin: float = 5.0

    @property
    def recovery_below(self) -> float:
        """Return the value a metric must drop below to recover."""
        return self.warning - self.margin

    def to_dict(self) -> dict[str, float]:
        """Return a JSON-serializable representation."""
        return {"warning": self.warning, "critical": self.critical, "margin": self.margin}


type ThresholdTable = Mapping[ResourceKind, ThresholdLevel]

DEFAULT_THRESHOLDS: ThresholdTable = MappingProxyType(
    {
        ResourceKind.CPU: ThresholdLevel(warning=80.0, critical=90.0, margin=5.0),
        ResourceKind.MEMORY: ThresholdLevel(warning=85.0, critical=90.0, margin=5.0),
        ResourceKind.DISK: ThresholdLevel(warning=80.0, critical=90.0, margin=5.0),
        ResourceKind.LOAD: ThresholdLevel(warning=8.0, critical=10.0, margin=1.0),
    }
)

_THRESHOLD_FIELDS = frozenset({"warning", "critical", "margin"})


def merge_thresholds(
    current: ThresholdTable,
    partial: Mapping[str, Mapping[str, float]],
) -> dict[ResourceKind, ThresholdLevel]:
    """Apply a partial threshold update to a threshold table.

    Args:
        current: The table being updated.
        partial: Resource name to a subset of ``warning``, ``critical`` and
            ``margin`` values.

    Returns:
        A new table. ``current`` is not modified.

    Raises:
        InvalidSeverityLevelError: If a resource or level name is unknown,
            a value is not a non-negative number, or warning exceeds critical.
    """
    updated = dict(current)
    for resource_name, levels in partial.items():
        try:
            resource = ResourceKind(resource_name)
        except ValueError as e:
            msg = f"Unknown resource '{resource_name}'"
            raise InvalidSeverityLevelError(msg, value=resource_name) from e

        unknown = set(levels) - _THRESHOLD_FIELDS
        if unknown:
            msg = f"Unknown threshold level(s) for {resource}: {', '.join(sorted(unknown))}"
            raise InvalidSeverityLevelError(msg, value=sorted(unknown))

        values = updated[resource].to_dict()
        for level_name, raw in levels.items():
            if isinstance(raw, bool) or not isinstance(raw, int | float) or raw < 0:
                msg = f"Threshold {resource}.{level_name} must be a non-negative number"
                raise InvalidSeverityLevelError(msg, value=raw)
            values[level_name] = float(raw)

        if values["warning"] > values["critical"]:
            msg = (
                f"Threshold {resource}: warning ({values['warning']:g}) "
                f"exceeds critical ({values['critical']:g})"
            )
            raise InvalidSeverityLevelError(msg, value=dict(levels))

        updated[resource] = ThresholdLevel(**values)
    return updated


@dataclass(slots=True)
class Alert:
    """A single emitted alert.

    Everything except ``acknowledged`` and ``acknowledged_at`` is fixed at
    creation.

    Attributes:
        id: Opaque unique identifier.
        type: Kind of alert.
        severity: Alert severity.
        priority: Alert priority.
        title: Short headline.
        message: Human-readable description.
        source: Service name, ``system`` for resources, or the sync source.
        timestamp: ISO 8601 creation timestamp.
        data: Type-specific details.
        acknowledged: Whether an operator acknowledged the alert.
        acknowledged_at: ISO 8601 acknowledgement timestamp.
    """

    id: str
    type: AlertType
    severity: Severity
    priority: Priority
    title: str
    message: str
    source: str
    timestamp: str
    data: dict[str, Any] = field(default_factory=dict)  # pyright: ignore[reportExplicitAny]
    acknowledged: bool = False
    acknowledged_at: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "priority": int(self.priority),
            "title": self.title,
            "message": self.message,
            "source": self.source,
            "data": dict(self.data),
            "timestamp": self.timestamp,
            "acknowledged": self.acknowledged,
            "acknowledged_at": self.acknowledged_at,
        }


@dataclass(frozen=True, slots=True)
class ResourceSnapshot:
    """Host resource usage at one point in time.

    Attributes:
        cpu: CPU usage percentage.
        memory: Memory usage percentage.
        disk: Disk usage percentage.
        load_average: 1, 5 and 15 minute load averages. May be empty.
    """

    cpu: float
    memory: float
    disk: float
    load_average: tuple[float, ...] = ()

    def value(self, resource: ResourceKind) -> float | None:
        """Return the value compared against ``resource``'s thresholds.

        Load is the 1 minute average; None when no load data is present.
        """
        match resource:
            case ResourceKind.CPU:
                return self.cpu
            case ResourceKind.MEMORY:
                return self.memory
            case ResourceKind.DISK:
                return self.disk
            case ResourceKind.LOAD:
                return self.load_average[0] if self.load_average else None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        return {
            "cpu": self.cpu,
            "memory": self.memory,
            "disk": self.disk,
            "load_average": list(self.load_average),
        }


@dataclass(frozen=True, slots=True)
class SyncSnapshot:
    """Chain synchronization status reported by the sync source.

    Attributes:
        is_synced: Whether the node reports itself synchronized.
        current_height: Local block height, if known.
        network_height: Network block height, if known.
        progress: Sync progress percentage, if known.
    """

    is_synced: bool
    current_height: int | None = None
    network_height: int | None = None
    progress: float | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        return {
            "is_synced": self.is_synced,
            "current_height": self.current_height,
            "network_height": self.network_height,
            "progress": self.progress,
        }
