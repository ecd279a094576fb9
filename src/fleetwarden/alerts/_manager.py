"""Alert manager.

This module provides the AlertManager class that turns health snapshots,
resource metrics and sync status into deduplicated, prioritized alerts.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, final

import anyio

from fleetwarden.supervisor import CriticalityTag, HealthState
from fleetwarden.utils import create_null_logger, get_timestamp, now, parse_timestamp

from ._broadcast import BroadcastMessage, MessageType
from ._history import DEFAULT_HISTORY_SIZE, AlertHistory
from ._models import (
    DEFAULT_THRESHOLDS,
    Alert,
    AlertType,
    Priority,
    ResourceKind,
    Severity,
    merge_thresholds,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
    from structlog.typing import FilteringBoundLogger

    from fleetwarden.supervisor import ServiceDefinition, ServiceStatus

    from ._broadcast import BroadcastSink
    from ._models import ResourceSnapshot, SyncSnapshot, ThresholdLevel, ThresholdTable

type AlertKey = tuple[AlertType, str]

_FAILURE_STATES = frozenset({HealthState.UNHEALTHY, HealthState.STOPPED})

_CRITICALITY_PRIORITY: dict[CriticalityTag, Priority] = {
    CriticalityTag.CORE: Priority.CRITICAL,
    CriticalityTag.PROD: Priority.HIGH,
    CriticalityTag.EXPLORER: Priority.MEDIUM,
    CriticalityTag.OTHER: Priority.LOW,
}

_RESOURCE_SOURCE = "system"
_RECENT_WINDOW_HOURS = 24


def _new_alert_id() -> str:
    return f"alert_{uuid.uuid4().hex}"


def _state_change_severity(current: HealthState) -> Severity:
    if current == HealthState.UNHEALTHY:
        return Severity.CRITICAL
    if current == HealthState.STOPPED:
        return Severity.WARNING
    return Severity.INFO


@final
class AlertManager:
    """Diffs incoming state against the last known state and emits alerts.

    Alerts for an ongoing condition are tracked in an active index keyed by
    ``(type, source)`` for services and ``(type, resource)`` for resources,
    so a persisting condition produces exactly one alert until its recovery
    is detected. Every emitted alert is recorded in the history, published
    to the broadcast sink and delivered to local subscribers.
    """

    __slots__ = (
        "_active",
        "_definitions",
        "_history",
        "_last_resources",
        "_last_services",
        "_last_sync",
        "_listener_buffer",
        "_listeners",
        "_logger",
        "_sink",
        "_thresholds",
        "emit_state_changes",
        "sync_source",
    )

    def __init__(  # noqa: PLR0913
        self,
        sink: BroadcastSink | None = None,
        *,
        definitions: Mapping[str, ServiceDefinition] | None = None,
        thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
        history_size: int = DEFAULT_HISTORY_SIZE,
        listener_buffer: int = 100,
        emit_state_changes: bool = False,
        sync_source: str = "node",
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            sink: Receiver of outbound envelopes, typically a BroadcastHub.
            definitions: Service definitions used for display names and
                criticality-derived priority.
            thresholds: Initial resource threshold table.
            history_size: Capacity of the alert history.
            listener_buffer: Buffer size of each local subscriber channel.
            emit_state_changes: Also emit an alert on every service status change.
            sync_source: Source name used for sync alerts.
            logger: Structured logger.
        """
        self._sink = sink
        self._definitions: dict[str, ServiceDefinition] = dict(definitions or {})
        self._thresholds: dict[ResourceKind, ThresholdLevel] = dict(thresholds)
        self._history = AlertHistory(history_size)
        self._active: dict[AlertKey, Alert] = {}
        self._last_services: dict[str, tuple[HealthState, str]] = {}
        self._last_resources: ResourceSnapshot | None = None
        self._last_sync: SyncSnapshot | None = None
        self._listeners: list[MemoryObjectSendStream[Alert]] = []
        self._listener_buffer = listener_buffer
        self._logger = (logger or create_null_logger()).bind(component="alert_manager")
        self.emit_state_changes = emit_state_changes
        self.sync_source = sync_source

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------

    def process_service_updates(self, statuses: Iterable[ServiceStatus]) -> list[Alert]:
        """Diff a health snapshot against the last known service states.

        Returns:
            The alerts emitted for this snapshot.
        """
        emitted: list[Alert] = []
        for status in statuses:
            previous = self._last_services.get(status.name)
            previous_state = previous[0] if previous is not None else None
            key: AlertKey = (AlertType.SERVICE_FAILURE, status.name)

            if (
                self.emit_state_changes
                and previous_state is not None
                and previous_state != status.status
            ):
                emitted.append(self._service_state_change(status, previous_state))

            if status.status in _FAILURE_STATES:
                if key not in self._active:
                    emitted.append(self._service_failure(status, key))
            elif status.status == HealthState.HEALTHY and (
                key in self._active or previous_state in _FAILURE_STATES
            ):
                emitted.append(self._service_recovery(status, key, previous))

            self._last_services[status.name] = (status.status, get_timestamp())
        return emitted

    def process_resource_updates(self, snapshot: ResourceSnapshot) -> list[Alert]:
        """Compare resource usage against the threshold table.

        Only the highest applicable level fires per resource, and only when
        no alert is active for that resource. An active resource alert
        recovers once the value drops below ``warning - margin``.

        Returns:
            The alerts emitted for this snapshot.
        """
        emitted: list[Alert] = []
        for resource in ResourceKind:
            value = snapshot.value(resource)
            if value is None:
                continue
            level = self._thresholds[resource]
            key: AlertKey = (AlertType.RESOURCE_THRESHOLD, resource.value)

            if value >= level.critical:
                severity, threshold = Severity.CRITICAL, level.critical
            elif value >= level.warning:
                severity, threshold = Severity.WARNING, level.warning
            else:
                severity, threshold = None, None

            if severity is not None and threshold is not None:
                if key not in self._active:
                    alert = self._resource_threshold(resource, severity, value, threshold, key)
                    emitted.append(alert)
            elif key in self._active and value < level.recovery_below:
                emitted.append(self._resource_recovery(resource, value, key))

        self._last_resources = snapshot
        return emitted

    def process_sync_status(self, snapshot: SyncSnapshot) -> list[Alert]:
        """Emit alerts on sync-state edges only.

        The first observation only establishes the baseline.

        Returns:
            The alerts emitted for this snapshot.
        """
        was_synced = self._last_sync.is_synced if self._last_sync is not None else None
        emitted: list[Alert] = []

        if was_synced is True and not snapshot.is_synced:
            alert = self._create(
                AlertType.SYNC_LOST,
                Severity.CRITICAL,
                Priority.CRITICAL,
                title="Node Lost Sync",
                message="Node has lost synchronization with the network",
                source=self.sync_source,
                data={
                    "current_height": snapshot.current_height,
                    "network_height": snapshot.network_height,
                    "progress": snapshot.progress,
                },
            )
            self._emit(alert, key=(AlertType.SYNC_LOST, self.sync_source))
            emitted.append(alert)

        elif was_synced is False and snapshot.is_synced:
            alert = self._create(
                AlertType.SYNC_RECOVERED,
                Severity.INFO,
                Priority.MEDIUM,
                title="Node Sync Recovered",
                message="Node has successfully synchronized with the network",
                source=self.sync_source,
                data={
                    "current_height": snapshot.current_height,
                    "network_height": snapshot.network_height,
                },
            )
            self._emit(alert)
            self._clear_type(AlertType.SYNC_LOST)
            emitted.append(alert)

        self._last_sync = snapshot
        return emitted

    # -------------------------------------------------------------------------
    # Commands and queries
    # -------------------------------------------------------------------------

    def acknowledge(self, alert_id: str) -> bool:
        """Mark an alert acknowledged.

        Idempotent: acknowledging twice keeps the first timestamp and only
        the first call is broadcast.

        Returns:
            True if the alert exists, False otherwise. Never raises.
        """
        alert = self._history.find(alert_id)
        if alert is None:
            return False
        if alert.acknowledged:
            return True

        alert.acknowledged = True
        alert.acknowledged_at = get_timestamp()
        self._publish(
            BroadcastMessage(
                MessageType.ALERT_ACKNOWLEDGED,
                {"alert_id": alert.id, "acknowledged_at": alert.acknowledged_at},
            )
        )
        self._logger.info("alert_acknowledged", alert_id=alert.id)
        return True

    def get_history(
        self,
        *,
        severity: str | Severity | None = None,
        alert_type: str | None = None,
        source: str | None = None,
        unacknowledged: bool = False,
        limit: int | None = None,
    ) -> list[Alert]:
        """Return alert history, newest first, with optional filters.

        Raises:
            InvalidSeverityLevelError: If ``severity`` is not a known severity.
        """
        return self._history.query(
            severity=Severity.parse(severity) if severity is not None else None,
            alert_type=alert_type,
            source=source,
            unacknowledged=unacknowledged,
            limit=limit,
        )

    def active_alerts(self) -> list[Alert]:
        """Return the alerts for conditions that are still ongoing."""
        return list(self._active.values())

    def is_active(self, alert_type: AlertType, source: str) -> bool:
        """Return True if an alert is active for ``(alert_type, source)``."""
        return (alert_type, source) in self._active

    def stats(self) -> dict[str, object]:
        """Summarize history and active alerts.

        ``by_type`` and ``by_severity`` count alerts from the last 24 hours.
        """
        cutoff = now().subtract(hours=_RECENT_WINDOW_HOURS)
        recent = [a for a in self._history if parse_timestamp(a.timestamp) > cutoff]
        by_type: dict[str, int] = {}
        by_severity: dict[str, int] = {}
        for alert in recent:
            by_type[alert.type.value] = by_type.get(alert.type.value, 0) + 1
            by_severity[alert.severity.value] = by_severity.get(alert.severity.value, 0) + 1

        return {
            "total": len(self._history),
            "active": len(self._active),
            "recent": len(recent),
            "by_type": by_type,
            "by_severity": by_severity,
            "unacknowledged": sum(1 for a in self._history if not a.acknowledged),
        }

    @property
    def thresholds(self) -> dict[ResourceKind, ThresholdLevel]:
        """Return a copy of the current threshold table."""
        return dict(self._thresholds)

    def update_thresholds(
        self,
        partial: Mapping[str, Mapping[str, float]],
    ) -> dict[ResourceKind, ThresholdLevel]:
        """Merge a partial threshold table into the current one.

        The update is all-or-nothing.

        Returns:
            The new threshold table.

        Raises:
            InvalidSeverityLevelError: If a resource, level or value is invalid.
        """
        self._thresholds = merge_thresholds(self._thresholds, partial)
        self._logger.info(
            "thresholds_updated",
            thresholds={k.value: v.to_dict() for k, v in self._thresholds.items()},
        )
        return dict(self._thresholds)

    def subscribe(self, buffer: int | None = None) -> MemoryObjectReceiveStream[Alert]:
        """Receive every alert emitted from now on, in process."""
        send, receive = anyio.create_memory_object_stream[Alert](
            buffer if buffer is not None else self._listener_buffer
        )
        self._listeners.append(send)
        return receive

    def shutdown(self) -> None:
        """Reset dedup and last-known state and close local subscriber channels."""
        self._active.clear()
        self._last_services.clear()
        self._last_resources = None
        self._last_sync = None
        for send in self._listeners:
            send.close()
        self._listeners.clear()
        self._logger.info("alert_manager_shutdown")

    # -------------------------------------------------------------------------
    # Alert construction
    # -------------------------------------------------------------------------

    def _describe(self, name: str) -> tuple[str, Priority]:
        definition = self._definitions.get(name)
        if definition is None:
            return name, Priority.LOW
        return definition.display_name, _CRITICALITY_PRIORITY[definition.criticality]

    def _service_failure(self, status: ServiceStatus, key: AlertKey) -> Alert:
        display_name, priority = self._describe(status.name)
        if status.status == HealthState.STOPPED:
            severity = Severity.WARNING
            title = f"Service Stopped: {display_name}"
            message = f"{display_name} is not running. This may affect system functionality."
        else:
            severity = Severity.CRITICAL
            title = f"Service Unhealthy: {display_name}"
            suffix = f" Error: {status.error}" if status.error else ""
            message = f"{display_name} is running but not responding to health checks.{suffix}"

        alert = self._create(
            AlertType.SERVICE_FAILURE,
            severity,
            priority,
            title=title,
            message=message,
            source=status.name,
            data={
                "service_name": status.name,
                "display_name": display_name,
                "status": status.status.value,
                "error": status.error,
                "consecutive_failures": status.consecutive_failures,
            },
        )
        self._emit(alert, key=key)
        return alert

    def _service_recovery(
        self,
        status: ServiceStatus,
        key: AlertKey,
        previous: tuple[HealthState, str] | None,
    ) -> Alert:
        display_name, priority = self._describe(status.name)
        failure = self._active.pop(key, None)
        if failure is not None:
            down_since = failure.timestamp
        elif previous is not None:
            down_since = previous[1]
        else:
            down_since = None
        downtime: float | None = None
        if down_since is not None:
            downtime = (now() - parse_timestamp(down_since)).total_seconds()

        alert = self._create(
            AlertType.SERVICE_RECOVERY,
            Severity.INFO,
            priority,
            title=f"Service Recovered: {display_name}",
            message=f"{display_name} has recovered and is now healthy",
            source=status.name,
            data={
                "service_name": status.name,
                "display_name": display_name,
                "previous_status": previous[0].value if previous is not None else None,
                "current_status": status.status.value,
                "downtime_seconds": downtime,
            },
        )
        self._emit(alert)
        return alert

    def _service_state_change(self, status: ServiceStatus, previous: HealthState) -> Alert:
        display_name, priority = self._describe(status.name)
        alert = self._create(
            AlertType.SERVICE_STATE_CHANGE,
            _state_change_severity(status.status),
            priority,
            title=f"Service State Changed: {display_name}",
            message=f"{display_name} changed from {previous} to {status.status}",
            source=status.name,
            data={
                "service_name": status.name,
                "display_name": display_name,
                "previous_status": previous.value,
                "current_status": status.status.value,
                "error": status.error,
            },
        )
        self._emit(alert)
        return alert

    def _resource_threshold(
        self,
        resource: ResourceKind,
        severity: Severity,
        value: float,
        threshold: float,
        key: AlertKey,
    ) -> Alert:
        label = resource.value.upper()
        unit = resource.unit
        alert = self._create(
            AlertType.RESOURCE_THRESHOLD,
            severity,
            Priority.CRITICAL if severity == Severity.CRITICAL else Priority.HIGH,
            title=f"{label} Usage {'Critical' if severity == Severity.CRITICAL else 'High'}",
            message=(
                f"{label} usage is {value:.1f}{unit}, exceeding {severity} "
                f"threshold of {threshold:g}{unit}"
            ),
            source=_RESOURCE_SOURCE,
            data={
                "resource": resource.value,
                "current_value": value,
                "threshold": threshold,
                "severity": severity.value,
            },
        )
        self._emit(alert, key=key)
        return alert

    def _resource_recovery(self, resource: ResourceKind, value: float, key: AlertKey) -> Alert:
        label = resource.value.upper()
        _ = self._active.pop(key, None)
        alert = self._create(
            AlertType.RESOURCE_RECOVERY,
            Severity.INFO,
            Priority.MEDIUM,
            title=f"{label} Usage Normalized",
            message=f"{label} usage has returned to normal levels: {value:.1f}{resource.unit}",
            source=_RESOURCE_SOURCE,
            data={"resource": resource.value, "current_value": value},
        )
        self._emit(alert)
        return alert

    def _create(  # noqa: PLR0913
        self,
        alert_type: AlertType,
        severity: Severity,
        priority: Priority,
        *,
        title: str,
        message: str,
        source: str,
        data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    ) -> Alert:
        return Alert(
            id=_new_alert_id(),
            type=alert_type,
            severity=severity,
            priority=priority,
            title=title,
            message=message,
            source=source,
            timestamp=get_timestamp(),
            data=data,
        )

    def _clear_type(self, alert_type: AlertType) -> None:
        for key in [k for k in self._active if k[0] == alert_type]:
            del self._active[key]

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def _emit(self, alert: Alert, *, key: AlertKey | None = None) -> None:
        self._history.append(alert)
        if key is not None:
            self._active[key] = alert

        self._publish(BroadcastMessage(MessageType.ALERT, alert.to_dict()))

        for send in list(self._listeners):
            try:
                send.send_nowait(alert)
            except anyio.WouldBlock:
                self._logger.warning("alert_listener_lagging", alert_id=alert.id)
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                self._listeners.remove(send)
                send.close()

        self._logger.info(
            "alert_emitted",
            alert_id=alert.id,
            type=alert.type,
            severity=alert.severity,
            source=alert.source,
            title=alert.title,
        )

    def _publish(self, message: BroadcastMessage) -> None:
        if self._sink is not None:
            self._sink.publish(message)
