"""Bounded alert history."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, final

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ._models import Alert, Severity

DEFAULT_HISTORY_SIZE = 1000


@final
class AlertHistory:
    """Newest-first ring buffer of alerts.

    Once ``maxlen`` alerts are held, appending evicts the oldest one.
    """

    __slots__ = ("_alerts",)

    def __init__(self, maxlen: int = DEFAULT_HISTORY_SIZE) -> None:
        self._alerts: deque[Alert] = deque(maxlen=maxlen)

    def __len__(self) -> int:
        return len(self._alerts)

    def __iter__(self) -> Iterator[Alert]:
        return iter(self._alerts)

    @property
    def maxlen(self) -> int:
        """Return the capacity of the buffer."""
        return self._alerts.maxlen or 0

    def append(self, alert: Alert) -> None:
        """Add an alert as the newest entry."""
        self._alerts.appendleft(alert)

    def find(self, alert_id: str) -> Alert | None:
        """Return the alert with ``alert_id``, or None."""
        return next((a for a in self._alerts if a.id == alert_id), None)

    def query(
        self,
        *,
        severity: Severity | None = None,
        alert_type: str | None = None,
        source: str | None = None,
        unacknowledged: bool = False,
        limit: int | None = None,
    ) -> list[Alert]:
        """Return matching alerts, newest first.

        Args:
            severity: Only alerts with this severity.
            alert_type: Only alerts of this type.
            source: Only alerts from this source.
            unacknowledged: Only alerts not yet acknowledged.
            limit: Maximum number of alerts to return.
        """
        matches: list[Alert] = []
        for alert in self._alerts:
            if limit is not None and len(matches) >= limit:
                break
            if severity is not None and alert.severity != severity:
                continue
            if alert_type is not None and alert.type != alert_type:
                continue
            if source is not None and alert.source != source:
                continue
            if unacknowledged and alert.acknowledged:
                continue
            matches.append(alert)
        return matches

    def clear(self) -> None:
        """Remove every alert."""
        self._alerts.clear()
