"""Alert generation and delivery.

Key Components:
    - AlertManager: Diffs snapshots into deduplicated, prioritized alerts
    - AlertHistory: Newest-first bounded alert buffer
    - BroadcastHub: Non-blocking fan-out of message envelopes
    - BroadcastMessage: The ``{type, data, timestamp}`` envelope
    - ConsoleSink: Rich console rendering of envelopes
"""

from ._broadcast import (
    BroadcastHub,
    BroadcastMessage,
    BroadcastSink,
    MessageType,
)
from ._history import AlertHistory
from ._manager import AlertManager
from ._models import (
    DEFAULT_THRESHOLDS,
    Alert,
    AlertType,
    Priority,
    ResourceKind,
    ResourceSnapshot,
    Severity,
    SyncSnapshot,
    ThresholdLevel,
    ThresholdTable,
    merge_thresholds,
)
from ._output import ConsoleSink

__all__ = [
    "DEFAULT_THRESHOLDS",
    "Alert",
    "AlertHistory",
    "AlertManager",
    "AlertType",
    "BroadcastHub",
    "BroadcastMessage",
    "BroadcastSink",
    "ConsoleSink",
    "MessageType",
    "Priority",
    "ResourceKind",
    "ResourceSnapshot",
    "Severity",
    "SyncSnapshot",
    "ThresholdLevel",
    "ThresholdTable",
    "merge_thresholds",
]
