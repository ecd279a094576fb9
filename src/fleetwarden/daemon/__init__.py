"""Long-running fleet daemon.

Key Components:
    - FleetSupervisor: Runs the health, metrics, sync and cleanup loops
    - build_fleet: Wires a FleetSupervisor from configuration
    - create_control_app: FastAPI control application
    - run_daemon: Runs the supervisor and control server until signalled
    - HostMetricsSource / HttpSyncSource: Standard resource and sync sources
"""

from ._api import create_control_router, error_response
from ._app import create_control_app
from ._fleet import FleetSupervisor, build_fleet
from ._runner import run_daemon
from ._sources import (
    HostMetricsSource,
    HttpSyncSource,
    MetricsSource,
    SyncSource,
    parse_sync_payload,
)

__all__ = [
    "FleetSupervisor",
    "HostMetricsSource",
    "HttpSyncSource",
    "MetricsSource",
    "SyncSource",
    "build_fleet",
    "create_control_app",
    "create_control_router",
    "error_response",
    "parse_sync_payload",
    "run_daemon",
]
