"""Supervisor package for monitoring and controlling a container fleet.

This package polls service health, validates the service dependency graph,
and gates lifecycle operations on that graph.

Key Components:
    - ServiceDefinition: Static definition of a supervised service
    - ServiceStatus: Per-service health snapshot
    - DependencyGraph: Validated dependency graph with ordering queries
    - HealthMonitor: Concurrent, non-overlapping health polling
    - ServiceController: Dependency-aware start/stop/restart control
    - OperationStore: Time-evicted audit trail of control calls
    - DockerRuntime: Container runtime backed by the docker CLI
    - ProtocolProbe: Dispatching rpc/http/tcp/db health probe

Example:
    >>> from fleetwarden.supervisor import DependencyGraph, HealthMonitor, ServiceController
    >>> graph = DependencyGraph(definitions)
    >>> monitor = HealthMonitor(graph.definitions.values(), runtime, probe)
    >>> controller = ServiceController(graph, runtime, monitor)
    >>> await monitor.poll_all()
    >>> await controller.start("indexer")
"""

from ._backoff import ExponentialBackoff
from ._controller import ServiceController
from ._graph import DependencyGraph
from ._health import HealthMonitor
from ._models import (
    CheckProtocol,
    ContainerInfo,
    ControlResult,
    CriticalityTag,
    HealthState,
    OperationRecord,
    OperationStatus,
    OperationType,
    ServiceDefinition,
    ServiceResult,
    ServiceStatus,
)
from ._operations import OperationStore
from ._probes import (
    DbProbe,
    HttpProbe,
    ProtocolProbe,
    RpcProbe,
    TcpProbe,
    parse_host_port,
)
from ._protocol import HealthProbe, ServiceRuntime
from ._runtime import DockerRuntime, parse_inspect_payload

__all__ = [
    "CheckProtocol",
    "ContainerInfo",
    "ControlResult",
    "CriticalityTag",
    "DbProbe",
    "DependencyGraph",
    "DockerRuntime",
    "ExponentialBackoff",
    "HealthMonitor",
    "HealthProbe",
    "HealthState",
    "HttpProbe",
    "OperationRecord",
    "OperationStatus",
    "OperationStore",
    "OperationType",
    "ProtocolProbe",
    "RpcProbe",
    "ServiceController",
    "ServiceDefinition",
    "ServiceResult",
    "ServiceRuntime",
    "ServiceStatus",
    "TcpProbe",
    "parse_host_port",
    "parse_inspect_payload",
]
