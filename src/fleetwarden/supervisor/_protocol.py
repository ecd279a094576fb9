"""Protocol definitions for the supervisor system.

This module defines the capability interfaces that decouple the monitor
and controller from concrete container engines and network probes:
- ServiceRuntime: Lifecycle primitives of the container engine
- HealthProbe: A single protocol-specific health check attempt
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._models import ContainerInfo, ServiceDefinition


@runtime_checkable
class ServiceRuntime(Protocol):
    """Protocol for the container runtime that hosts the services.

    Implementations must raise ControlCommandError when a primitive fails
    and must never build shell command strings from service names.
    """

    async def start(self, name: str) -> None:
        """Start the named container.

        Raises:
            ControlCommandError: If the runtime rejects the request.
        """
        ...

    async def graceful_stop(self, name: str, timeout: float) -> None:
        """Ask the named container to stop, killing it after ``timeout`` seconds.

        Raises:
            ControlCommandError: If the runtime rejects the request.
        """
        ...

    async def kill(self, name: str) -> None:
        """Kill the named container immediately.

        Raises:
            ControlCommandError: If the runtime rejects the request.
        """
        ...

    async def inspect(self, name: str) -> ContainerInfo | None:
        """Return container state, or None if no such container exists.

        Raises:
            ControlCommandError: If the runtime cannot be queried.
        """
        ...

    async def exec(self, name: str, argv: Sequence[str], timeout: float) -> None:
        """Run a command inside the named container.

        Raises:
            ControlCommandError: If the command exits non-zero.
        """
        ...


@runtime_checkable
class HealthProbe(Protocol):
    """Protocol for a single health check attempt.

    A probe returns normally when the service is healthy and raises when
    it is not. It never interprets response payloads beyond success.
    """

    async def check(self, definition: ServiceDefinition, timeout: float) -> None:
        """Probe the service once.

        Args:
            definition: The service to probe.
            timeout: Seconds allowed for this attempt.

        Raises:
            HealthCheckTimeoutError: If the attempt exceeds ``timeout``.
            Exception: Any other probe failure.
        """
        ...
