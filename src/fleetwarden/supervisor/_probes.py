"""Protocol-specific health probes.

Each probe performs exactly one check attempt and signals failure by
raising. Retries, backoff and failure counting live in the HealthMonitor.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, final

import anyio
import httpx

from fleetwarden.exceptions import HealthCheckTimeoutError, ProbeError

from ._models import CheckProtocol, ServiceDefinition

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._protocol import HealthProbe, ServiceRuntime

RPC_PING_PAYLOAD: dict[str, object] = {"method": "ping", "params": {}}
DB_READY_COMMAND: tuple[str, ...] = ("pg_isready", "-h", "localhost")


def _timeout_error(definition: ServiceDefinition, timeout: float) -> HealthCheckTimeoutError:
    msg = f"Health check for '{definition.name}' timed out after {timeout:g}s"
    return HealthCheckTimeoutError(msg, service_name=definition.name)


def parse_host_port(endpoint: str) -> tuple[str, int]:
    """Extract host and port from ``host:port`` or a URL.

    Args:
        endpoint: The endpoint string from a service definition.

    Returns:
        The host and port.

    Raises:
        ValueError: If the endpoint has no host or port.
    """
    url = httpx.URL(endpoint if "://" in endpoint else f"tcp://{endpoint}")
    if not url.host or url.port is None:
        msg = f"Endpoint '{endpoint}' must include a host and port"
        raise ValueError(msg)
    return url.host, url.port


@final
class HttpProbe:
    """GET ``<endpoint><health_path>`` and require a 200 response."""

    __slots__ = ("_client",)

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def check(self, definition: ServiceDefinition, timeout: float) -> None:
        url = definition.endpoint.rstrip("/") + definition.health_path
        try:
            response = await self._client.get(url, timeout=timeout)
        except httpx.TimeoutException as e:
            raise _timeout_error(definition, timeout) from e
        if response.status_code != httpx.codes.OK:
            msg = f"HTTP health check failed with status {response.status_code}"
            raise ProbeError(msg, service_name=definition.name)


@final
class RpcProbe:
    """POST a JSON ping to the endpoint and require a 200 response."""

    __slots__ = ("_client",)

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def check(self, definition: ServiceDefinition, timeout: float) -> None:
        try:
            response = await self._client.post(
                definition.endpoint, json=RPC_PING_PAYLOAD, timeout=timeout
            )
        except httpx.TimeoutException as e:
            raise _timeout_error(definition, timeout) from e
        if response.status_code != httpx.codes.OK:
            msg = f"RPC health check failed with status {response.status_code}"
            raise ProbeError(msg, service_name=definition.name)


@final
class TcpProbe:
    """Open and close a TCP connection to the endpoint."""

    __slots__ = ()

    async def check(self, definition: ServiceDefinition, timeout: float) -> None:
        host, port = parse_host_port(definition.endpoint)
        try:
            with anyio.fail_after(timeout):
                stream = await anyio.connect_tcp(host, port)
                await stream.aclose()
        except TimeoutError as e:
            raise _timeout_error(definition, timeout) from e


@final
class DbProbe:
    """Run a readiness command inside the database container."""

    __slots__ = ("_command", "_runtime")

    def __init__(
        self,
        runtime: ServiceRuntime,
        command: tuple[str, ...] = DB_READY_COMMAND,
    ) -> None:
        self._runtime = runtime
        self._command = command

    async def check(self, definition: ServiceDefinition, timeout: float) -> None:
        try:
            with anyio.fail_after(timeout):
                await self._runtime.exec(definition.name, self._command, timeout)
        except TimeoutError as e:
            raise _timeout_error(definition, timeout) from e


@final
class ProtocolProbe:
    """Dispatch each check to the probe registered for its protocol."""

    __slots__ = ("_probes",)

    def __init__(self, probes: Mapping[CheckProtocol, HealthProbe]) -> None:
        self._probes = dict(probes)

    @classmethod
    def default(cls, client: httpx.AsyncClient, runtime: ServiceRuntime) -> ProtocolProbe:
        """Create the standard probe set for all four protocols.

        Args:
            client: Shared HTTP client for rpc and http checks. The caller
                owns its lifecycle.
            runtime: Runtime used to exec database readiness checks.

        Returns:
            A dispatching probe.
        """
        return cls(
            {
                CheckProtocol.RPC: RpcProbe(client),
                CheckProtocol.HTTP: HttpProbe(client),
                CheckProtocol.TCP: TcpProbe(),
                CheckProtocol.DB: DbProbe(runtime),
            }
        )

    async def check(self, definition: ServiceDefinition, timeout: float) -> None:
        probe = self._probes.get(definition.check_protocol)
        if probe is None:
            msg = f"No probe registered for protocol '{definition.check_protocol}'"
            raise ProbeError(msg, service_name=definition.name)
        await probe.check(definition, timeout)
