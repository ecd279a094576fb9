"""Resource metric and sync-status sources.

This module defines the source interfaces consumed by the fleet
supervisor and their standard implementations:
- HostMetricsSource: CPU, memory, disk and load from psutil
- HttpSyncSource: Node sync status from a JSON endpoint
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, final, runtime_checkable

import anyio.to_thread
import psutil

from fleetwarden.alerts import ResourceSnapshot, SyncSnapshot

if TYPE_CHECKING:
    import httpx


@runtime_checkable
class MetricsSource(Protocol):
    """Protocol for periodic host resource snapshots."""

    async def sample(self) -> ResourceSnapshot:
        """Take one resource snapshot."""
        ...


@runtime_checkable
class SyncSource(Protocol):
    """Protocol for periodic sync-status snapshots."""

    async def fetch(self) -> SyncSnapshot:
        """Fetch the current sync status.

        Raises:
            Exception: If the status cannot be retrieved.
        """
        ...


@final
class HostMetricsSource:
    """Resource snapshots of the local host, sampled with psutil.

    psutil calls block, so each sample runs in a worker thread.
    """

    __slots__ = ("cpu_interval", "disk_path")

    def __init__(self, disk_path: str = "/", cpu_interval: float = 0.1) -> None:
        """Initialize the source.

        Args:
            disk_path: Path whose filesystem usage is reported as disk.
            cpu_interval: Seconds over which CPU usage is measured.
        """
        self.disk_path = disk_path
        self.cpu_interval = cpu_interval

    async def sample(self) -> ResourceSnapshot:
        """Take one resource snapshot."""
        return await anyio.to_thread.run_sync(self._sample_blocking)

    def _sample_blocking(self) -> ResourceSnapshot:
        try:
            load_average = tuple(psutil.getloadavg())
        except (AttributeError, OSError):
            load_average = ()
        return ResourceSnapshot(
            cpu=psutil.cpu_percent(interval=self.cpu_interval),
            memory=psutil.virtual_memory().percent,
            disk=psutil.disk_usage(self.disk_path).percent,
            load_average=load_average,
        )


def _first(data: dict[str, object], *keys: str) -> object | None:
    for key in keys:
        if key in data:
            return data[key]
    return None


def parse_sync_payload(data: dict[str, object]) -> SyncSnapshot:
    """Convert a sync-status JSON object into a SyncSnapshot.

    Both camelCase and snake_case keys are accepted.

    Raises:
        ValueError: If the payload has no boolean sync flag.
    """
    synced = _first(data, "isSynced", "is_synced", "synced")
    if not isinstance(synced, bool):
        msg = f"Sync status payload has no boolean sync flag: {data!r}"
        raise ValueError(msg)

    current = _first(data, "currentHeight", "current_height")
    network = _first(data, "networkHeight", "network_height")
    progress = _first(data, "progress")
    return SyncSnapshot(
        is_synced=synced,
        current_height=int(current) if isinstance(current, int | float) else None,
        network_height=int(network) if isinstance(network, int | float) else None,
        progress=float(progress) if isinstance(progress, int | float) else None,
    )


@final
class HttpSyncSource:
    """Sync status fetched from a JSON HTTP endpoint."""

    __slots__ = ("_client", "timeout", "url")

    def __init__(self, client: httpx.AsyncClient, url: str, timeout: float = 5.0) -> None:
        """Initialize the source.

        Args:
            client: Shared HTTP client. The caller owns its lifecycle.
            url: Endpoint returning ``{"isSynced": bool, ...}``.
            timeout: Request timeout in seconds.
        """
        self._client = client
        self.url = url
        self.timeout = timeout

    async def fetch(self) -> SyncSnapshot:
        """Fetch the current sync status.

        Raises:
            httpx.HTTPError: If the request fails or returns an error status.
            ValueError: If the response is not a valid sync payload.
        """
        response = await self._client.get(self.url, timeout=self.timeout)
        _ = response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            msg = f"Sync status response is not a JSON object: {payload!r}"
            raise ValueError(msg)  # noqa: TRY004
        return parse_sync_payload(payload)
