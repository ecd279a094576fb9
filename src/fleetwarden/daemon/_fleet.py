"""Top-level coordinator for a supervised fleet.

This module provides the FleetSupervisor class that runs the health,
metrics, sync and operation-cleanup loops with anyio structured
concurrency, feeding every result to the Alert Manager and Broadcast Hub.
"""

from __future__ import annotations

import signal
from typing import TYPE_CHECKING, final

import anyio

from fleetwarden.alerts import AlertManager, BroadcastHub, BroadcastMessage, MessageType
from fleetwarden.supervisor import (
    DockerRuntime,
    HealthMonitor,
    OperationStore,
    ProtocolProbe,
    ServiceController,
)
from fleetwarden.utils import create_null_logger

from ._sources import HostMetricsSource, HttpSyncSource

if TYPE_CHECKING:
    import httpx
    from structlog.typing import FilteringBoundLogger

    from fleetwarden.config import Config
    from fleetwarden.supervisor import (
        DependencyGraph,
        HealthProbe,
        ServiceRuntime,
        ServiceStatus,
    )

    from ._sources import MetricsSource, SyncSource


@final
class FleetSupervisor:
    """Runs the monitoring loops for a fleet and owns its components.

    Each loop runs in its own task. A failure inside one iteration of the
    metrics or sync loop is logged and the loop carries on; health
    polling isolates failures per service by itself.
    """

    __slots__ = (
        "_alerts",
        "_controller",
        "_graph",
        "_hub",
        "_logger",
        "_metrics",
        "_monitor",
        "_shutdown_event",
        "_sync",
        "cleanup_interval",
        "metrics_interval",
        "monitor_interval",
        "sync_interval",
    )

    def __init__(  # noqa: PLR0913
        self,
        graph: DependencyGraph,
        monitor: HealthMonitor,
        controller: ServiceController,
        alerts: AlertManager,
        hub: BroadcastHub,
        *,
        metrics: MetricsSource | None = None,
        sync: SyncSource | None = None,
        monitor_interval: float = 5.0,
        metrics_interval: float = 5.0,
        sync_interval: float = 10.0,
        cleanup_interval: float = 3600.0,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            graph: Validated dependency graph.
            monitor: Health monitor for the fleet.
            controller: Service controller for the fleet.
            alerts: Alert manager fed by every loop.
            hub: Broadcast hub for status updates.
            metrics: Resource metric source. The metrics loop is skipped if None.
            sync: Sync-status source. The sync loop is skipped if None.
            monitor_interval: Seconds between health cycles.
            metrics_interval: Seconds between resource samples.
            sync_interval: Seconds between sync-status polls.
            cleanup_interval: Seconds between operation store cleanups.
            logger: Structured logger.
        """
        self._graph = graph
        self._monitor = monitor
        self._controller = controller
        self._alerts = alerts
        self._hub = hub
        self._metrics = metrics
        self._sync = sync
        self._shutdown_event: anyio.Event | None = None
        self._logger = (logger or create_null_logger()).bind(component="fleet_supervisor")
        self.monitor_interval = monitor_interval
        self.metrics_interval = metrics_interval
        self.sync_interval = sync_interval
        self.cleanup_interval = cleanup_interval

    @property
    def graph(self) -> DependencyGraph:
        """Return the dependency graph."""
        return self._graph

    @property
    def monitor(self) -> HealthMonitor:
        """Return the health monitor."""
        return self._monitor

    @property
    def controller(self) -> ServiceController:
        """Return the service controller."""
        return self._controller

    @property
    def alerts(self) -> AlertManager:
        """Return the alert manager."""
        return self._alerts

    @property
    def hub(self) -> BroadcastHub:
        """Return the broadcast hub."""
        return self._hub

    def service_view(self, status: ServiceStatus) -> dict[str, object]:
        """Combine a status snapshot with its static definition."""
        view = status.to_dict()
        if status.name in self._graph:
            definition = self._graph.definition(status.name)
            view["display_name"] = definition.display_name
            view["criticality"] = definition.criticality.value
            view["dependencies"] = sorted(definition.dependencies)
        return view

    async def poll_once(self) -> list[ServiceStatus]:
        """Run one health cycle and feed its results downstream."""
        statuses = await self._monitor.poll_all()
        await self._dispatch_cycle(statuses)
        return statuses

    async def _dispatch_cycle(self, statuses: list[ServiceStatus]) -> None:
        _ = self._alerts.process_service_updates(statuses)
        self._hub.publish(
            BroadcastMessage(
                MessageType.UPDATE,
                {"services": [self.service_view(s) for s in statuses]},
            )
        )

    async def sample_resources_once(self) -> None:
        """Take one resource sample and feed it to the alert manager."""
        if self._metrics is None:
            return
        try:
            snapshot = await self._metrics.sample()
        except Exception as e:  # noqa: BLE001
            self._logger.warning("metrics_sample_failed", error=str(e))
            return
        _ = self._alerts.process_resource_updates(snapshot)

    async def check_sync_once(self) -> None:
        """Fetch sync status once and feed it to the alert manager."""
        if self._sync is None:
            return
        try:
            snapshot = await self._sync.fetch()
        except Exception as e:  # noqa: BLE001
            self._logger.warning("sync_fetch_failed", error=str(e))
            return
        _ = self._alerts.process_sync_status(snapshot)

    async def _health_loop(self) -> None:
        await self._monitor.run(self.monitor_interval, self._dispatch_cycle)

    async def _metrics_loop(self) -> None:
        while True:
            await self.sample_resources_once()
            await anyio.sleep(self.metrics_interval)

    async def _sync_loop(self) -> None:
        while True:
            await self.check_sync_once()
            await anyio.sleep(self.sync_interval)

    async def _cleanup_loop(self) -> None:
        while True:
            await anyio.sleep(self.cleanup_interval)
            _ = self._controller.cleanup_operations()

    async def run(self) -> None:
        """Run every loop until shutdown is triggered (via signal or shutdown())."""
        self._shutdown_event = anyio.Event()
        shutdown_event = self._shutdown_event

        async def handle_signals() -> None:
            with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
                async for _signum in signals:
                    shutdown_event.set()
                    break

        self._logger.info("fleet_supervisor_started", services=list(self._graph))

        async with anyio.create_task_group() as tg:
            tg.start_soon(handle_signals)
            tg.start_soon(self._health_loop)
            tg.start_soon(self._cleanup_loop)
            if self._metrics is not None:
                tg.start_soon(self._metrics_loop)
            if self._sync is not None:
                tg.start_soon(self._sync_loop)

            await shutdown_event.wait()
            tg.cancel_scope.cancel()

        self._alerts.shutdown()
        self._hub.close()
        self._logger.info("fleet_supervisor_stopped")

    async def shutdown(self) -> None:
        """Trigger graceful shutdown.

        Sets the shutdown event, which causes run() to cancel its loops
        and return.
        """
        if self._shutdown_event is not None:
            self._shutdown_event.set()


def build_fleet(  # noqa: PLR0913
    config: Config,
    client: httpx.AsyncClient,
    *,
    runtime: ServiceRuntime | None = None,
    probe: HealthProbe | None = None,
    metrics: MetricsSource | None = None,
    logger: FilteringBoundLogger | None = None,
) -> FleetSupervisor:
    """Wire a FleetSupervisor from configuration.

    Args:
        config: Loaded configuration.
        client: Shared HTTP client for probes and the sync source.
        runtime: Container runtime. Defaults to DockerRuntime.
        probe: Health probe. Defaults to ProtocolProbe.default().
        metrics: Resource source. Defaults to HostMetricsSource.
        logger: Structured logger shared by all components.

    Returns:
        The wired supervisor, not yet running.
    """
    graph = config.build_graph()
    runtime = runtime or DockerRuntime(
        config.runtime.docker_binary, command_timeout=config.controller.operation_timeout
    )
    probe = probe or ProtocolProbe.default(client, runtime)

    monitor_config = config.monitor
    monitor = HealthMonitor(
        graph.definitions.values(),
        runtime,
        probe,
        retry_attempts=monitor_config.retry_attempts,
        attempts_per_cycle=monitor_config.attempts_per_cycle,
        check_timeout=monitor_config.check_timeout,
        backoff=monitor_config.backoff(),
        logger=logger,
    )

    controller_config = config.controller
    controller = ServiceController(
        graph,
        runtime,
        monitor,
        OperationStore(ttl=controller_config.operation_ttl),
        operation_timeout=controller_config.operation_timeout,
        graceful_stop_timeout=controller_config.graceful_stop_timeout,
        health_wait_timeout=controller_config.health_wait_timeout,
        health_wait_interval=controller_config.health_wait_interval,
        settle_delay=controller_config.settle_delay,
        logger=logger,
    )

    alerts_config = config.alerts
    hub = BroadcastHub(buffer=alerts_config.listener_buffer, logger=logger)
    alerts = AlertManager(
        hub,
        definitions=graph.definitions,
        thresholds=alerts_config.thresholds.to_table(),
        history_size=alerts_config.history_size,
        listener_buffer=alerts_config.listener_buffer,
        emit_state_changes=alerts_config.emit_state_changes,
        sync_source=alerts_config.sync_source,
        logger=logger,
    )

    sources = config.sources_config
    return FleetSupervisor(
        graph,
        monitor,
        controller,
        alerts,
        hub,
        metrics=metrics or HostMetricsSource(sources.disk_path),
        sync=HttpSyncSource(client, sources.sync_url) if sources.sync_url else None,
        monitor_interval=monitor_config.interval,
        metrics_interval=sources.metrics_interval,
        sync_interval=sources.sync_interval,
        cleanup_interval=controller_config.cleanup_interval,
        logger=logger,
    )
