"""Dependency-aware service controller.

This module provides the ServiceController class that gates start, stop
and restart requests on the dependency graph and the Health Monitor's
latest snapshot, and records every request as an operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, final

import anyio

from fleetwarden.exceptions import (
    ControlCommandError,
    DependencyNotSatisfiedError,
    DependentsRunningError,
    OperationTimeoutError,
    SupervisorError,
)
from fleetwarden.utils import create_null_logger, get_timestamp

from ._models import (
    ControlResult,
    HealthState,
    OperationType,
    ServiceResult,
)
from ._operations import OperationStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from structlog.typing import FilteringBoundLogger

    from ._graph import DependencyGraph
    from ._health import HealthMonitor
    from ._models import OperationRecord, ServiceDefinition
    from ._protocol import ServiceRuntime

_RUNNING_STATES = frozenset({HealthState.HEALTHY, HealthState.STARTING})


@dataclass(frozen=True, slots=True)
class _Outcome:
    message: str
    warnings: tuple[str, ...] = ()
    results: tuple[ServiceResult, ...] = ()
    success: bool = True


@final
class ServiceController:
    """Starts, stops and restarts services in dependency order.

    The controller reads service health from the HealthMonitor snapshot
    but never writes it. Each control entry point creates an operation
    record before doing anything else and finalizes it exactly once,
    whichever way the call ends.

    Operations on one service are serialized by a per-service lock.
    Locks are only ever nested from a dependency towards its dependents,
    so concurrent calls cannot deadlock on an acyclic graph.

    Attributes:
        operation_timeout: Hard limit in seconds for one control call.
        graceful_stop_timeout: Grace period in seconds for stopping a service.
        health_wait_timeout: Maximum seconds to wait for a started service
            to become healthy.
        health_wait_interval: Seconds between health probes while waiting.
        settle_delay: Seconds between the stop and start phases of restart_all.
    """

    __slots__ = (
        "_graph",
        "_locks",
        "_logger",
        "_monitor",
        "_operations",
        "_runtime",
        "graceful_stop_timeout",
        "health_wait_interval",
        "health_wait_timeout",
        "operation_timeout",
        "settle_delay",
    )

    def __init__(  # noqa: PLR0913
        self,
        graph: DependencyGraph,
        runtime: ServiceRuntime,
        monitor: HealthMonitor,
        operations: OperationStore | None = None,
        *,
        operation_timeout: float = 60.0,
        graceful_stop_timeout: float = 30.0,
        health_wait_timeout: float = 30.0,
        health_wait_interval: float = 2.0,
        settle_delay: float = 2.0,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            graph: Validated dependency graph of the fleet.
            runtime: Container runtime that executes lifecycle primitives.
            monitor: Health monitor whose snapshot gates operations.
            operations: Operation record store. A new store is created if None.
            operation_timeout: Hard limit per control call.
            graceful_stop_timeout: Grace period for stops.
            health_wait_timeout: Cap on waiting for health after a start.
            health_wait_interval: Delay between health probes while waiting.
            settle_delay: Barrier delay between restart_all phases.
            logger: Structured logger.
        """
        self._graph = graph
        self._runtime = runtime
        self._monitor = monitor
        self._operations = operations if operations is not None else OperationStore()
        self._locks: dict[str, anyio.Lock] = {name: anyio.Lock() for name in graph}
        self._logger = (logger or create_null_logger()).bind(component="controller")
        self.operation_timeout = operation_timeout
        self.graceful_stop_timeout = graceful_stop_timeout
        self.health_wait_timeout = health_wait_timeout
        self.health_wait_interval = health_wait_interval
        self.settle_delay = settle_delay

    @property
    def graph(self) -> DependencyGraph:
        """Return the dependency graph."""
        return self._graph

    @property
    def operations(self) -> OperationStore:
        """Return the operation record store."""
        return self._operations

    # -------------------------------------------------------------------------
    # Control entry points
    # -------------------------------------------------------------------------

    async def start(self, name: str, *, wait_for_healthy: bool = True) -> ControlResult:
        """Start a service once all of its dependencies are healthy.

        Args:
            name: Service to start.
            wait_for_healthy: Wait up to ``health_wait_timeout`` for the
                service to pass a health check. Timing out only adds a warning.

        Returns:
            The successful control result.

        Raises:
            ServiceNotFoundError: If the service is not defined.
            DependencyNotSatisfiedError: If a dependency is not healthy. No
                runtime call is made in that case.
            ControlCommandError: If the runtime start fails.
            OperationTimeoutError: If the call exceeds ``operation_timeout``.
        """
        record = self._operations.create(OperationType.START, name)

        async def action() -> _Outcome:
            definition = self._graph.definition(name)
            async with self._locks[name]:
                warnings = await self._start_service(definition, wait_for_healthy=wait_for_healthy)
            return _Outcome(f"Service '{name}' started", warnings=warnings)

        return await self._execute(record, action, timeout=self.operation_timeout)

    async def stop(self, name: str, *, force: bool = False) -> ControlResult:
        """Stop a service.

        Without ``force`` the stop is refused while any direct dependent is
        healthy or starting. With ``force`` the dependents closure is stopped
        first, deepest dependents first, and failed graceful stops escalate
        to a kill.

        Args:
            name: Service to stop.
            force: Stop dependents first and kill on graceful-stop failure.

        Returns:
            The successful control result.

        Raises:
            ServiceNotFoundError: If the service is not defined.
            DependentsRunningError: If dependents are running and force is False.
            ControlCommandError: If the runtime stop fails.
            OperationTimeoutError: If the call exceeds ``operation_timeout``.
        """
        record = self._operations.create(OperationType.STOP, name)

        async def action() -> _Outcome:
            _ = self._graph.definition(name)
            async with self._locks[name]:
                stopped = await self._stop_with_dependents(name, force=force)
            if stopped:
                return _Outcome(
                    f"Service '{name}' stopped along with dependents: {', '.join(stopped)}"
                )
            return _Outcome(f"Service '{name}' stopped")

        return await self._execute(record, action, timeout=self.operation_timeout)

    async def restart(
        self,
        name: str,
        *,
        wait_for_healthy: bool = True,
        force: bool = False,
    ) -> ControlResult:
        """Stop a service, then start it with the same gating as start().

        Dependents are left running: the service is expected to come back.

        Args:
            name: Service to restart.
            wait_for_healthy: Wait for the service to become healthy after starting.
            force: Kill the service if the graceful stop fails.

        Returns:
            The successful control result.

        Raises:
            ServiceNotFoundError: If the service is not defined.
            DependencyNotSatisfiedError: If a dependency is not healthy. The
                service is left untouched in that case.
            ControlCommandError: If a runtime call fails.
            OperationTimeoutError: If the call exceeds ``operation_timeout``.
        """
        record = self._operations.create(OperationType.RESTART, name)

        async def action() -> _Outcome:
            definition = self._graph.definition(name)
            async with self._locks[name]:
                self._check_dependencies(definition)
                await self._stop_container(name, force=force)
                warnings = await self._start_service(definition, wait_for_healthy=wait_for_healthy)
            return _Outcome(f"Service '{name}' restarted", warnings=warnings)

        return await self._execute(record, action, timeout=self.operation_timeout)

    async def restart_all(
        self,
        *,
        wait_for_healthy: bool = False,
        running_only: bool = False,
    ) -> ControlResult:
        """Restart the fleet in dependency order.

        Services are stopped in reverse topological order (dependents
        first), then, after ``settle_delay``, started in topological order.
        A failure on one service is recorded and the remaining services are
        still processed. Each step is bounded by ``operation_timeout``.

        Args:
            wait_for_healthy: Wait for each service to become healthy after
                starting it before moving on.
            running_only: Only cycle services whose container is running.

        Returns:
            The aggregate result; ``success`` is True only when every
            service both stopped and started.
        """
        record = self._operations.create(OperationType.RESTART_ALL, None)

        async def action() -> _Outcome:
            names = await self._running_services() if running_only else list(self._graph)
            order = self._graph.topological_order(names)
            errors: dict[str, str] = {}
            warnings: list[str] = []

            self._logger.info("restart_all_stop_phase", order=list(reversed(order)))
            for name in reversed(order):
                try:
                    await self._bounded(name, self._locked_stop(name))
                except SupervisorError as e:
                    errors.setdefault(name, str(e))
                    self._logger.warning("restart_all_stop_failed", service=name, error=str(e))

            await anyio.sleep(self.settle_delay)

            self._logger.info("restart_all_start_phase", order=order)
            for name in order:
                try:
                    warnings.extend(
                        await self._bounded(
                            name, self._locked_start(name, wait_for_healthy=wait_for_healthy)
                        )
                    )
                except SupervisorError as e:
                    errors.setdefault(name, str(e))
                    self._logger.warning("restart_all_start_failed", service=name, error=str(e))

            results = tuple(
                ServiceResult(service=name, success=name not in errors, error=errors.get(name))
                for name in order
            )
            succeeded = sum(1 for r in results if r.success)
            message = f"Restarted {succeeded}/{len(results)} services"
            return _Outcome(
                message,
                warnings=tuple(warnings),
                results=results,
                success=succeeded == len(results),
            )

        return await self._execute(record, action, timeout=None)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def capabilities(self, name: str) -> dict[str, object]:
        """Describe which control actions are currently possible for a service.

        Never raises: an unknown service or a runtime failure is reported
        through ``state="error"`` and ``error``.
        """
        result: dict[str, object] = {
            "service": name,
            "can_start": False,
            "can_stop": False,
            "can_restart": False,
            "can_force_stop": False,
            "dependencies": [],
            "dependents": [],
            "blockers": [],
            "is_running": False,
            "state": "error",
        }
        if name not in self._graph:
            result["error"] = f"Service '{name}' not found"
            return result

        dependencies = sorted(self._graph.dependencies(name))
        dependents = sorted(self._graph.dependents(name))
        result["dependencies"] = dependencies
        result["dependents"] = dependents

        try:
            info = await self._runtime.inspect(name)
        except SupervisorError as e:
            result["error"] = str(e)
            return result

        running = info is not None and info.running
        deps_healthy = all(self._monitor.status_of(d) == HealthState.HEALTHY for d in dependencies)
        blockers = self._running_dependents(name)

        result.update(
            can_start=not running and deps_healthy,
            can_stop=running and not blockers,
            can_restart=running and deps_healthy,
            can_force_stop=running,
            blockers=blockers,
            is_running=running,
            state=info.state if info is not None else "missing",
        )
        return result

    def get_operation(self, operation_id: str) -> OperationRecord | None:
        """Return an operation record by id."""
        return self._operations.get(operation_id)

    def list_operations(self, limit: int = 50) -> list[OperationRecord]:
        """Return recent operation records, newest first."""
        return self._operations.list(limit)

    def cleanup_operations(self, max_age: float | None = None) -> int:
        """Evict operation records older than ``max_age`` (default: store TTL)."""
        removed = self._operations.cleanup(max_age)
        if removed:
            self._logger.debug("operations_evicted", count=removed)
        return removed

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _execute(
        self,
        record: OperationRecord,
        action: Callable[[], Awaitable[_Outcome]],
        *,
        timeout: float | None,
    ) -> ControlResult:
        """Run an action and finalize its operation record exactly once."""
        self._operations.begin(record)
        self._logger.info(
            "operation_started", operation_id=record.id, type=record.type, service=record.service
        )
        try:
            with anyio.fail_after(timeout):
                outcome = await action()
        except TimeoutError as e:
            msg = f"Operation {record.type} timed out after {timeout:g}s"
            error = OperationTimeoutError(msg, service_name=record.service, cause=e)
            self._operations.fail(record, str(error))
            self._logger.error("operation_failed", operation_id=record.id, error=str(error))
            raise error from e
        except SupervisorError as e:
            self._operations.fail(record, str(e))
            self._logger.error(
                "operation_failed", operation_id=record.id, error=str(e), kind=e.kind
            )
            raise
        else:
            if outcome.success:
                self._operations.complete(record, outcome.results)
            else:
                self._operations.fail(record, outcome.message, outcome.results)
        finally:
            if not record.finished:
                self._operations.fail(record, "Operation aborted")

        self._logger.info(
            "operation_completed",
            operation_id=record.id,
            success=outcome.success,
            warnings=list(outcome.warnings),
        )
        return ControlResult(
            success=outcome.success,
            operation_id=record.id,
            message=outcome.message,
            timestamp=get_timestamp(),
            service=record.service,
            warnings=outcome.warnings,
            results=outcome.results,
            succeeded=sum(1 for r in outcome.results if r.success),
            total=len(outcome.results),
        )

    async def _bounded[T](self, name: str, step: Awaitable[T]) -> T:
        """Await one restart_all step under the per-call timeout."""
        try:
            with anyio.fail_after(self.operation_timeout):
                return await step
        except TimeoutError as e:
            msg = f"'{name}' did not finish within {self.operation_timeout:g}s"
            raise OperationTimeoutError(msg, service_name=name, cause=e) from e

    async def _locked_stop(self, name: str) -> None:
        async with self._locks[name]:
            await self._stop_container(name, force=False)

    async def _locked_start(self, name: str, *, wait_for_healthy: bool) -> tuple[str, ...]:
        definition = self._graph.definition(name)
        async with self._locks[name]:
            await self._runtime.start(name)
            if wait_for_healthy and not await self._wait_for_healthy(definition):
                return (self._health_wait_warning(name),)
        return ()

    async def _start_service(
        self,
        definition: ServiceDefinition,
        *,
        wait_for_healthy: bool,
    ) -> tuple[str, ...]:
        name = definition.name
        self._check_dependencies(definition)
        await self._runtime.start(name)

        if wait_for_healthy and not await self._wait_for_healthy(definition):
            warning = self._health_wait_warning(name)
            self._logger.warning("health_wait_timeout", service=name)
            return (warning,)
        return ()

    def _check_dependencies(self, definition: ServiceDefinition) -> None:
        """Raise DependencyNotSatisfiedError unless every dependency is healthy."""
        unsatisfied = [
            dep
            for dep in sorted(definition.dependencies)
            if self._monitor.status_of(dep) != HealthState.HEALTHY
        ]
        if unsatisfied:
            name = definition.name
            msg = f"Cannot start '{name}': dependencies not healthy: {', '.join(unsatisfied)}"
            raise DependencyNotSatisfiedError(msg, service_name=name, unsatisfied=unsatisfied)

    async def _stop_with_dependents(self, name: str, *, force: bool) -> list[str]:
        """Stop a service, stopping its dependents first when forced.

        Returns:
            The dependents that were stopped, in stop order.
        """
        blockers = self._running_dependents(name)
        if blockers and not force:
            msg = f"Cannot stop '{name}': dependents still running: {', '.join(blockers)}"
            raise DependentsRunningError(msg, service_name=name, blockers=blockers)

        stopped: list[str] = []
        if force:
            for dependent in self._graph.dependents_stop_order(name):
                if self._monitor.status_of(dependent) == HealthState.STOPPED:
                    continue
                async with self._locks[dependent]:
                    await self._stop_container(dependent, force=True)
                stopped.append(dependent)

        await self._stop_container(name, force=force)
        return stopped

    async def _stop_container(self, name: str, *, force: bool) -> None:
        try:
            await self._runtime.graceful_stop(name, self.graceful_stop_timeout)
        except ControlCommandError as e:
            if not force:
                raise
            self._logger.warning("graceful_stop_failed_killing", service=name, error=str(e))
            await self._runtime.kill(name)

    async def _wait_for_healthy(self, definition: ServiceDefinition) -> bool:
        with anyio.move_on_after(self.health_wait_timeout):
            while True:
                if await self._monitor.check_once(definition) == HealthState.HEALTHY:
                    return True
                await anyio.sleep(self.health_wait_interval)
        return False

    def _health_wait_warning(self, name: str) -> str:
        return f"Service '{name}' did not become healthy within {self.health_wait_timeout:g}s"

    def _running_dependents(self, name: str) -> list[str]:
        return sorted(
            d for d in self._graph.dependents(name) if self._monitor.status_of(d) in _RUNNING_STATES
        )

    async def _running_services(self) -> list[str]:
        running: list[str] = []
        for name in self._graph:
            try:
                info = await self._runtime.inspect(name)
            except SupervisorError as e:
                self._logger.warning("inspect_failed", service=name, error=str(e))
                continue
            if info is not None and info.running:
                running.append(name)
        return running
