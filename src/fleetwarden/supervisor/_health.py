"""Health monitor for the service fleet.

This module provides the HealthMonitor class that polls every service on a
fixed cycle and keeps the latest ServiceStatus snapshot per service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, final

import anyio

from fleetwarden.exceptions import HealthCheckTimeoutError
from fleetwarden.utils import create_null_logger, get_timestamp

from ._backoff import ExponentialBackoff
from ._models import HealthState, ServiceStatus

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence

    from structlog.typing import FilteringBoundLogger

    from ._models import ServiceDefinition
    from ._protocol import HealthProbe, ServiceRuntime


@final
class HealthMonitor:
    """Polls service health and owns the per-service status snapshot.

    Every service in a cycle is checked in its own task. A failing check
    (timeout, refused connection, runtime error) is captured into that
    service's status and never aborts or delays the other checks. Cycles
    are serialized: a new cycle starts only after the previous one has
    fully resolved, and its results replace the snapshot in one step.

    Attributes:
        retry_attempts: Consecutive failed attempts before a running
            service is reported unhealthy.
        attempts_per_cycle: Maximum check attempts per service per cycle.
        check_timeout: Seconds allowed for one check attempt.
        backoff: Delay calculator between attempts within a cycle.
    """

    __slots__ = (
        "_cycle_lock",
        "_definitions",
        "_logger",
        "_probe",
        "_runtime",
        "_statuses",
        "attempts_per_cycle",
        "backoff",
        "check_timeout",
        "retry_attempts",
    )

    def __init__(  # noqa: PLR0913
        self,
        definitions: Iterable[ServiceDefinition],
        runtime: ServiceRuntime,
        probe: HealthProbe,
        *,
        retry_attempts: int = 3,
        attempts_per_cycle: int = 3,
        check_timeout: float = 5.0,
        backoff: ExponentialBackoff | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            definitions: Services polled by default.
            runtime: Runtime used to find out whether containers are running.
            probe: Probe used for protocol-specific checks.
            retry_attempts: Failure threshold for reporting unhealthy.
            attempts_per_cycle: Maximum attempts per service per cycle.
            check_timeout: Seconds allowed for one attempt.
            backoff: Delay between attempts. Defaults to 1s doubling, capped at 30s.
            logger: Structured logger.
        """
        self._definitions: tuple[ServiceDefinition, ...] = tuple(definitions)
        self._runtime = runtime
        self._probe = probe
        self._statuses: dict[str, ServiceStatus] = {}
        self._cycle_lock = anyio.Lock()
        self._logger = (logger or create_null_logger()).bind(component="health_monitor")
        self.retry_attempts = retry_attempts
        self.attempts_per_cycle = max(1, attempts_per_cycle)
        self.check_timeout = check_timeout
        self.backoff = backoff or ExponentialBackoff()

    @property
    def statuses(self) -> list[ServiceStatus]:
        """Return the current snapshot, in definition order where known."""
        snapshot = self._statuses
        ordered = [snapshot[d.name] for d in self._definitions if d.name in snapshot]
        known = {d.name for d in self._definitions}
        ordered.extend(s for name, s in snapshot.items() if name not in known)
        return ordered

    def get_status(self, name: str) -> ServiceStatus | None:
        """Return the latest status for a service, or None if never polled."""
        return self._statuses.get(name)

    def status_of(self, name: str) -> HealthState | None:
        """Return the latest health state for a service, or None if never polled."""
        status = self._statuses.get(name)
        return status.status if status is not None else None

    async def poll_all(
        self,
        definitions: Iterable[ServiceDefinition] | None = None,
    ) -> list[ServiceStatus]:
        """Run one polling cycle.

        Args:
            definitions: Services to check. Defaults to every known service.

        Returns:
            The new status of every checked service, in input order.
        """
        async with self._cycle_lock:
            targets: Sequence[ServiceDefinition] = (
                self._definitions if definitions is None else tuple(definitions)
            )
            results: dict[str, ServiceStatus] = {}

            async with anyio.create_task_group() as tg:
                for definition in targets:
                    tg.start_soon(self._check_into, definition, results)

            snapshot = dict(self._statuses)
            snapshot.update(results)
            self._statuses = snapshot

            self._logger.debug(
                "health_cycle_complete",
                checked=len(results),
                healthy=sum(1 for s in results.values() if s.status == HealthState.HEALTHY),
            )
            return [results[d.name] for d in targets]

    async def run(
        self,
        interval: float,
        on_cycle: Callable[[list[ServiceStatus]], Awaitable[None]] | None = None,
    ) -> None:
        """Poll forever, sleeping ``interval`` seconds between cycles.

        Args:
            interval: Seconds between the end of one cycle and the next.
            on_cycle: Callback invoked with each cycle's results.
        """
        while True:
            statuses = await self.poll_all()
            if on_cycle is not None:
                await on_cycle(statuses)
            await anyio.sleep(interval)

    async def check_once(self, definition: ServiceDefinition) -> HealthState:
        """Probe a service once without touching the snapshot.

        Used by callers that wait for a service to become healthy.

        Returns:
            STOPPED if no container is running, HEALTHY if the single check
            passes, UNHEALTHY otherwise.
        """
        try:
            info = await self._runtime.inspect(definition.name)
            if info is None or not info.running:
                return HealthState.STOPPED
            await self._attempt(definition)
        except Exception:  # noqa: BLE001
            return HealthState.UNHEALTHY
        return HealthState.HEALTHY

    async def _check_into(
        self,
        definition: ServiceDefinition,
        results: dict[str, ServiceStatus],
    ) -> None:
        previous = self._statuses.get(definition.name)
        try:
            results[definition.name] = await self._check_service(definition, previous)
        except Exception as e:  # noqa: BLE001
            # Isolated per service: runtime or probe errors become this service's status
            failures = self._carried_failures(previous) + 1
            results[definition.name] = self._failed_status(
                definition.name, previous, failures, str(e)
            )
            self._logger.warning(
                "health_check_error", service=definition.name, error=str(e)
            )

    async def _check_service(
        self,
        definition: ServiceDefinition,
        previous: ServiceStatus | None,
    ) -> ServiceStatus:
        info = await self._runtime.inspect(definition.name)
        if info is None or not info.running:
            return ServiceStatus(
                name=definition.name,
                status=HealthState.STOPPED,
                last_check=get_timestamp(),
            )

        failures = self._carried_failures(previous)
        last_error: str | None = None

        for attempt in range(self.attempts_per_cycle):
            try:
                await self._attempt(definition)
            except Exception as e:  # noqa: BLE001
                failures += 1
                last_error = str(e) or type(e).__name__
                self._logger.debug(
                    "health_check_failed",
                    service=definition.name,
                    attempt=attempt + 1,
                    consecutive_failures=failures,
                    error=last_error,
                )
                if failures >= self.retry_attempts:
                    break
                if attempt < self.attempts_per_cycle - 1:
                    await anyio.sleep(self.backoff.delay(attempt))
            else:
                return ServiceStatus(
                    name=definition.name,
                    status=HealthState.HEALTHY,
                    last_check=get_timestamp(),
                )

        return self._failed_status(definition.name, previous, failures, last_error)

    async def _attempt(self, definition: ServiceDefinition) -> None:
        try:
            with anyio.fail_after(self.check_timeout):
                await self._probe.check(definition, self.check_timeout)
        except TimeoutError as e:
            msg = f"Health check for '{definition.name}' timed out after {self.check_timeout:g}s"
            raise HealthCheckTimeoutError(msg, service_name=definition.name, cause=e) from e

    @staticmethod
    def _carried_failures(previous: ServiceStatus | None) -> int:
        """Failures carried into this cycle; a stopped service starts from zero."""
        if previous is None or previous.status == HealthState.STOPPED:
            return 0
        return previous.consecutive_failures

    def _failed_status(
        self,
        name: str,
        previous: ServiceStatus | None,
        failures: int,
        error: str | None,
    ) -> ServiceStatus:
        if failures >= self.retry_attempts:
            state = HealthState.UNHEALTHY
        elif previous is None or previous.status == HealthState.STOPPED:
            state = HealthState.STARTING
        else:
            # Below the threshold: keep the prior state to avoid flapping
            state = previous.status

        return ServiceStatus(
            name=name,
            status=state,
            last_check=get_timestamp(),
            consecutive_failures=failures,
            error=error,
        )
