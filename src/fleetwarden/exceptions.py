"""Fleetwarden exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class FleetwardenError(Exception):
    """Base exception for fleetwarden errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(FleetwardenError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source


# =============================================================================
# Supervisor Exceptions
# =============================================================================


class SupervisorError(FleetwardenError):
    """Base exception for service control and monitoring errors.

    Every subclass carries a stable ``kind`` string so that callers outside
    Python (the control API, the CLI) can report the failure category without
    matching on class names.

    Attributes:
        service_name: Name of the affected service, if any.
        cause: Underlying exception, if any.
    """

    kind: ClassVar[str] = "SupervisorError"

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        """Initialize with error message and service context.

        Args:
            message: Human-readable error message.
            service_name: Name of the affected service.
            cause: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.service_name: str | None = service_name
        self.cause: BaseException | None = cause

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable description of the error."""
        return {
            "success": False,
            "error": self.kind,
            "service": self.service_name,
            "message": str(self),
        }


class ServiceNotFoundError(SupervisorError):
    """Raised when a service name is not part of the fleet definition."""

    kind: ClassVar[str] = "ServiceNotFound"


class DependencyNotSatisfiedError(SupervisorError):
    """Raised when a service cannot start because dependencies are not healthy.

    Attributes:
        unsatisfied: Names of the dependencies that are not healthy.
    """

    kind: ClassVar[str] = "DependencyNotSatisfied"

    def __init__(
        self,
        message: str,
        *,
        service_name: str,
        unsatisfied: Sequence[str],
    ) -> None:
        """Initialize with the offending dependencies."""
        super().__init__(message, service_name=service_name)
        self.unsatisfied: tuple[str, ...] = tuple(unsatisfied)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable description of the error."""
        return {**super().to_dict(), "unsatisfied": list(self.unsatisfied)}


class DependentsRunningError(SupervisorError):
    """Raised when a non-forced stop is blocked by running dependents.

    Attributes:
        blockers: Names of the dependents that are still running.
    """

    kind: ClassVar[str] = "DependentsRunning"

    def __init__(
        self,
        message: str,
        *,
        service_name: str,
        blockers: Sequence[str],
    ) -> None:
        """Initialize with the blocking dependents."""
        super().__init__(message, service_name=service_name)
        self.blockers: tuple[str, ...] = tuple(blockers)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable description of the error."""
        return {**super().to_dict(), "blockers": list(self.blockers)}


class HealthCheckTimeoutError(SupervisorError):
    """Raised when a single health-check attempt exceeds its timeout."""

    kind: ClassVar[str] = "HealthCheckTimeout"


class ProbeError(SupervisorError):
    """Raised when a probe reaches a service but its health check fails."""

    kind: ClassVar[str] = "HealthCheckFailure"


class OperationTimeoutError(SupervisorError):
    """Raised when a control operation exceeds its hard timeout."""

    kind: ClassVar[str] = "OperationTimeout"


class ControlCommandError(SupervisorError):
    """Raised when a runtime control command fails.

    Attributes:
        exit_code: Exit code of the runtime command, if it ran.
        stderr: Captured standard error of the runtime command.
    """

    kind: ClassVar[str] = "ControlCommandFailure"

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        cause: BaseException | None = None,
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        """Initialize with runtime command context."""
        super().__init__(message, service_name=service_name, cause=cause)
        self.exit_code: int | None = exit_code
        self.stderr: str = stderr


class DependencyCycleError(SupervisorError):
    """Raised when service dependencies do not form a DAG.

    Attributes:
        cycle: Service names that form the detected cycle, in order.
    """

    kind: ClassVar[str] = "DependencyCycle"

    def __init__(self, message: str, *, cycle: Sequence[str]) -> None:
        """Initialize with the detected cycle."""
        super().__init__(message)
        self.cycle: tuple[str, ...] = tuple(cycle)


# =============================================================================
# Alert Exceptions
# =============================================================================


class AlertError(FleetwardenError):
    """Base exception for alert errors."""


class InvalidSeverityLevelError(AlertError, ValueError):
    """Raised when a severity or threshold level name is not recognised.

    Attributes:
        value: The rejected value.
    """

    kind: ClassVar[str] = "InvalidSeverityLevel"

    def __init__(self, message: str, *, value: object) -> None:
        """Initialize with the rejected value."""
        super().__init__(message)
        self.value: object = value

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable description of the error."""
        return {
            "success": False,
            "error": self.kind,
            "value": str(self.value),
            "message": str(self),
        }
