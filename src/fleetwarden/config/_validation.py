# pyright: reportAny=false, reportExplicitAny=false, reportUnknownArgumentType=false, reportUnknownVariableType=false
"""Configuration validation using Pydantic schemas.

Validation happens in two steps: the merged dictionary is checked against
the section schemas, then the service list is checked as a dependency
graph (unique names, known dependencies, no cycles).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from fleetwarden.exceptions import (
    ConfigValidationError,
    DependencyCycleError,
    ServiceNotFoundError,
)
from fleetwarden.supervisor import DependencyGraph

from ._models._sections import (
    AlertsConfig,
    ControllerConfig,
    LoggingConfig,
    MonitorConfig,
    RuntimeConfig,
    ServerConfig,
    SourcesConfig,
)
from ._models._services import ServiceConfig

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A configuration validation issue.

    Attributes:
        key: Dotted path to the configuration key (e.g., "monitor.interval").
        message: Human-readable description of the issue.
        expected: Description of expected value or type, if available.
        actual: The actual value that caused the issue.
        severity: Whether this is an error or warning.
    """

    key: str
    message: str
    expected: str | None
    actual: Any
    severity: Literal["error", "warning"] = "error"


class ConfigSchema(BaseModel):
    """Pydantic schema for the root configuration."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    logging: LoggingConfig = LoggingConfig()
    monitor: MonitorConfig = MonitorConfig()
    controller: ControllerConfig = ControllerConfig()
    alerts: AlertsConfig = AlertsConfig()
    sources: SourcesConfig = SourcesConfig()
    server: ServerConfig = ServerConfig()
    runtime: RuntimeConfig = RuntimeConfig()
    services: tuple[ServiceConfig, ...] = ()


def _pydantic_error_to_issue(error: ErrorDetails) -> ValidationIssue:
    ctx = error.get("ctx")
    expected: str | None = None
    if ctx is not None:
        if "expected" in ctx:
            expected = str(ctx["expected"])
        elif "pattern" in ctx:
            expected = f"pattern: {ctx['pattern']}"

    return ValidationIssue(
        key=".".join(str(part) for part in error.get("loc", ())),
        message=str(error.get("msg", "Validation error")),
        expected=expected,
        actual=error.get("input"),
    )


def _graph_issues(services: tuple[ServiceConfig, ...]) -> list[ValidationIssue]:
    try:
        _ = DependencyGraph(s.to_definition() for s in services)
    except ServiceNotFoundError as e:
        return [
            ValidationIssue(
                key="services.dependencies",
                message=str(e),
                expected="names of defined services",
                actual=e.service_name,
            )
        ]
    except DependencyCycleError as e:
        return [
            ValidationIssue(
                key="services.dependencies",
                message=str(e),
                expected="an acyclic dependency graph",
                actual=list(e.cycle),
            )
        ]
    except ValueError as e:
        return [
            ValidationIssue(
                key="services.name",
                message=str(e),
                expected="unique service names",
                actual=[s.name for s in services],
            )
        ]
    return []


def validate_config(config: dict[str, Any]) -> tuple[ConfigSchema | None, list[ValidationIssue]]:
    """Validate a merged configuration dictionary.

    Args:
        config: The merged configuration dictionary.

    Returns:
        The parsed schema (None if the sections are invalid) and the issues
        found. An empty issue list means the configuration is valid.
    """
    try:
        schema = ConfigSchema.model_validate(config)
    except ValidationError as e:
        return None, [_pydantic_error_to_issue(err) for err in e.errors()]
    return schema, _graph_issues(schema.services)


def raise_if_validation_errors(
    issues: list[ValidationIssue],
    source: str | None = None,
) -> None:
    """Raise ConfigValidationError for the first error in ``issues``.

    Raises:
        ConfigValidationError: If any issue has severity "error".
    """
    errors = [i for i in issues if i.severity == "error"]
    if errors:
        issue = errors[0]
        msg = f"Invalid configuration value for '{issue.key}': {issue.message}"
        raise ConfigValidationError(
            msg,
            key=issue.key,
            value=issue.actual,
            expected=issue.expected or issue.message,
            source=source,
        )
