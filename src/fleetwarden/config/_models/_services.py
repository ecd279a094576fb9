"""Service definition configuration model."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from fleetwarden.supervisor import CheckProtocol, CriticalityTag, ServiceDefinition


class ServiceConfig(BaseModel):
    """One ``[[services]]`` entry.

    Attributes:
        name: Unique service name, also the container name.
        display_name: Human-readable name. Defaults to ``name``.
        check_protocol: How health is probed.
        endpoint: Probe target.
        criticality: Criticality tag used for alert priority.
        dependencies: Names of services this one depends on.
        health_path: Path appended to the endpoint for http checks.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1, pattern=r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
    display_name: str = ""
    check_protocol: CheckProtocol
    endpoint: str = Field(min_length=1)
    criticality: CriticalityTag = CriticalityTag.OTHER
    dependencies: tuple[str, ...] = ()
    health_path: str = "/health"

    def to_definition(self) -> ServiceDefinition:
        """Convert to the immutable definition used by the supervisor."""
        return ServiceDefinition(
            name=self.name,
            display_name=self.display_name or self.name,
            check_protocol=self.check_protocol,
            endpoint=self.endpoint,
            criticality=self.criticality,
            dependencies=frozenset(self.dependencies),
            health_path=self.health_path,
        )
