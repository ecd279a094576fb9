"""FastAPI control endpoints for the fleet.

This module provides REST endpoints for querying service health, driving
the Service Controller and the Alert Manager, and a WebSocket endpoint that
streams Broadcast Hub envelopes.
"""

# pyright: reportUnusedFunction=false
# FastAPI route handlers are registered via decorators, not direct calls

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import anyio
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from fleetwarden.exceptions import (
    ControlCommandError,
    DependencyCycleError,
    DependencyNotSatisfiedError,
    DependentsRunningError,
    HealthCheckTimeoutError,
    InvalidSeverityLevelError,
    OperationTimeoutError,
    ServiceNotFoundError,
    SupervisorError,
)

if TYPE_CHECKING:
    from fleetwarden.supervisor import ControlResult, OperationRecord

    from ._fleet import FleetSupervisor

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (ServiceNotFoundError, status.HTTP_404_NOT_FOUND),
    (DependencyNotSatisfiedError, status.HTTP_409_CONFLICT),
    (DependentsRunningError, status.HTTP_409_CONFLICT),
    (DependencyCycleError, status.HTTP_409_CONFLICT),
    (InvalidSeverityLevelError, 422),
    (ControlCommandError, status.HTTP_502_BAD_GATEWAY),
    (OperationTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (HealthCheckTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
)


class ServiceResponse(BaseModel):
    """Response model for one service's definition and latest status."""

    name: str
    display_name: str
    check_protocol: str
    endpoint: str
    criticality: str
    dependencies: list[str]
    status: str | None
    last_check: str | None
    consecutive_failures: int
    error: str | None


class ServiceResultResponse(BaseModel):
    """Response model for one service inside a multi-service operation."""

    service: str
    success: bool
    error: str | None = None


class ControlResponse(BaseModel):
    """Response model for a control call."""

    success: bool
    operation_id: str
    message: str
    timestamp: str
    service: str | None
    warnings: list[str]
    results: list[ServiceResultResponse] = []
    succeeded: int = 0
    total: int = 0


class OperationResponse(BaseModel):
    """Response model for an operation record."""

    id: str
    type: str
    service: str | None
    status: str
    start_time: str
    end_time: str | None
    error: str | None
    results: list[ServiceResultResponse]


class AlertResponse(BaseModel):
    """Response model for an alert."""

    id: str
    type: str
    severity: str
    priority: int
    title: str
    message: str
    source: str
    data: dict[str, Any]  # pyright: ignore[reportExplicitAny]
    timestamp: str
    acknowledged: bool
    acknowledged_at: str | None


class AcknowledgeResponse(BaseModel):
    """Response model for an acknowledgement."""

    success: bool
    alert_id: str


class ThresholdLevelModel(BaseModel):
    """Warning, critical and recovery margin for one resource."""

    warning: float
    critical: float
    margin: float


def error_response(error: SupervisorError | InvalidSeverityLevelError) -> JSONResponse:
    """Build the JSON error response for a control or alert error.

    Args:
        error: The error raised by the controller or alert manager.

    Returns:
        A response whose status code reflects the error category.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status_code = code
            break
    return JSONResponse(status_code=status_code, content=error.to_dict())


def _not_found(kind: str, identifier: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "success": False,
            "error": kind,
            "message": f"'{identifier}' not found",
        },
    )


def _control_response(result: ControlResult) -> ControlResponse:
    return ControlResponse.model_validate(
        {"results": [], "succeeded": 0, "total": 0, **result.to_dict()}
    )


def _operation_response(record: OperationRecord) -> OperationResponse:
    return OperationResponse.model_validate(record.to_dict())


def _thresholds_response(fleet: FleetSupervisor) -> dict[str, ThresholdLevelModel]:
    return {
        kind.value: ThresholdLevelModel.model_validate(level.to_dict())
        for kind, level in fleet.alerts.thresholds.items()
    }


def _service_response(fleet: FleetSupervisor, name: str) -> ServiceResponse:
    definition = fleet.graph.definition(name)
    current = fleet.monitor.get_status(name)
    return ServiceResponse(
        **definition.to_dict(),  # pyright: ignore[reportArgumentType]
        status=current.status.value if current is not None else None,
        last_check=current.last_check if current is not None else None,
        consecutive_failures=current.consecutive_failures if current is not None else 0,
        error=current.error if current is not None else None,
    )


def create_control_router(fleet: FleetSupervisor) -> APIRouter:  # noqa: C901, PLR0915
    """Create a FastAPI router for fleet control endpoints.

    Args:
        fleet: The FleetSupervisor to query and control.

    Returns:
        A FastAPI APIRouter with control endpoints.
    """
    router = APIRouter(tags=["fleet"])

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    @router.get("/services", response_model=list[ServiceResponse])
    async def list_services() -> list[ServiceResponse]:
        """List every service with its latest status."""
        return [_service_response(fleet, name) for name in fleet.graph]

    @router.get("/services/{name}", response_model=ServiceResponse)
    async def get_service(name: str) -> ServiceResponse | JSONResponse:
        """Get one service's definition and latest status."""
        try:
            return _service_response(fleet, name)
        except ServiceNotFoundError as e:
            return error_response(e)

    @router.get("/services/{name}/capabilities")
    async def get_capabilities(name: str) -> dict[str, object]:
        """Describe which control actions are currently possible."""
        return await fleet.controller.capabilities(name)

    @router.post("/services/{name}/start", response_model=ControlResponse)
    async def start_service(
        name: str,
        wait_for_healthy: bool = Query(default=True),  # noqa: FBT001
    ) -> ControlResponse | JSONResponse:
        """Start a service once its dependencies are healthy."""
        try:
            result = await fleet.controller.start(name, wait_for_healthy=wait_for_healthy)
        except SupervisorError as e:
            return error_response(e)
        return _control_response(result)

    @router.post("/services/{name}/stop", response_model=ControlResponse)
    async def stop_service(
        name: str,
        force: bool = Query(default=False),  # noqa: FBT001
    ) -> ControlResponse | JSONResponse:
        """Stop a service, cascading to dependents when forced."""
        try:
            result = await fleet.controller.stop(name, force=force)
        except SupervisorError as e:
            return error_response(e)
        return _control_response(result)

    @router.post("/services/{name}/restart", response_model=ControlResponse)
    async def restart_service(
        name: str,
        wait_for_healthy: bool = Query(default=True),  # noqa: FBT001
        force: bool = Query(default=False),  # noqa: FBT001
    ) -> ControlResponse | JSONResponse:
        """Restart a service."""
        try:
            result = await fleet.controller.restart(
                name, wait_for_healthy=wait_for_healthy, force=force
            )
        except SupervisorError as e:
            return error_response(e)
        return _control_response(result)

    @router.post("/restart-all", response_model=ControlResponse)
    async def restart_all(
        wait_for_healthy: bool = Query(default=False),  # noqa: FBT001
        running_only: bool = Query(default=False),  # noqa: FBT001
    ) -> ControlResponse | JSONResponse:
        """Restart every service in dependency order."""
        try:
            result = await fleet.controller.restart_all(
                wait_for_healthy=wait_for_healthy, running_only=running_only
            )
        except SupervisorError as e:
            return error_response(e)
        return _control_response(result)

    @router.get("/graph")
    async def get_graph() -> dict[str, object]:
        """Return the dependency graph and its start order."""
        return {
            "services": fleet.graph.to_dict(),
            "start_order": fleet.graph.topological_order(),
        }

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    @router.get("/operations", response_model=list[OperationResponse])
    async def list_operations(
        limit: int = Query(default=50, ge=1, le=1000),
    ) -> list[OperationResponse]:
        """List recent operations, newest first."""
        return [_operation_response(r) for r in fleet.controller.list_operations(limit)]

    @router.get("/operations/{operation_id}", response_model=OperationResponse)
    async def get_operation(operation_id: str) -> OperationResponse | JSONResponse:
        """Get one operation record."""
        record = fleet.controller.get_operation(operation_id)
        if record is None:
            return _not_found("OperationNotFound", operation_id)
        return _operation_response(record)

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    @router.get("/alerts", response_model=list[AlertResponse])
    async def get_alerts(  # noqa: PLR0913
        severity: str | None = None,
        alert_type: str | None = Query(default=None, alias="type"),
        source: str | None = None,
        unacknowledged: bool = False,  # noqa: FBT001, FBT002
        limit: int = Query(default=100, ge=1, le=1000),
    ) -> list[AlertResponse] | JSONResponse:
        """Return alert history, newest first."""
        try:
            alerts = fleet.alerts.get_history(
                severity=severity,
                alert_type=alert_type,
                source=source,
                unacknowledged=unacknowledged,
                limit=limit,
            )
        except InvalidSeverityLevelError as e:
            return error_response(e)
        return [AlertResponse.model_validate(a.to_dict()) for a in alerts]

    @router.get("/alerts/active", response_model=list[AlertResponse])
    async def get_active_alerts() -> list[AlertResponse]:
        """Return alerts for conditions that are still ongoing."""
        return [AlertResponse.model_validate(a.to_dict()) for a in fleet.alerts.active_alerts()]

    @router.get("/alerts/stats")
    async def get_alert_stats() -> dict[str, object]:
        """Summarize alert history."""
        return fleet.alerts.stats()

    @router.post("/alerts/{alert_id}/acknowledge", response_model=AcknowledgeResponse)
    async def acknowledge_alert(alert_id: str) -> AcknowledgeResponse | JSONResponse:
        """Acknowledge an alert."""
        if not fleet.alerts.acknowledge(alert_id):
            return _not_found("AlertNotFound", alert_id)
        return AcknowledgeResponse(success=True, alert_id=alert_id)

    @router.get("/alerts/thresholds", response_model=dict[str, ThresholdLevelModel])
    async def get_thresholds() -> dict[str, ThresholdLevelModel]:
        """Return the resource threshold table."""
        return _thresholds_response(fleet)

    @router.patch("/alerts/thresholds", response_model=dict[str, ThresholdLevelModel])
    async def update_thresholds(
        partial: dict[str, dict[str, float]],
    ) -> dict[str, ThresholdLevelModel] | JSONResponse:
        """Merge a partial threshold table into the current one."""
        try:
            _ = fleet.alerts.update_thresholds(partial)
        except InvalidSeverityLevelError as e:
            return error_response(e)
        return _thresholds_response(fleet)

    # -------------------------------------------------------------------------
    # Streaming
    # -------------------------------------------------------------------------

    @router.websocket("/ws")
    async def stream(websocket: WebSocket) -> None:
        """Stream Broadcast Hub envelopes as JSON text frames."""
        messages = fleet.hub.subscribe()
        await websocket.accept()
        hub_closed = False

        async def forward(scope: anyio.CancelScope) -> None:
            nonlocal hub_closed
            async with messages:
                async for message in messages:
                    await websocket.send_text(message.to_json())
            hub_closed = True
            scope.cancel()

        async with anyio.create_task_group() as tg:
            tg.start_soon(forward, tg.cancel_scope)
            try:
                while True:
                    # Inbound frames are ignored; receiving only detects disconnects.
                    _ = await websocket.receive_text()
            except WebSocketDisconnect:
                tg.cancel_scope.cancel()

        if hub_closed:
            await websocket.close()

    return router
