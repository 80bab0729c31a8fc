"""Health check endpoint for monitoring and load balancers.

This module reports the state of the record store, the sweeper and the
gateway collector.
"""

from typing import Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from serverwatch import __version__
from serverwatch.execution.sweeper import StoreSweeper
from serverwatch.gateway.client import GatewayClient, GatewayState
from serverwatch.observability.logging import get_logger
from serverwatch.storage.memory import RecordStore

logger = get_logger(__name__)
router = APIRouter(tags=["health"])


class HealthCheckComponent(BaseModel):
    """Health status of a single component.

    Attributes:
        status: Component status (healthy, unhealthy, degraded)
        message: Optional status message or error details
    """

    status: str
    message: str | None = None


class HealthCheckResponse(BaseModel):
    """Overall health check response.

    Attributes:
        status: Overall system status (healthy, unhealthy, degraded)
        components: Status of individual components
        version: Application version
    """

    status: str
    components: dict[str, HealthCheckComponent]
    version: str = __version__


def check_store_health(store: RecordStore) -> HealthCheckComponent:
    """Report how many records the store holds."""
    return HealthCheckComponent(
        status="healthy",
        message=f"{len(store)} records stored",
    )


def check_sweeper_health(sweeper: StoreSweeper) -> HealthCheckComponent:
    """Check that the eviction job is scheduled.

    Returns:
        HealthCheckComponent with sweeper status
    """
    if not sweeper.running:
        return HealthCheckComponent(status="unhealthy", message="Sweeper not running")
    return HealthCheckComponent(
        status="healthy",
        message=f"Sweeping every {sweeper.interval_seconds}s",
    )


def check_gateway_health(client: Optional[GatewayClient]) -> HealthCheckComponent:
    """Check the gateway collector connection.

    A disabled collector is healthy; one that is between connections is
    degraded since it will retry on its own.

    Returns:
        HealthCheckComponent with gateway status
    """
    if client is None:
        return HealthCheckComponent(status="healthy", message="Gateway collector disabled")
    if client.state == GatewayState.CONNECTED:
        return HealthCheckComponent(status="healthy", message="Gateway connected")
    return HealthCheckComponent(
        status="degraded",
        message=(
            f"Gateway {client.state.value} "
            f"(after {client.connection_attempts} connection attempts)"
        ),
    )


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request) -> JSONResponse:
    """Comprehensive health check endpoint.

    Returns:
        200 OK if all components are healthy or degraded
        503 Service Unavailable if any component is unhealthy

    Response Body:
        {
            "status": "healthy",
            "components": {
                "store": {"status": "healthy", "message": "3 records stored"},
                "sweeper": {"status": "healthy", "message": "..."},
                "gateway": {"status": "healthy", "message": "Gateway connected"}
            },
            "version": "0.1.0"
        }
    """
    state = request.app.state
    components = {
        "store": check_store_health(state.store),
        "sweeper": check_sweeper_health(state.sweeper),
        "gateway": check_gateway_health(state.gateway_client),
    }

    statuses = [c.status for c in components.values()]

    if "unhealthy" in statuses:
        overall_status = "unhealthy"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif "degraded" in statuses:
        overall_status = "degraded"
        status_code = status.HTTP_200_OK
    else:
        overall_status = "healthy"
        status_code = status.HTTP_200_OK

    response = HealthCheckResponse(status=overall_status, components=components)

    logger.info(
        "health_check_completed",
        overall_status=overall_status,
        sweeper=components["sweeper"].status,
        gateway=components["gateway"].status,
    )

    return JSONResponse(status_code=status_code, content=response.model_dump())
