"""FastAPI application factory for the ServerWatch service.

This module wires the record store, the ingest service, the sweeper and
the gateway collector into one FastAPI application. Everything runs on the
application's event loop.
"""

import asyncio
import contextlib
import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from serverwatch import __version__
from serverwatch.api.middleware.correlation import CorrelationIdMiddleware
from serverwatch.api.middleware.error_handler import setup_error_handlers
from serverwatch.api.routes.health import router as health_router
from serverwatch.api.routes.messages import router as messages_router
from serverwatch.config import ServiceConfig, load_config_from_env
from serverwatch.execution.sweeper import StoreSweeper
from serverwatch.gateway.client import GatewayClient
from serverwatch.gateway.forwarder import IngestForwarder
from serverwatch.ingest.service import IngestService
from serverwatch.observability.logging import get_logger, setup_logging
from serverwatch.observability.metrics import get_metrics_collector
from serverwatch.storage.memory import RecordStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan events.

    Starts the sweeper and, when a token and channel are configured, the
    gateway collector; stops both on shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None during application runtime
    """
    config: ServiceConfig = app.state.config
    setup_logging(log_level=config.log_level, json_logs=config.json_logs)

    logger.info("application_starting", port=config.port, expiry_seconds=config.expiry_seconds)
    await app.state.sweeper.start()

    forwarder: Optional[IngestForwarder] = None
    gateway_task: Optional[asyncio.Task[None]] = None

    token = config.discord_token
    channel_id = config.channel_id
    if token and channel_id:
        forwarder = IngestForwarder(
            config.resolved_ingest_url,
            timeout=config.forward_timeout_seconds,
        )
        client = GatewayClient(
            token=token,
            channel_id=channel_id,
            forwarder=forwarder,
            url=config.gateway_url,
            reconnect_delay=config.reconnect_delay_seconds,
        )
        app.state.gateway_client = client
        gateway_task = asyncio.create_task(client.run_forever())
    else:
        logger.warning("gateway_disabled", reason="DISCORD_TOKEN or CHANNEL_ID not set")

    logger.info("application_started")

    try:
        yield
    finally:
        logger.info("application_stopping")
        if gateway_task is not None:
            gateway_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await gateway_task
        if forwarder is not None:
            await forwarder.close()
        app.state.gateway_client = None
        await app.state.sweeper.stop()
        logger.info("application_stopped")


def create_app(
    config: Optional[ServiceConfig] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure a FastAPI application instance.

    This factory function creates a FastAPI application with:
    - The record store, ingest service and sweeper on ``app.state``
    - CORS, correlation ID middleware and error handlers
    - POST /receive, GET /messages, GET /health and GET /metrics

    Args:
        config: Service configuration (default: loaded from the environment)
        clock: Source of epoch seconds shared by ingest, reads and sweeps

    Returns:
        Configured FastAPI application instance

    Examples:
        >>> app = create_app(ServiceConfig(expiry_seconds=120))
        >>> # uvicorn serverwatch.api.app:create_app --factory --port 5000
    """
    config = config or load_config_from_env()

    app = FastAPI(
        title="ServerWatch API",
        version=__version__,
        description="Collects game-server telemetry from chat and serves the freshest records",
        lifespan=lifespan,
    )

    store = RecordStore(expiry_seconds=config.expiry_seconds)
    app.state.config = config
    app.state.clock = clock
    app.state.store = store
    app.state.ingest_service = IngestService(store, clock=clock)
    app.state.sweeper = StoreSweeper(
        store,
        interval_seconds=config.sweep_interval_seconds,
        clock=clock,
    )
    app.state.gateway_client = None

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)  # type: ignore[arg-type]

    setup_error_handlers(app)

    app.include_router(messages_router)
    app.include_router(health_router)

    # Prometheus metrics endpoint
    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus metrics endpoint.

        Returns:
            Metrics in Prometheus exposition format
        """
        metrics_data = get_metrics_collector().generate_metrics()
        return Response(
            content=metrics_data,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    return app
