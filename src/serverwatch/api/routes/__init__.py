"""API route handlers for the ServerWatch service."""

from serverwatch.api.routes.health import router as health_router
from serverwatch.api.routes.messages import router as messages_router

__all__ = ["health_router", "messages_router"]
