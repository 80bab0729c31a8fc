"""Middleware components for the ServerWatch API."""

from serverwatch.api.middleware.correlation import CorrelationIdMiddleware
from serverwatch.api.middleware.error_handler import setup_error_handlers

__all__ = ["CorrelationIdMiddleware", "setup_error_handlers"]
