"""ServerWatch API module.

This module provides the FastAPI application factory and route handlers.
"""

from serverwatch.api.app import create_app

__all__ = ["create_app"]
