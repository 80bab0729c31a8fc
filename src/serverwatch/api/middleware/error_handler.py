"""Error handling middleware for FastAPI application.

Malformed ingest requests are rejected with a 400 and a field-level error
list; anything unexpected is logged and answered with a generic 500.
"""

import logging
from typing import Any, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


def _format_errors(errors: Sequence[Any]) -> list[dict[str, Any]]:
    formatted: list[dict[str, Any]] = []
    for error in errors:
        field = ".".join(str(loc) for loc in error.get("loc", ()))
        formatted.append({"field": field, "message": error.get("msg", "")})
    return formatted


def _validation_response(errors: Sequence[Any]) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "code": "validation_error",
            "message": "Request validation failed",
            "errors": _format_errors(errors),
        },
    )


def setup_error_handlers(app: FastAPI) -> None:
    """Configure exception handlers for the FastAPI application.

    Args:
        app: The FastAPI application instance to configure
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle unparsable or wrongly typed request bodies.

        Returns:
            JSONResponse with 400 status code and formatted error details
        """
        return _validation_response(exc.errors())

    @app.exception_handler(PydanticValidationError)
    async def handle_validation_error(
        request: Request, exc: PydanticValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors raised inside handlers."""
        return _validation_response(exc.errors())

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions with generic error response.

        Logs the exception details and returns a generic 500 error to avoid
        exposing internal implementation details to clients.
        """
        logger.exception("Unexpected error occurred: %s", exc)

        return JSONResponse(
            status_code=500,
            content={"code": "internal_error", "message": "An internal server error occurred"},
        )
