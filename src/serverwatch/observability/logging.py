"""Structured logging for the service.

Every module logs through structlog on top of the stdlib ``logging`` tree, so
gateway events, ingest calls, sweep passes and uvicorn's own output land in
one stream. Request-scoped values such as the correlation ID are kept in
structlog's context variables and merged into every event logged while the
request is being served.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import Processor

CORRELATION_ID_KEY = "correlation_id"

# Client libraries that log every request or frame.
NOISY_LOGGERS = ("httpx", "httpcore", "websockets")


def _resolve_level(log_level: str) -> int:
    """Map a level name to its numeric value, defaulting to INFO."""
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structured logging with structlog.

    Client libraries are held at WARNING unless DEBUG is requested, since
    the forwarder issues one HTTP request per collected message.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names fall back to INFO.
        json_logs: If True, output logs in JSON format; otherwise use console format

    Example:
        >>> setup_logging(log_level="INFO", json_logs=False)
        >>> logger = get_logger(__name__)
        >>> logger.info("gateway_connected", url="wss://gateway.discord.gg")
    """
    level = _resolve_level(log_level)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    # basicConfig leaves an already configured root logger alone
    logging.getLogger().setLevel(level)

    library_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to every event logged in the current context."""
    structlog.contextvars.bind_contextvars(**{CORRELATION_ID_KEY: correlation_id})


def get_correlation_id() -> Optional[str]:
    return structlog.contextvars.get_contextvars().get(CORRELATION_ID_KEY)


def clear_correlation_id() -> None:
    structlog.contextvars.unbind_contextvars(CORRELATION_ID_KEY)
