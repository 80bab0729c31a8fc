"""Service configuration models and environment loading.

This module provides the configuration for the HTTP service, the record
store and the gateway collector. Values come from environment variables
(optionally via a .env file) and are validated only by type coercion: a
missing or unparsable value falls back to its documented default.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from serverwatch.gateway.protocol import DEFAULT_GATEWAY_URL
from serverwatch.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PORT = 5000
DEFAULT_EXPIRY_SECONDS = 600
DEFAULT_SWEEP_INTERVAL_SECONDS = 30
DEFAULT_RECONNECT_DELAY_SECONDS = 5.0
DEFAULT_FORWARD_TIMEOUT_SECONDS = 6.0


class ServiceConfig(BaseModel):
    """Global service configuration.

    Attributes:
        host: Interface the HTTP server binds to
        port: HTTP listen port
        expiry_seconds: Seconds after the last observation before a record
            is hidden from readers and eligible for sweeping
        sweep_interval_seconds: Period of the eviction sweep
        discord_token: Gateway authentication token (sensitive - not logged)
        channel_id: Channel whose messages are collected
        gateway_url: WebSocket URL of the real-time gateway
        reconnect_delay_seconds: Fixed delay before reconnecting the gateway
        ingest_url: Where parsed gateway messages are POSTed; defaults to
            this service's own /receive endpoint
        forward_timeout_seconds: Timeout of one forwarding request
        log_level: Logging level name
        json_logs: Emit JSON logs instead of console output

    Example:
        >>> config = ServiceConfig(port=8080, channel_id="123")
        >>> config.resolved_ingest_url
        'http://127.0.0.1:8080/receive'
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    expiry_seconds: int = Field(default=DEFAULT_EXPIRY_SECONDS, ge=1)
    sweep_interval_seconds: int = Field(default=DEFAULT_SWEEP_INTERVAL_SECONDS, ge=1)
    discord_token: Optional[str] = Field(default=None, repr=False)
    channel_id: Optional[str] = None
    gateway_url: str = Field(default=DEFAULT_GATEWAY_URL)
    reconnect_delay_seconds: float = Field(default=DEFAULT_RECONNECT_DELAY_SECONDS, ge=0)
    ingest_url: Optional[str] = None
    forward_timeout_seconds: float = Field(default=DEFAULT_FORWARD_TIMEOUT_SECONDS, gt=0)
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

    @property
    def gateway_enabled(self) -> bool:
        """Whether both a token and a target channel are configured."""
        return bool(self.discord_token and self.channel_id)

    @property
    def resolved_ingest_url(self) -> str:
        """Ingest endpoint the gateway forwarder posts to."""
        return self.ingest_url or f"http://127.0.0.1:{self.port}/receive"


def _positive_int(name: str, default: int) -> int:
    """Read a positive integer variable, falling back to the default."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("invalid_config_value", variable=name, value=raw, default=default)
        return default
    return value if value > 0 else default


def _non_negative_float(name: str, default: float) -> float:
    """Read a non-negative float variable, falling back to the default."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        logger.warning("invalid_config_value", variable=name, value=raw, default=default)
        return default
    return value if value >= 0 else default


def load_config_from_env() -> ServiceConfig:
    """Load service configuration from environment variables.

    Automatically loads variables from a .env file if present.

    Reads configuration from the following variables:
    - HOST, PORT: HTTP bind address and port (default 0.0.0.0:5000)
    - EXPIRY_SECONDS: Record freshness window (default 600)
    - SWEEP_INTERVAL_SECONDS: Eviction period (default 30)
    - DISCORD_TOKEN: Gateway token
    - CHANNEL_ID: Channel to collect from
    - GATEWAY_URL: Gateway WebSocket URL
    - RECONNECT_DELAY_SECONDS: Delay between reconnects (default 5)
    - INGEST_URL: Override for the forwarding target
    - FORWARD_TIMEOUT_SECONDS: Forwarding request timeout (default 6)
    - LOG_LEVEL, JSON_LOGS: Logging setup

    Returns:
        ServiceConfig loaded from environment

    Example:
        >>> import os
        >>> os.environ["EXPIRY_SECONDS"] = "120"
        >>> load_config_from_env().expiry_seconds
        120
    """
    load_dotenv()

    port = _positive_int("PORT", DEFAULT_PORT)
    if port > 65535:
        port = DEFAULT_PORT

    json_logs = os.getenv("JSON_LOGS", "true").lower() in ("true", "1", "yes")

    return ServiceConfig(
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        expiry_seconds=_positive_int("EXPIRY_SECONDS", DEFAULT_EXPIRY_SECONDS),
        sweep_interval_seconds=_positive_int(
            "SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS
        ),
        discord_token=os.getenv("DISCORD_TOKEN") or None,
        channel_id=os.getenv("CHANNEL_ID") or None,
        gateway_url=os.getenv("GATEWAY_URL") or DEFAULT_GATEWAY_URL,
        reconnect_delay_seconds=_non_negative_float(
            "RECONNECT_DELAY_SECONDS", DEFAULT_RECONNECT_DELAY_SECONDS
        ),
        ingest_url=os.getenv("INGEST_URL") or None,
        forward_timeout_seconds=_non_negative_float(
            "FORWARD_TIMEOUT_SECONDS", DEFAULT_FORWARD_TIMEOUT_SECONDS
        )
        or DEFAULT_FORWARD_TIMEOUT_SECONDS,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        json_logs=json_logs,
    )
