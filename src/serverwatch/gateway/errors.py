"""Custom exceptions for the gateway collector.

None of these reach an end user: the collector logs them and carries on.
"""


class GatewayError(Exception):
    """Base exception for all gateway-related errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
    """

    code = "gateway_error"

    def __init__(self, message: str) -> None:
        """Initialize gateway error.

        Args:
            message: Human-readable error description
        """
        super().__init__(message)
        self.message = message


class FrameDecodeError(GatewayError):
    """Raised when an inbound frame is not a well-formed JSON object."""

    code = "frame_decode_error"


class ForwardingError(GatewayError):
    """Raised when a parsed message could not be delivered to the ingest endpoint."""

    code = "forwarding_error"

    def __init__(self, url: str, reason: str) -> None:
        """Initialize forwarding error.

        Args:
            url: Ingest endpoint that was called
            reason: Why the delivery failed
        """
        super().__init__(f"Forwarding to {url} failed: {reason}")
        self.url = url
        self.reason = reason
