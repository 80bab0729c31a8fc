"""HTTP delivery of parsed gateway messages to the ingest endpoint."""

from typing import Any, Optional

import httpx

from serverwatch.gateway.errors import ForwardingError


class IngestForwarder:
    """Posts record payloads to an ingest endpoint.

    Delivery is attempted once; failures are raised as ForwardingError for
    the caller to log.

    Example:
        >>> async with IngestForwarder("http://127.0.0.1:5000/receive") as forwarder:
        ...     count = await forwarder.forward({"jobId": "abc-123", "serverName": "Farm A"})
    """

    def __init__(
        self,
        url: str,
        timeout: float = 6.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the forwarder.

        Args:
            url: Ingest endpoint URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.url = url
        self._http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._http_client.aclose()

    async def __aenter__(self) -> "IngestForwarder":
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()

    async def forward(self, payload: dict[str, Any]) -> Optional[int]:
        """Send one record payload.

        Args:
            payload: Record with camelCase field names

        Returns:
            Stored record count reported by the endpoint, if present

        Raises:
            ForwardingError: If the request fails, times out or is rejected
        """
        try:
            response = await self._http_client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ForwardingError(self.url, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ForwardingError(self.url, str(e) or type(e).__name__) from e

        try:
            body = response.json()
        except ValueError:
            return None
        count = body.get("count") if isinstance(body, dict) else None
        return count if isinstance(count, int) else None
