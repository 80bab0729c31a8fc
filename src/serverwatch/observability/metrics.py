"""Prometheus metrics collection for monitoring.

This module provides Prometheus metrics for tracking record ingestion,
gateway traffic, store eviction and HTTP requests.
"""

from typing import Optional

from prometheus_client import Counter, Histogram, generate_latest

# Ingest metrics
records_ingested_total = Counter(
    "serverwatch_records_ingested_total",
    "Total number of records written to the store",
    labelnames=["result"],
)

records_swept_total = Counter(
    "serverwatch_records_swept_total",
    "Total number of stale records removed by the sweeper",
)

# Gateway metrics
gateway_events_total = Counter(
    "serverwatch_gateway_events_total",
    "Total number of channel messages seen on the gateway",
    labelnames=["outcome"],
)

gateway_connection_attempts_total = Counter(
    "serverwatch_gateway_connection_attempts_total",
    "Total number of gateway connection attempts",
)

# HTTP request metrics
http_requests_total = Counter(
    "serverwatch_http_requests_total",
    "Total number of HTTP requests",
    labelnames=["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "serverwatch_http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=["method", "endpoint"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


class MetricsCollector:
    """Collects and exposes Prometheus metrics.

    Provides methods for recording ingest results, gateway events,
    sweeps and HTTP requests.
    """

    def record_ingest(self, created: bool) -> None:
        """Record one upsert into the store.

        Args:
            created: True if the upsert created a new record, False if it merged

        Example:
            >>> collector = get_metrics_collector()
            >>> collector.record_ingest(created=True)
        """
        records_ingested_total.labels(result="created" if created else "merged").inc()

    def record_sweep(self, removed: int) -> None:
        """Record the number of records removed by one sweep pass."""
        if removed > 0:
            records_swept_total.inc(removed)

    def record_gateway_event(self, outcome: str) -> None:
        """Record the outcome of one channel message.

        Args:
            outcome: One of forwarded, ignored, failed
        """
        gateway_events_total.labels(outcome=outcome).inc()

    def record_connection_attempt(self) -> None:
        """Record one gateway connection attempt."""
        gateway_connection_attempts_total.inc()

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration_seconds: float,
    ) -> None:
        """Record an HTTP request event.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: Request endpoint path
            status_code: HTTP status code
            duration_seconds: Request duration in seconds

        Example:
            >>> collector = get_metrics_collector()
            >>> collector.record_http_request("GET", "/messages", 200, 0.002)
        """
        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=status_code,
        ).inc()

        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration_seconds)

    def generate_metrics(self) -> bytes:
        """Generate Prometheus metrics in text format.

        Returns:
            Metrics in Prometheus exposition format
        """
        return generate_latest()


# Singleton instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global MetricsCollector instance.

    Returns:
        Singleton MetricsCollector instance
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector
