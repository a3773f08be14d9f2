"""
Prometheus metrics for identifier resolution.

Defines and exposes metrics for:
- Query outcomes per designator kind
- External resolver calls and latency
- Store latency
- Read-through cache effectiveness

Metrics are exposed via HTTP endpoint for Prometheus scraping when
the CLI runs with --metrics-port.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from tickisinator.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the resolution pipeline.

    Usage:
        metrics = get_metrics()
        metrics.record_query(kind="ticker", status="resolved", provenance="store")
        metrics.record_resolver_call("fmp", "ok", latency=0.21)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.queries = Counter(
            "tickisinator_queries_total",
            "Total designator queries processed",
            ["kind", "status", "provenance"],
        )

        self.resolver_calls = Counter(
            "tickisinator_resolver_calls_total",
            "Total external resolver calls",
            ["resolver", "status"],  # status: ok, not_found, auth, rate_limit, external
        )

        self.resolver_latency = Histogram(
            "tickisinator_resolver_latency_seconds",
            "Time spent waiting on the external resolver",
            ["resolver"],
            buckets=LATENCY_BUCKETS,
        )

        self.store_latency = Histogram(
            "tickisinator_store_latency_seconds",
            "Time spent in store operations",
            ["operation"],  # lookup_ticker, lookup_isin, lookup_cusip, upsert
            buckets=LATENCY_BUCKETS,
        )

        self.cache_lookups = Counter(
            "tickisinator_cache_lookups_total",
            "Read-through cache lookups",
            ["result"],  # hit, miss
        )

        logger.debug("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_query(self, kind: str, status: str, provenance: str | None) -> None:
        """
        Record the outcome of one designator query.

        Args:
            kind: Designator kind (ticker, isin, cusip, unknown)
            status: Result status (resolved, miss, error)
            provenance: Where the answer came from, "none" if nowhere
        """
        self.queries.labels(
            kind=kind,
            status=status,
            provenance=provenance or "none",
        ).inc()

    def record_resolver_call(
        self,
        resolver: str,
        status: str,
        latency: float | None = None,
    ) -> None:
        """
        Record an external resolver round-trip.

        Args:
            resolver: Resolver name (e.g. "fmp")
            status: ok or the failure classification
            latency: Optional call latency in seconds
        """
        self.resolver_calls.labels(resolver=resolver, status=status).inc()
        if latency is not None:
            self.resolver_latency.labels(resolver=resolver).observe(latency)

    def record_store_latency(self, operation: str, latency: float) -> None:
        """Record the latency of one store operation."""
        self.store_latency.labels(operation=operation).observe(latency)

    def record_cache(self, hit: bool) -> None:
        """Record a read-through cache hit or miss."""
        self.cache_lookups.labels(result="hit" if hit else "miss").inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
