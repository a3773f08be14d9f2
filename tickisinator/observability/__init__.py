"""Observability layer - logging and metrics."""

from tickisinator.observability.logging import setup_logging
from tickisinator.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
