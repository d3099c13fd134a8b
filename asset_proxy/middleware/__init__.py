"""Middleware package exports."""

from asset_proxy.middleware.correlation_id import CorrelationIdMiddleware
from asset_proxy.middleware.logging import LoggingMiddleware
from asset_proxy.middleware.metrics import (
    MetricsMiddleware,
    MetricsRegistry,
    build_metrics_endpoint,
)
from asset_proxy.middleware.tracing import TracingMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "LoggingMiddleware",
    "MetricsMiddleware",
    "MetricsRegistry",
    "TracingMiddleware",
    "build_metrics_endpoint",
]
