"""Prometheus-style metrics middleware and endpoint."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from threading import Lock
from time import perf_counter

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import PlainTextResponse, Response

_REDIRECT_ROUTE_SUFFIX = "_asset_redirect"
_REDIRECT_STATUSES = {301, 302, 303, 307, 308}

_RequestLabels = tuple[str, str, str]


class MetricsRegistry:
    """In-process metrics registry that exposes Prometheus text format."""

    def __init__(self) -> None:
        self._request_counts: Counter[_RequestLabels] = Counter()
        self._duration_sums: dict[_RequestLabels, float] = {}
        self._redirect_counts: Counter[tuple[str, str]] = Counter()
        self._lock = Lock()

    def record(self, method: str, path: str, status: str, duration_seconds: float) -> None:
        """Record one request measurement for the label set."""
        key = (method, path, status)
        with self._lock:
            self._request_counts[key] += 1
            self._duration_sums[key] = self._duration_sums.get(key, 0.0) + duration_seconds

    def record_redirect(self, subdomain: str, outcome: str) -> None:
        """Count one sign-and-redirect attempt for an asset subdomain."""
        with self._lock:
            self._redirect_counts[(subdomain, outcome)] += 1

    def render_prometheus_text(self) -> str:
        """Render metrics in Prometheus exposition format."""
        with self._lock:
            requests = sorted(self._request_counts.items())
            durations = sorted(self._duration_sums.items())
            redirects = sorted(self._redirect_counts.items())

        lines = _metric_header(
            "asset_proxy_http_requests_total",
            "counter",
            "Total HTTP requests seen by the service.",
        )
        lines += _samples(
            "asset_proxy_http_requests_total",
            ((_request_labels(key), count) for key, count in requests),
        )
        lines += _metric_header(
            "asset_proxy_http_request_duration_seconds",
            "summary",
            "End-to-end HTTP request duration in seconds.",
        )
        lines += _samples(
            "asset_proxy_http_request_duration_seconds_count",
            ((_request_labels(key), count) for key, count in requests),
        )
        lines += _samples(
            "asset_proxy_http_request_duration_seconds_sum",
            ((_request_labels(key), total) for key, total in durations),
        )
        lines += _metric_header(
            "asset_proxy_signed_redirects_total",
            "counter",
            "Sign-and-redirect attempts by subdomain and outcome.",
        )
        lines += _samples(
            "asset_proxy_signed_redirects_total",
            (
                (_labels(subdomain=subdomain, outcome=outcome), count)
                for (subdomain, outcome), count in redirects
            ),
        )
        return "\n".join(lines) + "\n"


def _escape_label(value: str) -> str:
    """Escape string values for Prometheus label rendering."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _labels(**values: str) -> str:
    """Render label pairs in argument order."""
    return ",".join(f'{name}="{_escape_label(value)}"' for name, value in values.items())


def _request_labels(key: _RequestLabels) -> str:
    method, path, status = key
    return _labels(method=method, path=path, status=status)


def _metric_header(name: str, metric_type: str, help_text: str) -> list[str]:
    return [f"# HELP {name} {help_text}", f"# TYPE {name} {metric_type}"]


def _samples(name: str, samples: Iterable[tuple[str, float]]) -> list[str]:
    return [f"{name}{{{labels}}} {value}" for labels, value in samples]


def _redirect_outcome(status_code: int) -> str:
    """Classify the response of an asset redirect route."""
    if status_code in _REDIRECT_STATUSES:
        return "signed"
    if status_code >= 500:
        return "failed"
    return "rejected"


DEFAULT_METRICS_REGISTRY = MetricsRegistry()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record metrics for all responses, including failed requests.

    Requests are labelled with the matched route template so that asset paths
    do not explode label cardinality. Responses from asset redirect routes are
    additionally counted per subdomain and outcome.
    """

    def __init__(self, app, registry: MetricsRegistry = DEFAULT_METRICS_REGISTRY) -> None:
        super().__init__(app)
        self._registry = registry

    async def dispatch(self, request: Request, call_next) -> Response:
        """Capture request counts, durations and redirect outcomes."""
        start = perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            self._observe(request, status_code, perf_counter() - start)

    def _observe(self, request: Request, status_code: int, duration_seconds: float) -> None:
        path = request.url.path
        route = request.scope.get("route")
        if route is not None:
            path = getattr(route, "path", path)
            route_name = str(getattr(route, "name", "") or "")
            if route_name.endswith(_REDIRECT_ROUTE_SUFFIX):
                self._registry.record_redirect(
                    subdomain=route_name.removesuffix(_REDIRECT_ROUTE_SUFFIX),
                    outcome=_redirect_outcome(status_code),
                )
        self._registry.record(
            method=request.method,
            path=path,
            status=str(status_code),
            duration_seconds=duration_seconds,
        )


def build_metrics_endpoint(registry: MetricsRegistry = DEFAULT_METRICS_REGISTRY):
    """Build FastAPI-compatible endpoint that serves metrics text."""

    async def metrics_endpoint() -> PlainTextResponse:
        return PlainTextResponse(
            registry.render_prometheus_text(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    return metrics_endpoint
