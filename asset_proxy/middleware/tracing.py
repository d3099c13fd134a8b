"""OpenTelemetry request tracing middleware."""

from __future__ import annotations

from fastapi import Request
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


class TracingMiddleware(BaseHTTPMiddleware):
    """Create an OpenTelemetry span for request handler execution."""

    def __init__(self, app, tracer_provider: trace.TracerProvider | None = None) -> None:
        """Initialize tracer instance from the given or global provider."""
        super().__init__(app)
        self._tracer = trace.get_tracer(
            "asset_proxy.middleware.tracing", tracer_provider=tracer_provider
        )

    async def dispatch(self, request: Request, call_next) -> Response:
        """Trace request processing and attach key HTTP attributes."""
        span_name = f"{request.method} {request.url.path}"
        with self._tracer.start_as_current_span(span_name) as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.target", request.url.path)
            try:
                response = await call_next(request)
            except Exception as exc:
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR))
                raise

            route = request.scope.get("route")
            if route is not None:
                route_path = str(getattr(route, "path", ""))
                # Name spans by template so asset paths do not become span names.
                span.update_name(f"{request.method} {route_path}")
                span.set_attribute("http.route", route_path)
            span.set_attribute("http.status_code", response.status_code)
            # The redirect target carries a bearer token; record only that a redirect happened.
            span.set_attribute("asset.redirected", "location" in response.headers)
            if response.status_code >= 500:
                span.set_status(Status(StatusCode.ERROR))
            else:
                span.set_status(Status(StatusCode.OK))
            return response
