"""Structured request logging middleware with credential redaction."""

from __future__ import annotations

from time import perf_counter
from typing import Any
from urllib.parse import urlsplit

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

SENSITIVE_KEYS = {
    "access_token",
    "authorization",
    "cookie",
    "policy",
    "secret",
    "set-cookie",
    "token",
}
REDACTED = "***REDACTED***"

logger = structlog.get_logger(__name__)


def _is_sensitive_key(key: str) -> bool:
    """Return True when key likely carries signing or credential material."""
    normalized = key.lower().replace("-", "_")
    if normalized in SENSITIVE_KEYS:
        return True
    return "token" in normalized or "secret" in normalized or "policy" in normalized


def _redact_query_params(request: Request) -> dict[str, Any]:
    """Collect query parameters, redacting sensitive values and keeping repeats."""
    redacted: dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        safe_value = REDACTED if _is_sensitive_key(key) else value
        if key not in redacted:
            redacted[key] = safe_value
        elif isinstance(redacted[key], list):
            redacted[key].append(safe_value)
        else:
            redacted[key] = [redacted[key], safe_value]
    return redacted


def _redirect_host(response: Response) -> str | None:
    """Return only the host of a redirect target; signed query strings stay out of logs."""
    location = response.headers.get("location")
    if not location:
        return None
    return urlsplit(location).hostname


def _extract_client_ip(request: Request) -> str:
    """Extract client address using X-Forwarded-For when present."""
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    client = request.client
    return client.host if client else "unknown"


def _request_fields(request: Request) -> dict[str, Any]:
    """Fields known before the handler runs."""
    return {
        "method": request.method,
        "path": request.url.path,
        "query_params": _redact_query_params(request),
        "client_ip": _extract_client_ip(request),
        "user_agent": request.headers.get("user-agent", ""),
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    """Emit one ``request_completed`` event per request.

    Signed redirect targets contain a bearer token, so only the redirect host
    is logged, never the ``Location`` header itself.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        """Log completion metadata for each request."""
        start = perf_counter()
        fields = _request_fields(request)

        try:
            response = await call_next(request)
        except Exception:
            fields["duration_ms"] = round((perf_counter() - start) * 1000, 2)
            logger.exception("request_completed", status_code=500, **fields)
            raise

        fields["duration_ms"] = round((perf_counter() - start) * 1000, 2)
        route = request.scope.get("route")
        if route is not None:
            fields["route"] = getattr(route, "name", None)
        emit = logger.warning if response.status_code >= 400 else logger.info
        emit(
            "request_completed",
            status_code=response.status_code,
            redirect_host=_redirect_host(response),
            **fields,
        )
        return response
