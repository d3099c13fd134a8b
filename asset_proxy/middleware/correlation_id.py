"""Correlation ID middleware."""

from __future__ import annotations

import re
from uuid import uuid4

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

CORRELATION_ID_HEADER = "X-Correlation-ID"
_CONTEXT_KEY = "correlation_id"
_VALID_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def _resolve_correlation_id(raw_value: str) -> str:
    """Accept a caller-supplied ID only when it is short and log-safe."""
    candidate = raw_value.strip()
    if _VALID_CORRELATION_ID.match(candidate):
        return candidate
    return str(uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach a request correlation ID and bind it to structlog context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        """Bind correlation ID context for the current request lifecycle."""
        correlation_id = _resolve_correlation_id(request.headers.get(CORRELATION_ID_HEADER, ""))
        request.state.correlation_id = correlation_id
        structlog.contextvars.bind_contextvars(**{_CONTEXT_KEY: correlation_id})

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars(_CONTEXT_KEY)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
