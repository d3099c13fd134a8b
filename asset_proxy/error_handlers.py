"""Global exception handlers enforcing API error response contracts."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

VALID_ERROR_CODES = {
    "not_found",
    "forbidden",
    "invalid_request",
    "signing_failed",
    "internal_error",
}

_DEFAULT_ERROR_CODE_BY_STATUS: dict[int, str] = {
    400: "invalid_request",
    401: "forbidden",
    403: "forbidden",
    404: "not_found",
    405: "invalid_request",
    422: "invalid_request",
    500: "internal_error",
}

# Service wording that replaces the framework's bare reason phrases.
_CANONICAL_DETAIL_BY_CODE: dict[str, str] = {
    "not_found": "Not found.",
    "forbidden": "Forbidden.",
    "invalid_request": "Invalid request.",
    "internal_error": "Internal server error.",
}

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, detail: str, code: str) -> JSONResponse:
    """Build standardized JSON error payload."""
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": code})


def _resolve_error_code(status_code: int, raw_code: str | None) -> str:
    """Resolve a valid machine-readable error code."""
    if raw_code in VALID_ERROR_CODES:
        return raw_code
    if status_code >= 500:
        return "internal_error"
    return _DEFAULT_ERROR_CODE_BY_STATUS.get(status_code, "invalid_request")


def _extract_detail_and_code(detail: Any) -> tuple[str, str | None]:
    """Normalize exception detail payload into message and optional code."""
    if isinstance(detail, dict):
        raw_detail = detail.get("detail", "Request failed.")
        raw_code = detail.get("code")
        return str(raw_detail), str(raw_code) if raw_code is not None else None
    if isinstance(detail, str):
        return detail, None
    return "Request failed.", None


def _canonical_detail(detail: str, status_code: int, code: str) -> str:
    """Swap a default reason phrase such as ``Not Found`` for the service message."""
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        return detail
    if detail == phrase:
        return _CANONICAL_DETAIL_BY_CODE.get(code, detail)
    return detail


def _sanitize_detail(detail: str, status_code: int, environment: str) -> str:
    """Hide internal failure details outside development."""
    if environment != "development" and status_code >= 500:
        return "Internal server error."
    return detail


def _correlation_id(request: Request) -> str:
    """Return the request correlation ID bound by middleware, if any."""
    return getattr(
        request.state,
        "correlation_id",
        request.headers.get("x-correlation-id", "unknown"),
    )


def register_exception_handlers(app: FastAPI, environment: str) -> None:
    """Register global exception handlers enforcing error shape contract."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Normalize framework HTTP exceptions to contract payload."""
        raw_detail, raw_code = _extract_detail_and_code(exc.detail)
        code = _resolve_error_code(exc.status_code, raw_code)
        raw_detail = _canonical_detail(raw_detail, exc.status_code, code)
        if code != "signing_failed":
            raw_detail = _sanitize_detail(raw_detail, exc.status_code, environment)
        if exc.status_code in {401, 403}:
            logger.warning(
                "asset_access_denied",
                correlation_id=_correlation_id(request),
                status_code=exc.status_code,
                code=code,
                path=request.url.path,
                method=request.method,
            )
        return _error_response(status_code=exc.status_code, detail=raw_detail, code=code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Map request validation errors to standardized payload."""
        del request
        detail = "Invalid request."
        if environment == "development":
            errors = exc.errors()
            if errors:
                detail = f"Invalid request: {errors[0].get('msg', 'validation error')}."
        return _error_response(status_code=422, detail=detail, code="invalid_request")

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        """Mask internal errors and enforce contract payload."""
        logger.error(
            "unhandled_exception",
            correlation_id=_correlation_id(request),
            path=request.url.path,
            method=request.method,
            error=type(exc).__name__,
        )
        detail = _sanitize_detail(str(exc), 500, environment)
        return _error_response(status_code=500, detail=detail, code="internal_error")
