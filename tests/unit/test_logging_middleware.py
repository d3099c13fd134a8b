"""Unit tests for logging middleware credential redaction."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from httpx import ASGITransport, AsyncClient

from asset_proxy.middleware import logging as logging_module
from asset_proxy.middleware.logging import REDACTED, LoggingMiddleware


class _CaptureLogger:
    """Capture structlog-like logger calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def info(self, event: str, **kwargs: Any) -> None:
        """Capture info-level calls."""
        self.calls.append(("info", event, kwargs))

    def warning(self, event: str, **kwargs: Any) -> None:
        """Capture warning-level calls."""
        self.calls.append(("warning", event, kwargs))

    def exception(self, event: str, **kwargs: Any) -> None:
        """Capture exception-level calls."""
        self.calls.append(("exception", event, kwargs))


def _build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(LoggingMiddleware)

    @app.get("/ok")
    async def ok() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/images/sp1/a.jpg")
    async def redirect() -> RedirectResponse:
        return RedirectResponse(
            "https://images.secure.ctfassets.net/sp1/a.jpg?token=signed-token&policy=policy-1",
            status_code=302,
        )

    return app


@pytest.mark.asyncio
async def test_logging_middleware_redacts_token_and_policy_values(monkeypatch) -> None:
    """Request logs never contain raw token, policy or secret query values."""
    capture = _CaptureLogger()
    monkeypatch.setattr(logging_module, "logger", capture)

    async with AsyncClient(
        transport=ASGITransport(app=_build_app()),
        base_url="http://testserver",
    ) as client:
        response = await client.get(
            "/ok",
            params=[
                ("token", "token-secret"),
                ("policy", "policy-secret"),
                ("access_token", "cfat-secret"),
                ("w", "200"),
                ("w", "400"),
            ],
        )

    assert response.status_code == 200
    assert len(capture.calls) == 1
    level, event, payload = capture.calls[0]
    assert level == "info"
    assert event == "request_completed"
    assert payload["query_params"]["token"] == REDACTED
    assert payload["query_params"]["policy"] == REDACTED
    assert payload["query_params"]["access_token"] == REDACTED
    assert payload["query_params"]["w"] == ["200", "400"]

    serialized = str(payload)
    assert "token-secret" not in serialized
    assert "policy-secret" not in serialized
    assert "cfat-secret" not in serialized


@pytest.mark.asyncio
async def test_logging_middleware_logs_only_redirect_host(monkeypatch) -> None:
    """The signed redirect target is reduced to its host in logs."""
    capture = _CaptureLogger()
    monkeypatch.setattr(logging_module, "logger", capture)

    async with AsyncClient(
        transport=ASGITransport(app=_build_app()),
        base_url="http://testserver",
    ) as client:
        response = await client.get("/images/sp1/a.jpg")

    assert response.status_code == 302
    _, _, payload = capture.calls[0]
    assert payload["redirect_host"] == "images.secure.ctfassets.net"
    assert payload["route"] == "redirect"
    assert "signed-token" not in str(payload)
