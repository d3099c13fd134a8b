"""Health check router endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    """Plain-text probe kept for load balancers that expect it."""
    return "success"


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe endpoint."""
    return {"status": "live"}
