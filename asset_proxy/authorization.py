"""Pluggable request authorization for asset redirects."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request

AuthorizationPredicate = Callable[[Request], bool | Awaitable[bool]]

logger = structlog.get_logger(__name__)


def allow_all(request: Request) -> bool:
    """Default predicate: every request may fetch every asset."""
    del request
    return True


def get_authorization_predicate() -> AuthorizationPredicate:
    """Return the deployment's authorization predicate.

    Deployments replace this through ``create_app(authorization_predicate=...)``
    or ``app.dependency_overrides``.
    """
    return allow_all


async def authorize_request(
    request: Request,
    predicate: Annotated[AuthorizationPredicate, Depends(get_authorization_predicate)],
) -> None:
    """Reject the request with 403 unless the predicate allows it."""
    allowed = predicate(request)
    if inspect.isawaitable(allowed):
        allowed = await allowed
    if not allowed:
        logger.warning("asset_request_forbidden", path=request.url.path, method=request.method)
        raise HTTPException(status_code=403, detail={"detail": "Forbidden.", "code": "forbidden"})
