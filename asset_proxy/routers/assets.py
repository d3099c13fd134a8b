"""Sign-and-redirect endpoints for embargoed assets."""

from __future__ import annotations

import time
from typing import Annotated
from urllib.parse import quote, urlencode

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse

from asset_keys.exceptions import AssetKeyError
from asset_keys.urls import URLSigner
from asset_proxy.authorization import authorize_request
from asset_proxy.config import Settings, get_settings
from asset_proxy.dependencies import get_url_signer

_PATH_SAFE_CHARACTERS = "/:@!$&'()*+,;="

logger = structlog.get_logger(__name__)


def build_unsigned_url(
    subdomain: str,
    upstream_domain: str,
    space_id: str,
    asset_path: str,
    query_items: list[tuple[str, str]],
) -> str:
    """Point a proxied asset path back at its upstream asset host.

    Query parameters, repeated ones included, are carried over so that image
    transformations requested from the proxy reach the upstream.
    """
    path = quote(f"/{space_id}/{asset_path}", safe=_PATH_SAFE_CHARACTERS)
    url = f"https://{subdomain}.{upstream_domain}{path}"
    if query_items:
        url = f"{url}?{urlencode(query_items)}"
    return url


def build_asset_router(subdomain: str) -> APIRouter:
    """Create the redirect router serving one asset subdomain."""
    router = APIRouter(prefix=f"/{subdomain}", tags=["assets"])

    @router.get(
        "/{space_id}/{asset_path:path}",
        dependencies=[Depends(authorize_request)],
        name=f"{subdomain}_asset_redirect",
    )
    async def redirect_to_signed_asset(
        request: Request,
        space_id: str,
        asset_path: str,
        settings: Annotated[Settings, Depends(get_settings)],
        signer: Annotated[URLSigner, Depends(get_url_signer)],
    ) -> RedirectResponse:
        """Sign the upstream URL for this asset and redirect the client to it."""
        # Only the configured space can be signed for.
        if space_id != settings.contentful.space_id or not asset_path:
            raise HTTPException(
                status_code=404, detail={"detail": "Not found.", "code": "not_found"}
            )

        unsigned_url = build_unsigned_url(
            subdomain=subdomain,
            upstream_domain=settings.signing.upstream_domain,
            space_id=space_id,
            asset_path=asset_path,
            query_items=request.query_params.multi_items(),
        )
        expires_at_ms = int(time.time() * 1000) + settings.signing.url_lifetime_seconds * 1000
        try:
            signed_url = await signer.sign_url(
                settings.contentful.api_host,
                settings.contentful.access_token.get_secret_value(),
                settings.contentful.space_id,
                settings.contentful.environment_id,
                unsigned_url,
                expires_at_ms,
            )
        except AssetKeyError as exc:
            logger.error(
                "asset_url_signing_failed",
                subdomain=subdomain,
                space_id=space_id,
                error=type(exc).__name__,
                detail=exc.detail,
            )
            raise HTTPException(
                status_code=500,
                detail={"detail": "Failed to sign asset URL.", "code": "signing_failed"},
            ) from exc

        return RedirectResponse(signed_url, status_code=302)

    return router
