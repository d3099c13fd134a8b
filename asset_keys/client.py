"""Async HTTP client for the asset key authority."""

from __future__ import annotations

import time
from typing import Any

import httpx
import structlog

from asset_keys.exceptions import CredentialFetchError
from asset_keys.types import (
    DELIVERY_API_HOST,
    MANAGEMENT_API_HOST,
    MAX_ASSET_KEY_LIFETIME_MS,
    PREVIEW_API_HOST,
    AssetKey,
    AssetKeyPayload,
)

DEFAULT_TIMEOUT = httpx.Timeout(connect=2.0, read=5.0, write=5.0, pool=5.0)

logger = structlog.get_logger(__name__)


def _now_ms() -> int:
    """Return the current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class AssetKeyClient:
    """Async client creating asset keys through the authority's asset_keys endpoint."""

    def __init__(
        self,
        timeout: httpx.Timeout | float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create client with sane defaults and optional injected transport."""
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout or DEFAULT_TIMEOUT)

    async def create_asset_key(
        self,
        host: str,
        access_token: str,
        space_id: str,
        environment_id: str,
        expires_at_ms: int | None = None,
    ) -> AssetKey:
        """Create a fresh asset key valid until ``expires_at_ms``.

        Without an explicit expiry the longest lifetime the authority allows
        (48 hours) is requested. Limits are enforced by the authority, whose
        rejection surfaces as :class:`CredentialFetchError`.
        """
        if expires_at_ms is None:
            expires_at_ms = _now_ms() + MAX_ASSET_KEY_LIFETIME_MS

        url = f"https://{host}/spaces/{space_id}/environments/{environment_id}/asset_keys"
        response = await self._request(
            "POST",
            url,
            json={"expiresAt": expires_at_ms // 1000},
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
        )
        payload = self._asset_key_payload(response)
        logger.debug(
            "asset_key_created",
            host=host,
            space_id=space_id,
            environment_id=environment_id,
            expires_at_ms=expires_at_ms,
        )
        return AssetKey(
            policy=payload["policy"],
            secret=payload["secret"],
            expires_at_ms=expires_at_ms,
        )

    async def create_delivery_asset_key(
        self,
        access_token: str,
        space_id: str,
        environment_id: str,
        expires_at_ms: int | None = None,
    ) -> AssetKey:
        """Create an asset key through the Content Delivery API."""
        return await self.create_asset_key(
            DELIVERY_API_HOST, access_token, space_id, environment_id, expires_at_ms
        )

    async def create_management_asset_key(
        self,
        access_token: str,
        space_id: str,
        environment_id: str,
        expires_at_ms: int | None = None,
    ) -> AssetKey:
        """Create an asset key through the Content Management API."""
        return await self.create_asset_key(
            MANAGEMENT_API_HOST, access_token, space_id, environment_id, expires_at_ms
        )

    async def create_preview_asset_key(
        self,
        access_token: str,
        space_id: str,
        environment_id: str,
        expires_at_ms: int | None = None,
    ) -> AssetKey:
        """Create an asset key through the Content Preview API."""
        return await self.create_asset_key(
            PREVIEW_API_HOST, access_token, space_id, environment_id, expires_at_ms
        )

    async def aclose(self) -> None:
        """Close underlying HTTP client if owned by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AssetKeyClient:
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        """Exit async context manager and close managed resources."""
        del exc_type, exc, tb
        await self.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Execute request and normalize upstream failures."""
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise CredentialFetchError("Asset key authority unavailable.") from exc

        if not response.is_success:
            raise CredentialFetchError(
                f"Failed to create asset key: {response.status_code}",
                response.status_code,
            )
        return response

    @staticmethod
    def _asset_key_payload(response: httpx.Response) -> AssetKeyPayload:
        """Return the validated policy/secret pair from the response body."""
        try:
            payload = response.json()
        except ValueError as exc:
            raise CredentialFetchError(
                "Asset key authority returned invalid JSON.", response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise CredentialFetchError(
                "Asset key authority returned invalid JSON object.", response.status_code
            )

        policy = payload.get("policy")
        secret = payload.get("secret")
        if not isinstance(policy, str) or not policy or not isinstance(secret, str) or not secret:
            raise CredentialFetchError("Invalid asset key response payload.", response.status_code)
        return {"policy": policy, "secret": secret}
