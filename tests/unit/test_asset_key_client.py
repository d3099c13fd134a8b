"""Unit tests for the asset key authority client."""

from __future__ import annotations

import json
import time

import httpx
import pytest

from asset_keys.client import AssetKeyClient
from asset_keys.exceptions import CredentialFetchError
from asset_keys.types import MAX_ASSET_KEY_LIFETIME_MS, AssetKey


@pytest.mark.asyncio
async def test_create_asset_key_posts_expiry_and_bearer_token() -> None:
    """The authority receives one POST with the expiry in seconds and the bearer token."""
    seen: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code=201, json={"policy": "policy-1", "secret": "secret-1"})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = AssetKeyClient(http_client=http_client)
        asset_key = await client.create_asset_key(
            "cdn.example.com", "cfat-1", "sp1", "master", expires_at_ms=1_700_000_123_999
        )

    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == (
        "https://cdn.example.com/spaces/sp1/environments/master/asset_keys"
    )
    assert request.headers["authorization"] == "Bearer cfat-1"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {"expiresAt": 1_700_000_123}
    assert asset_key.policy == "policy-1"
    assert asset_key.secret == "secret-1"
    assert asset_key.expires_at_ms == 1_700_000_123_999


@pytest.mark.asyncio
async def test_create_asset_key_defaults_to_maximum_lifetime() -> None:
    """Without an explicit expiry the longest allowed lifetime is requested."""
    bodies: list[dict[str, int]] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(status_code=200, json={"policy": "p", "secret": "s"})

    before_s = int(time.time())
    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = AssetKeyClient(http_client=http_client)
        asset_key = await client.create_asset_key("cdn.example.com", "token", "sp1", "master")
    after_s = int(time.time())

    max_lifetime_s = MAX_ASSET_KEY_LIFETIME_MS // 1000
    assert before_s + max_lifetime_s - 1 <= bodies[0]["expiresAt"] <= after_s + max_lifetime_s
    assert asset_key.expires_at_ms // 1000 == bodies[0]["expiresAt"]


@pytest.mark.asyncio
async def test_host_specific_helpers_target_their_api_host() -> None:
    """Delivery, management and preview helpers each contact their own host."""
    hosts: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(status_code=200, json={"policy": "p", "secret": "s"})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = AssetKeyClient(http_client=http_client)
        await client.create_delivery_asset_key("token", "sp1", "master", 1_000_000)
        await client.create_management_asset_key("token", "sp1", "master", 1_000_000)
        await client.create_preview_asset_key("token", "sp1", "master", 1_000_000)

    assert hosts == ["cdn.contentful.com", "api.contentful.com", "preview.contentful.com"]


@pytest.mark.asyncio
async def test_create_asset_key_raises_fetch_error_with_status_on_rejection() -> None:
    """Non-success responses surface the authority's status code."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=422, json={"message": "expiresAt too far"})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = AssetKeyClient(http_client=http_client)
        with pytest.raises(CredentialFetchError) as exc_info:
            await client.create_asset_key("cdn.example.com", "token", "sp1", "master", 1_000_000)

    assert exc_info.value.status_code == 422
    assert "422" in exc_info.value.detail


@pytest.mark.asyncio
async def test_create_asset_key_raises_fetch_error_on_network_error() -> None:
    """Transport failures map to CredentialFetchError without a status code."""

    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network down", request=request)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = AssetKeyClient(http_client=http_client)
        with pytest.raises(CredentialFetchError) as exc_info:
            await client.create_asset_key("cdn.example.com", "token", "sp1", "master", 1_000_000)

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"policy": "p"},
        {"secret": "s"},
        {"policy": 1, "secret": "s"},
        {"policy": "p", "secret": ""},
        ["policy", "secret"],
    ],
)
async def test_create_asset_key_rejects_malformed_payload(payload: object) -> None:
    """Success responses without a string policy and secret are rejected."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json=payload)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = AssetKeyClient(http_client=http_client)
        with pytest.raises(CredentialFetchError):
            await client.create_asset_key("cdn.example.com", "token", "sp1", "master", 1_000_000)


@pytest.mark.asyncio
async def test_create_asset_key_rejects_non_json_body() -> None:
    """Invalid JSON in a success response is a fetch failure."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, content=b"<html>oops</html>")

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = AssetKeyClient(http_client=http_client)
        with pytest.raises(CredentialFetchError) as exc_info:
            await client.create_asset_key("cdn.example.com", "token", "sp1", "master", 1_000_000)

    assert exc_info.value.status_code == 200


def test_asset_key_repr_hides_secret() -> None:
    """The secret never appears in the asset key's repr."""
    asset_key = AssetKey(policy="policy-1", secret="super-secret", expires_at_ms=1)

    assert "super-secret" not in repr(asset_key)
    assert "policy-1" in repr(asset_key)
