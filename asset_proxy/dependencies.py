"""Shared FastAPI dependency providers."""

from __future__ import annotations

from functools import lru_cache

from asset_keys.cache import AssetKeyCache
from asset_keys.client import AssetKeyClient
from asset_keys.urls import URLSigner
from asset_proxy.config import get_settings


@lru_cache
def get_asset_key_client() -> AssetKeyClient:
    """Build and cache the authority client from application settings."""
    settings = get_settings()
    return AssetKeyClient(timeout=settings.signing.http_timeout_seconds)


@lru_cache
def get_asset_key_cache() -> AssetKeyCache:
    """Return the process-wide asset key cache."""
    return AssetKeyCache(client=get_asset_key_client())


@lru_cache
def get_url_signer() -> URLSigner:
    """Build and cache the URL signer around the shared cache."""
    return URLSigner(cache=get_asset_key_cache())
