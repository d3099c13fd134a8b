"""Public asset key exports."""

from asset_keys.cache import AssetKeyCache
from asset_keys.client import AssetKeyClient
from asset_keys.exceptions import (
    AssetKeyError,
    CredentialFetchError,
    ExpiryOutOfRangeError,
    InvalidAssetURLError,
    TokenVerificationError,
)
from asset_keys.rewrite import rewrite_all_asset_urls, rewrite_asset_url
from asset_keys.signing import generate_signed_token, verify_signed_token
from asset_keys.types import AssetKey
from asset_keys.urls import URLSigner, canonicalize_url, generate_signed_url

__all__ = [
    "AssetKey",
    "AssetKeyCache",
    "AssetKeyClient",
    "AssetKeyError",
    "CredentialFetchError",
    "ExpiryOutOfRangeError",
    "InvalidAssetURLError",
    "TokenVerificationError",
    "URLSigner",
    "canonicalize_url",
    "generate_signed_token",
    "generate_signed_url",
    "rewrite_all_asset_urls",
    "rewrite_asset_url",
    "verify_signed_token",
]
