"""Rewrite asset metadata URLs so they point at the signing proxy."""

from __future__ import annotations

from typing import Any
from urllib.parse import urljoin, urlsplit, urlunsplit

from asset_keys.types import AssetFileData

_ASSET_BASE_URL = "https://ctfassets.net"


def rewrite_asset_url(asset_url: str, asset_host: str) -> str:
    """Point an asset URL at ``asset_host``, keeping its subdomain as a path prefix.

    ``//images.ctfassets.net/sp1/a/b.jpg`` becomes
    ``https://<asset_host>/images/sp1/a/b.jpg``. URLs with or without a scheme
    are accepted.
    """
    parts = urlsplit(urljoin(_ASSET_BASE_URL, asset_url))
    subdomain = (parts.hostname or "").split(".")[0]
    return urlunsplit(
        (parts.scheme, asset_host, f"/{subdomain}{parts.path}", parts.query, parts.fragment)
    )


def rewrite_all_asset_urls(asset_metadata: dict[str, Any], asset_host: str) -> dict[str, Any]:
    """Return a copy of asset metadata with every localized file URL rewritten."""
    fields = asset_metadata.get("fields")
    if not isinstance(fields, dict) or not fields.get("file"):
        return asset_metadata

    file_field: dict[str, AssetFileData] = dict(fields["file"])
    for locale, file_data in file_field.items():
        if isinstance(file_data, dict) and file_data.get("url"):
            file_field[locale] = {
                **file_data,
                "url": rewrite_asset_url(file_data["url"], asset_host),
            }

    return {**asset_metadata, "fields": {**fields, "file": file_field}}
