"""Asset key data contract types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypedDict

DELIVERY_API_HOST = "cdn.contentful.com"
MANAGEMENT_API_HOST = "api.contentful.com"
PREVIEW_API_HOST = "preview.contentful.com"

MAX_ASSET_KEY_LIFETIME_MS = 48 * 60 * 60 * 1000


@dataclass(frozen=True)
class AssetKey:
    """Signing credential issued by the authority.

    The secret is kept out of ``repr`` so an asset key can be passed to a
    logger or shown in a traceback without leaking it.
    """

    policy: str
    secret: str = field(repr=False)
    expires_at_ms: int


@dataclass(frozen=True)
class ScopeKey:
    """Credential namespace: one asset key per authority, space and environment.

    Instances are hashable and serve directly as cache keys, so scopes whose
    parts contain separators never share an entry.
    """

    host: str
    space_id: str
    environment_id: str


class AssetKeyPayload(TypedDict):
    """Successful asset key response body returned by the authority."""

    policy: str
    secret: str


class AssetFileData(TypedDict, total=False):
    """Per-locale file data attached to asset metadata."""

    url: str
    fileName: str
    contentType: str
    details: dict[str, Any]
