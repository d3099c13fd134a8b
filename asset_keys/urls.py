"""Signed asset URL construction."""

from __future__ import annotations

from urllib.parse import SplitResult, parse_qsl, quote, urlencode, urlsplit, urlunsplit

import structlog

from asset_keys.cache import AssetKeyCache
from asset_keys.exceptions import InvalidAssetURLError
from asset_keys.signing import generate_signed_token

TOKEN_QUERY_PARAM = "token"
POLICY_QUERY_PARAM = "policy"

_DEFAULT_PORTS = {"http": 80, "https": 443}
# Characters a WHATWG URL parser leaves unescaped in a path.
_PATH_SAFE_CHARACTERS = "/%:@!$&'()*+,;=~"

logger = structlog.get_logger(__name__)


def _ascii_host(host: str, url: str) -> str:
    """Return the IDNA (punycode) form of a hostname."""
    if any(char.isspace() for char in host):
        raise InvalidAssetURLError(f"Invalid asset URL host: {url!r}")
    if host.isascii():
        return host
    try:
        return host.encode("idna").decode("ascii")
    except UnicodeError as exc:
        raise InvalidAssetURLError(f"Invalid asset URL host: {url!r}") from exc


def _split_url(url: str) -> SplitResult:
    """Parse an absolute http(s) URL or raise InvalidAssetURLError.

    The host is IDNA-encoded and the path percent-encoded, so the signed
    subject and the emitted URL match what the asset host sees on the wire.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidAssetURLError("Asset URL must be a non-empty string.")
    try:
        parts = urlsplit(url.strip())
        # Raises ValueError for a malformed port.
        port = parts.port
    except ValueError as exc:
        raise InvalidAssetURLError(f"Invalid asset URL: {url!r}") from exc
    if parts.scheme.lower() not in _DEFAULT_PORTS or not parts.hostname:
        raise InvalidAssetURLError(f"Asset URL must be an absolute http(s) URL: {url!r}")

    host = _ascii_host(parts.hostname, url)
    if ":" in host:
        host = f"[{host}]"
    userinfo, _, _ = parts.netloc.rpartition("@")
    netloc = f"{userinfo}@{host}" if userinfo else host
    if port is not None:
        netloc = f"{netloc}:{port}"
    return parts._replace(netloc=netloc, path=quote(parts.path, safe=_PATH_SAFE_CHARACTERS))


def _origin(parts: SplitResult) -> str:
    """Return scheme, host and non-default port of a parsed URL."""
    scheme = parts.scheme.lower()
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        host = f"{host}:{port}"
    return f"{scheme}://{host}"


def canonicalize_url(url: str) -> str:
    """Reduce a URL to origin plus path, the form bound into signed tokens."""
    parts = _split_url(url)
    return _origin(parts) + (parts.path or "/")


def _set_query_params(query: str, values: dict[str, str]) -> str:
    """Set each named parameter once, in place of its first occurrence."""
    pairs: list[tuple[str, str]] = []
    applied: set[str] = set()
    for name, value in parse_qsl(query, keep_blank_values=True):
        if name not in values:
            pairs.append((name, value))
        elif name not in applied:
            pairs.append((name, values[name]))
            applied.add(name)
    for name, value in values.items():
        if name not in applied:
            pairs.append((name, value))
    return urlencode(pairs)


def generate_signed_url(policy: str, secret: str, url: str, expires_at_ms: int | None) -> str:
    """Attach a signed token and the asset key policy to ``url``.

    Only origin and path are signed, so query parameters such as image
    transformation options can change without invalidating the token.
    """
    parts = _split_url(url)
    token = generate_signed_token(secret, _origin(parts) + (parts.path or "/"), expires_at_ms)
    query = _set_query_params(
        parts.query, {TOKEN_QUERY_PARAM: token, POLICY_QUERY_PARAM: policy}
    )
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", query, parts.fragment))


class URLSigner:
    """Sign asset URLs with asset keys obtained through a shared cache."""

    def __init__(self, cache: AssetKeyCache) -> None:
        self._cache = cache

    async def sign_url(
        self,
        host: str,
        access_token: str,
        space_id: str,
        environment_id: str,
        url: str,
        expires_at_ms: int,
    ) -> str:
        """Return ``url`` signed so that it stays valid until ``expires_at_ms``."""
        # Reject malformed input before spending an authority round-trip on it.
        _split_url(url)
        asset_key = await self._cache.get_or_fetch(
            host, access_token, space_id, environment_id, min_expires_at_ms=expires_at_ms
        )
        signed_url = generate_signed_url(asset_key.policy, asset_key.secret, url, expires_at_ms)
        logger.debug(
            "asset_url_signed",
            host=host,
            space_id=space_id,
            environment_id=environment_id,
            expires_at_ms=expires_at_ms,
        )
        return signed_url
