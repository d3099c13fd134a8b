"""Signed token issuance and verification for embargoed asset URLs."""

from __future__ import annotations

import hmac
from typing import Any

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from asset_keys.exceptions import TokenVerificationError

SIGNED_TOKEN_ALGORITHM = "HS256"


def generate_signed_token(
    secret: str,
    url_without_query_params: str,
    expires_at_ms: int | None = None,
) -> str:
    """Sign ``url_without_query_params`` with an asset key secret.

    The token carries the URL as ``sub`` and, when an expiry is given, the
    expiry in whole seconds as ``exp``.
    """
    claims: dict[str, Any] = {"sub": url_without_query_params}
    if expires_at_ms is not None:
        claims["exp"] = expires_at_ms // 1000
    return jwt.encode(claims, secret, algorithm=SIGNED_TOKEN_ALGORITHM)


def verify_signed_token(
    token: str,
    secret: str,
    expected_subject: str | None = None,
) -> dict[str, Any]:
    """Verify a signed token and return its claims."""
    try:
        header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise TokenVerificationError("Invalid token.", "invalid_token") from exc

    algorithm = str(header.get("alg", ""))
    if not hmac.compare_digest(algorithm, SIGNED_TOKEN_ALGORITHM):
        raise TokenVerificationError("Invalid token algorithm.", "invalid_token")

    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[SIGNED_TOKEN_ALGORITHM],
            options={"verify_aud": False, "require_sub": True},
        )
    except ExpiredSignatureError as exc:
        raise TokenVerificationError("Token has expired.", "token_expired") from exc
    except JWTError as exc:
        raise TokenVerificationError("Invalid token.", "invalid_token") from exc

    if expected_subject is not None and not hmac.compare_digest(
        str(claims.get("sub", "")).encode("utf-8"), expected_subject.encode("utf-8")
    ):
        raise TokenVerificationError("Token subject mismatch.", "invalid_token")
    return claims
