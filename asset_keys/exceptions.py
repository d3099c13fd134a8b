"""Asset key exception hierarchy."""

from __future__ import annotations


class AssetKeyError(Exception):
    """Base class for all asset key and signing exceptions."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class CredentialFetchError(AssetKeyError):
    """Raised when the authority does not return a usable asset key."""

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        """Initialize with optional HTTP status code context."""
        super().__init__(detail)
        self.status_code = status_code


class ExpiryOutOfRangeError(AssetKeyError):
    """Raised when a caller needs a key valid beyond the maximum horizon."""

    def __init__(self, detail: str, min_expires_at_ms: int, max_expires_at_ms: int) -> None:
        super().__init__(detail)
        self.min_expires_at_ms = min_expires_at_ms
        self.max_expires_at_ms = max_expires_at_ms


class InvalidAssetURLError(AssetKeyError, ValueError):
    """Raised when a URL cannot be signed."""


class TokenVerificationError(AssetKeyError):
    """Raised when a signed token fails verification."""

    def __init__(self, detail: str, code: str) -> None:
        """Initialize with user-facing detail and machine-readable code."""
        super().__init__(detail)
        self.code = code
