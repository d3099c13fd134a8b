"""Single-flight asset key cache shared by every signing request."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

import structlog

from asset_keys.client import AssetKeyClient
from asset_keys.exceptions import ExpiryOutOfRangeError
from asset_keys.types import (
    DELIVERY_API_HOST,
    MANAGEMENT_API_HOST,
    MAX_ASSET_KEY_LIFETIME_MS,
    PREVIEW_API_HOST,
    AssetKey,
    ScopeKey,
)

logger = structlog.get_logger(__name__)


def _wall_clock_ms() -> int:
    """Return the current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def _retrieve_outcome(task: asyncio.Task[AssetKey]) -> None:
    """Mark a finished fetch as observed even when every waiter has gone away."""
    if not task.cancelled():
        task.exception()


@dataclass(eq=False)
class _CacheEntry:
    """Most recently installed fetch for one scope key.

    Entries are compared by identity only, so a late failure can tell whether
    its own entry is still the installed one.
    """

    expires_at_ms: int
    task: asyncio.Task[AssetKey] | None = None


class AssetKeyCache:
    """Reuse asset keys across callers and collapse concurrent fetches into one.

    Every fetch asks the authority for the longest allowed lifetime (48 hours),
    so callers with different, shorter requirements can share a single key.
    A cached key is reused while its expiry covers the caller's minimum; a
    stricter caller installs a new fetch that replaces the entry.
    """

    def __init__(
        self,
        client: AssetKeyClient,
        now: Callable[[], int] | None = None,
    ) -> None:
        """Create an empty cache backed by the given authority client."""
        self._client = client
        self._now = now or _wall_clock_ms
        self._entries: dict[ScopeKey, _CacheEntry] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Forget every cached and pending entry."""
        with self._lock:
            self._entries.clear()

    async def get_or_fetch(
        self,
        host: str,
        access_token: str,
        space_id: str,
        environment_id: str,
        min_expires_at_ms: int,
    ) -> AssetKey:
        """Return an asset key valid at least until ``min_expires_at_ms``.

        Joins an in-flight fetch when one can satisfy the requirement. Raises
        :class:`ExpiryOutOfRangeError` without contacting the authority when
        the requirement lies beyond the maximum key lifetime.
        """
        scope = ScopeKey(host=host, space_id=space_id, environment_id=environment_id)

        with self._lock:
            entry = self._entries.get(scope)
            if entry is not None and entry.expires_at_ms >= min_expires_at_ms:
                logger.debug(
                    "asset_key_cache_hit",
                    host=host,
                    space_id=space_id,
                    environment_id=environment_id,
                    expires_at_ms=entry.expires_at_ms,
                )
            else:
                now_ms = self._now()
                expires_at_ms = now_ms + MAX_ASSET_KEY_LIFETIME_MS
                if min_expires_at_ms > expires_at_ms:
                    raise ExpiryOutOfRangeError(
                        "Cannot fetch an asset key so far in the future: "
                        f"{min_expires_at_ms} > {expires_at_ms}",
                        min_expires_at_ms=min_expires_at_ms,
                        max_expires_at_ms=expires_at_ms,
                    )
                self._prune_expired(now_ms)
                entry = _CacheEntry(expires_at_ms=expires_at_ms)
                entry.task = asyncio.ensure_future(self._fetch(entry, scope, access_token))
                entry.task.add_done_callback(_retrieve_outcome)
                self._entries[scope] = entry
                logger.info(
                    "asset_key_fetch_started",
                    host=host,
                    space_id=space_id,
                    environment_id=environment_id,
                    expires_at_ms=expires_at_ms,
                    min_expires_at_ms=min_expires_at_ms,
                )

        # Shielded: a cancelled waiter must not cancel the fetch other waiters share.
        return await asyncio.shield(entry.task)

    async def get_or_fetch_delivery(
        self, access_token: str, space_id: str, environment_id: str, min_expires_at_ms: int
    ) -> AssetKey:
        """Cached asset key from the Content Delivery API."""
        return await self.get_or_fetch(
            DELIVERY_API_HOST, access_token, space_id, environment_id, min_expires_at_ms
        )

    async def get_or_fetch_management(
        self, access_token: str, space_id: str, environment_id: str, min_expires_at_ms: int
    ) -> AssetKey:
        """Cached asset key from the Content Management API."""
        return await self.get_or_fetch(
            MANAGEMENT_API_HOST, access_token, space_id, environment_id, min_expires_at_ms
        )

    async def get_or_fetch_preview(
        self, access_token: str, space_id: str, environment_id: str, min_expires_at_ms: int
    ) -> AssetKey:
        """Cached asset key from the Content Preview API."""
        return await self.get_or_fetch(
            PREVIEW_API_HOST, access_token, space_id, environment_id, min_expires_at_ms
        )

    async def _fetch(
        self,
        entry: _CacheEntry,
        scope: ScopeKey,
        access_token: str,
    ) -> AssetKey:
        """Run one authority fetch and roll back its own entry on failure."""
        try:
            return await self._client.create_asset_key(
                scope.host,
                access_token,
                scope.space_id,
                scope.environment_id,
                entry.expires_at_ms,
            )
        except (Exception, asyncio.CancelledError) as exc:
            with self._lock:
                evicted = self._entries.get(scope) is entry
                if evicted:
                    del self._entries[scope]
            logger.warning(
                "asset_key_fetch_failed",
                host=scope.host,
                space_id=scope.space_id,
                environment_id=scope.environment_id,
                error=type(exc).__name__,
                status_code=getattr(exc, "status_code", None),
                evicted=evicted,
            )
            raise

    def _prune_expired(self, now_ms: int) -> None:
        """Drop resolved entries whose key has already expired. Caller holds the lock."""
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.expires_at_ms <= now_ms and entry.task is not None and entry.task.done()
        ]
        for key in expired:
            del self._entries[key]
