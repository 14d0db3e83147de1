"""Async poster fetcher with a two-tier cache.

Every fetch consults the memory tier, then the persistent tier, and only
then the network. Successful network responses are written to both tiers.

Uses httpx.AsyncClient which is meant to be long-lived and reused.
A single shared client is managed by the module; see ``get_http_client``
and ``close_http_client`` for lifecycle hooks. Any other client (for
instance one built on ``httpx.MockTransport``) can be injected per fetcher.
"""

from __future__ import annotations

import asyncio
import io
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from PIL import Image, UnidentifiedImageError

from catalogue.cache.memory import MemoryTier
from catalogue.core.config import settings
from catalogue.core.errors import CacheStoreError, FetchFailed
from catalogue.models.cache.entry import (
    CacheEntry,
    CachePolicy,
    cache_key,
    expiry_from_headers,
)
from catalogue.repositories.cache.repository import PosterCacheRepository

logger = logging.getLogger(__name__)

# Module-level shared client
_http_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    """Return the shared AsyncClient.  Creates one if missing."""
    global _http_client  # noqa: PLW0603
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout),
            follow_redirects=True,
            verify=settings.http_verify_ssl,
            headers={"User-Agent": settings.http_user_agent},
        )
    return _http_client


async def close_http_client() -> None:
    """Close the shared AsyncClient gracefully."""
    global _http_client  # noqa: PLW0603
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
        _http_client = None
        logger.info("HTTP client closed.")


def validate_image(url: str, payload: bytes) -> str:
    """Return the image format of *payload*, or raise ``FetchFailed``."""
    if not payload:
        raise FetchFailed(url, "empty response body")
    try:
        with Image.open(io.BytesIO(payload)) as img:
            image_format = img.format or "unknown"
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise FetchFailed(url, f"payload is not a usable image: {exc}") from exc
    except (OSError, SyntaxError, ValueError) as exc:
        raise FetchFailed(url, f"corrupt image payload: {exc}") from exc
    return image_format


def _request_key(url: str) -> str:
    if not url:
        raise FetchFailed(url, "empty image reference")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise FetchFailed(url, f"invalid URL: {exc}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise FetchFailed(url, "URL must be absolute http(s)")
    return cache_key(url)


class CachedResourceFetcher:
    """Fetches poster bytes through a memory tier and a persistent tier.

    Each instance owns its memory tier; the persistent tier and the HTTP
    client are injected. Without a repository the fetcher runs memory-only.
    A single ``fetch`` never retries: failure is terminal for that attempt.
    Cancelling the awaiting task abandons the request and writes nothing.
    """

    def __init__(
        self,
        repository: PosterCacheRepository | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        memory_capacity_bytes: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self.memory = MemoryTier(
            settings.memory_cache_bytes
            if memory_capacity_bytes is None
            else memory_capacity_bytes
        )
        self.repository = repository
        self.timeout = settings.http_timeout if timeout is None else timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client if self._client is not None else get_http_client()

    async def fetch(
        self, url: str, policy: CachePolicy = CachePolicy.RETURN_CACHE_ELSE_LOAD
    ) -> bytes:
        """Return the image bytes for *url*.

        Raises:
            FetchFailed: transport error, timeout, non-2xx status, or a
                payload that is not an image.
        """
        entry = await self.fetch_entry(url, policy)
        return entry.payload

    async def fetch_entry(
        self, url: str, policy: CachePolicy = CachePolicy.RETURN_CACHE_ELSE_LOAD
    ) -> CacheEntry:
        """Like ``fetch`` but returns the full cache entry (payload + metadata)."""
        key = _request_key(url)

        if policy is not CachePolicy.RELOAD_IGNORING_CACHE:
            cached = await self._lookup(key)
            if cached is not None:
                if policy is CachePolicy.RETURN_CACHE_ELSE_LOAD:
                    return cached
                if cached.is_fresh(datetime.now(timezone.utc)):
                    return cached
                logger.debug("Cached entry for %s is stale; reloading", url)

        entry = await self._load(url, key)
        await self._store(entry)
        return entry

    async def _lookup(self, key: str) -> CacheEntry | None:
        entry = self.memory.get(key)
        if entry is not None:
            logger.debug("Memory tier hit: %s", key)
            return entry

        if self.repository is None:
            return None
        try:
            entry = await self.repository.get(key)
        except CacheStoreError:
            return None
        if entry is None:
            logger.debug("Cache miss: %s", key)
            return None

        logger.debug("Persistent tier hit: %s", key)
        self.memory.put(entry)
        return entry

    async def _load(self, url: str, key: str) -> CacheEntry:
        try:
            response = await asyncio.wait_for(self.client.get(url), self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("Fetch timed out after %ss: %s", self.timeout, url)
            raise FetchFailed(url, "request timed out", timed_out=True) from exc
        except httpx.InvalidURL as exc:
            raise FetchFailed(url, f"invalid URL: {exc}") from exc
        except httpx.RequestError as exc:
            logger.warning("Fetch transport error for %s: %s", url, exc)
            raise FetchFailed(url, f"transport error: {exc}") from exc

        if not 200 <= response.status_code <= 299:
            logger.warning("Fetch got HTTP %d for %s", response.status_code, url)
            raise FetchFailed(
                url,
                f"unexpected status {response.status_code}",
                status_code=response.status_code,
            )

        payload = response.content
        validate_image(url, payload)

        now = datetime.now(timezone.utc)
        headers: dict[str, str] = dict(response.headers)
        return CacheEntry(
            key=key,
            url=url,
            payload=payload,
            status_code=response.status_code,
            headers=headers,
            expires_at=expiry_from_headers(headers, now),
            size=len(payload),
            created_at=now,
            last_accessed=now,
        )

    async def _store(self, entry: CacheEntry) -> None:
        if not self.memory.put(entry):
            logger.debug("Entry %s too large for memory tier", entry.key)
        if self.repository is None:
            return
        try:
            await self.repository.upsert(entry)
        except CacheStoreError:
            logger.error("Persistent tier write skipped for %s", entry.key)

    async def clear(self) -> None:
        """Drop every cached entry from both tiers."""
        self.memory.clear()
        if self.repository is not None:
            await self.repository.clear()
