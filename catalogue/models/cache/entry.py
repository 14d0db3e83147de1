from __future__ import annotations

import re
from datetime import datetime, timedelta
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Mapping

import httpx
from pydantic import BaseModel

_MAX_AGE = re.compile(r"(?:^|,)\s*(?:s-maxage|max-age)\s*=\s*\"?(\d+)\"?", re.IGNORECASE)
_NO_CACHE = re.compile(r"(?:^|,)\s*(?:no-cache|no-store)\b", re.IGNORECASE)


class CachePolicy(str, Enum):
    """How a single fetch treats the cache tiers."""

    #: Serve any cached entry, stale or not; load only on a miss.
    RETURN_CACHE_ELSE_LOAD = "return_cache_else_load"
    #: Serve cached entries only while fresh per their response headers.
    USE_PROTOCOL = "use_protocol"
    #: Always hit the network; the response still refreshes both tiers.
    RELOAD_IGNORING_CACHE = "reload_ignoring_cache"


class CacheEntry(BaseModel):
    """A cached poster response.

    ``payload`` is opaque image bytes; the remaining fields are the response
    metadata needed to serve and expire it.
    """

    key: str
    url: str
    payload: bytes
    status_code: int
    headers: dict[str, str]
    expires_at: datetime | None = None
    size: int
    created_at: datetime
    last_accessed: datetime

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "application/octet-stream")

    def is_fresh(self, now: datetime) -> bool:
        return self.expires_at is not None and now < self.expires_at


def normalize_url(url: str) -> str:
    """Canonical form of *url* used for cache keys (lower-cased scheme/host, no fragment)."""
    return str(httpx.URL(url.split("#", 1)[0]))


def cache_key(url: str, method: str = "GET") -> str:
    return f"{method.upper()} {normalize_url(url)}"


def expiry_from_headers(headers: Mapping[str, str], now: datetime) -> datetime | None:
    """Derive an absolute expiry from ``Cache-Control`` / ``Expires``.

    ``no-cache`` and ``no-store`` make the entry immediately stale; it is
    still stored and served under ``RETURN_CACHE_ELSE_LOAD``.
    Returns ``None`` when the headers carry no freshness information.
    """
    cache_control = headers.get("cache-control", "")
    if _NO_CACHE.search(cache_control):
        return now
    match = _MAX_AGE.search(cache_control)
    if match:
        return now + timedelta(seconds=int(match.group(1)))

    expires = headers.get("expires")
    if expires:
        try:
            parsed = parsedate_to_datetime(expires)
        except (TypeError, ValueError):
            return now
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=now.tzinfo)
        return parsed
    return None
