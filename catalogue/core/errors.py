"""Domain errors raised by the catalogue core.

The permissive parser never raises any of these; every other component
raises them per call and leaves the conversion into a user-visible state
to the caller.
"""

from __future__ import annotations


class CatalogueError(Exception):
    """Base error for all catalogue exceptions."""


class ResourceNotFound(CatalogueError):
    """Raised when no candidate byte source holds the named resource."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Resource '{name}' not found in any candidate source")
        self.name = name


class MalformedPayload(CatalogueError):
    """Raised by the strict decoder when the byte stream is not a JSON document."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Malformed payload: {reason}")
        self.reason = reason


class FetchFailed(CatalogueError):
    """Raised when a remote image cannot be fetched or validated."""

    def __init__(
        self,
        url: str,
        reason: str,
        *,
        status_code: int | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(f"Failed to fetch '{url}': {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code
        self.timed_out = timed_out


class CacheStoreError(CatalogueError):
    """Raised by the persistent cache tier when the database operation fails.

    The fetcher treats it as a cache miss (reads) or a skipped write; it
    never reaches fetch callers.
    """
