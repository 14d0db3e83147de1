from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from catalogue.core.collections import CollectionNames
from catalogue.core.config import settings
from catalogue.core.errors import CacheStoreError
from catalogue.models.cache.entry import CacheEntry
from catalogue.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

_DATETIME_FIELDS = ("expires_at", "created_at", "last_accessed")


def _as_utc(value: Any) -> Any:
    # BSON datetimes come back naive unless the client is tz-aware.
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_entry(raw: dict[str, Any]) -> CacheEntry:
    raw.pop("_id", None)
    for field in _DATETIME_FIELDS:
        if field in raw:
            raw[field] = _as_utc(raw[field])
    return CacheEntry(**raw)


class PosterCacheRepository(BaseRepository):
    """Persistent poster cache tier in the ``poster_cache`` collection.

    Survives process restarts. Total payload size is bounded by
    ``capacity_bytes``; least-recently-accessed entries are evicted after
    each write.
    """

    COLLECTION_NAME = CollectionNames.POSTER_CACHE

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        capacity_bytes: int | None = None,
    ) -> None:
        super().__init__(collection)
        self.capacity_bytes = (
            settings.persistent_cache_bytes if capacity_bytes is None else capacity_bytes
        )

    async def ensure_indexes(self) -> None:
        await self._col.create_index("key", unique=True)
        await self._col.create_index("last_accessed")

    async def get(self, key: str) -> CacheEntry | None:
        """Return the entry for *key* and mark it as recently used."""
        now = datetime.now(timezone.utc)
        try:
            raw = await self._col.find_one_and_update(
                {"key": key},
                {"$set": {"last_accessed": now}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            logger.exception("MongoDB read failed for key=%s", key)
            raise CacheStoreError("Database read error") from exc
        if raw is None:
            return None
        return _to_entry(raw)

    async def upsert(self, entry: CacheEntry) -> bool:
        """Insert or replace the entry keyed by ``entry.key``.

        Concurrent writers on the same key resolve last-write-wins. A
        ``DuplicateKeyError`` from two racing inserts is retried as a plain
        update. Returns ``False`` when the entry exceeds the tier capacity
        and was not stored.
        """
        if entry.size > self.capacity_bytes:
            logger.debug(
                "Entry %s (%d bytes) exceeds persistent capacity; not stored",
                entry.key,
                entry.size,
            )
            return False

        payload = entry.model_dump(exclude={"created_at"})
        try:
            await self._col.find_one_and_update(
                {"key": entry.key},
                {
                    "$set": payload,
                    "$setOnInsert": {"created_at": entry.created_at},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # Race condition: another writer inserted first; retry as update.
            try:
                await self._col.update_one({"key": entry.key}, {"$set": payload})
            except PyMongoError as exc:
                logger.exception("MongoDB upsert retry failed for key=%s", entry.key)
                raise CacheStoreError("Database write error") from exc
        except PyMongoError as exc:
            logger.exception("MongoDB upsert failed for key=%s", entry.key)
            raise CacheStoreError("Database write error") from exc

        await self.evict()
        return True

    async def evict(self) -> int:
        """Delete least-recently-accessed entries until within capacity."""
        kept = 0
        overflow: list[str] = []
        try:
            cursor = self._col.find({}, {"key": 1, "size": 1}).sort(
                [("last_accessed", DESCENDING), ("key", ASCENDING)]
            )
            async for raw in cursor:
                size = int(raw.get("size", 0))
                if overflow or kept + size > self.capacity_bytes:
                    overflow.append(raw["key"])
                else:
                    kept += size
            if overflow:
                await self._col.delete_many({"key": {"$in": overflow}})
        except PyMongoError as exc:
            logger.exception("MongoDB eviction failed")
            raise CacheStoreError("Database eviction error") from exc

        if overflow:
            logger.info(
                "Persistent tier evicted %d entries (%d bytes kept)", len(overflow), kept
            )
        return len(overflow)

    async def clear(self) -> None:
        await self._col.delete_many({})

    async def total_size(self) -> int:
        total = 0
        async for raw in self._col.find({}, {"size": 1}):
            total += int(raw.get("size", 0))
        return total
