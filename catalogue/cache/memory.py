from __future__ import annotations

import logging
import threading
from collections import OrderedDict

from catalogue.models.cache.entry import CacheEntry

logger = logging.getLogger(__name__)


class MemoryTier:
    """Size-bounded LRU of cache entries, local to the process.

    Capacity counts payload bytes. An entry larger than the whole capacity
    is never stored. All operations hold a lock, so concurrent fetches can
    share one tier; a racing ``put`` for the same key simply wins last.
    """

    def __init__(self, capacity_bytes: int) -> None:
        if capacity_bytes < 0:
            raise ValueError("capacity_bytes must be >= 0")
        self.capacity_bytes = capacity_bytes
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._size = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @property
    def size_bytes(self) -> int:
        return self._size

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
            return entry

    def put(self, entry: CacheEntry) -> bool:
        """Store *entry*, evicting least-recently-used entries as needed.

        Returns ``False`` when the entry alone exceeds the capacity.
        """
        with self._lock:
            self._discard(entry.key)
            if entry.size > self.capacity_bytes:
                return False
            self._entries[entry.key] = entry
            self._size += entry.size
            while self._size > self.capacity_bytes:
                evicted_key, evicted = self._entries.popitem(last=False)
                self._size -= evicted.size
                logger.debug("Memory tier evicted %s (%d bytes)", evicted_key, evicted.size)
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._size = 0

    def _discard(self, key: str) -> None:
        previous = self._entries.pop(key, None)
        if previous is not None:
            self._size -= previous.size
