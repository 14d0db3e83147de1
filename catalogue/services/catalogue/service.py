from __future__ import annotations

import asyncio
import logging

from catalogue.core.config import settings
from catalogue.decoding import decode, parse
from catalogue.loaders.resource import ResourceLoader
from catalogue.models.cache.entry import CacheEntry, CachePolicy
from catalogue.models.catalogue.dataset import DatasetMode, DecodeStrategy
from catalogue.models.catalogue.document import Document
from catalogue.workers.fetcher import CachedResourceFetcher

logger = logging.getLogger(__name__)


class CatalogueService:
    """Consumer interface of the catalogue core.

    Loads and decodes datasets off the event loop and serves poster bytes
    through the cached fetcher. Holds no view state; each call returns a
    fresh, caller-owned result.
    """

    def __init__(
        self,
        fetcher: CachedResourceFetcher,
        loader: ResourceLoader | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._loader = loader if loader is not None else ResourceLoader()

    async def load_dataset(
        self,
        mode: DatasetMode | str | None = None,
        strategy: DecodeStrategy | str = DecodeStrategy.STRICT,
    ) -> Document:
        """Load the bundled dataset for *mode* and decode it with *strategy*.

        *mode* defaults to ``settings.dataset_mode``.

        Both the file read and the decode run in a worker thread so large
        datasets never block the event loop.

        Raises:
            ResourceNotFound: no byte source holds the dataset.
            MalformedPayload: strict decoding only; the bytes are not a JSON object.
        """
        mode = DatasetMode(mode if mode is not None else settings.dataset_mode)
        strategy = DecodeStrategy(strategy)
        data = await asyncio.to_thread(self._loader.load, mode.resource_name)
        decoder = decode if strategy is DecodeStrategy.STRICT else parse
        document = await asyncio.to_thread(decoder, data)
        logger.info(
            "Loaded dataset %s (%s): %d categories, %d items",
            mode.value,
            strategy.value,
            len(document.categories),
            document.item_count,
        )
        return document

    async def fetch_image(
        self, url: str, policy: CachePolicy = CachePolicy.RETURN_CACHE_ELSE_LOAD
    ) -> bytes:
        """Return poster bytes for *url*.

        Raises:
            FetchFailed: propagated from the fetcher.
        """
        return await self._fetcher.fetch(url, policy)

    async def fetch_poster(
        self, url: str, policy: CachePolicy = CachePolicy.RETURN_CACHE_ELSE_LOAD
    ) -> CacheEntry:
        """Like ``fetch_image`` but keeps the response metadata (content type)."""
        return await self._fetcher.fetch_entry(url, policy)
