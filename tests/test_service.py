from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from catalogue.core.errors import FetchFailed, MalformedPayload, ResourceNotFound
from catalogue.loaders.resource import InMemorySource, ResourceLoader
from catalogue.models.cache.entry import CachePolicy
from catalogue.models.catalogue.dataset import DatasetMode, DecodeStrategy
from catalogue.models.catalogue.document import Document
from catalogue.services.catalogue.service import CatalogueService
from catalogue.workers.fetcher import CachedResourceFetcher

from conftest import POSTER_URL, dump, make_entry

_ROWS = {
    "last-updated": "2024-01-01 00:00",
    "rows": [
        {"title": "Row", "movies": [{"title": "A", "image_url": "<https://e.com/a.png>"}]},
        "junk",
    ],
}


def _service(payloads: dict[str, bytes], fetcher=None) -> CatalogueService:
    fetcher = fetcher if fetcher is not None else AsyncMock(spec=CachedResourceFetcher)
    return CatalogueService(fetcher, ResourceLoader([InMemorySource(payloads)]))


class TestLoadDataset:
    async def test_strict_keeps_every_element(self):
        service = _service({DatasetMode.ORIGINAL.resource_name: dump(_ROWS)})
        document = await service.load_dataset(DatasetMode.ORIGINAL)
        assert document.updated_at == "2024-01-01 00:00"
        assert len(document.categories) == 2
        assert document.categories[0].items[0].image_ref == "https://e.com/a.png"

    async def test_permissive_drops_malformed_elements(self):
        service = _service({DatasetMode.ORIGINAL.resource_name: dump(_ROWS)})
        document = await service.load_dataset("original", "permissive")
        assert len(document.categories) == 1

    async def test_uses_resource_name_for_mode(self):
        service = _service({"ios_movie_rows_data_expanded": b'{"rows": [{}]}'})
        document = await service.load_dataset(DatasetMode.EXPANDED)
        assert len(document.categories) == 1

    async def test_missing_dataset_raises_not_found(self):
        service = _service({})
        with pytest.raises(ResourceNotFound):
            await service.load_dataset(DatasetMode.ORIGINAL)

    async def test_corrupt_dataset_strict_raises(self):
        service = _service({DatasetMode.ORIGINAL.resource_name: b"not json"})
        with pytest.raises(MalformedPayload):
            await service.load_dataset(DatasetMode.ORIGINAL, DecodeStrategy.STRICT)

    async def test_corrupt_dataset_permissive_is_empty(self):
        service = _service({DatasetMode.ORIGINAL.resource_name: b"not json"})
        document = await service.load_dataset(
            DatasetMode.ORIGINAL, DecodeStrategy.PERMISSIVE
        )
        assert document == Document.empty()

    async def test_mode_defaults_to_configured_dataset(self):
        service = _service({"ios_movie_rows_data_expanded": b'{"rows": []}'})
        with patch("catalogue.services.catalogue.service.settings") as mock_settings:
            mock_settings.dataset_mode = DatasetMode.EXPANDED
            document = await service.load_dataset()
        assert document == Document.empty()

    async def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            await _service({}).load_dataset("huge")

    async def test_default_loader_reads_bundled_data(self):
        service = CatalogueService(AsyncMock(spec=CachedResourceFetcher))
        document = await service.load_dataset(DatasetMode.ORIGINAL)
        assert document.item_count == 18


class TestFetchImage:
    async def test_delegates_to_fetcher(self, png_bytes):
        fetcher = AsyncMock(spec=CachedResourceFetcher)
        fetcher.fetch.return_value = png_bytes
        service = _service({}, fetcher)

        assert await service.fetch_image(POSTER_URL) == png_bytes
        fetcher.fetch.assert_awaited_once_with(
            POSTER_URL, CachePolicy.RETURN_CACHE_ELSE_LOAD
        )

    async def test_fetch_poster_returns_entry(self):
        entry = make_entry()
        fetcher = AsyncMock(spec=CachedResourceFetcher)
        fetcher.fetch_entry.return_value = entry
        service = _service({}, fetcher)

        result = await service.fetch_poster(POSTER_URL, CachePolicy.RELOAD_IGNORING_CACHE)
        assert result is entry
        fetcher.fetch_entry.assert_awaited_once_with(
            POSTER_URL, CachePolicy.RELOAD_IGNORING_CACHE
        )

    async def test_propagates_fetch_failed(self):
        fetcher = AsyncMock(spec=CachedResourceFetcher)
        fetcher.fetch.side_effect = FetchFailed(POSTER_URL, "boom")
        with pytest.raises(FetchFailed, match="boom"):
            await _service({}, fetcher).fetch_image(POSTER_URL)
