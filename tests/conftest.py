from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient
from PIL import Image

from catalogue.main import app
from catalogue.models.cache.entry import CacheEntry, cache_key
from catalogue.repositories.cache.repository import PosterCacheRepository

POSTER_URL = "https://images.example.com/posters/harbor-lights.jpg"


def make_png(width: int = 2, height: int = 3, color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def dump(payload: object) -> bytes:
    return json.dumps(payload).encode("utf-8")


def make_entry(url: str = POSTER_URL, payload: bytes | None = None, **kwargs) -> CacheEntry:
    payload = make_png() if payload is None else payload
    now = datetime.now(timezone.utc)
    defaults = dict(
        key=cache_key(url),
        url=url,
        payload=payload,
        status_code=200,
        headers={"content-type": "image/png"},
        size=len(payload),
        created_at=now,
        last_accessed=now,
    )
    return CacheEntry(**{**defaults, **kwargs})


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def mongo_collection():
    return AsyncMongoMockClient()["poster_catalogue_test"]["poster_cache"]


@pytest.fixture
async def repository(mongo_collection):
    repo = PosterCacheRepository(mongo_collection, capacity_bytes=1024 * 1024)
    await repo.ensure_indexes()
    return repo


@pytest.fixture
def client():
    """TestClient with lifespan startup/shutdown hooks fully mocked."""
    with (
        patch(
            "catalogue.core.database.DatabaseManager.connect",
            new_callable=AsyncMock,
        ),
        patch(
            "catalogue.core.database.DatabaseManager.disconnect",
            new_callable=AsyncMock,
        ),
        patch(
            "catalogue.core.database.DatabaseManager.get_collection",
            return_value=MagicMock(),
        ),
        patch(
            "catalogue.repositories.cache.repository.PosterCacheRepository.ensure_indexes",
            new_callable=AsyncMock,
        ),
        patch(
            "catalogue.main.close_http_client",
            new_callable=AsyncMock,
        ),
    ):
        with TestClient(app) as c:
            yield c
