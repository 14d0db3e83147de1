from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from catalogue.api.router import router
from catalogue.core.config import settings
from catalogue.core.database import db
from catalogue.repositories.cache.repository import PosterCacheRepository
from catalogue.workers.fetcher import CachedResourceFetcher, close_http_client


def _configure_logging() -> None:
    """Configure the ``catalogue`` logger namespace.

    ``logging.basicConfig`` is a no-op when the root logger already has
    handlers (e.g. when uvicorn sets up its own handlers before our lifespan
    runs), so the namespace gets its own handler with ``propagate = False``.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    )
    app_log = logging.getLogger("catalogue")
    app_log.setLevel(level)
    if not app_log.handlers:
        app_log.addHandler(handler)
    app_log.propagate = False


_configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # ── Startup ──────────────────────────────────────────────────────
    repository = None
    if await db.connect():
        repository = PosterCacheRepository.from_db(db)
        await repository.ensure_indexes()
    app.state.fetcher = CachedResourceFetcher(repository)
    yield
    # ── Shutdown ─────────────────────────────────────────────────────
    await close_http_client()
    await db.disconnect()


app = FastAPI(
    title="Poster Catalogue",
    description="Decodes bundled movie datasets and serves cached poster images.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    return {"status": "ok"}
