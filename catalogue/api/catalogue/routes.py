from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from catalogue.core.config import settings
from catalogue.core.errors import FetchFailed, MalformedPayload, ResourceNotFound
from catalogue.models.cache.entry import CachePolicy
from catalogue.models.catalogue.dataset import DatasetMode, DecodeStrategy
from catalogue.models.catalogue.schemas import DatasetResponse
from catalogue.models.common import ErrorResponse
from catalogue.services.catalogue.service import CatalogueService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalogue"])

EMPTY_DATASET_MESSAGE = "No movies available"


# ---------------------------------------------------------------------------
# Dependency
# ---------------------------------------------------------------------------


def _get_service(request: Request) -> CatalogueService:
    """FastAPI dependency wiring the app-owned fetcher into a ``CatalogueService``."""
    return CatalogueService(request.app.state.fetcher)


# ---------------------------------------------------------------------------
# GET /datasets, GET /datasets/{mode}
# ---------------------------------------------------------------------------


async def _dataset_response(
    service: CatalogueService,
    mode: DatasetMode,
    strategy: DecodeStrategy,
) -> DatasetResponse:
    try:
        document = await service.load_dataset(mode, strategy)
    except ResourceNotFound as exc:
        logger.warning("GET /datasets/%s not found: %s", mode.value, exc)
        raise HTTPException(status_code=404, detail=str(exc))
    except MalformedPayload as exc:
        logger.warning("GET /datasets/%s malformed: %s", mode.value, exc)
        raise HTTPException(status_code=422, detail=str(exc))

    return DatasetResponse(
        mode=mode.value,
        strategy=strategy.value,
        updated_at=document.updated_at,
        categories=list(document.categories),
        item_count=document.item_count,
        message=None if document.categories else EMPTY_DATASET_MESSAGE,
    )


@router.get(
    "/datasets",
    response_model=DatasetResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Load and decode the configured default dataset",
)
async def get_default_dataset(
    strategy: DecodeStrategy = Query(DecodeStrategy.STRICT),
    service: CatalogueService = Depends(_get_service),
) -> DatasetResponse:
    """Same as ``/datasets/{mode}`` for ``settings.dataset_mode``."""
    return await _dataset_response(service, settings.dataset_mode, strategy)


@router.get(
    "/datasets/{mode}",
    response_model=DatasetResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Load and decode a bundled dataset",
)
async def get_dataset(
    mode: DatasetMode,
    strategy: DecodeStrategy = Query(DecodeStrategy.STRICT),
    service: CatalogueService = Depends(_get_service),
) -> DatasetResponse:
    """Return the decoded dataset for *mode*.

    - **200**: decoded; ``message`` is set when there are no categories
    - **404**: dataset file not found in any source
    - **422**: unknown mode/strategy, or the file is not a JSON document
    """
    return await _dataset_response(service, mode, strategy)


# ---------------------------------------------------------------------------
# GET /posters
# ---------------------------------------------------------------------------


@router.get(
    "/posters",
    response_class=Response,
    responses={502: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
    summary="Fetch a poster image through the cache",
)
async def get_poster(
    url: str,
    policy: CachePolicy = Query(CachePolicy.RETURN_CACHE_ELSE_LOAD),
    service: CatalogueService = Depends(_get_service),
) -> Response:
    """Return the poster bytes for *url* with the upstream content type.

    - **200**: served from cache or network
    - **502**: transport error, non-2xx upstream status or not an image
    - **504**: upstream request timed out
    """
    try:
        entry = await service.fetch_poster(url, policy)
    except FetchFailed as exc:
        status = 504 if exc.timed_out else 502
        raise HTTPException(status_code=status, detail=str(exc))
    return Response(content=entry.payload, media_type=entry.content_type)
