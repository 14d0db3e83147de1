"""Permissive dataset parser.

Walks the generic ``json.loads`` result by hand instead of validating it
against the model. Row or movie entries that are not objects are dropped;
everything else is kept with per-field defaults. This parser never raises:
whatever goes wrong collapses to an empty ``Document`` so there is always
something to render.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from catalogue.models.catalogue.document import Category, Document, Item
from catalogue.models.catalogue.fields import (
    DEFAULT_CATEGORY_TITLE,
    DEFAULT_IMAGE_REF,
    DEFAULT_ITEM_TITLE,
    DEFAULT_UPDATED_AT,
    KEY_IMAGE_URL,
    KEY_MOVIES,
    KEY_ROWS,
    KEY_TITLE,
    KEY_UPDATED_AT,
    as_mapping,
    clean_image_ref,
    extract_field,
)

logger = logging.getLogger(__name__)


def parse(data: bytes) -> Document:
    """Parse *data* into a ``Document``, never raising."""
    try:
        root = json.loads(data)
    except (ValueError, RecursionError) as exc:  # JSONDecodeError, UnicodeDecodeError
        logger.debug("Permissive parse: payload is not JSON (%s)", exc)
        return Document.empty()

    mapping = as_mapping(root)
    if mapping is None:
        logger.debug(
            "Permissive parse: root is %s, not an object", type(root).__name__
        )
        return Document.empty()

    updated_at, _ = extract_field(mapping, KEY_UPDATED_AT, str, DEFAULT_UPDATED_AT)
    rows, _ = extract_field(mapping, KEY_ROWS, list, [])

    categories: list[Category] = []
    dropped = 0
    for raw_row in rows:
        row = as_mapping(raw_row)
        if row is None:
            dropped += 1
            continue
        items, dropped_items = _parse_items(row)
        dropped += dropped_items
        title, _ = extract_field(row, KEY_TITLE, str, DEFAULT_CATEGORY_TITLE)
        categories.append(Category(title=title, items=items))

    if dropped:
        logger.debug("Permissive parse dropped %d non-object entries", dropped)
    return Document(updated_at=updated_at, categories=tuple(categories))


def _parse_items(row: Mapping[str, Any]) -> tuple[tuple[Item, ...], int]:
    movies, _ = extract_field(row, KEY_MOVIES, list, [])
    items: list[Item] = []
    dropped = 0
    for raw_movie in movies:
        movie = as_mapping(raw_movie)
        if movie is None:
            dropped += 1
            continue
        title, _ = extract_field(movie, KEY_TITLE, str, DEFAULT_ITEM_TITLE)
        image_url, _ = extract_field(movie, KEY_IMAGE_URL, str, DEFAULT_IMAGE_REF)
        items.append(Item(title=title, image_ref=clean_image_ref(image_url)))
    return tuple(items), dropped
