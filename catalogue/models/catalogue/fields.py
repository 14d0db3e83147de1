"""Field extraction and normalization shared by both dataset decoders.

Every known field goes through :func:`coerce_field`, which never raises: a
value that is absent, ``null`` or of the wrong type is replaced by the
field's default and reported back as ``defaulted``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, NamedTuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Wire keys of the dataset file
KEY_UPDATED_AT = "last-updated"
KEY_ROWS = "rows"
KEY_TITLE = "title"
KEY_MOVIES = "movies"
KEY_IMAGE_URL = "image_url"

DEFAULT_UPDATED_AT = ""
DEFAULT_CATEGORY_TITLE = "Category"
DEFAULT_ITEM_TITLE = "Movie Title"
DEFAULT_IMAGE_REF = ""

_IMAGE_REF_DELIMITERS = "<>"


class FieldValue(NamedTuple):
    value: Any
    defaulted: bool


def coerce_field(raw: Any, expected_type: type[T], default: T) -> FieldValue:
    """Keep *raw* if it is an *expected_type*, otherwise fall back to *default*."""
    if isinstance(raw, expected_type):
        return FieldValue(raw, False)
    if raw is not None:
        logger.debug(
            "Got %s where %s was expected; using default %r",
            type(raw).__name__,
            expected_type.__name__,
            default,
        )
    return FieldValue(default, True)


def extract_field(
    mapping: Mapping[str, Any],
    key: str,
    expected_type: type[T],
    default: T,
) -> FieldValue:
    """Return ``(value, defaulted)`` for ``mapping[key]``."""
    return coerce_field(mapping.get(key), expected_type, default)


def clean_image_ref(value: str) -> str:
    """Strip ``<``/``>`` wrappers and surrounding whitespace from a poster URL.

    ``"  <https://example.com/poster>  "`` becomes ``"https://example.com/poster"``.
    """
    # str.strip() covers Unicode whitespace; alternate until both are gone.
    cleaned = value.strip()
    while True:
        stripped = cleaned.strip(_IMAGE_REF_DELIMITERS).strip()
        if stripped == cleaned:
            return cleaned
        cleaned = stripped


def as_mapping(value: Any) -> Mapping[str, Any] | None:
    """Return *value* if it is a keyed mapping, else ``None``."""
    return value if isinstance(value, Mapping) else None
