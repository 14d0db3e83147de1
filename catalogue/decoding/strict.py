"""Strict dataset decoder.

Validates the raw bytes straight into the typed ``Document`` tree. Every
known field is defended individually (see ``catalogue.models.catalogue.fields``),
so the only way to fail is a byte stream that is not a JSON object at all.
Array elements are never dropped here; a malformed element decodes to a
fully defaulted entry.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from catalogue.core.errors import MalformedPayload
from catalogue.models.catalogue.document import Document

logger = logging.getLogger(__name__)


def decode(data: bytes) -> Document:
    """Decode *data* into a ``Document``.

    Raises:
        MalformedPayload: *data* is not valid UTF-8 JSON, or its root is not
            an object.
    """
    try:
        # Field names are for Python callers; the payload only speaks wire keys.
        document = Document.model_validate_json(data, by_alias=True, by_name=False)
    except ValidationError as exc:
        error = exc.errors(include_url=False)[0]
        reason = f"{error['type']}: {error['msg']}"
        logger.debug("Strict decode rejected payload (%d bytes): %s", len(data), reason)
        raise MalformedPayload(reason) from exc
    except ValueError as exc:  # undecodable input bytes
        raise MalformedPayload(str(exc)) from exc

    logger.debug(
        "Strict decode produced %d categories, %d items",
        len(document.categories),
        document.item_count,
    )
    return document
