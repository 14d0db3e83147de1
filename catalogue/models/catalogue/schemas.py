from __future__ import annotations

from pydantic import BaseModel

from catalogue.models.catalogue.document import Category


class DatasetResponse(BaseModel):
    """API response shape for a decoded dataset.

    ``message`` is set when the dataset decoded to zero categories so the
    client can show an empty state instead of a blank screen.
    """

    mode: str
    strategy: str
    updated_at: str
    categories: list[Category]
    item_count: int
    message: str | None = None
