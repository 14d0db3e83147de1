from __future__ import annotations

from enum import Enum


class DatasetMode(str, Enum):
    """Bundled dataset variants.

    ``original`` holds 3 rows of 6 movies; ``expanded`` repeats that content
    five times (15 rows of 30 movies) and contains duplicate titles and URLs.
    """

    ORIGINAL = "original"
    EXPANDED = "expanded"

    @property
    def resource_name(self) -> str:
        if self is DatasetMode.ORIGINAL:
            return "ios_movie_rows_data"
        return "ios_movie_rows_data_expanded"


class DecodeStrategy(str, Enum):
    """Which decoder turns dataset bytes into a ``Document``."""

    STRICT = "strict"
    PERMISSIVE = "permissive"
