from __future__ import annotations

from typing import Any, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

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
    clean_image_ref,
    coerce_field,
)


def _element_or_empty(data: Any) -> Any:
    # A non-object array element decodes as an object with every field missing.
    if isinstance(data, (BaseModel, Mapping)):
        return data
    return {}


def _sequence_or_empty(value: Any) -> Any:
    if isinstance(value, tuple):
        return value
    return coerce_field(value, list, []).value


class Item(BaseModel):
    """A single movie: display title plus normalized poster reference.

    Python callers build it by field name. JSON decoding in
    ``catalogue.decoding.strict`` matches the wire keys (``image_url``) only.
    """

    model_config = ConfigDict(frozen=True, validate_by_name=True)

    title: str = Field(DEFAULT_ITEM_TITLE, validation_alias=KEY_TITLE)
    image_ref: str = Field(DEFAULT_IMAGE_REF, validation_alias=KEY_IMAGE_URL)

    @model_validator(mode="before")
    @classmethod
    def _coerce_element(cls, data: Any) -> Any:
        return _element_or_empty(data)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> str:
        return coerce_field(value, str, DEFAULT_ITEM_TITLE).value

    @field_validator("image_ref", mode="before")
    @classmethod
    def _coerce_image_ref(cls, value: Any) -> str:
        return clean_image_ref(coerce_field(value, str, DEFAULT_IMAGE_REF).value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def identity_key(self) -> str:
        """``title|image_ref``. Deterministic, but not unique within a document."""
        return f"{self.title}|{self.image_ref}"


class Category(BaseModel):
    """A titled row of movies. An empty row is valid and kept."""

    model_config = ConfigDict(frozen=True, validate_by_name=True)

    title: str = Field(DEFAULT_CATEGORY_TITLE, validation_alias=KEY_TITLE)
    items: tuple[Item, ...] = Field(default=(), validation_alias=KEY_MOVIES)

    @model_validator(mode="before")
    @classmethod
    def _coerce_element(cls, data: Any) -> Any:
        return _element_or_empty(data)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> str:
        return coerce_field(value, str, DEFAULT_CATEGORY_TITLE).value

    @field_validator("items", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> Any:
        return _sequence_or_empty(value)


class Document(BaseModel):
    """Root of a decoded dataset.

    Immutable and owned by whoever requested the decode.
    """

    model_config = ConfigDict(frozen=True, validate_by_name=True)

    updated_at: str = Field(DEFAULT_UPDATED_AT, validation_alias=KEY_UPDATED_AT)
    categories: tuple[Category, ...] = Field(default=(), validation_alias=KEY_ROWS)

    @field_validator("updated_at", mode="before")
    @classmethod
    def _coerce_updated_at(cls, value: Any) -> str:
        return coerce_field(value, str, DEFAULT_UPDATED_AT).value

    @field_validator("categories", mode="before")
    @classmethod
    def _coerce_categories(cls, value: Any) -> Any:
        return _sequence_or_empty(value)

    @classmethod
    def empty(cls) -> Document:
        return cls()

    @property
    def item_count(self) -> int:
        return sum(len(category.items) for category in self.categories)

    def identity_keys(self) -> list[str]:
        """Every item's ``identity_key`` in document order."""
        return [
            item.identity_key
            for category in self.categories
            for item in category.items
        ]
