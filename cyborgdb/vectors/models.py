"""Vector item data models."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from cyborgdb.exceptions import InvalidVectorItemError, UnsupportedContentsError


class VectorItem(BaseModel):
    """A vector with its id and optional payload.

    Attributes:
        id: Identifier, unique within the index.
        vector: Embedding vector. May be omitted when the index embeds
            ``contents`` itself.
        contents: Text or binary contents stored alongside the vector.
        metadata: JSON-compatible document used for filtering.
    """

    id: str = Field(description="Unique item identifier")
    vector: list[float] | None = Field(default=None, description="Embedding vector")
    contents: str | bytes | None = Field(default=None, description="Item contents")
    metadata: dict[str, Any] | None = Field(default=None, description="Metadata")

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        if not value:
            raise InvalidVectorItemError("Vector item id must not be empty")
        return value

    @field_validator("vector")
    @classmethod
    def _check_vector(cls, value: list[float] | None) -> list[float] | None:
        if value is not None and not value:
            raise InvalidVectorItemError("Vector must not be empty when provided")
        return value

    @field_validator("contents", mode="before")
    @classmethod
    def _check_contents(cls, value: Any) -> str | bytes | None:
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        if value is not None and not isinstance(value, (str, bytes)):
            raise UnsupportedContentsError(type(value).__name__)
        return value
