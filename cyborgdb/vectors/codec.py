"""Wire codec for vector items.

Text contents go over the wire unchanged, binary contents as base64
text. On the way back contents are always text: the codec does not try
to guess whether a string was base64-encoded binary.
"""

import base64
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from cyborgdb.exceptions import (
    InvalidVectorItemError,
    MalformedResponseError,
    UnsupportedContentsError,
)
from cyborgdb.vectors.models import VectorItem


def encode_contents(value: str | bytes | None) -> str | None:
    """Encode item contents for the wire.

    Args:
        value: Text, bytes, or None.

    Returns:
        The text unchanged, bytes as base64, or None.

    Raises:
        UnsupportedContentsError: For any other type.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    raise UnsupportedContentsError(type(value).__name__)


def decode_contents(wire: Any) -> str | None:
    """Decode item contents from the wire.

    Raises:
        MalformedResponseError: If the wire value is not text.
    """
    if wire is None:
        return None
    if isinstance(wire, str):
        return wire
    raise MalformedResponseError(
        f"Item contents must be a string, got {type(wire).__name__}",
    )


def encode_item(item: VectorItem | Mapping[str, Any]) -> dict[str, Any]:
    """Encode a vector item for upsert.

    Fields that are not set are left out rather than sent as null.

    Args:
        item: VectorItem or a mapping with the same keys.

    Returns:
        Wire dict.

    Raises:
        InvalidVectorItemError: If the item is not well formed.
        UnsupportedContentsError: If contents are neither text nor bytes.
    """
    if not isinstance(item, VectorItem):
        try:
            item = VectorItem.model_validate(item)
        except PydanticValidationError as e:
            raise InvalidVectorItemError(
                f"Invalid vector item: {e.error_count()} error(s)",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e

    wire: dict[str, Any] = {"id": item.id}
    if item.vector is not None:
        wire["vector"] = list(item.vector)
    contents = encode_contents(item.contents)
    if contents is not None:
        wire["contents"] = contents
    if item.metadata is not None:
        wire["metadata"] = item.metadata
    return wire


def decode_item(wire: Any) -> VectorItem:
    """Decode a vector item returned by the Service.

    Args:
        wire: Item dict from a get response.

    Returns:
        VectorItem with only the fields the Service returned.

    Raises:
        InvalidVectorItemError: If the id or vector is empty.
        MalformedResponseError: If the item is not a mapping or mistyped.
    """
    if not isinstance(wire, Mapping) or "id" not in wire:
        raise MalformedResponseError("Vector item must be an object with an id")

    fields: dict[str, Any] = {"id": wire["id"]}
    if wire.get("vector") is not None:
        fields["vector"] = wire["vector"]
    if wire.get("contents") is not None:
        fields["contents"] = decode_contents(wire["contents"])
    if wire.get("metadata") is not None:
        fields["metadata"] = wire["metadata"]

    try:
        return VectorItem.model_validate(fields)
    except PydanticValidationError as e:
        raise MalformedResponseError(
            f"Invalid vector item in response: {e.error_count()} error(s)",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e
