"""Vector item module."""

from cyborgdb.vectors.codec import (
    decode_contents,
    decode_item,
    encode_contents,
    encode_item,
)
from cyborgdb.vectors.models import VectorItem

__all__ = [
    "VectorItem",
    "decode_contents",
    "decode_item",
    "encode_contents",
    "encode_item",
]
