"""Wire codec for index configurations.

Decoding is strict: the ``type`` tag picks the variant, unknown fields
and missing fields are rejected by name. A payload with no tag is read
as IVF.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from cyborgdb.exceptions import (
    InvalidDiscriminantError,
    InvalidFieldValueError,
    MalformedResponseError,
    MissingRequiredFieldError,
    UnknownFieldError,
)
from cyborgdb.indexes.models import (
    BaseIndexConfig,
    IndexConfig,
    IndexDescriptor,
    IndexIVF,
    IndexIVFFlat,
    IndexIVFPQ,
    IndexType,
)
from cyborgdb.logging_config import get_logger

logger = get_logger(__name__)

TAG_FIELD = "type"
DEFAULT_INDEX_TYPE = IndexType.IVF

_VARIANTS: dict[str, type[BaseIndexConfig]] = {
    IndexType.IVF.value: IndexIVF,
    IndexType.IVF_FLAT.value: IndexIVFFlat,
    IndexType.IVF_PQ.value: IndexIVFPQ,
}


def variant_for(tag: str | IndexType) -> type[BaseIndexConfig]:
    """Look up the model class for a type tag.

    Raises:
        InvalidDiscriminantError: If the tag is unknown.
    """
    key = tag.value if isinstance(tag, IndexType) else tag
    variant = _VARIANTS.get(key) if isinstance(key, str) else None
    if variant is None:
        raise InvalidDiscriminantError(tag)
    return variant


def required_fields(variant: type[BaseIndexConfig]) -> list[str]:
    """Fields a wire payload must carry for the given variant."""
    return [name for name in variant.model_fields if name != TAG_FIELD]


def encode_index_config(config: IndexConfig) -> dict[str, Any]:
    """Encode a configuration to its wire map.

    Args:
        config: One of IndexIVF, IndexIVFFlat, IndexIVFPQ.

    Returns:
        Dict with the ``type`` tag and exactly the variant's fields.

    Raises:
        InvalidDiscriminantError: If config is not a known variant.
    """
    if isinstance(config, IndexIVFPQ):
        return {
            TAG_FIELD: IndexType.IVF_PQ.value,
            "dimension": config.dimension,
            "metric": config.metric.value,
            "n_lists": config.n_lists,
            "pq_dim": config.pq_dim,
            "pq_bits": config.pq_bits,
        }
    if isinstance(config, IndexIVFFlat):
        return {
            TAG_FIELD: IndexType.IVF_FLAT.value,
            "dimension": config.dimension,
            "metric": config.metric.value,
            "n_lists": config.n_lists,
        }
    if isinstance(config, IndexIVF):
        return {
            TAG_FIELD: IndexType.IVF.value,
            "dimension": config.dimension,
            "metric": config.metric.value,
            "n_lists": config.n_lists,
        }
    raise InvalidDiscriminantError(type(config).__name__)


def decode_index_config(wire: Mapping[str, Any]) -> IndexConfig:
    """Decode a wire map into a configuration.

    Args:
        wire: Mapping as sent or returned by the Service.

    Returns:
        The matching variant.

    Raises:
        InvalidDiscriminantError: If the tag is not a known variant.
        UnknownFieldError: If a field is not declared for the variant.
        MissingRequiredFieldError: If a required field is absent.
        InvalidFieldValueError: If a field value is out of range or mistyped.
    """
    if not isinstance(wire, Mapping):
        raise InvalidFieldValueError(
            f"Index config must be a mapping, got {type(wire).__name__}",
        )

    tag = wire.get(TAG_FIELD)
    if tag is None:
        logger.debug(
            "Index config has no type tag, defaulting to %s",
            DEFAULT_INDEX_TYPE.value,
        )
        tag = DEFAULT_INDEX_TYPE.value

    variant = variant_for(tag)
    tag_value = tag.value if isinstance(tag, IndexType) else tag

    for name in wire:
        if name not in variant.model_fields:
            raise UnknownFieldError(name, tag_value)

    for name in required_fields(variant):
        if name not in wire:
            raise MissingRequiredFieldError(name, tag_value)

    payload = dict(wire)
    payload[TAG_FIELD] = tag_value
    try:
        return variant.model_validate(payload)
    except PydanticValidationError as e:
        raise InvalidFieldValueError(
            f"Invalid {tag_value} index config: {e.error_count()} error(s)",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e


def decode_index_descriptor(wire: Any) -> IndexDescriptor:
    """Decode a describe-index response.

    Raises:
        MalformedResponseError: If required descriptor fields are missing.
    """
    if not isinstance(wire, Mapping) or "index_name" not in wire:
        raise MalformedResponseError("Index description is missing index_name")

    config = None
    if wire.get("index_config") is not None:
        config = decode_index_config(wire["index_config"])

    index_type = wire.get("index_type")
    if index_type is None:
        index_type = config.index_type if config is not None else DEFAULT_INDEX_TYPE

    is_trained = wire.get("is_trained")
    if is_trained is None:
        is_trained = False

    try:
        return IndexDescriptor(
            index_name=wire["index_name"],
            index_type=index_type,
            is_trained=is_trained,
            index_config=config,
        )
    except PydanticValidationError as e:
        raise MalformedResponseError(
            f"Invalid index description: {e.error_count()} error(s)",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e
