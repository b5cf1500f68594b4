"""Index configuration module."""

from cyborgdb.indexes.codec import (
    decode_index_config,
    decode_index_descriptor,
    encode_index_config,
)
from cyborgdb.indexes.models import (
    BaseIndexConfig,
    DistanceMetric,
    IndexConfig,
    IndexDescriptor,
    IndexIVF,
    IndexIVFFlat,
    IndexIVFPQ,
    IndexType,
)

__all__ = [
    "BaseIndexConfig",
    "DistanceMetric",
    "IndexConfig",
    "IndexDescriptor",
    "IndexIVF",
    "IndexIVFFlat",
    "IndexIVFPQ",
    "IndexType",
    "decode_index_config",
    "decode_index_descriptor",
    "encode_index_config",
]
