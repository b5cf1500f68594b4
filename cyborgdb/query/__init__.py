"""Query module."""

from cyborgdb.query.builder import (
    batch_vector_query,
    build_query,
    encode_query,
    normalize_response,
    parse_include,
    single_vector_query,
    text_query,
)
from cyborgdb.query.models import (
    IncludeField,
    QueryMode,
    QueryParams,
    QueryRequest,
    QueryResponse,
    QueryResultItem,
)

__all__ = [
    "IncludeField",
    "QueryMode",
    "QueryParams",
    "QueryRequest",
    "QueryResponse",
    "QueryResultItem",
    "batch_vector_query",
    "build_query",
    "encode_query",
    "normalize_response",
    "parse_include",
    "single_vector_query",
    "text_query",
]
