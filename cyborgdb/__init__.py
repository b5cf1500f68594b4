"""Python client for the CyborgDB encrypted vector database service."""

__version__ = "0.1.0"

from cyborgdb.client import (  # noqa: E402
    Client,
    EncryptedIndex,
    ListIDsResult,
    ServiceTransport,
    TrainParams,
)
from cyborgdb.exceptions import CyborgDBError, ErrorCode  # noqa: E402
from cyborgdb.filters import (  # noqa: E402
    CompositeFilter,
    FieldCondition,
    FilterExpr,
    FilterOperator,
    and_,
    eq,
    gt,
    gte,
    in_,
    lt,
    lte,
    or_,
)
from cyborgdb.indexes import (  # noqa: E402
    DistanceMetric,
    IndexConfig,
    IndexIVF,
    IndexIVFFlat,
    IndexIVFPQ,
    IndexType,
)
from cyborgdb.keys import EncryptionKey, generate_key  # noqa: E402
from cyborgdb.query import (  # noqa: E402
    IncludeField,
    QueryParams,
    QueryRequest,
    QueryResponse,
    QueryResultItem,
    batch_vector_query,
    single_vector_query,
    text_query,
)
from cyborgdb.vectors import VectorItem  # noqa: E402

__all__ = [
    "Client",
    "CompositeFilter",
    "CyborgDBError",
    "DistanceMetric",
    "EncryptedIndex",
    "EncryptionKey",
    "ErrorCode",
    "FieldCondition",
    "FilterExpr",
    "FilterOperator",
    "IncludeField",
    "IndexConfig",
    "IndexIVF",
    "IndexIVFFlat",
    "IndexIVFPQ",
    "IndexType",
    "ListIDsResult",
    "QueryParams",
    "QueryRequest",
    "QueryResponse",
    "QueryResultItem",
    "ServiceTransport",
    "TrainParams",
    "VectorItem",
    "__version__",
    "and_",
    "batch_vector_query",
    "eq",
    "generate_key",
    "gt",
    "gte",
    "in_",
    "lt",
    "lte",
    "or_",
    "single_vector_query",
    "text_query",
]
