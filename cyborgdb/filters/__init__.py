"""Metadata filter module."""

from cyborgdb.filters.codec import (
    coerce_filter,
    decode_filter,
    encode_filter,
    validate_filter,
)
from cyborgdb.filters.models import (
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

__all__ = [
    "CompositeFilter",
    "FieldCondition",
    "FilterExpr",
    "FilterOperator",
    "and_",
    "coerce_filter",
    "decode_filter",
    "encode_filter",
    "eq",
    "gt",
    "gte",
    "in_",
    "lt",
    "lte",
    "or_",
    "validate_filter",
]
