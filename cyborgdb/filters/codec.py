"""Wire codec for metadata filters.

The wire form is the Mongo-style document the Service accepts::

    {"$and": [{"age": {"$gt": 30}}, {"owner.name": "John"}]}

Encoding preserves child order so the same tree always produces the
same document.
"""

from collections.abc import Mapping
from typing import Any

from cyborgdb.exceptions import (
    EmptyCompositeError,
    InvalidFilterValueError,
)
from cyborgdb.filters.models import (
    LOGICAL_OPERATORS,
    CompositeFilter,
    FieldCondition,
    FilterExpr,
    FilterOperator,
    parse_operator,
)


def validate_filter(expr: FilterExpr) -> FilterExpr:
    """Check a filter tree, including trees built without validation.

    Args:
        expr: Root expression.

    Returns:
        The same expression.

    Raises:
        EmptyCompositeError: If a composite has no children.
        UnknownOperatorError: If an operator is not supported.
        InvalidFilterValueError: If an operand does not fit its operator.
    """
    if isinstance(expr, CompositeFilter):
        if not expr.children:
            raise EmptyCompositeError(str(getattr(expr.op, "value", expr.op)))
        CompositeFilter.model_validate(
            {"op": expr.op, "children": expr.children},
        )
        for child in expr.children:
            validate_filter(child)
        return expr
    if isinstance(expr, FieldCondition):
        FieldCondition.model_validate(
            {"field": expr.field, "op": expr.op, "value": expr.value},
        )
        return expr
    raise InvalidFilterValueError(
        f"Not a filter expression: {type(expr).__name__}",
    )


def encode_filter(expr: FilterExpr) -> dict[str, Any]:
    """Encode a filter tree to wire JSON.

    Args:
        expr: Root expression.

    Returns:
        Mongo-style filter document.
    """
    if isinstance(expr, CompositeFilter):
        return {expr.op.value: [encode_filter(child) for child in expr.children]}
    if isinstance(expr, FieldCondition):
        if expr.op is None:
            return {expr.field: expr.value}
        value = list(expr.value) if expr.op is FilterOperator.IN else expr.value
        return {expr.field: {expr.op.value: value}}
    raise InvalidFilterValueError(
        f"Not a filter expression: {type(expr).__name__}",
    )


def decode_filter(wire: Mapping[str, Any]) -> FilterExpr:
    """Decode wire JSON into a filter tree.

    A document with several keys is an implicit ``$and`` over them, in
    key order. The same holds for several operators on one field.

    Args:
        wire: Mongo-style filter document.

    Returns:
        The validated filter tree.

    Raises:
        UnknownOperatorError: If an operator is not supported.
        EmptyCompositeError: If ``$and``/``$or`` has no children.
        InvalidFilterValueError: If the document is not well formed.
    """
    if not isinstance(wire, Mapping):
        raise InvalidFilterValueError(
            f"Filter must be a mapping, got {type(wire).__name__}",
        )
    if not wire:
        raise InvalidFilterValueError("Filter document must not be empty")

    if len(wire) > 1:
        return CompositeFilter(
            op=FilterOperator.AND,
            children=tuple(decode_filter({key: value}) for key, value in wire.items()),
        )

    ((key, value),) = wire.items()
    if not isinstance(key, str):
        raise InvalidFilterValueError(
            f"Filter keys must be strings, got {type(key).__name__}",
        )
    if key.startswith("$"):
        return _decode_logical(key, value)
    return _decode_field(key, value)


def _decode_logical(key: str, value: Any) -> CompositeFilter:
    op = parse_operator(key)
    if op not in LOGICAL_OPERATORS:
        raise InvalidFilterValueError(
            f"Operator '{op.value}' must be applied to a field",
            details={"operator": op.value},
        )
    if not isinstance(value, (list, tuple)):
        raise InvalidFilterValueError(
            f"Operator '{op.value}' requires a list of expressions",
            details={"operator": op.value},
        )
    if not value:
        raise EmptyCompositeError(op.value)
    return CompositeFilter(
        op=op,
        children=tuple(decode_filter(child) for child in value),
    )


def _decode_field(field: str, value: Any) -> FilterExpr:
    if not isinstance(value, Mapping) or not value:
        return FieldCondition(field=field, value=value)

    operator_keys = [k for k in value if isinstance(k, str) and k.startswith("$")]
    if not operator_keys:
        # Plain nested document: equality against the whole object.
        return FieldCondition(field=field, value=dict(value))
    if len(operator_keys) != len(value):
        raise InvalidFilterValueError(
            f"Field '{field}' mixes operators and plain keys",
            details={"field": field},
        )

    conditions = tuple(
        FieldCondition(field=field, op=op_key, value=operand)
        for op_key, operand in value.items()
    )
    if len(conditions) == 1:
        return conditions[0]
    return CompositeFilter(op=FilterOperator.AND, children=conditions)


def coerce_filter(value: FilterExpr | Mapping[str, Any] | None) -> FilterExpr | None:
    """Accept a filter tree, a raw wire document, or nothing.

    Raw documents are decoded, so they are validated before any request.
    An empty document means no filter.
    """
    if value is None:
        return None
    if isinstance(value, (FieldCondition, CompositeFilter)):
        return validate_filter(value)
    if isinstance(value, Mapping) and not value:
        return None
    return decode_filter(value)
