"""Metadata filter expression tree.

A filter is either a FieldCondition on one dot-separated metadata path
or a CompositeFilter joining child expressions with $and / $or.
Both node types validate themselves on construction, so an invalid
tree is never handed to the Service.
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cyborgdb.exceptions import (
    EmptyCompositeError,
    InvalidFilterValueError,
    UnknownOperatorError,
)


class FilterOperator(str, Enum):
    """Supported filter operators. Equality is the implicit leaf form."""

    AND = "$and"
    OR = "$or"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"


LOGICAL_OPERATORS = frozenset({FilterOperator.AND, FilterOperator.OR})
COMPARISON_OPERATORS = frozenset(
    {FilterOperator.GT, FilterOperator.GTE, FilterOperator.LT, FilterOperator.LTE}
)

SCALAR_TYPES = (str, int, float, bool)

# Operands that iterate but are not a list of values
NON_LIST_OPERANDS = (str, bytes, Mapping, set, frozenset)


def parse_operator(value: Any) -> FilterOperator:
    """Resolve an operator token.

    Raises:
        UnknownOperatorError: If the token is not a supported operator.
    """
    if isinstance(value, FilterOperator):
        return value
    try:
        return FilterOperator(value)
    except ValueError:
        raise UnknownOperatorError(str(value)) from None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class FieldCondition(BaseModel):
    """Predicate on a single metadata field.

    Attributes:
        field: Dot-separated metadata path, e.g. ``owner.name``.
        op: Comparison operator, or None for equality.
        value: Operand. Numbers for range operators, a sequence of
            scalars for ``$in``, any JSON value for equality.
    """

    model_config = ConfigDict(frozen=True)

    field: str = Field(description="Dot-separated metadata path")
    op: FilterOperator | None = Field(default=None, description="Operator")
    value: Any = Field(default=None, description="Operand")

    @field_validator("field")
    @classmethod
    def _check_field(cls, value: str) -> str:
        if not value:
            raise InvalidFilterValueError("Filter field path must not be empty")
        if value.startswith("$"):
            raise UnknownOperatorError(value)
        return value

    @field_validator("op", mode="before")
    @classmethod
    def _check_op(cls, value: Any) -> FilterOperator | None:
        if value is None:
            return None
        op = parse_operator(value)
        if op in LOGICAL_OPERATORS:
            raise InvalidFilterValueError(
                f"Operator '{op.value}' combines expressions and cannot apply to a field",
                details={"operator": op.value},
            )
        return op

    @model_validator(mode="before")
    @classmethod
    def _freeze_in_values(cls, data: Any) -> Any:
        # $in operands are stored as tuples so decoded trees compare equal
        if (
            isinstance(data, dict)
            and data.get("op") == FilterOperator.IN.value
            and isinstance(data.get("value"), list)
        ):
            data = {**data, "value": tuple(data["value"])}
        return data

    @model_validator(mode="after")
    def _check_value(self) -> "FieldCondition":
        if self.op is None and isinstance(self.value, Mapping):
            # {field: {"$gt": ...}} is the operator form on the wire
            for key in self.value:
                if isinstance(key, str) and key.startswith("$"):
                    op = parse_operator(key)
                    raise InvalidFilterValueError(
                        f"Equality operand for '{self.field}' has operator key "
                        f"'{op.value}'; use the operator form instead",
                        details={"field": self.field, "operator": op.value},
                    )
        if self.op in COMPARISON_OPERATORS and not _is_number(self.value):
            raise InvalidFilterValueError(
                f"Operator '{self.op.value}' requires a number, "
                f"got {type(self.value).__name__}",
                details={"field": self.field, "operator": self.op.value},
            )
        if self.op is FilterOperator.IN:
            if isinstance(self.value, NON_LIST_OPERANDS) or not isinstance(
                self.value, Iterable
            ):
                raise InvalidFilterValueError(
                    "Operator '$in' requires a list of values",
                    details={"field": self.field},
                )
            for member in self.value:
                if not isinstance(member, SCALAR_TYPES):
                    raise InvalidFilterValueError(
                        f"'$in' members must be scalars, got {type(member).__name__}",
                        details={"field": self.field},
                    )
        return self


class CompositeFilter(BaseModel):
    """Boolean composition of child expressions.

    Attributes:
        op: ``$and`` or ``$or``.
        children: Child expressions in caller order; at least one.
    """

    model_config = ConfigDict(frozen=True)

    op: FilterOperator = Field(description="Logical operator")
    children: tuple["FilterExpr", ...] = Field(description="Child expressions")

    @field_validator("op", mode="before")
    @classmethod
    def _check_op(cls, value: Any) -> FilterOperator:
        op = parse_operator(value)
        if op not in LOGICAL_OPERATORS:
            raise InvalidFilterValueError(
                f"Operator '{op.value}' must be applied to a field",
                details={"operator": op.value},
            )
        return op

    @model_validator(mode="after")
    def _check_children(self) -> "CompositeFilter":
        if not self.children:
            raise EmptyCompositeError(self.op.value)
        return self


FilterExpr = Union[FieldCondition, CompositeFilter]

CompositeFilter.model_rebuild()


def eq(field: str, value: Any) -> FieldCondition:
    """Match documents whose field equals value."""
    return FieldCondition(field=field, value=value)


def gt(field: str, value: float) -> FieldCondition:
    """Match documents whose field is greater than value."""
    return FieldCondition(field=field, op=FilterOperator.GT, value=value)


def gte(field: str, value: float) -> FieldCondition:
    """Match documents whose field is greater than or equal to value."""
    return FieldCondition(field=field, op=FilterOperator.GTE, value=value)


def lt(field: str, value: float) -> FieldCondition:
    """Match documents whose field is less than value."""
    return FieldCondition(field=field, op=FilterOperator.LT, value=value)


def lte(field: str, value: float) -> FieldCondition:
    """Match documents whose field is less than or equal to value."""
    return FieldCondition(field=field, op=FilterOperator.LTE, value=value)


def in_(field: str, values: Iterable[Any]) -> FieldCondition:
    """Match documents whose field is one of values."""
    if not isinstance(values, NON_LIST_OPERANDS) and isinstance(values, Iterable):
        values = tuple(values)
    return FieldCondition(field=field, op=FilterOperator.IN, value=values)


def and_(*children: FilterExpr) -> CompositeFilter:
    """Match documents satisfying every child expression."""
    return CompositeFilter(op=FilterOperator.AND, children=children)


def or_(*children: FilterExpr) -> CompositeFilter:
    """Match documents satisfying at least one child expression."""
    return CompositeFilter(op=FilterOperator.OR, children=children)
