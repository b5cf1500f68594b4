"""Tests for metadata filter expressions."""

from collections.abc import Callable

import pytest

from cyborgdb.exceptions import (
    EmptyCompositeError,
    FilterError,
    InvalidFilterValueError,
    UnknownOperatorError,
)
from cyborgdb.filters import (
    CompositeFilter,
    FieldCondition,
    FilterOperator,
    and_,
    coerce_filter,
    decode_filter,
    encode_filter,
    eq,
    gt,
    gte,
    in_,
    lt,
    lte,
    or_,
    validate_filter,
)


class TestBuilders:
    """Tests for filter builder functions."""

    def test_eq_has_no_operator(self) -> None:
        """Equality is the implicit leaf form."""
        condition = eq("owner.name", "John")
        assert condition.op is None
        assert condition.value == "John"

    @pytest.mark.parametrize(
        ("builder", "op"),
        [
            (gt, FilterOperator.GT),
            (gte, FilterOperator.GTE),
            (lt, FilterOperator.LT),
            (lte, FilterOperator.LTE),
        ],
    )
    def test_comparisons(
        self,
        builder: Callable[[str, float], FieldCondition],
        op: FilterOperator,
    ) -> None:
        """Range builders set their operator."""
        condition = builder("age", 30)
        assert condition.op is op
        assert condition.value == 30

    def test_in_stores_tuple(self) -> None:
        """$in stores its values in order."""
        condition = in_("tag", ["a", "b"])
        assert condition.value == ("a", "b")

    def test_composites_keep_order(self) -> None:
        """Children stay in caller order."""
        first, second = gt("age", 30), eq("owner.name", "John")
        expr = and_(first, second)
        assert expr.op is FilterOperator.AND
        assert expr.children == (first, second)

    def test_nested(self) -> None:
        """Composites nest."""
        expr = or_(and_(gt("a", 1), lt("a", 5)), eq("b", True))
        assert isinstance(expr.children[0], CompositeFilter)


class TestValidation:
    """Tests for filter validation errors."""

    def test_empty_and(self) -> None:
        """$and with no children is rejected."""
        with pytest.raises(EmptyCompositeError):
            and_()

    def test_empty_or(self) -> None:
        """$or with no children is rejected."""
        with pytest.raises(EmptyCompositeError):
            or_()

    def test_unknown_operator(self) -> None:
        """Operators outside the supported set are rejected."""
        with pytest.raises(UnknownOperatorError) as exc_info:
            FieldCondition(field="age", op="$regex", value="x")
        assert exc_info.value.op == "$regex"

    def test_explicit_eq_rejected(self) -> None:
        """$eq is not a supported token."""
        with pytest.raises(UnknownOperatorError):
            FieldCondition(field="age", op="$eq", value=1)

    def test_logical_op_on_field(self) -> None:
        """$and cannot apply to a field."""
        with pytest.raises(InvalidFilterValueError):
            FieldCondition(field="age", op="$and", value=1)

    def test_comparison_op_on_composite(self) -> None:
        """$gt cannot join expressions."""
        with pytest.raises(InvalidFilterValueError):
            CompositeFilter(op="$gt", children=(eq("a", 1),))

    def test_range_needs_number(self) -> None:
        """Range operators need numbers."""
        with pytest.raises(InvalidFilterValueError):
            gt("age", "thirty")

    def test_range_rejects_bool(self) -> None:
        """Booleans are not numbers here."""
        with pytest.raises(InvalidFilterValueError):
            lt("age", True)

    def test_in_needs_list(self) -> None:
        """$in rejects a bare string."""
        with pytest.raises(InvalidFilterValueError):
            FieldCondition(field="tag", op="$in", value="abc")

    @pytest.mark.parametrize(
        "values",
        [{"a": 1, "b": 2}, {"a", "b"}, frozenset({"a"}), "abc"],
    )
    def test_in_rejects_non_list_operands(self, values: object) -> None:
        """$in rejects mappings, sets and strings from the builder."""
        with pytest.raises(InvalidFilterValueError):
            in_("tag", values)  # type: ignore[arg-type]

    def test_in_rejects_mapping_document(self) -> None:
        """A decoded $in operand must be a list, not an object."""
        with pytest.raises(InvalidFilterValueError):
            coerce_filter({"tag": {"$in": {"a": 1, "b": 2}}})

    def test_eq_rejects_unknown_operator_key(self) -> None:
        """Equality operands cannot smuggle an unsupported operator."""
        with pytest.raises(UnknownOperatorError):
            eq("name", {"$regex": ".*"})

    def test_eq_rejects_known_operator_key(self) -> None:
        """Equality operands with operator keys must use the operator form."""
        with pytest.raises(InvalidFilterValueError):
            eq("meta", {"$gt": 1})

    def test_eq_allows_plain_object(self) -> None:
        """Objects without operator keys are plain equality."""
        assert eq("owner", {"name": "John"}).value == {"name": "John"}

    def test_validate_filter_catches_operator_key_in_equality(self) -> None:
        """Unvalidated equality leaves are checked for operator keys."""
        expr = FieldCondition.model_construct(field="name", op=None, value={"$regex": ".*"})
        with pytest.raises(UnknownOperatorError):
            validate_filter(expr)

    def test_in_needs_scalars(self) -> None:
        """$in members must be scalars."""
        with pytest.raises(InvalidFilterValueError):
            in_("tag", [{"a": 1}])

    def test_empty_field(self) -> None:
        """Field paths must not be empty."""
        with pytest.raises(InvalidFilterValueError):
            eq("", 1)

    def test_validate_filter_accepts_valid_tree(self) -> None:
        """validate_filter returns the tree unchanged."""
        expr = and_(gt("age", 30), eq("owner.name", "John"))
        assert validate_filter(expr) is expr

    def test_validate_filter_catches_unvalidated_tree(self) -> None:
        """Trees built without validation are still checked."""
        expr = CompositeFilter.model_construct(op=FilterOperator.OR, children=())
        with pytest.raises(EmptyCompositeError):
            validate_filter(expr)

    def test_errors_share_base(self) -> None:
        """All filter errors are FilterErrors."""
        with pytest.raises(FilterError):
            and_()


class TestEncodeFilter:
    """Tests for wire encoding."""

    def test_and_document(self) -> None:
        """$and encodes as a list of child documents in order."""
        expr = and_(gt("age", 30), eq("owner.name", "John"))
        assert encode_filter(expr) == {
            "$and": [{"age": {"$gt": 30}}, {"owner.name": "John"}],
        }

    def test_in_encodes_list(self) -> None:
        """$in values become a JSON list."""
        assert encode_filter(in_("tag", ("x", "y"))) == {"tag": {"$in": ["x", "y"]}}

    def test_equality_on_object(self) -> None:
        """Equality against an object encodes the object."""
        assert encode_filter(eq("owner", {"name": "John"})) == {
            "owner": {"name": "John"},
        }

    def test_round_trip_preserves_order(self) -> None:
        """decode(encode(f)) == f with children in the same order."""
        expr = or_(
            and_(gte("age", 18), lt("age", 65)),
            in_("country", ["DE", "FR"]),
            eq("owner.name", "John"),
        )
        decoded = decode_filter(encode_filter(expr))
        assert decoded == expr
        assert encode_filter(decoded) == encode_filter(expr)


class TestDecodeFilter:
    """Tests for wire decoding."""

    def test_field_with_operator(self) -> None:
        """{field: {$op: v}} decodes to a FieldCondition."""
        assert decode_filter({"age": {"$lte": 40}}) == lte("age", 40)

    def test_multiple_keys_are_and(self) -> None:
        """Several top-level keys form an implicit $and in key order."""
        decoded = decode_filter({"age": {"$gt": 30}, "owner.name": "John"})
        assert decoded == and_(gt("age", 30), eq("owner.name", "John"))

    def test_multiple_operators_on_field(self) -> None:
        """Several operators on one field form an implicit $and."""
        decoded = decode_filter({"age": {"$gt": 1, "$lt": 5}})
        assert decoded == and_(gt("age", 1), lt("age", 5))

    def test_unknown_top_level_operator(self) -> None:
        """Unknown $-keys are rejected."""
        with pytest.raises(UnknownOperatorError):
            decode_filter({"$nor": [{"a": 1}]})

    def test_unknown_field_operator(self) -> None:
        """Unknown field operators are rejected."""
        with pytest.raises(UnknownOperatorError):
            decode_filter({"age": {"$ne": 3}})

    def test_empty_composite(self) -> None:
        """Empty $and/$or lists are rejected."""
        with pytest.raises(EmptyCompositeError):
            decode_filter({"$or": []})

    def test_composite_needs_list(self) -> None:
        """$and requires a list."""
        with pytest.raises(InvalidFilterValueError):
            decode_filter({"$and": {"a": 1}})

    def test_mixed_operator_and_plain_keys(self) -> None:
        """A field document cannot mix operators and plain keys."""
        with pytest.raises(InvalidFilterValueError):
            decode_filter({"owner": {"$gt": 1, "name": "x"}})

    def test_empty_document(self) -> None:
        """An empty document is not a filter."""
        with pytest.raises(InvalidFilterValueError):
            decode_filter({})

    @pytest.mark.parametrize("document", [{1: "x"}, {"a": 1, None: "x"}])
    def test_non_string_key(self, document: dict) -> None:
        """Non-string keys are a filter error, not a crash."""
        with pytest.raises(InvalidFilterValueError):
            coerce_filter(document)


class TestCoerceFilter:
    """Tests for accepting filters in any form."""

    def test_none_and_empty(self) -> None:
        """None and {} mean no filter."""
        assert coerce_filter(None) is None
        assert coerce_filter({}) is None

    def test_document(self) -> None:
        """Documents are decoded."""
        assert coerce_filter({"a": 1}) == eq("a", 1)

    def test_tree(self) -> None:
        """Trees are validated and returned."""
        expr = eq("a", 1)
        assert coerce_filter(expr) is expr
