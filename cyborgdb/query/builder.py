"""Query request building and response normalization.

Each query mode has its own constructor. ``build_query`` picks the mode
from whichever input the caller set, and fails locally when none or
more than one is set. ``normalize_response`` turns every response into
a list of result sets, one per query vector.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from cyborgdb.exceptions import (
    AmbiguousQueryInputError,
    ConflictingQueryInputError,
    InvalidQueryParameterError,
    MalformedResponseError,
    ResultCountMismatchError,
)
from cyborgdb.filters.codec import coerce_filter, encode_filter
from cyborgdb.filters.models import FilterExpr
from cyborgdb.query.models import (
    IncludeField,
    QueryMode,
    QueryParams,
    QueryRequest,
    QueryResponse,
    QueryResultItem,
)
from cyborgdb.vectors.codec import decode_contents

_INPUT_FIELDS = {
    QueryMode.SINGLE: "query_vector",
    QueryMode.BATCH: "query_vectors",
    QueryMode.TEXT: "query_contents",
}


def _check_top_k(top_k: Any) -> int:
    if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
        raise InvalidQueryParameterError(
            f"top_k must be a positive integer, got {top_k!r}",
            details={"field": "top_k"},
        )
    return top_k


def _check_n_probes(n_probes: Any) -> int | None:
    if n_probes is None:
        return None
    if isinstance(n_probes, bool) or not isinstance(n_probes, int) or n_probes <= 0:
        raise InvalidQueryParameterError(
            f"n_probes must be a positive integer, got {n_probes!r}",
            details={"field": "n_probes"},
        )
    return n_probes


def _check_greedy(greedy: Any) -> bool | None:
    if greedy is not None and not isinstance(greedy, bool):
        raise InvalidQueryParameterError(
            f"greedy must be a boolean, got {greedy!r}",
            details={"field": "greedy"},
        )
    return greedy


def parse_include(include: Iterable[str | IncludeField]) -> tuple[IncludeField, ...]:
    """Validate include field names, dropping duplicates.

    Raises:
        InvalidQueryParameterError: If a name is not a known field.
    """
    if isinstance(include, str):
        raise InvalidQueryParameterError(
            "include must be a list of field names, not a string",
            details={"field": "include"},
        )
    fields: list[IncludeField] = []
    for name in include:
        try:
            field = IncludeField(name)
        except ValueError:
            raise InvalidQueryParameterError(
                f"Unknown include field: {name!r}",
                details={
                    "field": "include",
                    "allowed": [f.value for f in IncludeField],
                },
            ) from None
        if field not in fields:
            fields.append(field)
    return tuple(fields)


def _to_vector(values: Sequence[float], name: str) -> list[float]:
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise InvalidQueryParameterError(
            f"{name} must be a sequence of numbers",
            details={"field": name},
        )
    try:
        vector = [float(v) for v in values]
    except (TypeError, ValueError) as e:
        raise InvalidQueryParameterError(
            f"{name} must contain only numbers",
            details={"field": name},
        ) from e
    if not vector:
        raise InvalidQueryParameterError(
            f"{name} must not be empty",
            details={"field": name},
        )
    return vector


def _finish(
    mode: QueryMode,
    inputs: dict[str, Any],
    top_k: int,
    include: Iterable[str | IncludeField],
    n_probes: int | None,
    greedy: bool | None,
    filters: FilterExpr | Mapping[str, Any] | None,
) -> QueryRequest:
    return QueryRequest(
        mode=mode,
        top_k=_check_top_k(top_k),
        include=parse_include(include),
        n_probes=_check_n_probes(n_probes),
        greedy=_check_greedy(greedy),
        filters=coerce_filter(filters),
        **inputs,
    )


def single_vector_query(
    vector: Sequence[float],
    *,
    top_k: int,
    include: Iterable[str | IncludeField],
    n_probes: int | None = None,
    greedy: bool | None = None,
    filters: FilterExpr | Mapping[str, Any] | None = None,
) -> QueryRequest:
    """Build a query for one vector.

    Raises:
        InvalidQueryParameterError: If any parameter is invalid.
        FilterError: If the filter is invalid.
    """
    return _finish(
        QueryMode.SINGLE,
        {"query_vector": _to_vector(vector, "query_vector")},
        top_k,
        include,
        n_probes,
        greedy,
        filters,
    )


def batch_vector_query(
    vectors: Sequence[Sequence[float]],
    *,
    top_k: int,
    include: Iterable[str | IncludeField],
    n_probes: int | None = None,
    greedy: bool | None = None,
    filters: FilterExpr | Mapping[str, Any] | None = None,
) -> QueryRequest:
    """Build a query for several vectors; results come back in input order.

    Raises:
        InvalidQueryParameterError: If the batch is empty or a parameter
            is invalid.
        FilterError: If the filter is invalid.
    """
    if isinstance(vectors, (str, bytes)) or not isinstance(vectors, Iterable):
        raise InvalidQueryParameterError(
            "query_vectors must be a sequence of vectors",
            details={"field": "query_vectors"},
        )
    batch = [
        _to_vector(vector, f"query_vectors[{i}]") for i, vector in enumerate(vectors)
    ]
    if not batch:
        raise InvalidQueryParameterError(
            "query_vectors must not be empty",
            details={"field": "query_vectors"},
        )
    return _finish(
        QueryMode.BATCH,
        {"query_vectors": batch},
        top_k,
        include,
        n_probes,
        greedy,
        filters,
    )


def text_query(
    contents: str,
    *,
    top_k: int,
    include: Iterable[str | IncludeField],
    n_probes: int | None = None,
    greedy: bool | None = None,
    filters: FilterExpr | Mapping[str, Any] | None = None,
) -> QueryRequest:
    """Build a query from text the Service embeds itself.

    Raises:
        InvalidQueryParameterError: If contents are empty or a parameter
            is invalid.
        FilterError: If the filter is invalid.
    """
    if not isinstance(contents, str) or not contents:
        raise InvalidQueryParameterError(
            "query_contents must be a non-empty string",
            details={"field": "query_contents"},
        )
    return _finish(
        QueryMode.TEXT,
        {"query_contents": contents},
        top_k,
        include,
        n_probes,
        greedy,
        filters,
    )


def build_query(params: QueryParams | Mapping[str, Any]) -> QueryRequest:
    """Build a query from parameters, choosing the mode from the input set.

    Empty vectors and empty strings count as not supplied.

    Args:
        params: QueryParams or a mapping with the same keys.

    Returns:
        The validated QueryRequest.

    Raises:
        AmbiguousQueryInputError: If no query input is set.
        ConflictingQueryInputError: If more than one query input is set.
        InvalidQueryParameterError: If any other parameter is invalid.
    """
    if not isinstance(params, QueryParams):
        try:
            params = QueryParams.model_validate(params)
        except PydanticValidationError as e:
            raise InvalidQueryParameterError(
                f"Invalid query parameters: {e.error_count()} error(s)",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e

    supplied = [
        name
        for name in _INPUT_FIELDS.values()
        if getattr(params, name) not in (None, "", [])
    ]
    if not supplied:
        raise AmbiguousQueryInputError()
    if len(supplied) > 1:
        raise ConflictingQueryInputError(supplied)

    options = {
        "top_k": params.top_k,
        "include": params.include,
        "n_probes": params.n_probes,
        "greedy": params.greedy,
        "filters": params.filters,
    }
    if params.query_vector:
        return single_vector_query(params.query_vector, **options)
    if params.query_vectors:
        return batch_vector_query(params.query_vectors, **options)
    return text_query(params.query_contents or "", **options)


def encode_query(
    request: QueryRequest,
    index_name: str,
    index_key: str,
) -> dict[str, Any]:
    """Encode a query request body.

    Args:
        request: Validated query.
        index_name: Target index.
        index_key: Hex wire form of the index key.

    Returns:
        Wire body for the query endpoint.
    """
    body: dict[str, Any] = {
        "index_name": index_name,
        "index_key": index_key,
    }
    input_field = _INPUT_FIELDS[request.mode]
    body[input_field] = getattr(request, input_field)
    body["top_k"] = request.top_k
    body["include"] = [field.value for field in request.include]
    if request.n_probes is not None:
        body["n_probes"] = request.n_probes
    if request.greedy is not None:
        body["greedy"] = request.greedy
    if request.filters is not None:
        body["filters"] = encode_filter(request.filters)
    return body


def _decode_result_item(
    wire: Any,
    include: tuple[IncludeField, ...],
) -> QueryResultItem:
    if not isinstance(wire, Mapping) or "id" not in wire:
        raise MalformedResponseError("Query result item must be an object with an id")

    fields: dict[str, Any] = {"id": wire["id"]}
    for field in include:
        value = wire.get(field.value)
        if value is None:
            continue
        if field is IncludeField.CONTENTS:
            value = decode_contents(value)
        fields[field.value] = value

    try:
        return QueryResultItem.model_validate(fields)
    except PydanticValidationError as e:
        raise MalformedResponseError(
            f"Invalid query result item: {e.error_count()} error(s)",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e


def _split_result_sets(results: list[Any]) -> list[list[Any]]:
    if not results:
        return []
    if all(isinstance(entry, list) for entry in results):
        return results
    if all(isinstance(entry, Mapping) for entry in results):
        return [results]
    raise MalformedResponseError("Query results mix result sets and result items")


def normalize_response(wire: Any, request: QueryRequest) -> QueryResponse:
    """Normalize a query response into per-query result sets.

    Single-vector and text responses carry one flat result list, which
    becomes the only result set. Batch responses carry one list per
    query vector, and their count must match the batch size.

    Args:
        wire: Decoded JSON body, ``{"results": [...]}``.
        request: The request that produced it.

    Returns:
        QueryResponse with one result set per query vector.

    Raises:
        ResultCountMismatchError: If the number of result sets is wrong.
        MalformedResponseError: If the body does not have the expected shape.
    """
    if not isinstance(wire, Mapping) or not isinstance(wire.get("results"), list):
        raise MalformedResponseError("Query response must contain a results list")

    results = wire["results"]
    result_sets = _split_result_sets(results)
    if not result_sets and request.mode is not QueryMode.BATCH:
        result_sets = [[]]

    expected = request.expected_result_sets
    if len(result_sets) != expected:
        raise ResultCountMismatchError(expected, len(result_sets))

    return QueryResponse(
        mode=request.mode,
        result_sets=[
            [_decode_result_item(item, request.include) for item in result_set]
            for result_set in result_sets
        ],
    )
