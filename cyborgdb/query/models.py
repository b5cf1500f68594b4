"""Query data models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from cyborgdb.filters.models import FilterExpr


class QueryMode(str, Enum):
    """How the query input was supplied."""

    SINGLE = "single"
    BATCH = "batch"
    TEXT = "text"


class IncludeField(str, Enum):
    """Optional fields a query or get may return."""

    DISTANCE = "distance"
    METADATA = "metadata"
    VECTOR = "vector"
    CONTENTS = "contents"


class QueryParams(BaseModel):
    """Caller-facing query parameters.

    Exactly one of ``query_vector``, ``query_vectors`` or
    ``query_contents`` must be set; ``build_query`` enforces this.

    Attributes:
        query_vector: A single query vector.
        query_vectors: A batch of query vectors.
        query_contents: Text for the Service to embed and search with.
        top_k: Number of neighbors per query.
        include: Fields to return with each result.
        n_probes: Number of clusters to probe.
        greedy: Use greedy search.
        filters: FilterExpr or a raw Mongo-style filter document.
    """

    query_vector: list[float] | None = Field(default=None, description="Single vector")
    query_vectors: list[list[float]] | None = Field(
        default=None,
        description="Batch of vectors",
    )
    query_contents: str | None = Field(default=None, description="Text query")
    top_k: int = Field(description="Neighbors per query")
    include: list[str] = Field(description="Fields to return")
    n_probes: int | None = Field(default=None, description="Clusters to probe")
    greedy: bool | None = Field(default=None, description="Greedy search")
    filters: Any = Field(default=None, description="Metadata filter")


class QueryRequest(BaseModel):
    """A validated query, ready to encode.

    Built by ``build_query`` or one of the per-mode constructors.
    """

    model_config = ConfigDict(frozen=True)

    mode: QueryMode = Field(description="Query input mode")
    query_vector: list[float] | None = Field(default=None)
    query_vectors: list[list[float]] | None = Field(default=None)
    query_contents: str | None = Field(default=None)
    top_k: int = Field(description="Neighbors per query")
    include: tuple[IncludeField, ...] = Field(default=())
    n_probes: int | None = Field(default=None)
    greedy: bool | None = Field(default=None)
    filters: FilterExpr | None = Field(default=None)

    @property
    def expected_result_sets(self) -> int:
        """Number of result sets the response must contain."""
        if self.mode is QueryMode.BATCH and self.query_vectors is not None:
            return len(self.query_vectors)
        return 1


class QueryResultItem(BaseModel):
    """One match in a result set.

    Only ``id`` and the fields requested through ``include`` are set.
    Unrequested fields read as None; ``returned_fields()`` holds only
    the fields that came back with a value.
    """

    id: str = Field(description="Item identifier")
    distance: float | None = Field(default=None, description="Distance to query")
    metadata: dict[str, Any] | None = Field(default=None, description="Metadata")
    vector: list[float] | None = Field(default=None, description="Stored vector")
    contents: str | None = Field(default=None, description="Stored contents")

    def returned_fields(self) -> dict[str, Any]:
        """Fields the Service returned for this match, keyed by name."""
        return self.model_dump(exclude_unset=True)


class QueryResponse(BaseModel):
    """Normalized query results.

    Attributes:
        mode: Mode of the originating request.
        result_sets: One ordered result list per query vector, in input
            order. Single-vector and text queries have exactly one.
    """

    mode: QueryMode = Field(description="Query input mode")
    result_sets: list[list[QueryResultItem]] = Field(
        default_factory=list,
        description="Result sets in query order",
    )

    @property
    def results(self) -> list[QueryResultItem]:
        """The first result set; the only one for non-batch queries.

        Items carry only the requested fields, see
        ``QueryResultItem.returned_fields``.
        """
        return self.result_sets[0] if self.result_sets else []

    def __len__(self) -> int:
        return len(self.result_sets)
