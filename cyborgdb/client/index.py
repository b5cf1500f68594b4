"""Encrypted index handle."""

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError as PydanticValidationError

from cyborgdb.client.models import ListIDsResult, TrainParams
from cyborgdb.client.transport import ServiceTransport
from cyborgdb.exceptions import (
    DimensionMismatchError,
    InvalidQueryParameterError,
    InvalidVectorItemError,
    MalformedResponseError,
)
from cyborgdb.indexes.models import IndexConfig, IndexType
from cyborgdb.keys.codec import EncryptionKey, encode_key
from cyborgdb.logging_config import get_logger
from cyborgdb.query.builder import (
    build_query,
    encode_query,
    normalize_response,
    parse_include,
)
from cyborgdb.query.models import (
    IncludeField,
    QueryParams,
    QueryRequest,
    QueryResponse,
)
from cyborgdb.vectors.codec import decode_item, encode_item
from cyborgdb.vectors.models import VectorItem

logger = get_logger(__name__)

DEFAULT_GET_INCLUDE = (IncludeField.VECTOR, IncludeField.CONTENTS, IncludeField.METADATA)


class EncryptedIndex:
    """Handle bound to one encrypted index.

    The name, key and configuration are fixed at construction, so one
    handle can serve concurrent operations. Every remote method makes a
    single Service call and surfaces Service errors unchanged.
    """

    def __init__(
        self,
        index_name: str,
        index_key: EncryptionKey,
        transport: ServiceTransport,
        index_config: IndexConfig | None = None,
        index_type: IndexType | None = None,
        trained: bool = False,
    ) -> None:
        """Initialize the handle.

        Args:
            index_name: Index name.
            index_key: Index encryption key.
            transport: Transport to the Service.
            index_config: Configuration, when known.
            index_type: Variant tag; derived from the config if omitted.
            trained: Whether the index is known to be trained.
        """
        self._index_name = index_name
        self._index_key = index_key
        self._key_hex = encode_key(index_key)
        self._transport = transport
        self._index_config = index_config
        if index_type is None and index_config is not None:
            index_type = index_config.index_type
        self._index_type = index_type
        self._trained = trained

    def __repr__(self) -> str:
        return (
            f"EncryptedIndex(index_name={self._index_name!r}, "
            f"index_type={self.index_type!r}, trained={self._trained})"
        )

    @property
    def index_name(self) -> str:
        """Index name."""
        return self._index_name

    @property
    def index_key(self) -> EncryptionKey:
        """Index encryption key."""
        return self._index_key

    @property
    def index_type(self) -> str | None:
        """Variant tag (``ivf``, ``ivfflat`` or ``ivfpq``), when known."""
        return self._index_type.value if self._index_type is not None else None

    @property
    def index_config(self) -> IndexConfig | None:
        """Index configuration, when known."""
        return self._index_config

    def is_trained(self) -> bool:
        """Whether the index is trained, as far as this handle knows."""
        return self._trained

    def _path(self, action: str | None = None) -> str:
        path = f"/indexes/{quote(self._index_name, safe='')}"
        return f"{path}/{action}" if action else path

    def _body(self, **fields: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "index_name": self._index_name,
            "index_key": self._key_hex,
        }
        body.update(fields)
        return body

    def _check_dimension(self, vector: list[float], item_id: str | None = None) -> None:
        if self._index_config is None:
            return
        if len(vector) != self._index_config.dimension:
            raise DimensionMismatchError(
                self._index_config.dimension,
                len(vector),
                item_id,
            )

    @staticmethod
    def _check_ids(ids: Iterable[str]) -> list[str]:
        if isinstance(ids, str):
            raise InvalidVectorItemError("ids must be a list of strings, not a string")
        id_list = list(ids)
        for item_id in id_list:
            if not isinstance(item_id, str) or not item_id:
                raise InvalidVectorItemError(
                    f"Invalid item id: {item_id!r}",
                    details={"id": str(item_id)},
                )
        return id_list

    async def upsert(
        self,
        items: Iterable[VectorItem | Mapping[str, Any]],
        timeout: float | None = None,
    ) -> None:
        """Insert or update items. Existing ids are overwritten.

        Args:
            items: VectorItems or mappings with the same keys.
            timeout: Per-call timeout in seconds.

        Raises:
            VectorItemError: If an item is invalid (before any request).
            ServiceError: If the Service rejects the request.
        """
        encoded = [encode_item(item) for item in items]
        if not encoded:
            return

        for wire in encoded:
            if "vector" in wire:
                self._check_dimension(wire["vector"], wire["id"])

        await self._transport.request(
            "POST",
            self._path("upsert"),
            json=self._body(items=encoded),
            timeout=timeout,
        )
        logger.debug(
            f"Upserted {len(encoded)} items",
            extra={"index": self._index_name},
        )

    async def query(
        self,
        params: QueryParams | QueryRequest | Mapping[str, Any] | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> QueryResponse:
        """Run a similarity search.

        Accepts a built QueryRequest, QueryParams, a mapping, or the same
        parameters as keyword arguments::

            await index.query(query_vector=[0.1, 0.2], top_k=5, include=["distance"])

        Args:
            params: Query to run.
            timeout: Per-call timeout in seconds.
            **kwargs: QueryParams fields, when ``params`` is omitted.

        Returns:
            QueryResponse with one result set per query vector.

        Raises:
            QueryError: If the query is invalid or the result count is wrong.
            FilterError: If the filter is invalid.
            ServiceError: If the Service rejects the request.
        """
        if params is not None and kwargs:
            raise InvalidQueryParameterError(
                "Pass query parameters either as an object or as keywords, not both",
            )
        if isinstance(params, QueryRequest):
            request = params
        else:
            request = build_query(params if params is not None else kwargs)

        if request.query_vector is not None:
            self._check_dimension(request.query_vector)
        for vector in request.query_vectors or []:
            self._check_dimension(vector)

        data = await self._transport.request(
            "POST",
            self._path("query"),
            json=encode_query(request, self._index_name, self._key_hex),
            timeout=timeout,
        )
        return normalize_response(data, request)

    async def get(
        self,
        ids: Iterable[str],
        include: Iterable[str | IncludeField] = DEFAULT_GET_INCLUDE,
        timeout: float | None = None,
    ) -> list[VectorItem]:
        """Fetch items by id.

        Args:
            ids: Item ids.
            include: Fields to return: vector, contents, metadata.
            timeout: Per-call timeout in seconds.

        Returns:
            Items as returned by the Service.

        Raises:
            InvalidQueryParameterError: If include names an unknown field.
            ServiceError: If the Service rejects the request.
        """
        id_list = self._check_ids(ids)
        fields = parse_include(include)
        if IncludeField.DISTANCE in fields:
            raise InvalidQueryParameterError(
                "distance is only available on query results",
                details={"field": "include"},
            )
        if not id_list:
            return []

        data = await self._transport.request(
            "POST",
            self._path("get"),
            json=self._body(ids=id_list, include=[f.value for f in fields]),
            timeout=timeout,
        )
        if not isinstance(data, Mapping) or not isinstance(data.get("results"), list):
            raise MalformedResponseError("Get response must contain a results list")
        return [decode_item(item) for item in data["results"]]

    async def delete(
        self,
        ids: Iterable[str],
        timeout: float | None = None,
    ) -> None:
        """Delete items by id.

        Raises:
            ServiceError: If the Service rejects the request.
        """
        id_list = self._check_ids(ids)
        if not id_list:
            return

        await self._transport.request(
            "POST",
            self._path("delete"),
            json=self._body(ids=id_list),
            timeout=timeout,
        )
        logger.debug(
            f"Deleted {len(id_list)} items",
            extra={"index": self._index_name},
        )

    async def train(
        self,
        params: TrainParams | None = None,
        timeout: float | None = None,
    ) -> None:
        """Train the index.

        Args:
            params: Training options; Service defaults when omitted.
            timeout: Per-call timeout in seconds. Training can take a while.

        Raises:
            ServiceError: If training fails.
        """
        params = params or TrainParams()
        await self._transport.request(
            "POST",
            self._path("train"),
            json=self._body(**params.model_dump(exclude_none=True)),
            timeout=timeout,
        )
        self._trained = True
        logger.info(f"Trained index: {self._index_name}")

    async def delete_index(self, timeout: float | None = None) -> None:
        """Delete the index and everything in it.

        Raises:
            ServiceError: If the Service rejects the request.
        """
        await self._transport.request(
            "DELETE",
            self._path(),
            json=self._body(),
            timeout=timeout,
        )
        logger.info(f"Deleted index: {self._index_name}")

    async def list_ids(self, timeout: float | None = None) -> ListIDsResult:
        """List every item id in the index.

        Raises:
            ServiceError: If the Service rejects the request.
            MalformedResponseError: If the response has no id list.
        """
        data = await self._transport.request(
            "POST",
            self._path("list_ids"),
            json=self._body(),
            timeout=timeout,
        )
        try:
            result = ListIDsResult.model_validate(data)
        except PydanticValidationError as e:
            raise MalformedResponseError(
                f"Invalid list_ids response: {e.error_count()} error(s)",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e
        if "count" not in data:
            result = ListIDsResult(ids=result.ids, count=len(result.ids))
        return result
