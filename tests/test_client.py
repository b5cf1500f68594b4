"""Tests for the service client and encrypted index handle."""

import asyncio

import httpx
import pytest

from cyborgdb.client import Client, EncryptedIndex, ListIDsResult, ServiceTransport, TrainParams
from cyborgdb.config import ServiceSettings
from cyborgdb.exceptions import (
    ConflictingQueryInputError,
    DeadlineExceededError,
    DimensionMismatchError,
    InvalidKeyLengthError,
    InvalidQueryParameterError,
    InvalidVectorItemError,
    MalformedResponseError,
    MissingRequiredFieldError,
    ResultCountMismatchError,
    ServiceError,
    UnsupportedContentsError,
    ValidationError,
)
from cyborgdb.filters import gt
from cyborgdb.indexes import IndexIVF, IndexIVFFlat, IndexIVFPQ
from cyborgdb.keys import EncryptionKey
from cyborgdb.query import QueryMode, batch_vector_query, single_vector_query
from cyborgdb.vectors import VectorItem
from tests.conftest import FakeService

KEY_HEX = bytes(range(32)).hex()


def _make_index(
    transport: ServiceTransport,
    key: EncryptionKey,
    dimension: int = 2,
) -> EncryptedIndex:
    return EncryptedIndex(
        index_name="docs",
        index_key=key,
        transport=transport,
        index_config=IndexIVFFlat(dimension=dimension),
    )


class TestClient:
    """Tests for Client."""

    @pytest.mark.asyncio
    async def test_get_health(self, service: FakeService, client: Client) -> None:
        """Health returns the Service's document."""
        service.reply("GET", "/health", {"status": "healthy"})

        assert await client.get_health() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_list_indexes(self, service: FakeService, client: Client) -> None:
        """Index names are returned in Service order."""
        service.reply("GET", "/indexes", {"indexes": ["b", "a"]})

        assert await client.list_indexes() == ["b", "a"]

    @pytest.mark.asyncio
    async def test_list_indexes_malformed(self, service: FakeService, client: Client) -> None:
        """Non-list index payloads are malformed."""
        service.reply("GET", "/indexes", {"indexes": "docs"})

        with pytest.raises(MalformedResponseError):
            await client.list_indexes()

    @pytest.mark.asyncio
    async def test_create_index(
        self,
        service: FakeService,
        client: Client,
        test_key: EncryptionKey,
    ) -> None:
        """create_index sends name, hex key and tagged config."""
        service.reply("POST", "/indexes", {"status": "success"})

        index = await client.create_index(
            "docs",
            test_key,
            IndexIVFPQ(dimension=768, n_lists=1024, pq_dim=64, pq_bits=8),
            embedding_model="all-MiniLM-L6-v2",
        )

        assert service.last_json() == {
            "index_name": "docs",
            "index_key": KEY_HEX,
            "index_config": {
                "type": "ivfpq",
                "dimension": 768,
                "metric": "euclidean",
                "n_lists": 1024,
                "pq_dim": 64,
                "pq_bits": 8,
            },
            "embedding_model": "all-MiniLM-L6-v2",
        }
        assert index.index_name == "docs"
        assert index.index_type == "ivfpq"
        assert index.is_trained() is False

    @pytest.mark.asyncio
    async def test_create_index_without_config(
        self,
        service: FakeService,
        client: Client,
        test_key: EncryptionKey,
    ) -> None:
        """Config is optional; the Service picks a default."""
        service.reply("POST", "/indexes", {})

        index = await client.create_index("docs", test_key.to_hex())

        assert "index_config" not in service.last_json()
        assert index.index_type is None

    @pytest.mark.asyncio
    async def test_create_index_short_key(self, service: FakeService, client: Client) -> None:
        """A short key fails before any request."""
        with pytest.raises(InvalidKeyLengthError):
            await client.create_index("docs", b"\x00" * 16, IndexIVF(dimension=8))

        assert service.requests == []

    @pytest.mark.asyncio
    async def test_create_index_bad_config_map(
        self,
        service: FakeService,
        client: Client,
        test_key: EncryptionKey,
    ) -> None:
        """Config maps are decoded strictly before any request."""
        with pytest.raises(MissingRequiredFieldError):
            await client.create_index(
                "docs",
                test_key,
                {"type": "ivfpq", "dimension": 128, "metric": "euclidean", "n_lists": 10},
            )

        assert service.requests == []

    @pytest.mark.asyncio
    async def test_create_index_empty_name(self, client: Client, test_key: EncryptionKey) -> None:
        """Empty names are rejected."""
        with pytest.raises(ValidationError):
            await client.create_index("", test_key)

    @pytest.mark.asyncio
    async def test_create_index_conflict(
        self,
        service: FakeService,
        client: Client,
        test_key: EncryptionKey,
    ) -> None:
        """Service rejections surface unchanged."""
        service.reply("POST", "/indexes", {"detail": "exists"}, status_code=409)

        with pytest.raises(ServiceError) as exc_info:
            await client.create_index("docs", test_key)

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_load_index(
        self,
        service: FakeService,
        client: Client,
        test_key: EncryptionKey,
    ) -> None:
        """load_index reads config and training state from the Service."""
        service.reply(
            "POST",
            "/indexes/docs/describe",
            {
                "index_name": "docs",
                "index_type": "ivf",
                "is_trained": True,
                "index_config": {"dimension": 4, "metric": "cosine", "n_lists": 2},
            },
        )

        index = await client.load_index("docs", test_key)

        assert service.last_json() == {"index_name": "docs", "index_key": KEY_HEX}
        assert index.index_type == "ivf"
        assert index.is_trained() is True
        assert isinstance(index.index_config, IndexIVF)

    @pytest.mark.asyncio
    async def test_load_missing_index(
        self,
        service: FakeService,
        client: Client,
        test_key: EncryptionKey,
    ) -> None:
        """Unknown indexes raise ServiceError with the Service's status."""
        with pytest.raises(ServiceError) as exc_info:
            await client.load_index("nope", test_key)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_context_manager_closes_owned_transport(self, settings: ServiceSettings) -> None:
        """Leaving the context closes a client-owned transport."""
        async with Client(settings=settings) as client:
            http_client = await client._transport._get_client()

        assert http_client.is_closed

    def test_generate_key(self) -> None:
        """Client.generate_key returns a 32-byte key."""
        assert len(Client.generate_key().raw) == 32


class TestEncryptedIndexUpsert:
    """Tests for EncryptedIndex.upsert."""

    @pytest.mark.asyncio
    async def test_upsert(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """Items are encoded with base64 binary contents."""
        service.reply("POST", "/indexes/docs/upsert", {"status": "success"})
        index = _make_index(transport, test_key)

        await index.upsert(
            [
                VectorItem(id="a", vector=[0.1, 0.2], contents=b"\x00\x01"),
                {"id": "b", "vector": [0.3, 0.4], "metadata": {"k": 1}},
            ]
        )

        body = service.last_json()
        assert body["index_name"] == "docs"
        assert body["index_key"] == KEY_HEX
        assert body["items"] == [
            {"id": "a", "vector": [0.1, 0.2], "contents": "AAE="},
            {"id": "b", "vector": [0.3, 0.4], "metadata": {"k": 1}},
        ]

    @pytest.mark.asyncio
    async def test_upsert_empty(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """Nothing to upsert makes no request."""
        await _make_index(transport, test_key).upsert([])

        assert service.requests == []

    @pytest.mark.asyncio
    async def test_upsert_dimension_mismatch(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """Vectors of the wrong length fail locally."""
        with pytest.raises(DimensionMismatchError) as exc_info:
            await _make_index(transport, test_key).upsert(
                [VectorItem(id="a", vector=[0.1, 0.2, 0.3])]
            )

        assert exc_info.value.details["id"] == "a"
        assert service.requests == []

    @pytest.mark.asyncio
    async def test_upsert_unsupported_contents(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """Contents that are not text or bytes fail locally."""
        with pytest.raises(UnsupportedContentsError):
            await _make_index(transport, test_key).upsert([{"id": "a", "contents": 1.5}])

        assert service.requests == []


class TestEncryptedIndexQuery:
    """Tests for EncryptedIndex.query."""

    @pytest.mark.asyncio
    async def test_single_query(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """A single query returns one result set."""
        service.reply(
            "POST",
            "/indexes/docs/query",
            {"results": [{"id": f"id-{i}", "distance": i / 10} for i in range(5)]},
        )
        index = _make_index(transport, test_key)

        response = await index.query(
            single_vector_query(
                [0.1, 0.2],
                top_k=5,
                include=["distance"],
                filters=gt("age", 30),
            )
        )

        assert response.mode is QueryMode.SINGLE
        assert len(response.result_sets) == 1
        assert [item.id for item in response.results] == [f"id-{i}" for i in range(5)]
        body = service.last_json()
        assert body["query_vector"] == [0.1, 0.2]
        assert body["filters"] == {"age": {"$gt": 30}}

    @pytest.mark.asyncio
    async def test_keyword_query(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """Keyword parameters build the request."""
        service.reply("POST", "/indexes/docs/query", {"results": []})
        index = _make_index(transport, test_key)

        response = await index.query(query_contents="shoes", top_k=3, include=[])

        assert response.result_sets == [[]]
        assert service.last_json()["query_contents"] == "shoes"

    @pytest.mark.asyncio
    async def test_conflicting_inputs(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """Vector and contents together fail before any request."""
        index = _make_index(transport, test_key)

        with pytest.raises(ConflictingQueryInputError):
            await index.query(
                {
                    "query_vector": [0.1, 0.2],
                    "query_contents": "hello",
                    "top_k": 5,
                    "include": [],
                }
            )

        assert service.requests == []

    @pytest.mark.asyncio
    async def test_params_and_keywords(
        self,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """Passing both an object and keywords is rejected."""
        index = _make_index(transport, test_key)

        with pytest.raises(InvalidQueryParameterError):
            await index.query({"query_vector": [0.1, 0.2]}, top_k=1, include=[])

    @pytest.mark.asyncio
    async def test_batch_count_mismatch(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """A batch of 3 answered with 2 result sets is an error."""
        service.reply(
            "POST",
            "/indexes/docs/query",
            {"results": [[{"id": "a"}], [{"id": "b"}]]},
        )
        index = _make_index(transport, test_key)

        with pytest.raises(ResultCountMismatchError):
            await index.query(
                batch_vector_query([[0.1, 0.2]] * 3, top_k=1, include=[])
            )

    @pytest.mark.asyncio
    async def test_query_dimension_mismatch(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """Query vectors must match the index dimension."""
        index = _make_index(transport, test_key)

        with pytest.raises(DimensionMismatchError):
            await index.query(single_vector_query([0.1], top_k=1, include=[]))

        assert service.requests == []

    @pytest.mark.asyncio
    async def test_query_timeout(self, settings: ServiceSettings, test_key: EncryptionKey) -> None:
        """A timed-out query raises DeadlineExceededError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            transport = ServiceTransport(settings=settings, client=http_client)
            index = _make_index(transport, test_key)

            with pytest.raises(DeadlineExceededError):
                await index.query(
                    single_vector_query([0.1, 0.2], top_k=1, include=[]),
                    timeout=0.1,
                )

    @pytest.mark.asyncio
    async def test_concurrent_queries(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """One handle serves concurrent queries."""
        service.reply("POST", "/indexes/docs/query", {"results": [{"id": "a"}]})
        index = _make_index(transport, test_key)

        responses = await asyncio.gather(
            *(
                index.query(single_vector_query([0.1, 0.2], top_k=1, include=[]))
                for _ in range(5)
            )
        )

        assert all(r.results[0].id == "a" for r in responses)
        assert len(service.requests) == 5


class TestEncryptedIndexOperations:
    """Tests for get, delete, train, list_ids and delete_index."""

    @pytest.mark.asyncio
    async def test_get(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """get returns decoded items."""
        service.reply(
            "POST",
            "/indexes/docs/get",
            {"results": [{"id": "a", "vector": [0.1, 0.2], "metadata": {"k": 1}}]},
        )
        index = _make_index(transport, test_key)

        items = await index.get(["a"], include=["vector", "metadata"])

        assert items == [VectorItem(id="a", vector=[0.1, 0.2], metadata={"k": 1})]
        assert service.last_json()["include"] == ["vector", "metadata"]
        assert service.last_json()["ids"] == ["a"]

    @pytest.mark.asyncio
    async def test_get_rejects_distance(
        self,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """distance is only available from queries."""
        with pytest.raises(InvalidQueryParameterError):
            await _make_index(transport, test_key).get(["a"], include=["distance"])

    @pytest.mark.asyncio
    async def test_get_empty(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """No ids makes no request."""
        assert await _make_index(transport, test_key).get([]) == []
        assert service.requests == []

    @pytest.mark.asyncio
    async def test_delete(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """delete sends the ids."""
        service.reply("POST", "/indexes/docs/delete", {"status": "success"})

        await _make_index(transport, test_key).delete(["a", "b"])

        assert service.last_json()["ids"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_delete_bad_ids(
        self,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """A bare string is not a list of ids."""
        with pytest.raises(InvalidVectorItemError):
            await _make_index(transport, test_key).delete("a")

    @pytest.mark.asyncio
    async def test_train(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """train sends only the set options and marks the handle trained."""
        service.reply("POST", "/indexes/docs/train", {"status": "success"})
        index = _make_index(transport, test_key)

        await index.train(TrainParams(batch_size=2048, max_iters=100))

        body = service.last_json()
        assert body["batch_size"] == 2048
        assert body["max_iters"] == 100
        assert "tolerance" not in body
        assert index.is_trained() is True

    @pytest.mark.asyncio
    async def test_train_failure_keeps_untrained(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """A failed training leaves the handle untrained."""
        service.reply("POST", "/indexes/docs/train", {"detail": "boom"}, status_code=500)
        index = _make_index(transport, test_key)

        with pytest.raises(ServiceError):
            await index.train()

        assert index.is_trained() is False

    @pytest.mark.asyncio
    async def test_list_ids(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """list_ids fills in count when absent."""
        service.reply("POST", "/indexes/docs/list_ids", {"ids": ["a", "b"]})

        result = await _make_index(transport, test_key).list_ids()

        assert result == ListIDsResult(ids=["a", "b"], count=2)

    @pytest.mark.asyncio
    async def test_delete_index(
        self,
        service: FakeService,
        transport: ServiceTransport,
        test_key: EncryptionKey,
    ) -> None:
        """delete_index sends DELETE with the key."""
        service.reply("DELETE", "/indexes/docs", {"status": "success"})

        await _make_index(transport, test_key).delete_index()

        assert service.last_request.method == "DELETE"
        assert service.last_json()["index_key"] == KEY_HEX

    def test_repr_hides_key(self, transport: ServiceTransport, test_key: EncryptionKey) -> None:
        """The handle repr does not show the key."""
        assert KEY_HEX not in repr(_make_index(transport, test_key))
