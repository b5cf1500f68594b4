"""CyborgDB service client."""

from collections.abc import Mapping
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx

from cyborgdb.client.index import EncryptedIndex
from cyborgdb.client.transport import ServiceTransport
from cyborgdb.config import ServiceSettings, get_settings
from cyborgdb.exceptions import MalformedResponseError, ValidationError
from cyborgdb.indexes.codec import (
    decode_index_config,
    decode_index_descriptor,
    encode_index_config,
)
from cyborgdb.indexes.models import IndexConfig
from cyborgdb.keys.codec import EncryptionKey, coerce_key, encode_key, generate_key
from cyborgdb.logging_config import get_logger

logger = get_logger(__name__)


class Client:
    """Entry point for the CyborgDB service.

    Creates and loads encrypted indexes, lists them, and checks service
    health. Use as an async context manager, or call ``close()``.
    """

    def __init__(
        self,
        settings: ServiceSettings | None = None,
        transport: ServiceTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Service configuration. Loaded from the environment
                if not provided.
            transport: Transport to use (for testing).
            http_client: HTTP client for a new transport (for testing).
        """
        self._settings = settings or get_settings().service
        self._transport = transport or ServiceTransport(
            settings=self._settings,
            client=http_client,
        )

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    @staticmethod
    def generate_key() -> EncryptionKey:
        """Generate a new 32-byte index key."""
        return generate_key()

    async def get_health(self, timeout: float | None = None) -> dict[str, Any]:
        """Get service health status."""
        data = await self._transport.request("GET", "/health", timeout=timeout)
        if not isinstance(data, Mapping):
            raise MalformedResponseError("Health response must be an object")
        return dict(data)

    async def list_indexes(self, timeout: float | None = None) -> list[str]:
        """List the names of all indexes."""
        data = await self._transport.request("GET", "/indexes", timeout=timeout)
        names = data.get("indexes") if isinstance(data, Mapping) else data
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise MalformedResponseError("Index list must be a list of names")
        return names

    async def create_index(
        self,
        index_name: str,
        index_key: EncryptionKey | bytes | str,
        index_config: IndexConfig | Mapping[str, Any] | None = None,
        embedding_model: str | None = None,
        timeout: float | None = None,
    ) -> EncryptedIndex:
        """Create a new encrypted index.

        The key cannot be recovered by the Service; store it safely.

        Args:
            index_name: Unique index name.
            index_key: 32-byte key, as EncryptionKey, bytes or hex.
            index_config: Index configuration, or its wire map. The
                Service picks a default when omitted.
            embedding_model: Embedding model the Service should use for
                ``contents``.
            timeout: Per-call timeout in seconds.

        Returns:
            Handle for the new index.

        Raises:
            ValidationError: If the name, key or config is invalid.
            ServiceError: If the Service rejects the request.
        """
        if not index_name:
            raise ValidationError("index_name must not be empty")
        key = coerce_key(index_key)
        if isinstance(index_config, Mapping):
            index_config = decode_index_config(index_config)

        body: dict[str, Any] = {
            "index_name": index_name,
            "index_key": encode_key(key),
        }
        if index_config is not None:
            body["index_config"] = encode_index_config(index_config)
        if embedding_model is not None:
            body["embedding_model"] = embedding_model

        await self._transport.request("POST", "/indexes", json=body, timeout=timeout)
        logger.info(
            f"Created index: {index_name}",
            extra={"index_type": index_config.type if index_config else None},
        )

        return EncryptedIndex(
            index_name=index_name,
            index_key=key,
            transport=self._transport,
            index_config=index_config,
        )

    async def load_index(
        self,
        index_name: str,
        index_key: EncryptionKey | bytes | str,
        timeout: float | None = None,
    ) -> EncryptedIndex:
        """Open an existing index.

        The key must be the one the index was created with. The
        configuration and training state are read from the Service.

        Raises:
            InvalidKeyLengthError: If the key is not 32 bytes.
            ServiceError: If the index does not exist or the key is wrong.
        """
        if not index_name:
            raise ValidationError("index_name must not be empty")
        key = coerce_key(index_key)

        data = await self._transport.request(
            "POST",
            f"/indexes/{quote(index_name, safe='')}/describe",
            json={"index_name": index_name, "index_key": encode_key(key)},
            timeout=timeout,
        )
        descriptor = decode_index_descriptor(data)

        return EncryptedIndex(
            index_name=descriptor.index_name,
            index_key=key,
            transport=self._transport,
            index_config=descriptor.index_config,
            index_type=descriptor.index_type,
            trained=descriptor.is_trained,
        )
