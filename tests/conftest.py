"""Pytest configuration and shared fixtures."""

import json
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest

from cyborgdb.client import Client, ServiceTransport
from cyborgdb.config import ServiceSettings
from cyborgdb.keys import EncryptionKey

TEST_KEY_BYTES = bytes(range(32))


class FakeService:
    """Stand-in for the CyborgDB service behind httpx.MockTransport.

    Replies come from a route table keyed by (method, path); every
    request is recorded for later inspection.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], tuple[int, Any]] = {}

    def reply(
        self,
        method: str,
        path: str,
        body: Any = None,
        status_code: int = 200,
    ) -> None:
        """Register the response for a route."""
        self._routes[(method, path)] = (status_code, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        """MockTransport handler."""
        self.requests.append(request)
        route = self._routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        status_code, body = route
        if body is None:
            return httpx.Response(status_code)
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)

    @property
    def last_request(self) -> httpx.Request:
        """The most recent request."""
        return self.requests[-1]

    def last_json(self) -> Any:
        """Body of the most recent request, decoded."""
        return json.loads(self.last_request.content)


@pytest.fixture
def service() -> FakeService:
    """Fresh fake service per test."""
    return FakeService()


@pytest.fixture
def settings() -> ServiceSettings:
    """Service settings pointing at the fake service."""
    return ServiceSettings(base_url="http://test", api_key="test-api-key")


@pytest.fixture
def test_key() -> EncryptionKey:
    """Deterministic 32-byte index key."""
    return EncryptionKey(raw=TEST_KEY_BYTES)


@pytest.fixture
async def http_client(service: FakeService) -> AsyncGenerator[httpx.AsyncClient, None]:
    """httpx client routed to the fake service.

    Yields:
        AsyncClient backed by MockTransport.
    """
    async with httpx.AsyncClient(transport=httpx.MockTransport(service.handler)) as ac:
        yield ac


@pytest.fixture
def transport(
    settings: ServiceSettings,
    http_client: httpx.AsyncClient,
) -> ServiceTransport:
    """Transport using the fake service."""
    return ServiceTransport(settings=settings, client=http_client)


@pytest.fixture
def client(settings: ServiceSettings, transport: ServiceTransport) -> Client:
    """Client using the fake service."""
    return Client(settings=settings, transport=transport)
