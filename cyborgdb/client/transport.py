"""HTTP transport to the CyborgDB service.

This is the only module that talks HTTP. It sends JSON bodies, adds the
API key header, and maps transport failures onto the client exception
hierarchy. It never retries.
"""

from typing import Any

import httpx

from cyborgdb.config import ServiceSettings, get_settings
from cyborgdb.exceptions import (
    DeadlineExceededError,
    MalformedResponseError,
    ServiceConnectionError,
    ServiceError,
)
from cyborgdb.logging_config import get_logger

logger = get_logger(__name__)

API_KEY_HEADER = "X-API-Key"


class ServiceTransport:
    """JSON-over-HTTP transport.

    Task cancellation is not intercepted: cancelling the awaiting task
    aborts the in-flight request and ``asyncio.CancelledError``
    propagates to the caller unchanged.
    """

    def __init__(
        self,
        settings: ServiceSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            settings: Service configuration. Uses defaults if not provided.
            client: HTTP client (for testing). Creates one if not provided.
        """
        self._settings = settings or get_settings().service
        self._client = client
        self._owns_client = client is None

    @property
    def base_url(self) -> str:
        """Service base URL without a trailing slash."""
        return self._settings.base_url.rstrip("/")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.timeout,
                verify=self._settings.resolve_verify_ssl(),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._settings.api_key is not None:
            headers[API_KEY_HEADER] = self._settings.api_key.get_secret_value()
        return headers

    async def request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Args:
            method: HTTP method.
            path: Path below the base URL, starting with ``/``.
            json: Request body.
            timeout: Per-call timeout in seconds (default from settings).

        Returns:
            Decoded JSON body, or an empty dict for empty responses.

        Raises:
            DeadlineExceededError: If the call timed out.
            ServiceError: If the Service returned a non-success status.
            ServiceConnectionError: If the Service could not be reached.
            MalformedResponseError: If the body is not valid JSON.
        """
        client = await self._get_client()
        url = f"{self.base_url}{path}"

        kwargs: dict[str, Any] = {"headers": self._headers()}
        if json is not None:
            kwargs["json"] = json
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()

        except httpx.TimeoutException as e:
            logger.error(
                f"Request timed out: {method} {path}",
                extra={"path": path, "timeout": timeout or self._settings.timeout},
            )
            raise DeadlineExceededError(
                f"Request to {path} timed out",
                details={"path": path, "timeout": timeout or self._settings.timeout},
            ) from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            body = e.response.text
            logger.error(
                f"Service returned {status}: {method} {path}",
                extra={"path": path, "status": status},
            )
            raise ServiceError(
                f"Service returned {status}: {body}",
                status_code=status,
                body=body,
                details={"path": path},
            ) from e

        except httpx.RequestError as e:
            logger.error(
                f"Service connection error: {e}",
                extra={"path": path},
            )
            raise ServiceConnectionError(
                f"Failed to connect to CyborgDB service: {e}",
                details={"url": url},
            ) from e

        if response.status_code == 204 or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Invalid JSON from {path}: {e}",
                body=response.text,
                details={"path": path},
            ) from e
