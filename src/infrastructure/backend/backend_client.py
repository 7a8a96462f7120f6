"""
Backend HTTP Client.

Forwards passthrough requests (CRUD on products, users, hair types, reviews,
favourites) to the backend service and hands back its raw response.

Responsibility:
    - One pooled httpx.AsyncClient per process, base URI from BACKEND_URI
    - Forward method, path, query string, body and content type unchanged
    - Convert transport failures into BackendUnavailableError

Architecture Notes:
    - Infrastructure Layer (external dependency on the backend REST API)
    - No response transformation: status, body and content type are relayed
"""

import logging
import os
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

_backend_client: Optional["BackendClient"] = None


class BackendUnavailableError(Exception):
    """Raised when the backend cannot be reached or does not answer in time."""


class BackendClient:
    """
    Thin forwarding client for the backend REST API.

    Attributes:
        base_uri: Backend base URI (no trailing slash)
        timeout: Request timeout in seconds

    Examples:
        >>> backend = BackendClient("http://localhost:8081")
        >>> response = await backend.forward("GET", "/products")
        >>> response.status_code
        200
    """

    def __init__(
        self,
        base_uri: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize backend client.

        Args:
            base_uri: Backend URI (default from env: BACKEND_URI or "http://localhost:8081")
            timeout: Timeout in seconds (default from env: BACKEND_TIMEOUT_SECONDS or 30)
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.base_uri = (base_uri or os.getenv("BACKEND_URI", "http://localhost:8081")).rstrip("/")
        self.timeout: float = timeout or float(os.getenv("BACKEND_TIMEOUT_SECONDS", "30"))
        self._client = httpx.AsyncClient(
            base_url=self.base_uri, timeout=self.timeout, transport=transport
        )

    async def forward(
        self,
        method: str,
        path: str,
        query: str = "",
        body: Optional[bytes] = None,
        content_type: Optional[str] = None,
    ) -> httpx.Response:
        """
        Forward one request to the backend.

        Args:
            method: HTTP method
            path: Request path (already includes path parameters)
            query: Raw query string (without "?")
            body: Raw request body
            content_type: Request content type to pass through

        Returns:
            Backend response (any status code)

        Raises:
            BackendUnavailableError: On connection errors and timeouts
        """
        url = f"{path}?{query}" if query else path
        headers = {"Content-Type": content_type} if content_type else None

        try:
            response = await self._client.request(method, url, content=body or None, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Backend request failed: {method} {url}: {e}")
            raise BackendUnavailableError(f"Backend request failed: {e}") from e

        logger.debug(f"Backend responded: {method} {url} - {response.status_code}")
        return response

    async def aclose(self) -> None:
        await self._client.aclose()


def get_backend_client() -> BackendClient:
    """Get process-wide BackendClient (created on first use)."""
    global _backend_client

    if _backend_client is None:
        _backend_client = BackendClient()
        logger.info(f"Backend client created for {_backend_client.base_uri}")
    return _backend_client


async def close_backend_client() -> None:
    """Close the process-wide client if it was created."""
    global _backend_client

    if _backend_client is not None:
        await _backend_client.aclose()
        _backend_client = None
        logger.info("Backend client closed")
