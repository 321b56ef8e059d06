"""Base HTTP client with common functionality."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class BaseApiClient(ABC):
    """Base class for the HTTP API clients with common functionality."""

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0):
        """Initialize the HTTP client."""
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _make_request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Make an HTTP request, raising the client's error type on failure."""
        url = self._url(path)
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"HTTP request failed: {method} {path}: {e}")
            raise self._error(f"{method} {path}: {e}", endpoint=path) from e

        if not response.is_success:
            body = response.text
            logger.error(f"HTTP {response.status_code} from {method} {path}: {body[:500]}")
            raise self._error(
                f"{method} {path} failed with status {response.status_code}: {body}",
                endpoint=path,
                status_code=response.status_code,
                body=body,
            )
        return response

    def _decode_json(self, response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise self._error(f"{path}: malformed JSON response: {e}", endpoint=path, body=response.text) from e

    @abstractmethod
    def _error(self, message: str, **context: Any) -> Exception:
        """Build the exception raised for a failed request."""
        pass

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
