# ABOUTME: Async HTTP client abstraction for metadata source API calls.
# ABOUTME: Retry with exponential backoff, per-call timeouts, and an injectable transport.

import asyncio
import logging
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 0.8
DEFAULT_BACKOFF_FACTOR = 1.5
DEFAULT_TIMEOUT = 10.0

USER_AGENT = "shelfmerge/0.1.0 (book enrichment)"


class MetadataFetchError(Exception):
    """Raised when a request to a metadata source fails or returns unusable data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SourceRequestError(MetadataFetchError):
    """A 4xx response. The request itself is wrong for this source; retrying won't help."""


class SourceUnavailableError(MetadataFetchError):
    """Retries exhausted on 5xx responses, timeouts, or network failures."""


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for the HTTP operations source adapters need."""

    async def get_json(
        self, url: str, params: dict[str, str] | None = None
    ) -> dict[str, Any]: ...

    async def get_text(self, url: str, params: dict[str, str] | None = None) -> str: ...

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]: ...


class RetryingHttpClient:
    """HTTP client with retry and backoff for metadata API calls.

    Wraps httpx.AsyncClient. 4xx responses are final and raise
    SourceRequestError immediately; 5xx responses, timeouts and transport
    errors are retried up to ``max_retries`` times with a delay of
    ``retry_delay * backoff_factor ** attempt`` and then raise
    SourceUnavailableError.
    """

    def __init__(
        self,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "headers": {"User-Agent": USER_AGENT},
            "timeout": timeout,
            "follow_redirects": True,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._backoff_factor = backoff_factor

    async def __aenter__(self) -> "RetryingHttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_json(
        self, url: str, params: dict[str, str] | None = None
    ) -> dict[str, Any]:
        """Send a GET request and decode the JSON body.

        Raises:
            SourceRequestError: On a 4xx response.
            SourceUnavailableError: When retries are exhausted.
            MetadataFetchError: When the body is not a JSON object.
        """
        response = await self._request("GET", url, params=params)
        return _decode_json(response, url)

    async def get_text(self, url: str, params: dict[str, str] | None = None) -> str:
        """Send a GET request and return the raw body text."""
        response = await self._request("GET", url, params=params)
        return response.text

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send a JSON POST request and decode the JSON body."""
        response = await self._request("POST", url, json=payload, headers=headers)
        return _decode_json(response, url)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        attempts = 1 + self._max_retries
        last_problem = "no response"

        for attempt in range(attempts):
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.TimeoutException as exc:
                last_problem = f"timeout: {exc}"
            except httpx.TransportError as exc:
                last_problem = f"network error: {exc}"
            else:
                if response.is_success:
                    return response
                if 400 <= response.status_code < 500:
                    raise SourceRequestError(
                        f"HTTP {response.status_code} from {url}",
                        status_code=response.status_code,
                    )
                last_problem = f"HTTP {response.status_code}"

            if attempt < attempts - 1:
                delay = self._retry_delay * (self._backoff_factor**attempt)
                logger.warning(
                    "%s from %s, retrying in %.1fs (attempt %d/%d)",
                    last_problem,
                    url,
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                await asyncio.sleep(delay)

        raise SourceUnavailableError(f"{last_problem} from {url} after {attempts} attempts")


def _decode_json(response: httpx.Response, url: str) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise MetadataFetchError(f"Malformed JSON from {url}: {exc}") from exc
    if not isinstance(data, dict):
        raise MetadataFetchError(f"Unexpected JSON payload from {url}: {type(data).__name__}")
    return data
