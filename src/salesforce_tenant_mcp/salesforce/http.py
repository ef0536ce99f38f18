"""HTTP executor used by the Salesforce API layer and OAuth exchanger.

Wraps a single ``httpx.AsyncClient``. Connect failures are retried by the
httpx transport; gzip responses are decoded by httpx. JSON bodies are
decoded with msgspec. Every network level failure surfaces as
:class:`~salesforce_tenant_mcp.errors.TransportError`; HTTP status codes are
returned as-is and interpreted by the caller.
"""

from __future__ import annotations

import time
from typing import Any, Mapping

import httpx
import msgspec

from ..errors import TransportError
from ..logging_config import get_logger

logger = get_logger("salesforce.http")


class Response(msgspec.Struct, frozen=True, kw_only=True):
    """Decoded HTTP response."""

    status: int
    body: Any
    headers: dict[str, str] = {}
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def decode_body(response: httpx.Response) -> Any:
    """Decode a response body: JSON when possible, text otherwise."""
    if not response.content:
        return ""
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return msgspec.json.decode(response.content)
        except msgspec.DecodeError:
            logger.debug("Response declared JSON but failed to decode")
    return response.text


class HttpExecutor:
    """Execute HTTP requests and return :class:`Response` values.

    Args:
        timeout: Request timeout in seconds
        retries: Connect retries performed by the httpx transport
        transport: Optional transport override (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.retries = retries
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._http_client is None:
            logger.debug(
                "Creating async HTTP client: timeout=%s, retries=%d",
                self.timeout,
                self.retries,
            )
            transport = self._transport or httpx.AsyncHTTPTransport(
                retries=self.retries
            )
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout, transport=transport
            )
        return self._http_client

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """Send a request.

        Raises:
            TransportError: On DNS, connect, read or timeout failures
        """
        client = await self._get_client()
        content = msgspec.json.encode(json) if json is not None else None
        request_headers = dict(headers or {})
        if content is not None:
            request_headers.setdefault("content-type", "application/json")

        started = time.perf_counter()
        try:
            response = await client.request(
                method,
                url,
                params=params,
                content=content,
                data=data,
                headers=request_headers,
            )
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise TransportError(f"{method} {url} failed: {e}", cause=e) from e

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "%s %s -> %d (%.1f ms)", method, url, response.status_code, elapsed_ms
        )
        return Response(
            status=response.status_code,
            body=decode_body(response),
            headers=dict(response.headers),
            elapsed_ms=elapsed_ms,
        )

    async def close(self) -> None:
        """Close the async HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
