"""Salesforce REST calls used by the session manager and query tools.

Only the endpoints needed to establish a session (version discovery,
identity) and to page through SOQL results are wrapped here.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from ..errors import ApiError
from ..logging_config import get_logger
from .client import DEFAULT_USER_AGENT, SalesforceClient
from .http import HttpExecutor, Response
from .query_stream import QueryStream, start_query_stream, stream_query_result
from .records import QueryResult

logger = get_logger("salesforce.api")


def _version_key(version: str) -> tuple[int, ...]:
    try:
        return tuple(int(part) for part in version.split("."))
    except ValueError:
        return (-1,)


def is_full_path(cursor: str) -> bool:
    """True for cursors already rooted at ``/services/data/v...``."""
    return cursor.startswith("/services/data/v")


class SalesforceApi:
    """Thin wrapper over :class:`HttpExecutor` for Salesforce REST calls.

    Args:
        executor: Shared HTTP executor
        user_agent: User agent sent with every request
    """

    def __init__(
        self, executor: HttpExecutor, user_agent: str = DEFAULT_USER_AGENT
    ) -> None:
        self._executor = executor
        self.user_agent = user_agent

    def build_client(
        self, instance_url: str, access_token: str, api_version: str
    ) -> SalesforceClient:
        """Build an immutable client handle."""
        return SalesforceClient(
            instance_url=instance_url,
            access_token=access_token,
            api_version=api_version,
            user_agent=self.user_agent,
        )

    async def request(
        self,
        client: SalesforceClient,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Response:
        """Send a request and raise on non-2xx.

        Raises:
            ApiError: On a non-2xx response
            TransportError: On network failure
        """
        response = await self._executor.request(
            method, client.url_for(path), params=params, headers=client.headers
        )
        if not response.ok:
            error = ApiError.from_response(response.status, response.body)
            logger.debug("%s %s failed: %s", method, path, error)
            raise error
        return response

    async def versions(self, instance_url: str) -> list[dict[str, Any]]:
        """List REST API versions available on an instance."""
        client = SalesforceClient(instance_url=instance_url, user_agent=self.user_agent)
        response = await self.request(client, "GET", "/services/data")
        if not isinstance(response.body, list):
            raise ApiError(
                response.status, "MALFORMED_VERSIONS", "expected a list of versions"
            )
        return response.body

    async def latest_version(self, instance_url: str) -> str:
        """Return the highest API version available on an instance.

        Raises:
            ApiError: If an entry has no string ``version`` or none is listed
        """
        versions = []
        for entry in await self.versions(instance_url):
            version = entry.get("version") if isinstance(entry, dict) else None
            if not isinstance(version, str):
                raise ApiError(
                    0, "MALFORMED_VERSIONS", f"unexpected version entry: {entry!r}"
                )
            versions.append(version)
        if not versions:
            raise ApiError(0, "NO_API_VERSIONS", f"no API versions at {instance_url}")
        latest = max(versions, key=_version_key)
        logger.debug("Resolved API version %s at %s", latest, instance_url)
        return latest

    async def identity(self, client: SalesforceClient, id_url: str) -> dict[str, Any]:
        """Fetch the identity document for the authenticated user.

        The token response's ``id`` is a login-host URL; its path is
        requested against the client's instance.
        """
        path = urlparse(id_url).path or id_url
        response = await self.request(client, "GET", path)
        if not isinstance(response.body, dict):
            raise ApiError(response.status, "MALFORMED_IDENTITY", "expected an object")
        return response.body

    async def query(self, client: SalesforceClient, soql: str) -> QueryResult:
        """Run a SOQL query and return the first page."""
        response = await self.request(client, "GET", "query", params={"q": soql})
        return QueryResult.from_response(response.body)

    async def query_all(self, client: SalesforceClient, soql: str) -> QueryResult:
        """Run a SOQL query including deleted and archived records."""
        response = await self.request(client, "GET", "queryAll", params={"q": soql})
        return QueryResult.from_response(response.body)

    async def query_retrieve(
        self, client: SalesforceClient, cursor: str
    ) -> QueryResult:
        """Fetch the page behind a ``nextRecordsUrl`` or a bare query locator."""
        path = cursor if is_full_path(cursor) else f"query/{cursor}"
        response = await self.request(client, "GET", path)
        return QueryResult.from_response(response.body)

    def query_stream(self, client: SalesforceClient, soql: str) -> QueryStream:
        """Lazily stream every record of a SOQL query."""
        return start_query_stream(client, self.query, soql, self.query_retrieve)

    def query_all_stream(self, client: SalesforceClient, soql: str) -> QueryStream:
        """Like :meth:`query_stream`, including deleted and archived records."""
        return start_query_stream(client, self.query_all, soql, self.query_retrieve)

    def stream_query_result(
        self, client: SalesforceClient, result: QueryResult
    ) -> QueryStream:
        """Stream the rest of a query from an already fetched page."""
        return stream_query_result(client, result, self.query_retrieve)
