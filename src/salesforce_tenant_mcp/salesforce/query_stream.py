"""Lazy iteration over paginated SOQL results.

A :class:`QueryStream` turns the "page N plus a cursor for page N+1" shape
of the Salesforce query API into one async sequence of records.

Usage:
    stream = api.query_stream(client, "SELECT Id, Name FROM Account")
    async for item in stream:
        if isinstance(item, SalesforceError):
            ...  # terminal, nothing follows
        else:
            print(item.id, item.data["Name"])

Failures never escape the iteration as exceptions: a failed page fetch is
yielded as a single :class:`~salesforce_tenant_mcp.errors.SalesforceError`
value and the stream halts. Nothing is fetched until the consumer pulls,
and no page is fetched before the previous page's records are consumed.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Awaitable, Callable

import msgspec

from ..errors import SalesforceError
from ..logging_config import get_logger
from .client import SalesforceClient
from .records import QueryResult, Record

logger = get_logger("salesforce.query_stream")

QueryFn = Callable[[SalesforceClient, Any], Awaitable[QueryResult]]
RetrieveFn = Callable[[SalesforceClient, str], Awaitable[QueryResult]]

StreamItem = Record | SalesforceError


class Ready(msgspec.Struct, frozen=True):
    """Initial query not executed yet."""

    query: Any


class Page(msgspec.Struct, frozen=True):
    """A fetched page whose records have not been emitted."""

    result: QueryResult


class Continue(msgspec.Struct, frozen=True):
    """Records emitted; next page is behind ``cursor``."""

    cursor: str


class Error(msgspec.Struct, frozen=True):
    """Last call failed; the error is emitted once."""

    error: SalesforceError


class Halted(msgspec.Struct, frozen=True):
    """Terminal."""


HALTED = Halted()

PaginationState = Ready | Page | Continue | Error | Halted


class QueryStream:
    """Single-use async iterator over the records of a paginated query.

    Args:
        client: Client handle passed to every call
        state: Initial state (:class:`Ready` or :class:`Page`)
        execute_query: Runs the initial query (needed for :class:`Ready`)
        retrieve: Fetches the page behind a ``nextRecordsUrl`` cursor
    """

    def __init__(
        self,
        client: SalesforceClient,
        state: PaginationState,
        retrieve: RetrieveFn,
        execute_query: QueryFn | None = None,
    ) -> None:
        if isinstance(state, Ready) and execute_query is None:
            raise ValueError("execute_query is required to start from a query")
        self._client = client
        self._state: PaginationState = state
        self._retrieve = retrieve
        self._execute_query = execute_query
        self._pending: deque[StreamItem] = deque()

    @property
    def halted(self) -> bool:
        """True once nothing more can be produced."""
        return isinstance(self._state, Halted) and not self._pending

    async def pull(self) -> list[StreamItem]:
        """Advance the state machine by one step.

        Performs at most one network round trip. Returns the items produced
        by the step, which may be empty (an empty non-final page, or a
        halted stream).
        """
        if isinstance(self._state, (Ready, Continue)):
            await self._fetch()
        return self._emit()

    async def _fetch(self) -> None:
        state = self._state
        try:
            if isinstance(state, Continue):
                result = await self._retrieve(self._client, state.cursor)
            elif isinstance(state, Ready) and self._execute_query is not None:
                result = await self._execute_query(self._client, state.query)
            else:
                raise RuntimeError(f"cannot fetch from state {state!r}")
        except SalesforceError as e:
            logger.warning("Query page fetch failed, halting stream: %s", e)
            self._state = Error(e)
        else:
            self._state = Page(result)

    def _emit(self) -> list[StreamItem]:
        state = self._state
        if isinstance(state, Page):
            result = state.result
            if result.done or result.next_records_url is None:
                self._state = HALTED
            else:
                self._state = Continue(result.next_records_url)
            return list(result.records)
        if isinstance(state, Error):
            self._state = HALTED
            return [state.error]
        return []

    def __aiter__(self) -> "QueryStream":
        return self

    async def __anext__(self) -> StreamItem:
        while not self._pending:
            if isinstance(self._state, Halted):
                raise StopAsyncIteration
            self._pending.extend(await self.pull())
        return self._pending.popleft()


def start_query_stream(
    client: SalesforceClient,
    execute_query: QueryFn,
    query: Any,
    retrieve: RetrieveFn,
) -> QueryStream:
    """Create a stream that runs ``execute_query(client, query)`` on first pull."""
    return QueryStream(client, Ready(query), retrieve, execute_query=execute_query)


def stream_query_result(
    client: SalesforceClient,
    result: QueryResult,
    retrieve: RetrieveFn,
) -> QueryStream:
    """Create a stream seeded with an already fetched first page."""
    return QueryStream(client, Page(result), retrieve)


async def collect(
    stream: QueryStream, limit: int | None = None
) -> tuple[list[Record], SalesforceError | None]:
    """Drain a stream into a list.

    Stops after ``limit`` records when given; the rest of the stream is left
    unfetched.

    Returns:
        tuple: (records, terminal error or None)
    """
    records: list[Record] = []
    if limit is not None and limit <= 0:
        return records, None
    async for item in stream:
        if isinstance(item, SalesforceError):
            return records, item
        records.append(item)
        if limit is not None and len(records) >= limit:
            break
    return records, None
