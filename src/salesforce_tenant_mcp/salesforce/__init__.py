"""Salesforce REST layer: HTTP executor, client handle, query streaming."""

from .api import SalesforceApi
from .client import SalesforceClient
from .http import HttpExecutor, Response
from .query_stream import QueryStream, collect, start_query_stream, stream_query_result
from .records import QueryResult, Record

__all__ = [
    "HttpExecutor",
    "QueryResult",
    "QueryStream",
    "Record",
    "Response",
    "SalesforceApi",
    "SalesforceClient",
    "collect",
    "start_query_stream",
    "stream_query_result",
]
