"""SOQL query tools for Salesforce MCP.

Queries are streamed page by page and collected up to ``max_records``.
A page failure does not raise: the records collected before it are
returned together with the error.
"""

from typing import Any

from fastmcp import FastMCP

from ..helpers import get_tenant_client, stream_to_payload
from ..logging_config import get_logger

logger = get_logger("tools.query")

DEFAULT_MAX_RECORDS = 2000


def register_query_tools(mcp: FastMCP) -> None:
    """Register query-related tools with the MCP server."""

    @mcp.tool()
    async def salesforce_query(
        tenant_id: str,
        soql: str,
        include_deleted: bool = False,
        max_records: int = DEFAULT_MAX_RECORDS,
    ) -> dict[str, Any]:
        """Execute a SOQL query for a tenant, following pagination.

        Args:
            tenant_id: Registered tenant identifier
            soql: SOQL query string (e.g., "SELECT Id, Name FROM Account")
            include_deleted: Include deleted and archived records
            max_records: Stop after this many records (default: 2000)

        Returns:
            - records: Collected records
            - count: Number of records returned
            - truncated: True if stopped at max_records with more available
            - error: Error that ended the query early, or null
        """
        api, client = get_tenant_client(tenant_id)
        logger.debug("Streaming query for tenant %s", tenant_id)
        stream = (
            api.query_all_stream(client, soql)
            if include_deleted
            else api.query_stream(client, soql)
        )
        return await stream_to_payload(stream, max_records=max_records)

    @mcp.tool()
    async def salesforce_query_all(
        tenant_id: str,
        soql: str,
        max_records: int = DEFAULT_MAX_RECORDS,
    ) -> dict[str, Any]:
        """Execute a SOQL query including deleted and archived records.

        Equivalent to salesforce_query with include_deleted=True.
        """
        api, client = get_tenant_client(tenant_id)
        return await stream_to_payload(
            api.query_all_stream(client, soql), max_records=max_records
        )

    @mcp.tool()
    async def salesforce_query_more(
        tenant_id: str,
        next_records_url: str,
    ) -> dict[str, Any]:
        """Fetch one page behind a nextRecordsUrl cursor.

        Args:
            tenant_id: Registered tenant identifier
            next_records_url: Cursor from an earlier Salesforce query page

        Returns:
            - totalSize, done, records
            - nextRecordsUrl: Cursor for the following page (if done is False)
        """
        api, client = get_tenant_client(tenant_id)
        result = await api.query_retrieve(client, next_records_url)
        return {
            "totalSize": result.total_size,
            "done": result.done,
            "records": [record.to_dict() for record in result.records],
            "nextRecordsUrl": result.next_records_url,
        }
