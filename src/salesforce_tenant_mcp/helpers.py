"""Helpers shared by tool handlers.

Usage:
    from .helpers import get_tenant_client

    @mcp.tool()
    async def salesforce_query(tenant_id: str, soql: str) -> dict[str, Any]:
        api, client = get_tenant_client(tenant_id)
        ...
"""

from __future__ import annotations

from typing import Any

from .context import get_session_manager
from .logging_config import get_logger
from .salesforce.api import SalesforceApi
from .salesforce.client import SalesforceClient
from .salesforce.query_stream import QueryStream, collect

logger = get_logger("helpers")


def get_tenant_client(tenant_id: str) -> tuple[SalesforceApi, SalesforceClient]:
    """Get the API wrapper and the tenant's current client handle.

    Raises:
        NotRegisteredError: If the tenant has no session
        RuntimeError: If the session manager is not initialized
    """
    manager = get_session_manager()
    client = manager.get_client(tenant_id)
    logger.debug(
        "Using client for tenant %s: instance_url=%s, api_version=%s",
        tenant_id,
        client.instance_url,
        client.api_version,
    )
    return manager.api, client


async def stream_to_payload(
    stream: QueryStream, max_records: int | None = None
) -> dict[str, Any]:
    """Drain a query stream into a tool response.

    Returns:
        dict with ``records``, ``count``, ``truncated`` (stopped at
        ``max_records`` while more may exist) and ``error`` (terminal
        stream error, or None)
    """
    records, error = await collect(stream, limit=max_records)
    truncated = (
        error is None
        and max_records is not None
        and len(records) >= max_records
        and not stream.halted
    )
    if error is not None:
        logger.warning(
            "Query stream ended with error after %d records: %s", len(records), error
        )
    return {
        "records": [record.to_dict() for record in records],
        "count": len(records),
        "truncated": truncated,
        "error": _error_payload(error),
    }


def _error_payload(error: Exception | None) -> dict[str, Any] | None:
    if error is None:
        return None
    to_dict = getattr(error, "to_dict", None)
    if to_dict is not None:
        return to_dict()
    return {"errorCode": type(error).__name__, "message": str(error)}
