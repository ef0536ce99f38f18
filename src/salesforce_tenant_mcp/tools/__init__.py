"""MCP tool registrations."""

from .query import register_query_tools
from .tenants import register_tenant_tools

__all__ = [
    "register_query_tools",
    "register_tenant_tools",
]
