"""Salesforce Tenant MCP Server.

Keeps long-lived, automatically refreshed Salesforce sessions for many
tenants and streams paginated SOQL results lazily.
"""

from .errors import (
    ApiError,
    AuthenticationError,
    ManagerClosedError,
    NotRegisteredError,
    SalesforceError,
    TransportError,
)
from .salesforce import (
    QueryResult,
    QueryStream,
    Record,
    SalesforceApi,
    SalesforceClient,
)
from .sessions import RefreshConfig, RegistrationConfig, Session, SessionManager

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "AuthenticationError",
    "ManagerClosedError",
    "NotRegisteredError",
    "QueryResult",
    "QueryStream",
    "Record",
    "RefreshConfig",
    "RegistrationConfig",
    "SalesforceApi",
    "SalesforceClient",
    "SalesforceError",
    "Session",
    "SessionManager",
    "TransportError",
]
