"""Per-tenant Salesforce session management."""

from .manager import SessionManager
from .models import (
    RefreshConfig,
    RefreshResult,
    RegistrationConfig,
    RegistrationResult,
    Session,
    TenantConfig,
    canonical_tenant_id,
)
from .store import SessionStore

__all__ = [
    "RefreshConfig",
    "RefreshResult",
    "RegistrationConfig",
    "RegistrationResult",
    "Session",
    "SessionManager",
    "SessionStore",
    "TenantConfig",
    "canonical_tenant_id",
]
