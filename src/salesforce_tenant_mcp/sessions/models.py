"""Tenant configuration and session structs.

All structs are frozen. A refresh never edits a :class:`Session`; it builds
a new one, so any session returned by ``SessionManager.get`` stays a stable
snapshot.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import msgspec

from ..salesforce.client import SalesforceClient

TenantId = str


def canonical_tenant_id(tenant_id: str | int) -> TenantId:
    """Normalize a tenant identifier to its canonical string form.

    Raises:
        ValueError: If the identifier is empty
    """
    value = str(tenant_id).strip()
    if not value:
        raise ValueError("tenant_id must not be empty")
    return value


class RegistrationConfig(msgspec.Struct, frozen=True, kw_only=True):
    """Input for registering a tenant with an authorization code."""

    tenant_id: str
    auth_url: str
    client_id: str
    client_secret: str | None = None
    redirect_uri: str
    code: str
    code_verifier: str | None = None
    code_challenge_method: str | None = "S256"


class RefreshConfig(msgspec.Struct, frozen=True, kw_only=True):
    """Input for hydrating a tenant from a stored refresh token."""

    tenant_id: str
    auth_url: str
    client_id: str
    client_secret: str | None = None
    refresh_token: str
    redirect_uri: str = ""


class TenantConfig(msgspec.Struct, frozen=True, kw_only=True):
    """Credentials kept with a session.

    ``code``, ``code_verifier`` and ``code_challenge_method`` only matter for
    the first exchange and are retained for reference.
    """

    auth_url: str
    client_id: str
    client_secret: str | None = None
    redirect_uri: str = ""
    access_token: str = ""
    refresh_token: str | None = None
    code: str | None = None
    code_verifier: str | None = None
    code_challenge_method: str | None = None

    @classmethod
    def from_registration(cls, config: RegistrationConfig) -> "TenantConfig":
        return cls(
            auth_url=config.auth_url,
            client_id=config.client_id,
            client_secret=config.client_secret,
            redirect_uri=config.redirect_uri,
            code=config.code,
            code_verifier=config.code_verifier,
            code_challenge_method=config.code_challenge_method,
        )

    @classmethod
    def from_refresh(cls, config: RefreshConfig) -> "TenantConfig":
        return cls(
            auth_url=config.auth_url,
            client_id=config.client_id,
            client_secret=config.client_secret,
            redirect_uri=config.redirect_uri,
            refresh_token=config.refresh_token,
        )


class Session(msgspec.Struct, frozen=True, kw_only=True):
    """Live authenticated binding between a tenant and a Salesforce org.

    ``client.access_token`` always equals ``config.access_token``; use
    :meth:`build` to construct sessions so both come from the same token.
    """

    tenant_id: TenantId
    config: TenantConfig
    client: SalesforceClient
    instance_url: str
    identity: dict[str, Any] = {}
    refreshed_at: datetime

    @classmethod
    def build(
        cls,
        tenant_id: TenantId,
        config: TenantConfig,
        client: SalesforceClient,
        identity: dict[str, Any] | None = None,
        refresh_token: str | None = None,
    ) -> "Session":
        """Build a session whose config carries the client's bearer token.

        Args:
            refresh_token: New refresh token; the config's is kept when None
        """
        config = msgspec.structs.replace(
            config,
            access_token=client.access_token or "",
            refresh_token=refresh_token or config.refresh_token,
        )
        return cls(
            tenant_id=tenant_id,
            config=config,
            client=client,
            instance_url=client.instance_url,
            identity=dict(identity or {}),
            refreshed_at=datetime.now(timezone.utc),
        )

    def public_info(self) -> dict[str, Any]:
        """Non-secret summary for status output."""
        return {
            "tenant_id": self.tenant_id,
            "instance_url": self.instance_url,
            "api_version": self.client.api_version,
            "user_id": self.identity.get("user_id"),
            "organization_id": self.identity.get("organization_id"),
            "username": self.identity.get("username"),
            "refreshed_at": self.refreshed_at.isoformat(),
        }


class RegistrationResult(msgspec.Struct, frozen=True, kw_only=True):
    """Returned by a successful registration."""

    metadata: dict[str, Any]
    access_token: str
    refresh_token: str | None = None


class RefreshResult(msgspec.Struct, frozen=True, kw_only=True):
    """Returned by a successful refresh or adoption."""

    access_token: str
    refresh_token: str | None = None
