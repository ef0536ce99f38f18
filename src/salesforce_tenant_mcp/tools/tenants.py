"""Tenant registration and session tools for Salesforce MCP."""

from typing import Any

from fastmcp import FastMCP

from ..context import get_session_manager
from ..logging_config import get_logger
from ..oauth.pkce import build_authorization_url, generate_pkce_pair
from ..sessions.models import RegistrationConfig

logger = get_logger("tools.tenants")


def register_tenant_tools(mcp: FastMCP) -> None:
    """Register tenant lifecycle tools with the MCP server."""

    @mcp.tool()
    async def salesforce_authorization_url(
        auth_url: str,
        client_id: str,
        redirect_uri: str,
        state: str | None = None,
    ) -> dict[str, Any]:
        """Start the web server OAuth flow for a new tenant.

        Args:
            auth_url: Login URL (e.g. https://login.salesforce.com)
            client_id: Connected App consumer key
            redirect_uri: Callback URL registered on the Connected App
            state: Optional opaque value echoed back to the callback

        Returns:
            - authorization_url: URL the Salesforce admin must open
            - code_verifier: Keep it; pass it to salesforce_register_tenant
            - code_challenge_method: Always "S256"
        """
        code_verifier, code_challenge = generate_pkce_pair()
        return {
            "authorization_url": build_authorization_url(
                auth_url, client_id, redirect_uri, code_challenge, state=state
            ),
            "code_verifier": code_verifier,
            "code_challenge_method": "S256",
        }

    @mcp.tool()
    async def salesforce_register_tenant(
        tenant_id: str,
        auth_url: str,
        client_id: str,
        redirect_uri: str,
        code: str,
        code_verifier: str | None = None,
        code_challenge_method: str = "S256",
        client_secret: str | None = None,
    ) -> dict[str, Any]:
        """Register a tenant with an authorization code.

        The session is refreshed automatically every two hours afterwards.

        Args:
            tenant_id: Identifier of the tenant in the calling application
            auth_url: Login URL used for the authorization
            client_id: Connected App consumer key
            redirect_uri: Callback URL used for the authorization
            code: Authorization code received on the callback
            code_verifier: PKCE verifier from salesforce_authorization_url
            code_challenge_method: PKCE method (default: S256)
            client_secret: Connected App secret (omit for PKCE-only apps)

        Returns:
            Identity metadata (including instance_url) plus access_token and
            refresh_token
        """
        manager = get_session_manager()
        result = await manager.register(
            RegistrationConfig(
                tenant_id=tenant_id,
                auth_url=auth_url,
                client_id=client_id,
                client_secret=client_secret,
                redirect_uri=redirect_uri,
                code=code,
                code_verifier=code_verifier,
                code_challenge_method=code_challenge_method,
            )
        )
        return {
            "metadata": result.metadata,
            "access_token": result.access_token,
            "refresh_token": result.refresh_token,
        }

    @mcp.tool()
    async def salesforce_refresh_tenant(tenant_id: str) -> dict[str, Any]:
        """Refresh a tenant's access token now.

        On failure the current session stays in place and keeps serving
        requests with its previous token.

        Args:
            tenant_id: Registered tenant identifier

        Returns:
            The new access_token and refresh_token
        """
        manager = get_session_manager()
        result = await manager.refresh(tenant_id)
        return {
            "access_token": result.access_token,
            "refresh_token": result.refresh_token,
        }

    @mcp.tool()
    async def salesforce_tenant_status(tenant_id: str) -> dict[str, Any]:
        """Describe a tenant's current session without exposing tokens.

        Args:
            tenant_id: Registered tenant identifier

        Returns:
            instance_url, api_version, identity fields, last refresh time and
            whether a refresh is scheduled
        """
        manager = get_session_manager()
        session = manager.get(tenant_id)
        return {
            **session.public_info(),
            "refresh_scheduled": manager.refresh_scheduled(tenant_id),
        }

    @mcp.tool()
    async def salesforce_list_tenants() -> list[str]:
        """List tenants with an active session."""
        return get_session_manager().tenant_ids()
