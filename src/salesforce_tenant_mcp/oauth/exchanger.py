"""Salesforce OAuth token exchange.

Posts form encoded grants to ``<auth_url>/services/oauth2/token`` and
decodes the token response. Two grants are used:

- ``authorization_code`` (with PKCE ``code_verifier``) when a tenant is
  registered
- ``refresh_token`` when a session is refreshed or adopted at startup

Public (PKCE-only) Connected Apps have no client secret; an empty
``client_secret`` is simply left out of the form.
"""

from __future__ import annotations

from typing import Any

import msgspec

from ..errors import AuthenticationError
from ..logging_config import get_logger
from ..salesforce.http import HttpExecutor

logger = get_logger("oauth.exchanger")

TOKEN_PATH = "/services/oauth2/token"


class TokenResponse(msgspec.Struct, frozen=True, kw_only=True):
    """Fields consumed from the Salesforce token endpoint."""

    access_token: str
    instance_url: str
    id: str = ""
    issued_at: str | None = None
    refresh_token: str | None = None
    scope: str | None = None
    token_type: str = "Bearer"
    signature: str | None = None


class OAuthExchanger:
    """Exchange OAuth grants for Salesforce tokens.

    Args:
        executor: HTTP executor shared with the API layer
    """

    def __init__(self, executor: HttpExecutor) -> None:
        self._executor = executor

    async def get_token(self, auth_url: str, **grant: Any) -> TokenResponse:
        """POST a grant to the token endpoint.

        Args:
            auth_url: Login URL (login.salesforce.com, test or My Domain)
            **grant: Form fields; ``None`` and empty values are dropped

        Returns:
            TokenResponse: Decoded token response

        Raises:
            AuthenticationError: If Salesforce rejects the grant
            TransportError: If the token endpoint cannot be reached
        """
        url = f"{auth_url.rstrip('/')}{TOKEN_PATH}"
        form = {k: str(v) for k, v in grant.items() if v not in (None, "")}
        grant_type = form.get("grant_type", "")

        logger.debug("Requesting token: url=%s, grant_type=%s", url, grant_type)
        response = await self._executor.request(
            "POST",
            url,
            data=form,
            headers={"accept": "application/json"},
        )

        if not response.ok:
            body = response.body if isinstance(response.body, dict) else {}
            error_code = body.get("error")
            description = body.get("error_description") or str(response.body)
            logger.warning(
                "Token request rejected: grant_type=%s, status=%d, error=%s",
                grant_type,
                response.status,
                error_code,
            )
            raise AuthenticationError(
                f"OAuth {grant_type} grant rejected: {description}",
                error_code=error_code,
            )

        try:
            return msgspec.convert(response.body, TokenResponse)
        except msgspec.ValidationError as e:
            raise AuthenticationError(
                f"Malformed token response for {grant_type} grant: {e}"
            ) from e

    async def exchange_code(
        self,
        auth_url: str,
        *,
        client_id: str,
        client_secret: str | None,
        redirect_uri: str,
        code: str,
        code_verifier: str | None = None,
        code_challenge_method: str | None = None,
    ) -> TokenResponse:
        """Exchange an authorization code for a token triple."""
        return await self.get_token(
            auth_url,
            grant_type="authorization_code",
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            code=code,
            code_verifier=code_verifier,
            code_challenge_method=code_challenge_method,
        )

    async def refresh(
        self,
        auth_url: str,
        *,
        client_id: str,
        client_secret: str | None,
        refresh_token: str,
    ) -> TokenResponse:
        """Exchange a refresh token for a new access token."""
        return await self.get_token(
            auth_url,
            grant_type="refresh_token",
            client_id=client_id,
            client_secret=client_secret,
            refresh_token=refresh_token,
        )
