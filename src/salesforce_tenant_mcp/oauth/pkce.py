"""PKCE helpers for the tenant registration flow (RFC 7636).

A tenant is registered with an authorization code obtained from the
Salesforce authorize endpoint. The verifier generated here must be kept by
the caller and passed back at registration time together with the code.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from urllib.parse import urlencode

CODE_CHALLENGE_METHOD = "S256"

AUTHORIZE_PATH = "/services/oauth2/authorize"


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a ``(code_verifier, code_challenge)`` pair.

    The verifier is 32 random bytes, base64url encoded (43 characters).

    Example:
        >>> verifier, challenge = generate_pkce_pair()
        >>> compute_challenge(verifier) == challenge
        True
    """
    code_verifier = secrets.token_urlsafe(32)
    return code_verifier, compute_challenge(code_verifier)


def compute_challenge(code_verifier: str) -> str:
    """BASE64URL(SHA256(code_verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def build_authorization_url(
    auth_url: str,
    client_id: str,
    redirect_uri: str,
    code_challenge: str,
    scopes: list[str] | None = None,
    state: str | None = None,
) -> str:
    """Build the Salesforce authorize URL for the web server flow.

    Args:
        auth_url: Login URL (e.g. https://login.salesforce.com)
        client_id: Connected App consumer key
        redirect_uri: Callback registered on the Connected App
        code_challenge: S256 challenge from :func:`generate_pkce_pair`
        scopes: OAuth scopes (default: api refresh_token)
        state: Opaque value echoed back to the callback

    Returns:
        str: URL the tenant admin opens to grant access
    """
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "code_challenge": code_challenge,
        "code_challenge_method": CODE_CHALLENGE_METHOD,
        "scope": " ".join(scopes or ["api", "refresh_token"]),
    }
    if state:
        params["state"] = state
    return f"{auth_url.rstrip('/')}{AUTHORIZE_PATH}?{urlencode(params)}"
