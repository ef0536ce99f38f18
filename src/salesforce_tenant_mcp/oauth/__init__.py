"""OAuth support for tenant sessions.

Components:
    - OAuthExchanger: authorization_code and refresh_token grants against
      the Salesforce token endpoint
    - TokenResponse: decoded token endpoint response
    - PKCE utilities: generate_pkce_pair, compute_challenge,
      build_authorization_url
"""

from .exchanger import OAuthExchanger, TokenResponse
from .pkce import (
    build_authorization_url,
    compute_challenge,
    generate_pkce_pair,
)

__all__ = [
    # Token exchange
    "OAuthExchanger",
    "TokenResponse",
    # PKCE utilities
    "build_authorization_url",
    "compute_challenge",
    "generate_pkce_pair",
]
