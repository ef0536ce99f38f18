"""Immutable Salesforce client handle.

A :class:`SalesforceClient` bundles everything needed to issue REST calls
for one authenticated session: instance URL, bearer token and resolved API
version. It is a frozen struct; refreshing a session builds a new one.
"""

from __future__ import annotations

import msgspec

DEFAULT_API_VERSION = "42.0"
DEFAULT_USER_AGENT = "salesforce-tenant-mcp"


class SalesforceClient(msgspec.Struct, frozen=True, kw_only=True):
    """Connection parameters for one Salesforce org."""

    instance_url: str
    access_token: str | None = None
    api_version: str = DEFAULT_API_VERSION
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.instance_url.endswith("/"):
            msgspec.structs.force_setattr(
                self, "instance_url", self.instance_url.rstrip("/")
            )

    @property
    def base_path(self) -> str:
        """REST base path for the resolved API version."""
        return f"/services/data/v{self.api_version}"

    @property
    def headers(self) -> dict[str, str]:
        """Default request headers, including the bearer token if any."""
        headers = {"user-agent": self.user_agent, "accept": "application/json"}
        if self.access_token:
            headers["authorization"] = f"Bearer {self.access_token}"
        return headers

    def url_for(self, path: str) -> str:
        """Resolve a request path against this client.

        - ``https://...``: used as is
        - ``/services/...``: absolute path on the instance
        - ``query``: relative to ``/services/data/v<api_version>/``
        """
        if path.startswith(("http://", "https://")):
            return path
        if path.startswith("/"):
            return f"{self.instance_url}{path}"
        return f"{self.instance_url}{self.base_path}/{path}"
