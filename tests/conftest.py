"""Shared fixtures: an in-process fake of the Salesforce endpoints."""

import asyncio
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import pytest_asyncio

from salesforce_tenant_mcp.oauth.exchanger import OAuthExchanger
from salesforce_tenant_mcp.salesforce.api import SalesforceApi
from salesforce_tenant_mcp.salesforce.http import HttpExecutor
from salesforce_tenant_mcp.sessions.manager import SessionManager

AUTH_URL = "https://login.salesforce.com"
INSTANCE_URL = "https://acme.my.salesforce.com"
ID_URL = "https://login.salesforce.com/id/00Dxx0000001gEREAY/005xx000001X8UzAAK"


class FakeSalesforce:
    """Answers token, versions, identity and query requests.

    Access tokens are numbered ``access-1``, ``access-2``, ... in issue order.
    Refresh tokens are only rotated when ``rotate_refresh_tokens`` is set.
    """

    def __init__(self) -> None:
        self.issued = 0
        self.fail_refresh = False
        self.rotate_refresh_tokens = False
        self.versions_status = 200
        self.versions_body: list | None = None
        self.identity_status = 200
        self.connect_error = False
        self.token_forms: list[dict[str, str]] = []
        self.refresh_tokens_seen: list[str] = []
        self.query_pages: dict[str, tuple[int, object]] = {}
        self.requests: list[httpx.Request] = []

    @property
    def refresh_attempts(self) -> int:
        return len(self.refresh_tokens_seen)

    def _token(self, refresh_token: str | None) -> httpx.Response:
        self.issued += 1
        body = {
            "access_token": f"access-{self.issued}",
            "instance_url": INSTANCE_URL,
            "id": ID_URL,
            "issued_at": "1699363151832",
            "scope": "api refresh_token",
            "token_type": "Bearer",
            "signature": "sig",
        }
        if refresh_token is not None:
            body["refresh_token"] = refresh_token
        return httpx.Response(200, json=body)

    def _oauth(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.token_forms.append(form)
        if form.get("grant_type") == "authorization_code":
            if form.get("code") == "bad":
                return httpx.Response(
                    400,
                    json={
                        "error": "invalid_grant",
                        "error_description": "expired authorization code",
                    },
                )
            return self._token(f"refresh-{self.issued + 1}")

        self.refresh_tokens_seen.append(form.get("refresh_token", ""))
        if self.fail_refresh or form.get("refresh_token") == "revoked":
            return httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "expired access/refresh token"},
            )
        if self.rotate_refresh_tokens:
            return self._token(f"refresh-{self.issued + 1}")
        return self._token(None)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        # Yield so concurrent callers interleave at every request.
        await asyncio.sleep(0)
        self.requests.append(request)
        if self.connect_error:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path == "/services/oauth2/token":
            return self._oauth(request)
        if path == "/services/data":
            if self.versions_status != 200:
                return httpx.Response(
                    self.versions_status,
                    json=[{"errorCode": "SERVER_UNAVAILABLE", "message": "down"}],
                )
            if self.versions_body is not None:
                return httpx.Response(200, json=self.versions_body)
            return httpx.Response(
                200,
                json=[
                    {"label": "Winter '23", "url": "/services/data/v9.0", "version": "9.0"},
                    {"label": "Summer '24", "url": "/services/data/v60.0", "version": "60.0"},
                    {"label": "Spring '24", "url": "/services/data/v59.0", "version": "59.0"},
                ],
            )
        if path == urlparse(ID_URL).path:
            if self.identity_status != 200:
                return httpx.Response(
                    self.identity_status,
                    json=[{"errorCode": "INVALID_SESSION_ID", "message": "Session expired"}],
                )
            return httpx.Response(
                200,
                json={
                    "user_id": "005xx000001X8UzAAK",
                    "organization_id": "00Dxx0000001gEREAY",
                    "username": "admin@acme.example",
                },
            )
        key = path
        if request.url.params.get("q"):
            key = f"{path}?q={request.url.params['q']}"
        if key in self.query_pages:
            status, body = self.query_pages[key]
            return httpx.Response(status, json=body)
        return httpx.Response(
            404, json=[{"errorCode": "NOT_FOUND", "message": f"no fake for {key}"}]
        )


@pytest.fixture
def fake() -> FakeSalesforce:
    return FakeSalesforce()


@pytest.fixture
def executor(fake: FakeSalesforce) -> HttpExecutor:
    return HttpExecutor(timeout=5.0, transport=httpx.MockTransport(fake.handler))


@pytest.fixture
def api(executor: HttpExecutor) -> SalesforceApi:
    return SalesforceApi(executor)


@pytest_asyncio.fixture
async def manager(executor: HttpExecutor, api: SalesforceApi):
    manager = SessionManager(OAuthExchanger(executor), api, executor=executor)
    yield manager
    await manager.close()
