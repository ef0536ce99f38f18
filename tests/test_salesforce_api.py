"""Tests for the Salesforce REST layer over a mocked transport."""

import httpx
import pytest

from salesforce_tenant_mcp.errors import ApiError, TransportError
from salesforce_tenant_mcp.salesforce.client import SalesforceClient
from salesforce_tenant_mcp.salesforce.http import HttpExecutor

from .conftest import INSTANCE_URL

SOQL = "SELECT Id, Name FROM Account"
QUERY_PATH = "/services/data/v60.0/query"
NEXT_URL = "/services/data/v60.0/query/01gxx0000002Lk8AAE-2000"


def client(**overrides) -> SalesforceClient:
    values = {
        "instance_url": INSTANCE_URL,
        "access_token": "access-1",
        "api_version": "60.0",
    }
    values.update(overrides)
    return SalesforceClient(**values)


def account(record_id: str) -> dict:
    return {
        "attributes": {
            "type": "Account",
            "url": f"/services/data/v60.0/sobjects/Account/{record_id}",
        },
        "Id": record_id,
        "Name": f"Account {record_id}",
    }


class TestSalesforceClient:
    """Tests for client handle URL resolution."""

    def test_relative_path_uses_api_version(self):
        assert client().url_for("query") == f"{INSTANCE_URL}/services/data/v60.0/query"

    def test_absolute_path_uses_instance(self):
        assert client().url_for(NEXT_URL) == f"{INSTANCE_URL}{NEXT_URL}"

    def test_full_url_passes_through(self):
        url = "https://other.example/services/data"
        assert client().url_for(url) == url

    def test_trailing_slash_removed(self):
        assert client(instance_url=f"{INSTANCE_URL}/").instance_url == INSTANCE_URL

    def test_headers_carry_bearer_token(self):
        headers = client().headers
        assert headers["authorization"] == "Bearer access-1"
        assert headers["user-agent"] == "salesforce-tenant-mcp"

    def test_headers_without_token(self):
        assert "authorization" not in client(access_token=None).headers


class TestVersions:
    """Tests for API version discovery."""

    @pytest.mark.asyncio
    async def test_latest_version_is_numeric_max(self, api):
        """Test that 60.0 beats 9.0 and 59.0 regardless of list order."""
        assert await api.latest_version(INSTANCE_URL) == "60.0"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "versions",
        [[{"version": 61}], [{"label": "Summer '24"}], ["61.0"], []],
    )
    async def test_malformed_versions_raise_api_error(self, api, fake, versions):
        """Test that unexpected version payloads surface as ApiError."""
        fake.versions_body = versions

        with pytest.raises(ApiError):
            await api.latest_version(INSTANCE_URL)

    @pytest.mark.asyncio
    async def test_versions_error(self, api, fake):
        fake.versions_status = 500

        with pytest.raises(ApiError) as exc_info:
            await api.versions(INSTANCE_URL)

        assert exc_info.value.status == 500


class TestQueryStreamOverHttp:
    """Tests for query streaming against the mocked endpoints."""

    @pytest.mark.asyncio
    async def test_follows_next_records_url(self, api, fake):
        """Test that the stream requests the cursor path on the instance."""
        fake.query_pages[f"{QUERY_PATH}?q={SOQL}"] = (
            200,
            {
                "done": False,
                "totalSize": 3,
                "nextRecordsUrl": NEXT_URL,
                "records": [account("001A"), account("001B")],
            },
        )
        fake.query_pages[NEXT_URL] = (
            200,
            {"done": True, "totalSize": 3, "records": [account("001C")]},
        )

        items = [item async for item in api.query_stream(client(), SOQL)]

        assert [item.id for item in items] == ["001A", "001B", "001C"]
        assert [r.url.path for r in fake.requests] == [QUERY_PATH, NEXT_URL]
        assert all(
            r.headers["authorization"] == "Bearer access-1" for r in fake.requests
        )

    @pytest.mark.asyncio
    async def test_expired_session_mid_stream(self, api, fake):
        """Test that a 401 on the cursor fetch ends the stream with an error."""
        fake.query_pages[f"{QUERY_PATH}?q={SOQL}"] = (
            200,
            {
                "done": False,
                "totalSize": 5,
                "nextRecordsUrl": NEXT_URL,
                "records": [account("001A"), account("001B")],
            },
        )
        fake.query_pages[NEXT_URL] = (
            401,
            [{"errorCode": "INVALID_SESSION_ID", "message": "Session expired or invalid"}],
        )
        stream = api.query_stream(client(), SOQL)

        items = [item async for item in stream]

        assert [getattr(item, "id", None) for item in items[:2]] == ["001A", "001B"]
        error = items[2]
        assert isinstance(error, ApiError)
        assert error.status == 401
        assert error.error_code == "INVALID_SESSION_ID"
        assert len(fake.requests) == 2
        assert await stream.pull() == []
        assert len(fake.requests) == 2

    @pytest.mark.asyncio
    async def test_malformed_page_is_yielded_as_error(self, api, fake):
        """Test that a page with null records ends the stream with one error."""
        fake.query_pages[f"{QUERY_PATH}?q={SOQL}"] = (
            200,
            {"done": True, "totalSize": 1, "records": None},
        )
        stream = api.query_stream(client(), SOQL)

        items = [item async for item in stream]

        assert len(items) == 1
        assert isinstance(items[0], ApiError)
        assert items[0].error_code == "MALFORMED_QUERY_RESULT"
        assert stream.halted

    @pytest.mark.asyncio
    async def test_query_all_uses_query_all_endpoint(self, api, fake):
        fake.query_pages[f"/services/data/v60.0/queryAll?q={SOQL}"] = (
            200,
            {"done": True, "totalSize": 1, "records": [account("001Z")]},
        )

        items = [item async for item in api.query_all_stream(client(), SOQL)]

        assert [item.id for item in items] == ["001Z"]

    @pytest.mark.asyncio
    async def test_query_retrieve_with_bare_locator(self, api, fake):
        fake.query_pages["/services/data/v60.0/query/01gxx-4000"] = (
            200,
            {"done": True, "totalSize": 1, "records": [account("001Q")]},
        )

        result = await api.query_retrieve(client(), "01gxx-4000")

        assert result.done is True
        assert result.records[0].id == "001Q"


class TestApiError:
    """Tests for ApiError construction from Salesforce payloads."""

    def test_from_error_list(self):
        error = ApiError.from_response(
            400, [{"errorCode": "MALFORMED_QUERY", "message": "unexpected token"}]
        )
        assert error.status == 400
        assert error.error_code == "MALFORMED_QUERY"
        assert error.message == "unexpected token"
        assert error.to_dict() == {
            "status": 400,
            "errorCode": "MALFORMED_QUERY",
            "message": "unexpected token",
        }

    def test_from_unstructured_body(self):
        error = ApiError.from_response(502, "Bad Gateway")
        assert error.error_code == "HTTP_502"
        assert error.message == "Bad Gateway"


class TestHttpExecutor:
    """Tests for the HTTP executor."""

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Test that connection failures raise TransportError."""

        def handler(request):
            raise httpx.ConnectError("name resolution failed", request=request)

        executor = HttpExecutor(transport=httpx.MockTransport(handler))

        with pytest.raises(TransportError) as exc_info:
            await executor.request("GET", "https://unreachable.example/")

        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        await executor.close()

    @pytest.mark.asyncio
    async def test_non_json_body_is_text(self):
        executor = HttpExecutor(
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="oops"))
        )

        response = await executor.request("GET", "https://acme.example/")

        assert response.status == 500
        assert response.ok is False
        assert response.body == "oops"
        await executor.close()

    @pytest.mark.asyncio
    async def test_json_request_body(self):
        seen = {}

        def handler(request):
            seen["content"] = request.content
            seen["content_type"] = request.headers["content-type"]
            return httpx.Response(201, json={"id": "001N", "success": True})

        executor = HttpExecutor(transport=httpx.MockTransport(handler))

        response = await executor.request(
            "POST", "https://acme.example/sobjects/Account/", json={"Name": "Acme"}
        )

        assert response.body == {"id": "001N", "success": True}
        assert seen["content"] == b'{"Name":"Acme"}'
        assert seen["content_type"] == "application/json"
        await executor.close()
