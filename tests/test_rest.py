"""Tests for the shared REST transport."""

import httpx
import pytest

from connector.errors import APIError, NotFoundError, ProviderInternalError, RateLimitedError
from connector.rest import RestClient


def client_for(handler) -> RestClient:
    return RestClient("http://api.test/v1/", headers={"api-key": "k"}, transport=httpx.MockTransport(handler))


class TestRestClient:
    @pytest.mark.asyncio
    async def test_json_and_headers(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["key"] = request.headers["api-key"]
            seen["page"] = request.url.params["page"]
            return httpx.Response(200, json={"ok": True})

        async with client_for(handler) as client:
            assert await client.get("/things", params={"page": 2}) == {"ok": True}
        assert seen == {"path": "/v1/things", "key": "k", "page": "2"}

    @pytest.mark.asyncio
    async def test_plain_text_body(self):
        async with client_for(lambda r: httpx.Response(200, text="abc")) as client:
            assert await client.post("/submit", content=b"\x00") == "abc"

    @pytest.mark.asyncio
    async def test_empty_body(self):
        async with client_for(lambda r: httpx.Response(200)) as client:
            assert await client.get("/x") is None

    @pytest.mark.asyncio
    async def test_not_found(self):
        async with client_for(lambda r: httpx.Response(404)) as client:
            with pytest.raises(NotFoundError) as exc:
                await client.get("/x", operation="get_datum", key="abc")
        assert exc.value.operation == "get_datum"
        assert exc.value.key == "abc"

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        async with client_for(lambda r: httpx.Response(429)) as client:
            with pytest.raises(RateLimitedError):
                await client.get("/x")

    @pytest.mark.asyncio
    async def test_api_error_detail(self):
        body = {"status_code": 400, "error": "Bad Request", "message": "invalid tx"}
        async with client_for(lambda r: httpx.Response(400, json=body)) as client:
            with pytest.raises(APIError) as exc:
                await client.post("/tx/submit")
        assert exc.value.status_code == 400
        assert exc.value.message == "invalid tx"
        assert exc.value.provider_code == "Bad Request"
        assert exc.value.details == body
        assert isinstance(exc.value, ProviderInternalError)

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with client_for(handler) as client:
            with pytest.raises(ProviderInternalError):
                await client.get("/x")
