"""Tests for the authenticated Umbraco fetch client and token refresh."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from conftest import TOKEN_URL, UMBRACO_URL, token_response
from umbraco_hosted_mcp.http_client import (
    CAPTURE_RAW_HTTP_RESPONSE,
    AuthSession,
    AuthState,
    FetchOptions,
    HttpResponse,
    RefreshContext,
    UmbracoClientError,
    UmbracoFetchClient,
    create_fetch_client_from_store,
    serialize_params,
)
from umbraco_hosted_mcp.oauth.errors import TokenNotFoundError
from umbraco_hosted_mcp.oauth.models import AuthProps, BackendTokenRecord

API_URL = f"{UMBRACO_URL}/umbraco/management/api/v1"


def is_token_call(request: httpx.Request) -> bool:
    return str(request.url) == TOKEN_URL


class TestSerializeParams:
    def test_arrays_repeat_the_key(self):
        assert serialize_params({"id": ["a", "b"]}) == "?id=a&id=b"

    def test_none_skipped_and_booleans_lowercase(self):
        assert serialize_params({"skip": 0, "trashed": False, "q": None}) == "?skip=0&trashed=false"

    def test_values_are_percent_encoded(self):
        assert serialize_params({"q": "a b&c"}) == "?q=a%20b%26c"

    def test_empty(self):
        assert serialize_params(None) == ""
        assert serialize_params({}) == ""
        assert serialize_params({"q": None}) == ""


class TestFetchClientRequests:
    @pytest.fixture
    def client(self, http_client):
        return UmbracoFetchClient(UMBRACO_URL, AuthSession(access_token="at-1"), http_client)

    async def test_default_headers_and_json_body(self, client, backend):
        backend.handler = lambda request: httpx.Response(200, json={"ok": True})

        data = await client.request(
            "post", "/umbraco/management/api/v1/document", data={"name": "Home"}
        )

        assert data == {"ok": True}
        [request] = backend.requests
        assert request.method == "POST"
        assert request.headers["authorization"] == "Bearer at-1"
        assert request.headers["content-type"] == "application/json"
        assert request.headers["accept"] == "application/json"
        assert json.loads(request.content) == {"name": "Home"}

    async def test_no_body_when_no_data(self, client, backend):
        backend.handler = lambda request: httpx.Response(204)
        assert await client.request("GET", "/umbraco/management/api/v1/document/1") is None
        assert backend.requests[0].content == b""

    async def test_caller_headers_override_defaults(self, client, backend):
        backend.handler = lambda request: httpx.Response(200, text="plain")
        data = await client.request("GET", "/x", headers={"Accept": "text/plain"})
        assert data == "plain"
        assert backend.requests[0].headers["accept"] == "text/plain"

    async def test_repeated_id_query(self, client, backend):
        backend.handler = lambda request: httpx.Response(200, json=[])
        await client.request("GET", "/umbraco/management/api/v1/item/document", params={"id": ["a", "b"]})
        assert backend.requests[0].url.query == b"id=a&id=b"

    async def test_rejected_status_raises(self, client, backend):
        backend.handler = lambda request: httpx.Response(
            404,
            json={"title": "Not found"},
            headers={"content-type": "application/problem+json"},
        )
        with pytest.raises(UmbracoClientError) as exc_info:
            await client.request("GET", "/x")
        assert exc_info.value.status_code == 404
        assert exc_info.value.data == {"title": "Not found"}

    async def test_capture_raw_response_never_raises(self, client, backend):
        backend.handler = lambda request: httpx.Response(500, json={"detail": "boom"})
        response = await client.request("GET", "/x", options=CAPTURE_RAW_HTTP_RESPONSE)
        assert isinstance(response, HttpResponse)
        assert response.status == 500
        assert response.status_text == "Internal Server Error"
        assert response.data == {"detail": "boom"}

    async def test_malformed_json_body_falls_back_to_text(self, client, backend):
        backend.handler = lambda request: httpx.Response(
            502, text="not json", headers={"content-type": "application/json"}
        )
        response = await client.request("GET", "/x", options=CAPTURE_RAW_HTTP_RESPONSE)
        assert response.status == 502
        assert response.data == "not json"

    async def test_custom_validate_status(self, client, backend):
        backend.handler = lambda request: httpx.Response(409, json={})
        options = FetchOptions(validate_status=lambda status: status < 500)
        assert await client.request("GET", "/x", options=options) == {}


class TestRefreshOnUnauthorized:
    @pytest.fixture
    async def stored_tokens(self, bridge):
        await bridge.token_store.save(
            "key-1", BackendTokenRecord(access_token="old-at", refresh_token="old-rt", expires_in=300)
        )
        return "key-1"

    @pytest.fixture
    async def client(self, bridge, stored_tokens):
        return await bridge.create_api_client(AuthProps(umbraco_token_key=stored_tokens, user_id="u1"))

    async def test_refresh_and_retry_once(self, client, backend, bridge, stored_tokens):
        def handler(request: httpx.Request) -> httpx.Response:
            if is_token_call(request):
                return token_response(access_token="new-at", refresh_token="new-rt")
            if request.headers["authorization"] == "Bearer new-at":
                return httpx.Response(200, json={"name": "Home"})
            return httpx.Response(401)

        backend.handler = handler
        data = await client.request("GET", "/umbraco/management/api/v1/document/1")

        assert data == {"name": "Home"}
        assert len(backend.requests) == 3
        first, refresh, retry = backend.requests
        assert first.headers["authorization"] == "Bearer old-at"
        assert parse_qs(refresh.content.decode()) == {
            "grant_type": ["refresh_token"],
            "refresh_token": ["old-rt"],
            "client_id": ["umbraco-mcp"],
        }
        assert retry.headers["authorization"] == "Bearer new-at"

        stored = await bridge.token_store.get(stored_tokens)
        assert stored.access_token == "new-at"
        assert stored.refresh_token == "new-rt"
        assert client.session.state == AuthState.AUTHENTICATED
        assert client.session.refresh_context.refresh_token == "new-rt"

    async def test_second_401_is_returned_without_another_refresh(self, client, backend):
        def handler(request: httpx.Request) -> httpx.Response:
            if is_token_call(request):
                return token_response(access_token="new-at")
            return httpx.Response(401)

        backend.handler = handler
        response = await client.request("GET", "/x", options=CAPTURE_RAW_HTTP_RESPONSE)

        assert response.status == 401
        assert len(backend.requests) == 3

    async def test_failed_refresh_returns_original_401(self, client, backend, bridge, stored_tokens):
        def handler(request: httpx.Request) -> httpx.Response:
            if is_token_call(request):
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(401)

        backend.handler = handler
        with pytest.raises(UmbracoClientError) as exc_info:
            await client.request("GET", "/x")

        assert exc_info.value.status_code == 401
        assert len(backend.requests) == 2
        assert client.session.state == AuthState.FAILED
        # The stored record is left as it was
        assert (await bridge.token_store.get(stored_tokens)).access_token == "old-at"

    async def test_refresh_transport_error_returns_original_401(self, client, backend):
        def handler(request: httpx.Request) -> httpx.Response:
            if is_token_call(request):
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(401)

        backend.handler = handler
        response = await client.request("GET", "/x", options=CAPTURE_RAW_HTTP_RESPONSE)
        assert response.status == 401
        assert len(backend.requests) == 2

    async def test_store_write_failure_returns_original_401(
        self, client, backend, bridge, stored_tokens, monkeypatch
    ):
        async def store_down(key, value, ttl_seconds):
            raise ConnectionError("store down")

        monkeypatch.setattr(bridge.store, "put", store_down)
        backend.respond_in_order(
            httpx.Response(401),
            token_response(access_token="new-at"),
            httpx.Response(200, json={}),
        )

        response = await client.request("GET", "/x", options=CAPTURE_RAW_HTTP_RESPONSE)

        assert isinstance(response, HttpResponse)
        assert response.status == 401
        assert len(backend.requests) == 2
        assert client.session.state == AuthState.FAILED
        assert (await bridge.token_store.get(stored_tokens)).access_token == "old-at"

    async def test_refresh_keeps_old_refresh_token_when_none_issued(
        self, client, backend, bridge, stored_tokens
    ):
        backend.respond_in_order(
            httpx.Response(401),
            token_response(access_token="new-at", refresh_token=None),
            httpx.Response(200, json={}),
        )
        await client.request("GET", "/x")
        assert client.session.refresh_context.refresh_token == "old-rt"
        assert (await bridge.token_store.get(stored_tokens)).access_token == "new-at"

    async def test_no_refresh_without_refresh_context(self, http_client, backend):
        client = UmbracoFetchClient(UMBRACO_URL, AuthSession(access_token="at"), http_client)
        backend.handler = lambda request: httpx.Response(401)

        response = await client.request("GET", "/x", options=CAPTURE_RAW_HTTP_RESPONSE)

        assert response.status == 401
        assert len(backend.requests) == 1

    async def test_no_refresh_without_refresher(self, http_client, backend):
        session = AuthSession(access_token="at", refresh_context=RefreshContext("key-1", "rt"))
        client = UmbracoFetchClient(UMBRACO_URL, session, http_client)
        backend.handler = lambda request: httpx.Response(401)

        response = await client.request("GET", "/x", options=CAPTURE_RAW_HTTP_RESPONSE)

        assert response.status == 401
        assert len(backend.requests) == 1
        assert session.state == AuthState.FAILED

    async def test_other_statuses_never_refresh(self, client, backend):
        backend.handler = lambda request: httpx.Response(403)
        response = await client.request("GET", "/x", options=CAPTURE_RAW_HTTP_RESPONSE)
        assert response.status == 403
        assert len(backend.requests) == 1


class TestRefreshClient:
    async def test_confidential_client_sends_secret(self, test_settings, http_client, backend, store):
        from umbraco_hosted_mcp.oauth.state import BackendTokenStore
        from umbraco_hosted_mcp.oauth.token_client import UmbracoTokenClient

        test_settings.umbraco_oauth_client_secret = "s3cret"
        token_client = UmbracoTokenClient(test_settings, http_client, BackendTokenStore(store))
        backend.handler = lambda request: token_response(access_token="new-at")

        assert await token_client.refresh("key-1", "rt") == "new-at"
        form = parse_qs(backend.requests[0].content.decode())
        assert form["client_secret"] == ["s3cret"]

    async def test_malformed_refresh_response_is_unavailable(self, bridge, backend):
        backend.handler = lambda request: httpx.Response(200, json={"unexpected": True})
        assert await bridge.token_client.refresh("key-1", "rt") is None
        assert await bridge.token_store.get("key-1") is None

    async def test_token_endpoint_uses_server_override(self, test_settings, http_client, backend, store):
        from umbraco_hosted_mcp.oauth.state import BackendTokenStore
        from umbraco_hosted_mcp.oauth.token_client import UmbracoTokenClient

        test_settings.umbraco_server_url = "http://umbraco-internal:8080"
        token_client = UmbracoTokenClient(test_settings, http_client, BackendTokenStore(store))
        backend.handler = lambda request: token_response()

        await token_client.refresh("key-1", "rt")
        assert str(backend.requests[0].url) == (
            "http://umbraco-internal:8080/umbraco/management/api/v1/security/back-office/token"
        )


class TestClientFromStore:
    async def test_missing_record_returns_none(self, test_settings, bridge, http_client):
        client = await create_fetch_client_from_store(test_settings, bridge.token_store, "nope", http_client)
        assert client is None

    async def test_bridge_raises_token_not_found(self, bridge):
        with pytest.raises(TokenNotFoundError):
            await bridge.create_api_client(AuthProps(umbraco_token_key="nope", user_id="u1"))

    async def test_record_without_refresh_token_has_no_refresh_context(
        self, test_settings, bridge, http_client
    ):
        await bridge.token_store.save("key-2", BackendTokenRecord(access_token="at"))
        client = await create_fetch_client_from_store(test_settings, bridge.token_store, "key-2", http_client)
        assert client.session.access_token == "at"
        assert client.session.refresh_context is None
