"""
Shared pytest fixtures.

Every outbound Umbraco request goes through an httpx.MockTransport backed by
a BackendRecorder, so tests can both script responses and count calls.
"""

from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from umbraco_hosted_mcp.bridge import UmbracoBridge
from umbraco_hosted_mcp.config import Settings
from umbraco_hosted_mcp.oauth.models import AuthorizationRequest, AuthProps
from umbraco_hosted_mcp.oauth.provider import parse_authorization_request
from umbraco_hosted_mcp.storage import EncryptedKeyValueStore, InMemoryKeyValueStore

UMBRACO_URL = "https://umbraco.example.com"
TOKEN_URL = f"{UMBRACO_URL}/umbraco/management/api/v1/security/back-office/token"
CLIENT_REDIRECT_URI = "https://client.example.com/oauth/callback"


class BackendRecorder:
    """Records outbound requests and answers them with a scripted handler."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(404)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def to(self, url_prefix: str) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url).startswith(url_prefix)]

    def respond_in_order(self, *responses: httpx.Response) -> None:
        queue = list(responses)
        self.handler = lambda request: queue.pop(0)


class FakeProvider:
    """In-memory stand-in for the outer OAuth provider."""

    def __init__(self):
        self.completed: List[Dict[str, Any]] = []
        self.tokens: Dict[str, AuthProps] = {}

    async def parse_auth_request(self, request) -> AuthorizationRequest:
        return parse_authorization_request(request)

    async def complete_authorization(self, *, request, user_id, metadata, scope, props) -> str:
        self.completed.append(
            {"request": request, "user_id": user_id, "metadata": metadata, "scope": scope, "props": props}
        )
        self.tokens[f"mcp-token-{len(self.tokens) + 1}"] = props
        return f"{request.redirect_uri}?code=downstream-code&state={request.state}"

    async def load_props(self, token: str) -> Optional[AuthProps]:
        return self.tokens.get(token)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        server_url="http://testserver",
        umbraco_base_url=UMBRACO_URL,
        umbraco_oauth_client_id="umbraco-mcp",
        token_encryption_key="test-encryption-secret",
    )


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(memory_store, test_settings) -> EncryptedKeyValueStore:
    return EncryptedKeyValueStore.from_secret(memory_store, test_settings.token_encryption_key)


@pytest.fixture
def backend() -> BackendRecorder:
    return BackendRecorder()


@pytest.fixture
def http_client(backend) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(backend))


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def bridge(test_settings, provider, store, http_client) -> UmbracoBridge:
    return UmbracoBridge(test_settings, provider, store=store, http_client=http_client)


def token_response(
    access_token: str = "umbraco-access",
    refresh_token: Optional[str] = "umbraco-refresh",
    expires_in: Optional[int] = 300,
    **extra: Any,
) -> httpx.Response:
    body: Dict[str, Any] = {"access_token": access_token, "token_type": "Bearer", **extra}
    if refresh_token is not None:
        body["refresh_token"] = refresh_token
    if expires_in is not None:
        body["expires_in"] = expires_in
    return httpx.Response(200, json=body)
