"""Wires the OAuth bridge components around one store and one HTTP client."""

import logging
from typing import Optional

import httpx

from .config import Settings
from .http_client.umbraco_client import UmbracoFetchClient, create_fetch_client_from_store
from .oauth.errors import TokenNotFoundError
from .oauth.handler import UmbracoAuthHandler
from .oauth.models import AuthProps
from .oauth.provider import OAuthProvider
from .oauth.state import BackendTokenStore, OAuthStateStore
from .oauth.token_client import UmbracoTokenClient
from .storage import KeyValueStore, create_store

logger = logging.getLogger(__name__)


class UmbracoBridge:
    """
    Everything a request handler needs to run the Umbraco OAuth bridge.

    Holds no per-user state: all cross-request state lives in the store.
    """

    def __init__(
        self,
        settings: Settings,
        provider: OAuthProvider,
        store: Optional[KeyValueStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.provider = provider
        self.store = store if store is not None else create_store(settings)

        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout_seconds),
            follow_redirects=False,  # Don't follow redirects to prevent token leakage
        )

        self.state_store = OAuthStateStore(self.store, settings.oauth_state_ttl_seconds)
        self.token_store = BackendTokenStore(
            self.store,
            default_ttl_seconds=settings.default_token_ttl_seconds,
            buffer_seconds=settings.token_ttl_buffer_seconds,
        )
        self.token_client = UmbracoTokenClient(settings, self.http_client, self.token_store)
        self.auth_handler = UmbracoAuthHandler(
            settings=settings,
            state_store=self.state_store,
            token_store=self.token_store,
            token_client=self.token_client,
            http_client=self.http_client,
        )

    async def create_api_client(self, props: AuthProps) -> UmbracoFetchClient:
        """
        Build an Umbraco API client for the user behind the given props.

        Raises:
            TokenNotFoundError: If the stored tokens are gone (expired or never stored)
        """
        client = await create_fetch_client_from_store(
            self.settings,
            self.token_store,
            props.umbraco_token_key,
            self.http_client,
            refresher=self.token_client.refresh_record,
        )
        if client is None:
            raise TokenNotFoundError()
        return client

    async def aclose(self) -> None:
        """Close the HTTP client (if created here) and the store."""
        if self._owns_http_client:
            await self.http_client.aclose()
        await self.store.aclose()
        logger.info("Umbraco bridge closed")
