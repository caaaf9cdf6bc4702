"""Calls to the Umbraco backoffice token endpoint (code exchange and refresh)."""

import logging
from typing import Dict, Optional

import httpx
from pydantic import ValidationError

from ..config import Settings
from .endpoints import get_backoffice_endpoints
from .errors import ExchangeFailure, RefreshUnavailable
from .models import BackendTokenRecord
from .state import BackendTokenStore

logger = logging.getLogger(__name__)


class UmbracoTokenClient:
    """
    OAuth client side of the bridge: talks to Umbraco's token endpoint.

    Token requests always go to the server-side base URL, since they are
    made by this process and not by the user's browser.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        token_store: BackendTokenStore,
    ):
        self._settings = settings
        self._http = http_client
        self._token_store = token_store

    @property
    def token_endpoint(self) -> str:
        return get_backoffice_endpoints(
            self._settings.umbraco_base_url,
            self._settings.umbraco_server_url,
        ).token_endpoint

    def _client_params(self) -> Dict[str, str]:
        params = {"client_id": self._settings.umbraco_oauth_client_id}
        # Only confidential clients send a secret
        if self._settings.is_confidential_client:
            params["client_secret"] = self._settings.umbraco_oauth_client_secret
        return params

    async def _post_form(self, data: Dict[str, str]) -> httpx.Response:
        return await self._http.post(
            self.token_endpoint,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

    async def exchange_code(
        self, code: str, redirect_uri: str, code_verifier: str
    ) -> BackendTokenRecord:
        """
        Exchange an authorization code for Umbraco tokens.

        Args:
            code: Authorization code from the Umbraco redirect
            redirect_uri: The bridge callback URL used in the authorize step
            code_verifier: PKCE verifier stored with the state record

        Returns:
            BackendTokenRecord parsed from the token response

        Raises:
            ExchangeFailure: If Umbraco is unreachable or returns a non-2xx status
        """
        try:
            response = await self._post_form(
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": redirect_uri,
                    "code_verifier": code_verifier,
                    **self._client_params(),
                }
            )
        except httpx.HTTPError as e:
            logger.error(f"Umbraco token endpoint unreachable: {e}")
            raise ExchangeFailure(None, "Token endpoint unreachable", str(e)) from e

        if not response.is_success:
            logger.error(f"Umbraco token exchange error: {response.status_code}")
            raise ExchangeFailure(response.status_code, response.reason_phrase, response.text)

        try:
            return BackendTokenRecord.model_validate(response.json())
        except ValueError as e:
            raise ExchangeFailure(
                response.status_code, "Malformed token response", response.text
            ) from e

    async def refresh_record(
        self, token_key: str, refresh_token: str
    ) -> Optional[BackendTokenRecord]:
        """
        Refresh tokens and overwrite the stored record at the same key.

        Returns:
            The new token record, or None if the refresh is unavailable or
            the new record cannot be stored
        """
        try:
            record = await self._request_refresh(refresh_token)
        except RefreshUnavailable as e:
            logger.warning(f"Umbraco token refresh unavailable for {token_key[:8]}...: {e}")
            return None

        try:
            await self._token_store.save(token_key, record)
        except Exception as e:
            logger.warning(f"Could not store refreshed Umbraco token {token_key[:8]}...: {e}")
            return None

        logger.info(f"Refreshed Umbraco token {token_key[:8]}...")
        return record

    async def refresh(self, token_key: str, refresh_token: str) -> Optional[str]:
        """
        Refresh an expired Umbraco token.

        Args:
            token_key: Key of the stored token record to overwrite
            refresh_token: Refresh token from that record

        Returns:
            The new access token, or None if the refresh failed
        """
        record = await self.refresh_record(token_key, refresh_token)
        return record.access_token if record else None

    async def _request_refresh(self, refresh_token: str) -> BackendTokenRecord:
        try:
            response = await self._post_form(
                {
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    **self._client_params(),
                }
            )
        except httpx.HTTPError as e:
            raise RefreshUnavailable(f"Refresh request failed: {e}") from e

        if not response.is_success:
            raise RefreshUnavailable(
                f"Refresh rejected with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return BackendTokenRecord.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RefreshUnavailable(f"Malformed refresh response: {e}") from e
