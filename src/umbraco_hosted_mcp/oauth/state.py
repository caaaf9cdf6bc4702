"""OAuth state and Umbraco token records on top of the key-value store."""

import logging
from typing import Optional

from pydantic import ValidationError

from ..storage import KeyValueStore
from .models import BackendTokenRecord, OAuthStateRecord

logger = logging.getLogger(__name__)

STATE_PREFIX = "oauth_state:"
TOKEN_PREFIX = "umbraco_token:"


class OAuthStateStore:
    """
    Single-use, short-lived OAuth state records.

    States expire after a fixed TTL (default 10 minutes) and are deleted on
    the first read, so a captured callback URL cannot be replayed.
    """

    def __init__(self, store: KeyValueStore, ttl_seconds: int = 600):
        self._store = store
        self._ttl_seconds = ttl_seconds

    async def save(self, state_key: str, record: OAuthStateRecord) -> None:
        """
        Save a state record under the given key.

        Args:
            state_key: The state parameter (unique, bridge-generated)
            record: Data to associate with the state
        """
        await self._store.put(
            f"{STATE_PREFIX}{state_key}",
            record.model_dump_json(exclude_none=True),
            self._ttl_seconds,
        )

    async def consume(self, state_key: str) -> Optional[OAuthStateRecord]:
        """
        Read and delete a state record in one step.

        Args:
            state_key: The state parameter to look up

        Returns:
            The record if found and not expired, None otherwise
        """
        data = await self._store.take(f"{STATE_PREFIX}{state_key}")
        if data is None:
            return None
        try:
            return OAuthStateRecord.model_validate_json(data)
        except ValidationError:
            logger.warning("Discarding malformed OAuth state record")
            return None


class BackendTokenStore:
    """
    Umbraco token records keyed by an opaque token key.

    The TTL follows the token's own lifetime plus a buffer that leaves room
    for a refresh after the access token has expired. Records are only ever
    replaced wholesale.
    """

    def __init__(
        self,
        store: KeyValueStore,
        default_ttl_seconds: int = 3600,
        buffer_seconds: int = 300,
    ):
        self._store = store
        self._default_ttl_seconds = default_ttl_seconds
        self._buffer_seconds = buffer_seconds

    def ttl_for(self, record: BackendTokenRecord) -> int:
        lifetime = record.expires_in if record.expires_in is not None else self._default_ttl_seconds
        return lifetime + self._buffer_seconds

    async def save(self, token_key: str, record: BackendTokenRecord) -> None:
        await self._store.put(
            f"{TOKEN_PREFIX}{token_key}",
            record.model_dump_json(exclude_none=True),
            self.ttl_for(record),
        )

    async def get(self, token_key: str) -> Optional[BackendTokenRecord]:
        data = await self._store.get(f"{TOKEN_PREFIX}{token_key}")
        if data is None:
            return None
        try:
            return BackendTokenRecord.model_validate_json(data)
        except ValidationError:
            logger.warning(f"Discarding malformed token record {token_key[:8]}...")
            return None
