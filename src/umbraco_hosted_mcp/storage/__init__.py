"""Encrypted key-value storage for OAuth state and Umbraco tokens."""

import logging

from cryptography.fernet import Fernet

from ..config import Settings
from .base import KeyValueStore
from .encryption import EncryptedKeyValueStore, derive_fernet_key
from .memory import InMemoryKeyValueStore
from .redis import RedisKeyValueStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> KeyValueStore:
    """
    Build the configured store, always wrapped in at-rest encryption.

    Raises:
        ValueError: For an unknown backend, or redis without an encryption key
    """
    backend = settings.token_store_backend.lower()

    if backend == "memory":
        inner: KeyValueStore = InMemoryKeyValueStore()
    elif backend == "redis":
        if not settings.token_encryption_key:
            raise ValueError("TOKEN_ENCRYPTION_KEY is required with the redis token store")
        inner = RedisKeyValueStore(url=settings.redis_url, prefix=settings.redis_key_prefix)
    else:
        raise ValueError(f"Unknown token store backend: {settings.token_store_backend}")

    if settings.token_encryption_key:
        return EncryptedKeyValueStore.from_secret(inner, settings.token_encryption_key)

    logger.warning(
        "TOKEN_ENCRYPTION_KEY not set - using an ephemeral key; "
        "stored tokens will not survive a restart"
    )
    return EncryptedKeyValueStore(inner, Fernet(Fernet.generate_key()))


__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "EncryptedKeyValueStore",
    "derive_fernet_key",
    "create_store",
]
