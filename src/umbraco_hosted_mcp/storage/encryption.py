"""Fernet encryption wrapper so records are encrypted at rest."""

import base64
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .base import KeyValueStore

logger = logging.getLogger(__name__)

_KEY_SALT = b"umbraco-hosted-mcp-token-store"


def derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key from high-entropy secret material using HKDF-SHA256."""
    raw = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=_KEY_SALT,
        info=b"fernet",
    ).derive(secret.encode("utf-8"))
    return base64.urlsafe_b64encode(raw)


class EncryptedKeyValueStore:
    """
    Wraps another store, encrypting every value with Fernet.

    A value that cannot be decrypted (e.g. after key rotation) reads as
    absent, so affected users simply re-authenticate.
    """

    def __init__(self, inner: KeyValueStore, fernet: Fernet):
        self._inner = inner
        self._fernet = fernet

    @classmethod
    def from_secret(cls, inner: KeyValueStore, secret: str) -> "EncryptedKeyValueStore":
        return cls(inner, Fernet(derive_fernet_key(secret)))

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        token = self._fernet.encrypt(value.encode("utf-8")).decode("ascii")
        await self._inner.put(key, token, ttl_seconds)

    async def get(self, key: str) -> Optional[str]:
        return self._decrypt(key, await self._inner.get(key))

    async def delete(self, key: str) -> None:
        await self._inner.delete(key)

    async def take(self, key: str) -> Optional[str]:
        return self._decrypt(key, await self._inner.take(key))

    async def aclose(self) -> None:
        await self._inner.aclose()

    def _decrypt(self, key: str, token: Optional[str]) -> Optional[str]:
        if token is None:
            return None
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken:
            logger.warning(f"Discarding undecryptable record for {key.split(':', 1)[0]}")
            return None
