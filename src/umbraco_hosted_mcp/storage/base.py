"""Key-value store interface with per-entry expiry."""

from typing import Optional, Protocol


class KeyValueStore(Protocol):
    """
    Persistence interface for OAuth state and Umbraco token records.

    An expired or deleted key must read as absent. Values are opaque strings
    (JSON-serialized records, possibly encrypted).
    """

    async def put(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def get(self, key: str) -> Optional[str]: ...

    async def delete(self, key: str) -> None: ...

    async def take(self, key: str) -> Optional[str]:
        """Atomically read and delete a key."""
        ...

    async def aclose(self) -> None: ...
