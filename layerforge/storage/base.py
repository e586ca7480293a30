"""Storage protocol for generated artifacts and metadata documents."""

from typing import Any, Protocol, runtime_checkable

from ..errors import StorageError


@runtime_checkable
class Storage(Protocol):
    """Where a pipeline sends its output.

    Uploads are idempotent per key: writing the same key twice replaces the
    object and returns the same URI, so a retried or orphaned batch is harmless.
    """

    async def upload(self, data: bytes, key: str) -> str:
        """Store raw bytes under `key` and return the object's URI."""
        ...

    async def upload_metadata(self, document: dict[str, Any], key: str) -> str:
        """Store a JSON document under `key` and return its URI."""
        ...


def check_key(key: str) -> str:
    """Reject keys that would escape a storage root."""
    parts = key.replace("\\", "/").split("/")
    if not key or key.startswith("/") or any(p in ("", ".", "..") for p in parts):
        raise StorageError(f"Invalid storage key: {key!r}")
    return key
