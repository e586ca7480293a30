"""In-memory storage backend for tests and dry runs."""

import json
import logging
from typing import Any

from .base import check_key

logger = logging.getLogger(__name__)


class MemoryStorage:
    """Keeps every uploaded object in a dict keyed by storage key."""

    def __init__(self, base_url: str = "memory://layerforge"):
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, bytes] = {}

    def uri_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    async def upload(self, data: bytes, key: str) -> str:
        self.objects[check_key(key)] = bytes(data)
        return self.uri_for(key)

    async def upload_metadata(self, document: dict[str, Any], key: str) -> str:
        payload = json.dumps(document, indent=2, default=str).encode("utf-8")
        return await self.upload(payload, key)

    def get(self, key: str) -> bytes | None:
        return self.objects.get(key)

    def get_json(self, key: str) -> Any:
        data = self.objects.get(key)
        return json.loads(data) if data is not None else None

    def keys(self) -> list[str]:
        return sorted(self.objects)

    def __len__(self) -> int:
        return len(self.objects)
