"""Filesystem storage backend.

Writes objects under a root directory and hands back `base_url/key` URIs.
When no base URL is given, URIs are `file://` URLs of the written files.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from ..errors import StorageError
from .base import check_key

logger = logging.getLogger(__name__)


class LocalStorage:
    def __init__(self, root: Path | str, base_url: str | None = None):
        self.root = Path(root).expanduser()
        self.base_url = base_url.rstrip("/") if base_url else None

    def path_for(self, key: str) -> Path:
        return self.root / check_key(key)

    def uri_for(self, key: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{key}"
        return self.path_for(key).resolve().as_uri()

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)

    async def upload(self, data: bytes, key: str) -> str:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e
        logger.debug("Stored %s (%d bytes)", key, len(data))
        return self.uri_for(key)

    async def upload_metadata(self, document: dict[str, Any], key: str) -> str:
        payload = json.dumps(document, indent=2, default=str).encode("utf-8")
        return await self.upload(payload, key)
