"""
Blob storage for uploaded audio.

Blobs are addressed by an opaque handle and deleted explicitly once the
transcription attempt is over (successful or not).
"""
from __future__ import annotations

import re
import uuid
from pathlib import Path

from phantom_pen.core.config import settings
from phantom_pen.core.errors import BlobNotFoundError
from phantom_pen.core.logging import get_logger

logger = get_logger(__name__)

_HANDLE_RE = re.compile(r"^[0-9a-f]{32}$")


class BlobStorage:
    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, handle: str) -> Path:
        if not _HANDLE_RE.match(handle or ""):
            raise BlobNotFoundError(handle)
        return self.root / handle

    def create_handle(self) -> str:
        return uuid.uuid4().hex

    def put(self, data: bytes, handle: str | None = None) -> str:
        handle = handle or self.create_handle()
        self._path(handle).write_bytes(data)
        logger.info("Stored blob %s (%d bytes)", handle, len(data))
        return handle

    def exists(self, handle: str) -> bool:
        try:
            return self._path(handle).is_file()
        except BlobNotFoundError:
            return False

    def read(self, handle: str) -> bytes:
        path = self._path(handle)
        if not path.is_file():
            raise BlobNotFoundError(handle)
        return path.read_bytes()

    def delete(self, handle: str) -> bool:
        """Remove the blob. Returns False when it was already gone."""
        path = self._path(handle)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Deleted blob %s", handle)
        return True


_storage: BlobStorage | None = None


def get_blob_storage() -> BlobStorage:
    global _storage
    if _storage is None:
        _storage = BlobStorage(settings.STORAGE_DIR)
    return _storage
