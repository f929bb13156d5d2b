# lab_assistant/memory/blob_store.py

"""
Object storage over a local directory.

Objects are addressed by slash-separated paths ("kb/metadata.json")
relative to the storage root. Filesystem calls run in a worker thread.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from lab_assistant.config import BLOB_STORAGE_DIR
from lab_assistant.errors import BlobBackendError

logger = logging.getLogger(__name__)


class LocalBlobStore:

    def __init__(self, root: str = BLOB_STORAGE_DIR):

        self._root = Path(root)

        logger.info(
            "Blob store initialized",
            extra={"root": str(self._root)},
        )

    def _resolve(self, path: str) -> Path:

        target = (self._root / path).resolve()

        if self._root.resolve() not in target.parents:
            raise BlobBackendError(f"Object path escapes storage root: {path}")

        return target

    # ============================================================
    # SYNC PRIMITIVES
    # ============================================================

    def _read(self, path: str) -> Optional[Any]:

        target = self._resolve(path)

        if not target.exists():
            return None

        with open(target, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, path: str, data: Any) -> None:

        target = self._resolve(path)

        os.makedirs(target.parent, exist_ok=True)

        tmp = target.with_suffix(target.suffix + ".tmp")

        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)

        os.replace(tmp, target)

    def _delete(self, path: str) -> bool:

        target = self._resolve(path)

        if not target.exists():
            return False

        target.unlink()

        return True

    # ============================================================
    # ASYNC API
    # ============================================================

    async def read_json(self, path: str) -> Optional[Any]:

        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, ValueError) as e:
            raise BlobBackendError(f"Blob read failed for {path}: {e}") from e

    async def write_json(self, path: str, data: Any) -> None:

        try:
            await asyncio.to_thread(self._write, path, data)
        except (OSError, TypeError) as e:
            raise BlobBackendError(f"Blob write failed for {path}: {e}") from e

    async def delete(self, path: str) -> bool:

        try:
            return await asyncio.to_thread(self._delete, path)
        except OSError as e:
            raise BlobBackendError(f"Blob delete failed for {path}: {e}") from e
