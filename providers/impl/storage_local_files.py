from __future__ import annotations

import logging
import os
from typing import Any, Dict

from providers.storage import StorageProvider

log = logging.getLogger(__name__)


class LocalFilesStorageProvider(StorageProvider):
    """
    Uploaded documents kept as flat files under one directory.
    """

    def __init__(self, base_dir: str) -> None:
        self.base_dir = base_dir
        os.makedirs(self.base_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = os.path.basename(key.replace("..", "").replace("\\", "/"))
        if not safe:
            raise ValueError(f"Invalid storage key: {key!r}")
        return os.path.join(self.base_dir, safe)

    def put_object(self, key: str, data: bytes) -> None:
        path = self._path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        log.info("Stored blob key=%s bytes=%s", key, len(data))

    def head_object(self, key: str) -> Dict[str, Any]:
        path = self._path(key)
        st = os.stat(path)
        return {"key": key, "size": st.st_size, "mtime": st.st_mtime}

    def exists(self, key: str) -> bool:
        try:
            return os.path.isfile(self._path(key))
        except ValueError:
            return False

    def delete_object(self, key: str) -> bool:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)
            log.info("Deleted blob key=%s", key)
            return True
        return False

    def local_path(self, key: str) -> str:
        return self._path(key)
