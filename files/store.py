# files/store.py
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from files.models import FileRecord

log = logging.getLogger(__name__)


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MetadataStore:
    """
    Flat JSON key-value store: filename -> FileRecord.

    Every operation reads the whole document, applies the change in memory
    and rewrites the whole document. Write volume is human-driven uploads, so
    there is no partial update path.

    Writes land in a temp file next to the document and are swapped in with
    os.replace. The lock only serializes writers inside this process; two
    processes sharing the file are still last-write-wins.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()

    # -----------------------------------------------------------------
    # Internal JSON helpers
    # -----------------------------------------------------------------

    def _ensure_dir(self) -> None:
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)

    def _load(self) -> Dict[str, FileRecord]:
        """
        Read the document. Missing or corrupt -> empty mapping.
        """
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read().strip()
        except OSError as exc:
            log.error("Error loading metadata from %s: %s", self.path, exc)
            return {}

        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except ValueError as exc:
            log.error("Metadata document %s is not valid JSON: %s", self.path, exc)
            return {}

        if not isinstance(data, dict):
            log.error("Metadata document %s is not an object; ignoring", self.path)
            return {}

        out: Dict[str, FileRecord] = {}
        for key, item in data.items():
            if not isinstance(item, dict):
                continue
            entry: Dict[str, Any] = dict(item)
            entry.setdefault("filename", key)
            try:
                out[key] = FileRecord(**entry)
            except Exception:
                # Skip malformed entries
                log.warning("Skipping malformed metadata entry %s", key)
                continue
        return out

    def _save(self, records: Dict[str, FileRecord]) -> bool:
        data = {k: v.model_dump() for k, v in records.items()}
        tmp_path = None
        try:
            self._ensure_dir()
            fd, tmp_path = tempfile.mkstemp(
                prefix=".files-",
                suffix=".json",
                dir=os.path.dirname(os.path.abspath(self.path)),
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
            return True
        except OSError as exc:
            log.error("Error saving metadata to %s: %s", self.path, exc)
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass
            return False

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def put(
        self,
        filename: str,
        original_name: str,
        description: str,
        upload_date: Optional[str] = None,
    ) -> bool:
        with self._lock:
            records = self._load()
            records[filename] = FileRecord(
                filename=filename,
                originalName=original_name,
                description=description,
                uploadDate=upload_date or _utc_iso(),
            )
            return self._save(records)

    def get(self, filename: str) -> Optional[FileRecord]:
        return self._load().get(filename)

    def get_all(self) -> Dict[str, FileRecord]:
        return self._load()

    def count(self) -> int:
        return len(self._load())

    def delete(self, filename: str) -> bool:
        with self._lock:
            records = self._load()
            if filename not in records:
                return False
            del records[filename]
            return self._save(records)

    def search(self, term: str) -> Dict[str, FileRecord]:
        """
        Case-insensitive substring match on description or originalName.
        """
        needle = (term or "").lower()
        return {
            k: rec
            for k, rec in self._load().items()
            if needle in rec.description.lower() or needle in rec.originalName.lower()
        }
