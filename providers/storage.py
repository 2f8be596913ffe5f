from __future__ import annotations

from typing import Protocol, runtime_checkable, Dict, Any


@runtime_checkable
class StorageProvider(Protocol):
    """
    Blob storage abstraction for uploaded documents.

    Keys are the generated "{timestamp}-{originalName}" filenames.
    """

    def put_object(self, key: str, data: bytes) -> None: ...

    def head_object(self, key: str) -> Dict[str, Any]: ...

    def exists(self, key: str) -> bool: ...

    def delete_object(self, key: str) -> bool: ...

    def local_path(self, key: str) -> str:
        """
        Filesystem path for a stored blob. The assistant upload streams from it.
        """
        ...
