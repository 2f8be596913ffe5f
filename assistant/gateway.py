from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from assistant.instructions import base_instructions, build_instructions
from core.settings import OpenAISettings
from files.store import MetadataStore

log = logging.getLogger(__name__)


class GatewayNotConfiguredError(RuntimeError):
    pass


@dataclass
class IndexResult:
    """
    A freshly created vector store plus the per-file attach tally.
    """
    vector_store: Any
    attached: int = 0
    failed: int = 0
    failed_file_ids: List[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.vector_store.id


def vector_store_ids(assistant: Any) -> List[str]:
    """
    tool_resources.file_search.vector_store_ids, tolerant of missing pieces.
    """
    resources = getattr(assistant, "tool_resources", None)
    file_search = getattr(resources, "file_search", None) if resources is not None else None
    ids = getattr(file_search, "vector_store_ids", None) if file_search is not None else None
    return list(ids or [])


def tool_types(assistant: Any) -> List[str]:
    return [getattr(t, "type", str(t)) for t in (getattr(assistant, "tools", None) or [])]


def _as_dict(obj: Any) -> Any:
    if obj is None:
        return None
    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        return dump()
    if isinstance(obj, dict):
        return obj
    return getattr(obj, "__dict__", str(obj))


class AssistantGateway:
    """
    Thin wrapper over the hosted assistant service (OpenAI Assistants + vector stores).

    The OpenAI client is built once at startup and injected; None means no API
    key was configured. Nothing here retries. Remote errors are logged and
    re-raised so the caller decides whether to degrade.
    """

    def __init__(self, client: Any, settings: OpenAISettings, store: MetadataStore) -> None:
        self.client = client
        self.settings = settings
        self.store = store

    # -----------------------------------------------------------------
    # Configuration state
    # -----------------------------------------------------------------

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    @property
    def assistant_id(self) -> Optional[str]:
        return self.settings.assistant_id

    @property
    def has_assistant(self) -> bool:
        return self.is_configured and bool(self.settings.assistant_id)

    def _client(self) -> Any:
        if self.client is None:
            raise GatewayNotConfiguredError("OpenAI API key not found in environment variables")
        return self.client

    # -----------------------------------------------------------------
    # Assistants
    # -----------------------------------------------------------------

    def create_assistant(self) -> Any:
        client = self._client()
        try:
            assistant = client.beta.assistants.create(
                name=self.settings.assistant_name,
                instructions=base_instructions(self.settings.assistant_name, self.settings.org_name),
                model=self.settings.model,
                tools=[{"type": "file_search"}],
                temperature=self.settings.temperature,
                tool_resources={"file_search": {"vector_store_ids": []}},
            )
        except Exception as exc:
            log.error("Error creating assistant: %s", exc)
            raise

        log.info(
            "Assistant created id=%s model=%s tools=%s",
            assistant.id,
            self.settings.model,
            ",".join(tool_types(assistant)),
        )
        return assistant

    def get_assistant(self, assistant_id: str) -> Any:
        client = self._client()
        try:
            return client.beta.assistants.retrieve(assistant_id)
        except Exception as exc:
            log.error("Error retrieving assistant %s: %s", assistant_id, exc)
            raise

    def refresh_assistant_instructions(self, assistant_id: str) -> Any:
        """
        Rebuild the instruction text from the current metadata store.

        Must follow every upload and every delete so the assistant's picture
        of the knowledge base matches files.json.
        """
        client = self._client()
        records = list(self.store.get_all().values())
        if not records:
            log.info("No files found, using basic instructions")

        instructions = build_instructions(
            records,
            assistant_name=self.settings.assistant_name,
            org_name=self.settings.org_name,
        )
        try:
            assistant = client.beta.assistants.update(assistant_id, instructions=instructions)
        except Exception as exc:
            log.error("Error updating assistant instructions %s: %s", assistant_id, exc)
            raise

        log.info("Assistant instructions updated id=%s files=%s", assistant_id, len(records))
        return assistant

    # -----------------------------------------------------------------
    # Files
    # -----------------------------------------------------------------

    def upload_document(self, path: str, display_name: str, description: str = "") -> Any:
        """
        Stream a local file to the service for use with file_search.

        file_search does not index CSV, so CSV input is rewritten as a .txt
        (header naming the file and its description, then the raw rows) and
        that copy is uploaded instead. The copy is always removed afterwards.
        """
        client = self._client()
        ext = os.path.splitext(display_name or path)[1].lower()

        if ext != ".csv":
            try:
                with open(path, "rb") as fh:
                    uploaded = client.files.create(file=fh, purpose="assistants")
            except Exception as exc:
                log.error("Error uploading %s to OpenAI: %s", display_name, exc)
                raise
            log.info("File uploaded to OpenAI name=%s file_id=%s", display_name, uploaded.id)
            return uploaded

        log.info("CSV file detected name=%s; converting to text for file_search", display_name)
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            csv_content = fh.read()

        text_content = f"# {display_name}\n# Description: {description}\n\n{csv_content}"
        stem = os.path.splitext(os.path.basename(display_name))[0] or "upload"

        fd, text_path = tempfile.mkstemp(prefix=f"{stem}-", suffix=".txt")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as out:
                out.write(text_content)
            with open(text_path, "rb") as fh:
                uploaded = client.files.create(file=fh, purpose="assistants")
        except Exception as exc:
            log.error("Error uploading converted CSV %s to OpenAI: %s", display_name, exc)
            raise
        finally:
            try:
                os.remove(text_path)
            except OSError:
                log.warning("Could not remove temp text file %s", text_path)

        log.info("Converted CSV uploaded to OpenAI name=%s file_id=%s", display_name, uploaded.id)
        return uploaded

    # -----------------------------------------------------------------
    # Vector stores ("indexes")
    # -----------------------------------------------------------------

    def create_index_with_files(self, file_ids: List[str], name: Optional[str] = None) -> IndexResult:
        """
        Create a vector store and attach files to it one at a time.

        A failed attach is counted and logged; the remaining files are still
        attempted.
        """
        client = self._client()
        store_name = name or self.settings.index_name

        log.info("Creating vector store name=%s files=%s", store_name, len(file_ids))
        try:
            vector_store = client.vector_stores.create(name=store_name)
        except Exception as exc:
            log.error("Error creating vector store: %s", exc)
            raise

        created = getattr(vector_store, "created_at", None)
        log.info(
            "Vector store created id=%s name=%s created_at=%s",
            vector_store.id,
            getattr(vector_store, "name", store_name),
            datetime.fromtimestamp(created, tz=timezone.utc).isoformat() if created else None,
        )

        result = IndexResult(vector_store=vector_store)
        for file_id in file_ids:
            try:
                vs_file = client.vector_stores.files.create(vector_store_id=vector_store.id, file_id=file_id)
                log.info(
                    "Attached file %s to vector store %s status=%s",
                    file_id,
                    vector_store.id,
                    getattr(vs_file, "status", None),
                )
                result.attached += 1
            except Exception as exc:
                log.error("Failed to attach file %s to vector store %s: %s", file_id, vector_store.id, exc)
                result.failed += 1
                result.failed_file_ids.append(file_id)

        if file_ids:
            log.info(
                "Vector store attach summary id=%s attached=%s failed=%s total=%s",
                vector_store.id,
                result.attached,
                result.failed,
                len(file_ids),
            )

        try:
            verified = client.vector_stores.retrieve(vector_store.id)
            log.info(
                "Vector store verification id=%s status=%s file_counts=%s usage_bytes=%s",
                vector_store.id,
                getattr(verified, "status", None),
                _as_dict(getattr(verified, "file_counts", None)),
                getattr(verified, "usage_bytes", None),
            )
        except Exception as exc:
            log.warning("Could not verify vector store %s: %s", vector_store.id, exc)

        return result

    def attach_index_to_assistant(self, assistant_id: str, index_id: str) -> Any:
        """
        Point the assistant's file_search at exactly one vector store.
        """
        client = self._client()
        try:
            current = client.beta.assistants.retrieve(assistant_id)
            log.info(
                "Attaching vector store %s to assistant %s (previous=%s)",
                index_id,
                assistant_id,
                vector_store_ids(current),
            )
            assistant = client.beta.assistants.update(
                assistant_id,
                tool_resources={"file_search": {"vector_store_ids": [index_id]}},
            )
        except Exception as exc:
            log.error("Error attaching vector store %s to assistant %s: %s", index_id, assistant_id, exc)
            raise

        log.info("Assistant %s now uses vector stores %s", assistant_id, vector_store_ids(assistant))
        return assistant

    def get_index_details(self, index_id: str) -> Dict[str, Any]:
        client = self._client()
        try:
            vector_store = client.vector_stores.retrieve(index_id)
            files = client.vector_stores.files.list(vector_store_id=index_id)
        except Exception as exc:
            log.error("Error getting vector store details %s: %s", index_id, exc)
            raise

        file_items = list(getattr(files, "data", None) or [])
        log.info(
            "Vector store %s status=%s files=%s",
            index_id,
            getattr(vector_store, "status", None),
            len(file_items),
        )
        return {
            "vectorStore": {
                "id": vector_store.id,
                "name": getattr(vector_store, "name", None),
                "status": getattr(vector_store, "status", None),
                "fileCounts": _as_dict(getattr(vector_store, "file_counts", None)),
                "usageBytes": getattr(vector_store, "usage_bytes", None),
            },
            "files": [
                {"id": f.id, "status": getattr(f, "status", None)}
                for f in file_items
            ],
        }

    def describe_assistant_indexes(self, assistant_id: str) -> Dict[str, Any]:
        """
        Diagnostic dump: the assistant plus every vector store it references.

        A store that cannot be read is reported inline rather than failing the dump.
        """
        assistant = self.get_assistant(assistant_id)
        store_ids = vector_store_ids(assistant)

        details: List[Dict[str, Any]] = []
        for store_id in store_ids:
            try:
                details.append(self.get_index_details(store_id))
            except Exception as exc:
                details.append({"error": str(exc), "storeId": store_id})

        return {
            "assistant": {
                "id": assistant.id,
                "name": getattr(assistant, "name", None),
                "tools": tool_types(assistant),
                "vectorStoreCount": len(store_ids),
                "vectorStoreIds": store_ids,
            },
            "vectorStores": details,
        }
