# files/service.py
from __future__ import annotations

import logging
import os
import time
from typing import Optional

from fastapi import HTTPException

from assistant.gateway import AssistantGateway
from core.settings import UploadSettings
from files.models import (
    DeleteResponse,
    FileListResponse,
    FileSummary,
    RemoteUploadStatus,
    UploadResponse,
)
from files.store import MetadataStore
from providers.storage import StorageProvider

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _safe_original_name(name: str) -> str:
    base = os.path.basename((name or "").replace("\\", "/")).strip()
    return base or "upload"


def _extension(name: str) -> str:
    return os.path.splitext(name or "")[1].lower()


def new_storage_key(original_name: str, storage: StorageProvider, store: MetadataStore) -> str:
    """
    "{epoch_millis}-{originalName}", bumped until it collides with nothing.
    """
    ts = int(time.time() * 1000)
    while True:
        key = f"{ts}-{original_name}"
        if not storage.exists(key) and store.get(key) is None:
            return key
        ts += 1


def validate_upload(
    original_name: Optional[str],
    data: Optional[bytes],
    description: Optional[str],
    settings: UploadSettings,
) -> None:
    """
    Reject bad input before anything touches disk.
    """
    if not original_name or data is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    if not (description or "").strip():
        raise HTTPException(status_code=400, detail="Description is required")

    ext = _extension(original_name)
    if ext not in settings.allowed_extensions:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Only {', '.join(settings.allowed_extensions)} are allowed.",
        )

    if len(data) > settings.max_bytes:
        mb = settings.max_bytes / (1024 * 1024)
        raise HTTPException(status_code=400, detail=f"File too large. Maximum size is {mb:g}MB.")


# ---------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------

def _push_to_assistant(
    gateway: AssistantGateway,
    settings: UploadSettings,
    path: str,
    original_name: str,
    description: str,
) -> tuple[Optional[RemoteUploadStatus], bool]:
    """
    Upload the stored blob to the assistant service and re-point the assistant.

    Returns (status, supported). Remote failures are reported in the status;
    the local upload stays in place either way.
    """
    if not gateway.is_configured:
        log.info("OpenAI API key not configured, skipping OpenAI upload")
        return None, True

    ext = _extension(original_name)
    if ext != ".csv" and ext not in settings.remote_extensions:
        log.warning("File type %s not supported by file_search; kept locally only", ext)
        return None, False

    try:
        uploaded = gateway.upload_document(path, original_name, description)
    except Exception as exc:
        log.error("OpenAI integration failed for %s: %s", original_name, exc)
        return RemoteUploadStatus(error=str(exc)), True

    status = RemoteUploadStatus(fileId=uploaded.id, transcoded=(ext == ".csv"))

    if not gateway.has_assistant:
        status.message = "File uploaded to OpenAI, but no Assistant configured"
        return status, True

    assistant_id = gateway.assistant_id
    try:
        index = gateway.create_index_with_files([uploaded.id])
        gateway.attach_index_to_assistant(assistant_id, index.id)
        status.vectorStoreId = index.id
        status.vectorStoreEnabled = True
    except Exception as exc:
        log.error("Vector store setup failed for %s: %s", original_name, exc)
        status.error = f"Failed to create vector store: {exc}"

    # Instructions are refreshed even when the vector store step failed.
    try:
        gateway.refresh_assistant_instructions(assistant_id)
        status.assistantUpdated = True
    except Exception as exc:
        log.error("Failed to update assistant instructions: %s", exc)
        status.error = status.error or f"Failed to update instructions: {exc}"

    if ext == ".csv" and status.error is None:
        status.message = "CSV file converted to text format and successfully uploaded for AI search"

    return status, True


def upload_file(
    storage: StorageProvider,
    store: MetadataStore,
    gateway: AssistantGateway,
    settings: UploadSettings,
    original_name: Optional[str],
    data: Optional[bytes],
    description: Optional[str],
) -> UploadResponse:
    validate_upload(original_name, data, description, settings)

    original = _safe_original_name(original_name or "")
    description = (description or "").strip()
    key = new_storage_key(original, storage, store)

    try:
        storage.put_object(key, data or b"")
    except OSError as exc:
        log.error("Failed to store upload %s: %s", key, exc)
        raise HTTPException(status_code=500, detail=f"Upload failed: {exc}")

    if not store.put(key, original, description):
        log.warning("Failed to save metadata for file: %s", key)
        # Keep blob and metadata in step: no record, no blob.
        try:
            storage.delete_object(key)
        except OSError:
            log.warning("Could not remove orphaned blob %s", key)
        raise HTTPException(status_code=500, detail="Failed to save file metadata")

    remote, supported = _push_to_assistant(
        gateway,
        settings,
        storage.local_path(key),
        original,
        description,
    )

    if not supported:
        message = (
            f"File uploaded successfully but {_extension(original)} files cannot be searched by "
            f"the AI assistant. Supported formats: {', '.join(settings.remote_extensions)}, .csv"
        )
    else:
        message = f'File "{original}" uploaded successfully'

    return UploadResponse(
        message=message,
        filename=key,
        originalName=original,
        description=description,
        size=len(data or b""),
        openaiSupported=supported,
        openai=remote,
    )


# ---------------------------------------------------------------------
# List / delete
# ---------------------------------------------------------------------

def _blob_size(storage: StorageProvider, key: str) -> int:
    try:
        return int(storage.head_object(key).get("size", 0))
    except (OSError, ValueError):
        return 0


def list_files(storage: StorageProvider, store: MetadataStore) -> FileListResponse:
    summaries = [
        FileSummary(**rec.model_dump(), size=_blob_size(storage, key))
        for key, rec in store.get_all().items()
    ]
    summaries.sort(key=lambda f: f.uploadDate, reverse=True)
    return FileListResponse(files=summaries, count=len(summaries))


def delete_file(
    storage: StorageProvider,
    store: MetadataStore,
    gateway: AssistantGateway,
    filename: str,
) -> DeleteResponse:
    record = store.get(filename)
    if record is None:
        raise HTTPException(status_code=404, detail="File not found")

    # Metadata first: a failed write leaves both record and blob in place.
    if not store.delete(filename):
        raise HTTPException(status_code=500, detail="Failed to delete file metadata")

    try:
        if storage.delete_object(filename):
            log.info("Deleted file blob: %s", filename)
    except (OSError, ValueError) as exc:
        log.error("Failed to delete blob %s: %s", filename, exc)
        if not store.put(filename, record.originalName, record.description, upload_date=record.uploadDate):
            log.error("Could not restore metadata for %s after failed blob delete", filename)
        raise HTTPException(status_code=500, detail=f"Failed to delete file: {exc}")

    assistant_updated = False
    if gateway.has_assistant:
        try:
            gateway.refresh_assistant_instructions(gateway.assistant_id)
            assistant_updated = True
            log.info("Assistant instructions updated after deleting %s", filename)
        except Exception as exc:
            log.error("Failed to update assistant instructions: %s", exc)

    return DeleteResponse(
        message=f'File "{record.originalName}" deleted successfully',
        filename=filename,
        assistantUpdated=assistant_updated,
    )
