# files/router.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from core.deps import ProvidersDep
from files.models import DeleteResponse, FileListResponse, UploadResponse
from files.service import delete_file, list_files, upload_file

router = APIRouter(tags=["files"])


# ---------------------------------------------------------------------
# POST /upload   - store a document and index it for the assistant
# ---------------------------------------------------------------------

@router.post("/upload", response_model=UploadResponse)
async def upload_route(
    providers: ProvidersDep,
    file: Optional[UploadFile] = File(None),
    description: Optional[str] = Form(None),
):
    """
    Multipart upload: `file` + `description`.

    The document is always kept locally once validated; the assistant-side
    status is reported under `openai`.
    """
    data: Optional[bytes] = None
    if file is not None:
        try:
            data = await file.read()
        except Exception as exc:
            raise HTTPException(status_code=400, detail=f"Failed to read uploaded file: {exc}")

    return await run_in_threadpool(
        upload_file,
        providers.storage,
        providers.store,
        providers.gateway,
        providers.settings.upload,
        file.filename if file is not None else None,
        data,
        description,
    )


# ---------------------------------------------------------------------
# GET /files   - newest first
# ---------------------------------------------------------------------

@router.get("/files", response_model=FileListResponse)
def list_files_route(providers: ProvidersDep):
    try:
        return list_files(providers.storage, providers.store)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Failed to get files: {exc}")


# ---------------------------------------------------------------------
# DELETE /files/{filename}
# ---------------------------------------------------------------------

@router.delete("/files/{filename}", response_model=DeleteResponse)
def delete_file_route(filename: str, providers: ProvidersDep):
    return delete_file(providers.storage, providers.store, providers.gateway, filename)
