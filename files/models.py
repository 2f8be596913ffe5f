# files/models.py
from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel


class FileRecord(BaseModel):
    """
    Metadata for one uploaded document.

    Keys mirror the on-disk JSON document (data/files.json), which is why
    they are camelCase.
    """
    filename: str          # storage key: "{timestamp}-{originalName}"
    originalName: str
    description: str
    uploadDate: str        # ISO timestamp


class FileSummary(FileRecord):
    size: int = 0


class FileListResponse(BaseModel):
    success: bool = True
    files: List[FileSummary]
    count: int


class RemoteUploadStatus(BaseModel):
    """
    Outcome of pushing an upload to the assistant service.
    """
    fileId: Optional[str] = None
    vectorStoreId: Optional[str] = None
    assistantUpdated: bool = False
    vectorStoreEnabled: bool = False
    transcoded: bool = False
    message: Optional[str] = None
    error: Optional[str] = None


class UploadResponse(BaseModel):
    success: bool = True
    message: str
    filename: str
    originalName: str
    description: str
    size: int
    openaiSupported: bool = True
    openai: Optional[RemoteUploadStatus] = None


class DeleteResponse(BaseModel):
    success: bool = True
    message: str
    filename: str
    assistantUpdated: bool = False
