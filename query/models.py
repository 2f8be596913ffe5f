from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class QueryResult(BaseModel):
    """
    Outcome of one question. Never persisted.

    success=False always carries `error` and, when produced by the
    orchestrator, a `mock_response` so there is something to show the user.
    """
    success: bool
    response: str = ""
    sources: List[str] = []
    mock: bool = False
    error: Optional[str] = None

    thread_id: Optional[str] = None
    run_id: Optional[str] = None
    run_status: Optional[str] = None
    annotations: List[Dict[str, Any]] = []
    has_file_citations: bool = False

    available_files: Optional[int] = None
    mock_response: Optional["QueryResult"] = None

    def displayable(self) -> Optional["QueryResult"]:
        """
        The result whose text should be shown: self on success, else the
        embedded mock fallback (None if there is neither).
        """
        if self.success:
            return self
        return self.mock_response


class QueryRequest(BaseModel):
    query: Optional[str] = None
    user: Optional[str] = "test_user"
    channel: Optional[str] = "test_channel"


QueryResult.model_rebuild()
