from __future__ import annotations

import re
from typing import Any, Dict, List

# Best-effort only: answers that phrase citations differently yield nothing.
# The captured name stops at a comma, a newline, or a period that ends a
# sentence, so "policy.pdf" survives but "policy.pdf." does not keep the dot.
_NAME = r"([^,\n]+?)(?=,|\n|\.(?:\s|$)|$)"

SOURCE_PATTERNS = [
    re.compile(r"\baccording to\s+" + _NAME, re.IGNORECASE),
    re.compile(r"\bfrom\s+" + _NAME, re.IGNORECASE),
    re.compile(r"\bbased on\s+" + _NAME, re.IGNORECASE),
]


def extract_sources(text: str) -> List[str]:
    """
    Pull human-readable source names out of answer text.

    Pattern families are applied in SOURCE_PATTERNS order (all matches of one
    family before the next), so the result follows pattern order rather than
    text position. Duplicates keep their first occurrence.
    """
    sources: List[str] = []
    for pattern in SOURCE_PATTERNS:
        for match in pattern.finditer(text or ""):
            source = match.group(1).strip()
            if source and source not in sources:
                sources.append(source)
    return sources


def annotation_dicts(annotations: Any) -> List[Dict[str, Any]]:
    """
    Flatten SDK text annotations into plain dicts for the JSON response.
    """
    out: List[Dict[str, Any]] = []
    for a in annotations or []:
        kind = getattr(a, "type", None)
        item: Dict[str, Any] = {"type": kind, "text": getattr(a, "text", None)}
        citation = getattr(a, "file_citation", None)
        if citation is not None:
            item["file_id"] = getattr(citation, "file_id", None)
        path = getattr(a, "file_path", None)
        if path is not None:
            item["file_id"] = getattr(path, "file_id", None)
        out.append(item)
    return out
