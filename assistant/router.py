from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from core.deps import GatewayDep

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/vector-stores")
def debug_vector_stores(gateway: GatewayDep):
    """
    Dump the configured assistant and the vector stores attached to it.
    """
    if not gateway.has_assistant:
        raise HTTPException(status_code=400, detail="OpenAI not configured")

    try:
        dump = gateway.describe_assistant_indexes(gateway.assistant_id)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Debug failed: {exc}")

    return {
        "success": True,
        **dump,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
