from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from core.deps import ProvidersDep
from query.formatter import FormatOptions
from query.models import QueryRequest

log = logging.getLogger(__name__)

router = APIRouter(tags=["query"])


@router.post("/query")
def query_route(req: QueryRequest, providers: ProvidersDep):
    """
    Development endpoint: run a question through the same path the Slack bot
    uses and return the raw result plus both Slack payload variants.
    """
    question = (req.query or "").strip()
    if not question:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Query is required",
                "example": '{"query": "What is our vacation policy?"}',
            },
        )

    log.info("API query received chars=%s", len(question))
    try:
        result = providers.orchestrator.answer(question, user=req.user, channel=req.channel)
        formatter = providers.formatter
        basic = formatter.format_basic(result, question)
        enhanced = formatter.format_enhanced(
            result,
            question,
            FormatOptions(include_timestamp=True),
        )
    except Exception as exc:
        log.exception("Error processing API query")
        raise HTTPException(status_code=500, detail=f"Query processing failed: {exc}")

    return {
        "query": question,
        "raw": result.model_dump(),
        "slack": basic,
        "slackEnhanced": enhanced,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
