# health/router.py
from fastapi import APIRouter

from assistant.gateway import tool_types, vector_store_ids
from core.deps import ProvidersDep

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    # Keep this super simple and always unauthenticated
    return {"status": "ok"}


@router.get("/health/assistant")
def health_assistant(providers: ProvidersDep):
    """
    Verifies:
      - an OpenAI key and assistant id are configured
      - the assistant can be retrieved and has vector stores attached
    """
    gateway = providers.gateway
    out = {
        "ok": True,
        "openaiConfigured": gateway.is_configured,
        "assistantConfigured": gateway.has_assistant,
        "slackEnabled": providers.settings.slack.enabled,
        "files": providers.store.count(),
    }
    if not gateway.has_assistant:
        out["mode"] = "demo"
        return out

    try:
        assistant = gateway.get_assistant(gateway.assistant_id)
    except Exception as e:
        out.update({"ok": False, "assistantReachable": False, "error": str(e)})
        return out

    out.update(
        {
            "mode": "live",
            "assistantReachable": True,
            "tools": tool_types(assistant),
            "vectorStoreIds": vector_store_ids(assistant),
        }
    )
    return out
