from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from assistant.gateway import AssistantGateway
from core.settings import Settings, get_settings
from files.store import MetadataStore
from providers.impl.storage_local_files import LocalFilesStorageProvider
from providers.storage import StorageProvider
from query.formatter import ResponseFormatter
from query.orchestrator import QueryOrchestrator

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Providers:
    """
    Central container for everything a request handler needs.

    Built once at startup and attached to app.state.providers.
    """
    settings: Settings
    storage: StorageProvider
    store: MetadataStore
    gateway: AssistantGateway
    orchestrator: QueryOrchestrator
    formatter: ResponseFormatter


def build_openai_client(settings: Settings) -> Optional[Any]:
    """
    OpenAI client, or None when no API key is configured (mock mode).
    """
    if not settings.openai.has_credentials:
        log.warning("OPENAI_API_KEY missing; assistant calls will use mock responses")
        return None

    from openai import OpenAI

    return OpenAI(api_key=settings.openai.api_key)


def build_providers(settings: Optional[Settings] = None, client: Any = None) -> Providers:
    """
    Wire the object graph. Pass `client` to inject a prebuilt (or fake)
    OpenAI client instead of constructing one from settings.
    """
    s = settings or get_settings()

    storage = LocalFilesStorageProvider(s.storage.local_dir)
    store = MetadataStore(s.storage.metadata_file)

    if client is None:
        client = build_openai_client(s)

    gateway = AssistantGateway(client=client, settings=s.openai, store=store)
    orchestrator = QueryOrchestrator(gateway=gateway, store=store)
    formatter = ResponseFormatter(store=store, assistant_name=s.openai.assistant_name)

    log.info(
        "Providers ready uploads=%s metadata=%s openai=%s assistant=%s",
        s.storage.local_dir,
        s.storage.metadata_file,
        "SET" if gateway.is_configured else "MISSING",
        "SET" if s.openai.has_assistant else "MISSING",
    )

    return Providers(
        settings=s,
        storage=storage,
        store=store,
        gateway=gateway,
        orchestrator=orchestrator,
        formatter=formatter,
    )
