from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from assistant.gateway import AssistantGateway
from core.providers import providers_from_request
from providers.factory import Providers


# -----------------------------
# Canonical provider access
# -----------------------------

def get_providers(request: Request) -> Providers:
    """
    Source of truth: request.app.state.providers
    """
    return providers_from_request(request)


ProvidersDep = Annotated[Providers, Depends(get_providers)]


# -----------------------------
# Canonical service deps
# -----------------------------

def get_gateway(request: Request) -> AssistantGateway:
    return get_providers(request).gateway


GatewayDep = Annotated[AssistantGateway, Depends(get_gateway)]
