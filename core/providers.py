from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request

from providers.factory import Providers, build_providers


def providers_from_request(request: Request) -> Providers:
    """
    Providers built in the lifespan hook and stored on app.state.
    """
    try:
        return request.app.state.providers
    except Exception as exc:
        raise RuntimeError("Providers not initialized on app.state (startup/lifespan not executed).") from exc


def init_providers(app: FastAPI, client: Optional[Any] = None) -> Providers:
    """
    Called once during app startup/lifespan. Attaches Providers onto app.state.

    If something (a test, for instance) already attached providers, they are kept.
    """
    existing = getattr(app.state, "providers", None)
    if existing is not None:
        return existing
    app.state.providers = build_providers(client=client)
    return app.state.providers
