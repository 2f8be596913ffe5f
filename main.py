# main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from core.providers import init_providers  # noqa: E402
from core.settings import get_settings  # noqa: E402

# Routers
from assistant.router import router as debug_router  # noqa: E402
from files.router import router as files_router  # noqa: E402
from health.router import router as health_router  # noqa: E402
from query.router import router as query_router  # noqa: E402

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.server.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("scout")


def _flag(value) -> str:
    return "SET" if value else "MISSING"


def _start_slack(providers):
    """
    Connect the Slack bot alongside the web server. A Slack failure is logged
    and the HTTP surface keeps running.
    """
    if not providers.settings.slack.enabled:
        log.info("Slack credentials not configured; Slack bot disabled")
        return None

    from slack_bot.app import create_slack_bot

    try:
        bot = create_slack_bot(providers)
        bot.connect()
        return bot
    except Exception as exc:
        log.error("Failed to start Slack bot: %s", exc)
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    providers = init_providers(app)
    s = providers.settings

    log.info(
        "Config: OPENAI_API_KEY=%s OPENAI_ASSISTANT_ID=%s SLACK_BOT_TOKEN=%s SLACK_SIGNING_SECRET=%s SLACK_APP_TOKEN=%s",
        _flag(s.openai.api_key),
        _flag(s.openai.assistant_id),
        _flag(s.slack.bot_token),
        _flag(s.slack.signing_secret),
        _flag(s.slack.app_token),
    )
    if not s.openai.has_credentials or not s.openai.has_assistant:
        log.warning("OpenAI not fully configured; queries will return demo responses")

    bot = _start_slack(providers)
    app.state.slack_bot = bot
    try:
        yield
    finally:
        if bot is not None:
            bot.close()


# ---------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------

app = FastAPI(title="Scout Knowledge Assistant", lifespan=lifespan)

origins = list(settings.server.cors_origins) or ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(files_router)
app.include_router(query_router)
app.include_router(debug_router)


# ---------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.server.host,
        port=settings.server.port,
    )
