"""
Slack Bolt app wiring for the knowledge assistant.

Runs over Socket Mode, so no public HTTP endpoint is needed for events.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler

from core.settings import SlackSettings
from query.formatter import ResponseFormatter
from query.orchestrator import QueryOrchestrator
from slack_bot.handlers import SlackQueryHandler

log = logging.getLogger(__name__)


class SlackNotConfiguredError(RuntimeError):
    pass


def log_incoming(body: Dict[str, Any], next: Callable[[], None]) -> None:
    event = body.get("event") or {}
    log.debug(
        "Slack event type=%s channel=%s user=%s",
        event.get("type") or body.get("type"),
        event.get("channel"),
        event.get("user"),
    )
    next()


def register_handlers(app: App, handler: SlackQueryHandler) -> None:
    app.use(log_incoming)
    app.event("app_mention")(handler.handle_app_mention)
    app.event("message")(handler.handle_message)
    app.error(handler.handle_error)
    log.info("Slack handlers registered")


class SlackBot:
    """
    Owns the Bolt app and its Socket Mode connection.

    start() blocks (standalone runner); connect()/close() are for running
    alongside the web server.
    """

    def __init__(
        self,
        settings: SlackSettings,
        orchestrator: QueryOrchestrator,
        formatter: ResponseFormatter,
    ) -> None:
        if not settings.enabled:
            raise SlackNotConfiguredError(
                "SLACK_BOT_TOKEN, SLACK_SIGNING_SECRET and SLACK_APP_TOKEN are required"
            )

        self.settings = settings
        self.app = App(token=settings.bot_token, signing_secret=settings.signing_secret)
        self.handler = SlackQueryHandler(orchestrator, formatter, bot_name=settings.bot_name)
        register_handlers(self.app, self.handler)
        self._socket: Optional[SocketModeHandler] = None

    def _socket_handler(self) -> SocketModeHandler:
        if self._socket is None:
            self._socket = SocketModeHandler(self.app, self.settings.app_token)
        return self._socket

    def connect(self) -> None:
        self._socket_handler().connect()
        log.info("Slack bot connected (socket mode) as '%s'", self.settings.bot_name)

    def start(self) -> None:
        log.info("Slack bot starting (socket mode) as '%s'", self.settings.bot_name)
        self._socket_handler().start()

    def close(self) -> None:
        if self._socket is None:
            return
        try:
            self._socket.close()
        except Exception as exc:
            log.warning("Error closing Slack socket: %s", exc)
        self._socket = None


def create_slack_bot(providers: Any) -> SlackBot:
    return SlackBot(
        providers.settings.slack,
        orchestrator=providers.orchestrator,
        formatter=providers.formatter,
    )
