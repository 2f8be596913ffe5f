"""
Slack event handlers.

Answers app mentions, channel messages that name the bot, replies in threads
the bot already answered, and direct messages. Every path ends with the user
seeing something: an answer, help text, or an apology.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Optional

from query.formatter import FormatOptions, ResponseFormatter
from query.orchestrator import QueryOrchestrator

log = logging.getLogger(__name__)

THINKING_TEXT = "🤖 Searching through company documents..."
APOLOGY_TEXT = "🚨 Sorry, I encountered an error processing your request. Please try again later."

# Not new text from a person. file_share and thread_broadcast are still answered.
IGNORED_SUBTYPES = {
    "bot_message",
    "message_changed",
    "message_deleted",
    "message_replied",
    "channel_join",
    "channel_leave",
}

_MENTION = re.compile(r"<@[^>]+>")
_HELP = re.compile(r"^(help|usage|how to|what can you do)", re.IGNORECASE)

Say = Callable[..., Any]


def is_help_request(query: str) -> bool:
    q = (query or "").strip()
    return len(q) < 3 or bool(_HELP.match(q))


class SlackQueryHandler:
    def __init__(
        self,
        orchestrator: QueryOrchestrator,
        formatter: ResponseFormatter,
        bot_name: str = "scout",
        options: Optional[FormatOptions] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.formatter = formatter
        self.bot_name = bot_name.lower()
        self.options = options or FormatOptions(include_timestamp=False)
        escaped = re.escape(self.bot_name)
        self._name = re.compile(rf"\b{escaped}\b", re.IGNORECASE)
        self._name_strip = re.compile(rf"@?\b{escaped}\b\s*", re.IGNORECASE)

    def strip_name(self, text: str) -> str:
        return self._name_strip.sub("", text or "").strip()

    # -----------------------------------------------------------------
    # Bolt listeners
    # -----------------------------------------------------------------

    def handle_app_mention(self, event: Dict[str, Any], say: Say, client: Any) -> None:
        query = _MENTION.sub("", event.get("text") or "").strip()
        log.info("App mention user=%s channel=%s", event.get("user"), event.get("channel"))
        self.handle_query(event, say, client, query)

    def handle_message(self, event: Dict[str, Any], say: Say, client: Any, context: Any = None) -> None:
        if event.get("bot_id") or event.get("subtype") in IGNORED_SUBTYPES:
            return

        text = event.get("text") or ""
        bot_user_id = context.get("bot_user_id") if context else None
        if bot_user_id and f"<@{bot_user_id}>" in text:
            # app_mention delivers the same message
            return

        try:
            if event.get("channel_type") == "im":
                log.info("Direct message user=%s", event.get("user"))
                self.handle_query(event, say, client, self.strip_name(_MENTION.sub("", text)))
                return

            thread_ts = event.get("thread_ts")
            if thread_ts and self._bot_replied_in_thread(client, event.get("channel"), thread_ts):
                log.info("Thread reply in answered thread channel=%s thread=%s", event.get("channel"), thread_ts)
                self.handle_query(event, say, client, self.strip_name(text))
                return

            if self._name.search(text):
                log.info("Name mention user=%s channel=%s", event.get("user"), event.get("channel"))
                self.handle_query(event, say, client, self.strip_name(text))
        except Exception:
            log.exception("Error in message handler")
            self._apologize(say, event)

    def handle_error(self, error: Exception, body: Optional[Dict[str, Any]] = None) -> None:
        log.error("Unhandled Slack error: %s", error)

    # -----------------------------------------------------------------
    # Query flow
    # -----------------------------------------------------------------

    def handle_query(self, event: Dict[str, Any], say: Say, client: Any, query: str) -> None:
        """
        Help for empty/help-ish questions; otherwise post a placeholder in the
        thread and edit it with the answer (new message if the edit fails).
        """
        channel = event.get("channel")
        thread_ts = event.get("thread_ts") or event.get("ts")

        try:
            if is_help_request(query):
                payload = self.formatter.format_help()
                say(text=payload["text"], blocks=payload["blocks"], thread_ts=thread_ts)
                return

            thinking = say(text=THINKING_TEXT, thread_ts=thread_ts)

            result = self.orchestrator.answer(query, user=event.get("user"), channel=channel)
            payload = self.formatter.format_enhanced(result, query, self.options)

            try:
                client.chat_update(
                    channel=channel,
                    ts=thinking["ts"],
                    text=payload["text"],
                    blocks=payload["blocks"],
                )
            except Exception as exc:
                log.error("Failed to update message, sending new one: %s", exc)
                say(text=payload["text"], blocks=payload["blocks"], thread_ts=thread_ts)

        except Exception:
            log.exception("Error processing query channel=%s", channel)
            self._apologize(say, event)

    def _bot_replied_in_thread(self, client: Any, channel: Optional[str], thread_ts: str) -> bool:
        try:
            history = client.conversations_replies(channel=channel, ts=thread_ts, limit=50)
        except Exception as exc:
            log.error("Error checking thread history: %s", exc)
            return False

        for msg in history.get("messages") or []:
            if not msg.get("bot_id"):
                continue
            if self.bot_name in (msg.get("text") or "").lower() or msg.get("blocks"):
                return True
        return False

    def _apologize(self, say: Say, event: Dict[str, Any]) -> None:
        try:
            say(text=APOLOGY_TEXT, thread_ts=event.get("ts"))
        except Exception:
            log.exception("Error sending error message")
