from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from files.store import MetadataStore
from query.models import QueryResult

Payload = Dict[str, Any]
Block = Dict[str, Any]

FALLBACK_TEXT_LIMIT = 200

QUICK_ICONS = {
    "info": "💡",
    "success": "✅",
    "warning": "⚠️",
    "error": "❌",
}

_BULLET_DOT = re.compile(r"^• ", re.MULTILINE)
_BULLET_DASH = re.compile(r"^- ", re.MULTILINE)
_HEADER = re.compile(r"^#{1,3} (.*)$", re.MULTILINE)


@dataclass(frozen=True)
class FormatOptions:
    include_metadata: bool = True
    include_timestamp: bool = False
    max_sources_shown: int = 5


def normalize_text(text: str) -> str:
    """
    Rewrite markdown-ish answer text into Slack mrkdwn.

    Presentation only: citations are extracted from the raw answer before this runs.
    """
    text = _BULLET_DOT.sub(":small_blue_diamond: ", text or "")
    text = _BULLET_DASH.sub(":small_orange_diamond: ", text)
    text = _HEADER.sub(r"*\1*", text)
    return text


def _mrkdwn_section(text: str) -> Block:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _context(*texts: str) -> Block:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": t} for t in texts]}


def _header(text: str) -> Block:
    return {"type": "header", "text": {"type": "plain_text", "text": text, "emoji": True}}


class ResponseFormatter:
    """
    Turns QueryResults into Slack message payloads ({text, blocks, ...}).

    The store is only consulted for demo-mode answers, to list what the
    knowledge base holds.
    """

    def __init__(self, store: Optional[MetadataStore] = None, assistant_name: str = "Scout") -> None:
        self.store = store
        self.assistant_name = assistant_name

    # -----------------------------------------------------------------
    # Basic
    # -----------------------------------------------------------------

    def format_basic(self, result: QueryResult, question: str) -> Payload:
        shown = result.displayable()
        if shown is None:
            return {
                "text": (
                    f'🚨 Sorry, I encountered an error processing your query: "{question}"\n\n'
                    f"Error: {result.error}\n\n"
                    "Please try again or contact support if the issue persists."
                ),
                "blocks": None,
            }

        header = f"🤖 {self.assistant_name} Knowledge Assistant"
        if shown.mock:
            header += " (Demo Mode)"

        footer = ""
        if shown.sources:
            footer = f"\n\n📚 *Sources:* {', '.join(shown.sources)}"
        elif shown.available_files:
            footer = f"\n\n📁 *Available Knowledge Base:* {shown.available_files} documents"
        if shown.mock:
            footer += "\n\n💡 *Note:* This is a demo response. Add OpenAI API keys for live Assistant integration."

        blocks: List[Block] = [
            {"type": "header", "text": {"type": "plain_text", "text": header}},
            _mrkdwn_section(shown.response),
        ]
        if footer:
            blocks.append(_context(footer.strip()))

        return {"text": f"{header}\n\n{shown.response}{footer}", "blocks": blocks}

    # -----------------------------------------------------------------
    # Enhanced
    # -----------------------------------------------------------------

    def format_enhanced(
        self,
        result: QueryResult,
        question: str,
        options: Optional[FormatOptions] = None,
    ) -> Payload:
        opts = options or FormatOptions()
        shown = result.displayable()
        if shown is None:
            return self.format_error(result.error or "Unknown error", question)

        blocks: List[Block] = [_mrkdwn_section(normalize_text(shown.response))]

        if shown.mock:
            blocks.append(self._mock_sources_block(shown.available_files or 0, opts.max_sources_shown))
        else:
            blocks.append(self._sources_block(shown.sources, opts.max_sources_shown))

        if opts.include_metadata:
            blocks.append(self._status_footer(shown.mock, shown.available_files or 0, opts.include_timestamp))

        return {
            "text": self._fallback_text(shown.response),
            "blocks": blocks,
            "response_type": "in_channel",
            "replace_original": False,
        }

    def _sources_block(self, sources: List[str], max_shown: int) -> Block:
        if not sources:
            return _context("📚 *Sources:* Response based on general knowledge")

        lines = ["📚 *Sources referenced:*"]
        lines.extend(f":small_blue_diamond: {s}" for s in sources[:max_shown])
        if len(sources) > max_shown:
            lines.append(f"_+{len(sources) - max_shown} more sources_")
        return _mrkdwn_section("\n".join(lines))

    def _mock_sources_block(self, available_files: int, max_shown: int) -> Block:
        if available_files == 0:
            return _context("📁 *Knowledge Base:* No documents currently available")

        records = list(self.store.get_all().values())[:max_shown] if self.store is not None else []
        lines = [f"📁 *Available Knowledge Base* ({available_files} documents):"]
        lines.extend(f":small_blue_diamond: *{r.originalName}*: {r.description}" for r in records)
        if available_files > max_shown:
            lines.append(f"_+{available_files - max_shown} more documents_")
        return _mrkdwn_section("\n".join(lines))

    def _status_footer(self, is_mock: bool, available_files: int, include_timestamp: bool) -> Block:
        if is_mock:
            status = (
                "💡 *Demo Mode* - Add OpenAI API keys for live Assistant integration "
                f"with {available_files} documents"
            )
        else:
            status = "✅ *Live Response* - Powered by OpenAI Assistant with document search"

        elements = [status]
        if include_timestamp:
            elements.append(f"🕐 {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        return _context(*elements)

    @staticmethod
    def _fallback_text(response_text: str) -> str:
        if len(response_text) > FALLBACK_TEXT_LIMIT:
            return response_text[: FALLBACK_TEXT_LIMIT - 3] + "..."
        return response_text

    # -----------------------------------------------------------------
    # Fixed-shape payloads
    # -----------------------------------------------------------------

    def format_error(self, error: str, question: str) -> Payload:
        body = (
            f'*Your question:* "{question}"\n\n'
            f"❌ *Error:* {error}\n\n"
            "💡 *Try:*\n"
            ":small_blue_diamond: Rephrasing your question\n"
            ":small_blue_diamond: Asking something more specific\n"
            ":small_blue_diamond: Checking if documents are uploaded"
        )
        return {
            "text": f'🚨 Error processing query: "{question}"',
            "blocks": [_header(f"🚨 {self.assistant_name} Error"), _mrkdwn_section(body)],
            "response_type": "ephemeral",
        }

    def format_quick(self, message: str, style: str = "info") -> Payload:
        text = f"{QUICK_ICONS.get(style, QUICK_ICONS['info'])} {message}"
        return {"text": text, "blocks": [_mrkdwn_section(text)], "response_type": "ephemeral"}

    def format_help(self) -> Payload:
        name = self.assistant_name
        lower = name.lower()
        return {
            "text": f"🤖 {name} Help - How to use {name} effectively",
            "blocks": [
                _header(f"🤖 {name} Help"),
                _mrkdwn_section(
                    f"*How to ask {name} questions:*\n\n"
                    f":small_blue_diamond: `{lower} what's our vacation policy?`\n"
                    f":small_blue_diamond: `@{lower} how do I deploy to production?`\n"
                    f":small_blue_diamond: `{lower} tell me about security guidelines`\n"
                    f":small_blue_diamond: Direct message {name} for private questions"
                ),
                _mrkdwn_section(
                    "*Tips for better answers:*\n\n"
                    ":small_blue_diamond: Be specific in your questions\n"
                    ":small_blue_diamond: Use keywords from your documents\n"
                    ":small_blue_diamond: Ask follow-up questions for clarification\n"
                    ":small_blue_diamond: Check document uploads are current"
                ),
                _mrkdwn_section(
                    f"*{name} searches through:*\n\n"
                    ":small_blue_diamond: Company policies and procedures\n"
                    ":small_blue_diamond: Technical documentation\n"
                    ":small_blue_diamond: Team guidelines and best practices\n"
                    ":small_blue_diamond: Process documentation"
                ),
            ],
        }
