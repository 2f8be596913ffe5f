from typing import Any, Dict, List

import pytest

from query.formatter import ResponseFormatter
from query.models import QueryResult
from slack_bot.handlers import APOLOGY_TEXT, THINKING_TEXT, SlackQueryHandler, is_help_request


class FakeOrchestrator:
    def __init__(self, result=None, error=None):
        self.result = result or QueryResult(success=True, response="Twenty days.", sources=["policy.pdf"])
        self.error = error
        self.questions: List[str] = []

    def answer(self, question, user=None, channel=None):
        self.questions.append(question)
        if self.error:
            raise self.error
        return self.result


class FakeSay:
    def __init__(self):
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        return {"ok": True, "ts": f"ts-{len(self.calls)}"}


class FakeSlackClient:
    def __init__(self, thread_messages=None, fail_update=False):
        self.thread_messages = thread_messages or []
        self.fail_update = fail_update
        self.updates: List[Dict[str, Any]] = []
        self.replies_requests: List[Dict[str, Any]] = []

    def chat_update(self, **kwargs):
        if self.fail_update:
            raise RuntimeError("message_not_found")
        self.updates.append(kwargs)

    def conversations_replies(self, **kwargs):
        self.replies_requests.append(kwargs)
        return {"messages": self.thread_messages}


def _handler(orchestrator=None):
    return SlackQueryHandler(orchestrator or FakeOrchestrator(), ResponseFormatter(), bot_name="scout")


def test_help_detection():
    assert is_help_request("")
    assert is_help_request("hi")
    assert is_help_request("Help me")
    assert is_help_request("what can you do?")
    assert not is_help_request("what is our PTO policy?")


def test_mention_posts_placeholder_then_edits_it():
    orch = FakeOrchestrator()
    say, client = FakeSay(), FakeSlackClient()
    event = {"text": "<@U123> what is our PTO policy?", "channel": "C1", "ts": "111.1", "user": "U9"}

    _handler(orch).handle_app_mention(event, say, client)

    assert orch.questions == ["what is our PTO policy?"]
    assert say.calls[0] == {"text": THINKING_TEXT, "thread_ts": "111.1"}
    update = client.updates[0]
    assert update["channel"] == "C1"
    assert update["ts"] == "ts-1"
    assert update["text"] == "Twenty days."


def test_failed_edit_falls_back_to_new_message():
    say, client = FakeSay(), FakeSlackClient(fail_update=True)
    event = {"text": "<@U123> what is our PTO policy?", "channel": "C1", "ts": "111.1", "thread_ts": "100.0"}

    _handler().handle_app_mention(event, say, client)

    assert len(say.calls) == 2
    assert say.calls[1]["thread_ts"] == "100.0"
    assert say.calls[1]["text"] == "Twenty days."


def test_empty_mention_gets_help_without_query():
    orch = FakeOrchestrator()
    say = FakeSay()

    _handler(orch).handle_app_mention({"text": "<@U123>", "channel": "C1", "ts": "1"}, say, FakeSlackClient())

    assert orch.questions == []
    assert "Help" in say.calls[0]["text"]
    assert say.calls[0]["blocks"]


def test_orchestrator_error_gets_apology():
    say = FakeSay()
    handler = _handler(FakeOrchestrator(error=RuntimeError("boom")))

    handler.handle_app_mention({"text": "<@U1> tell me things", "channel": "C1", "ts": "5.5"}, say, FakeSlackClient())

    assert say.calls[-1] == {"text": APOLOGY_TEXT, "thread_ts": "5.5"}


def test_bot_and_subtype_messages_are_ignored():
    orch = FakeOrchestrator()
    handler = _handler(orch)
    say = FakeSay()

    handler.handle_message({"bot_id": "B1", "text": "scout hello there"}, say, FakeSlackClient())
    handler.handle_message({"subtype": "message_changed", "text": "scout hello there"}, say, FakeSlackClient())

    assert say.calls == []
    assert orch.questions == []


def test_message_with_bot_mention_is_left_to_app_mention():
    orch = FakeOrchestrator()
    say = FakeSay()

    _handler(orch).handle_message(
        {"text": "<@UBOT> scout what is PTO?", "channel": "C1", "ts": "1"},
        say,
        FakeSlackClient(),
        {"bot_user_id": "UBOT"},
    )

    assert say.calls == []


def test_name_mention_in_channel_is_answered():
    orch = FakeOrchestrator()

    _handler(orch).handle_message(
        {"text": "Scout what is our PTO policy?", "channel": "C1", "ts": "1"},
        FakeSay(),
        FakeSlackClient(),
    )

    assert orch.questions == ["what is our PTO policy?"]


def test_plain_channel_message_is_ignored():
    orch = FakeOrchestrator()
    say = FakeSay()

    _handler(orch).handle_message({"text": "lunch anyone?", "channel": "C1", "ts": "1"}, say, FakeSlackClient())

    assert say.calls == []
    assert orch.questions == []


def test_direct_message_is_answered():
    orch = FakeOrchestrator()

    _handler(orch).handle_message(
        {"text": "where is the expense policy?", "channel": "D1", "channel_type": "im", "ts": "1"},
        FakeSay(),
        FakeSlackClient(),
    )

    assert orch.questions == ["where is the expense policy?"]


def test_thread_reply_answered_when_bot_already_replied():
    orch = FakeOrchestrator()
    client = FakeSlackClient(thread_messages=[{"user": "U1", "text": "scout?"}, {"bot_id": "B1", "text": "x", "blocks": [{}]}])

    _handler(orch).handle_message(
        {"text": "and for contractors?", "channel": "C1", "ts": "2", "thread_ts": "1"},
        FakeSay(),
        client,
    )

    assert orch.questions == ["and for contractors?"]
    assert client.replies_requests[0] == {"channel": "C1", "ts": "1", "limit": 50}


def test_thread_reply_ignored_when_bot_absent():
    orch = FakeOrchestrator()
    client = FakeSlackClient(thread_messages=[{"user": "U1", "text": "hello"}])

    _handler(orch).handle_message(
        {"text": "and for contractors?", "channel": "C1", "ts": "2", "thread_ts": "1"},
        FakeSay(),
        client,
    )

    assert orch.questions == []


def test_bot_requires_all_slack_tokens():
    from core.settings import SlackSettings
    from slack_bot.app import SlackBot, SlackNotConfiguredError

    with pytest.raises(SlackNotConfiguredError):
        SlackBot(SlackSettings(bot_token="xoxb-1", signing_secret="s", app_token=None), FakeOrchestrator(), ResponseFormatter())


def test_file_share_and_broadcast_messages_are_answered():
    orch = FakeOrchestrator()
    handler = _handler(orch)

    handler.handle_message(
        {"subtype": "file_share", "text": "scout summarize this report", "channel": "C1", "ts": "1"},
        FakeSay(),
        FakeSlackClient(),
    )
    handler.handle_message(
        {"subtype": "thread_broadcast", "text": "scout what changed?", "channel": "C1", "ts": "2"},
        FakeSay(),
        FakeSlackClient(),
    )

    assert orch.questions == ["summarize this report", "what changed?"]


def test_bot_message_subtype_is_ignored():
    orch = FakeOrchestrator()

    _handler(orch).handle_message(
        {"subtype": "bot_message", "text": "scout reporting in", "channel": "C1", "ts": "1"},
        FakeSay(),
        FakeSlackClient(),
    )

    assert orch.questions == []
