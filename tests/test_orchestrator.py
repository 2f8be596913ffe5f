import random
from types import SimpleNamespace

from conftest import assistant_message, make_settings

from assistant.gateway import AssistantGateway
from query.orchestrator import QueryOrchestrator


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _orchestrator(client, settings, store, clock=None):
    clock = clock or FakeClock()
    gw = AssistantGateway(client=client, settings=settings.openai, store=store)
    return QueryOrchestrator(gw, store, sleep=clock.sleep, clock=clock, rng=random.Random(0))


def test_no_api_key_returns_mock_without_remote_calls(tmp_path, store):
    store.put("1-a.pdf", "a.pdf", "Alpha doc")
    settings = make_settings(tmp_path, api_key=None)
    orch = _orchestrator(None, settings, store)

    result = orch.answer("What is our PTO policy?")

    assert result.success is True
    assert result.mock is True
    assert result.available_files == 1
    assert "What is our PTO policy?" in result.response
    assert "• a.pdf: Alpha doc" in result.response


def test_empty_assistant_id_counts_as_unconfigured(tmp_path, store, fake_openai):
    settings = make_settings(tmp_path, assistant_id="")
    orch = _orchestrator(fake_openai, settings, store)

    result = orch.answer("anything here")

    assert result.mock is True
    assert fake_openai.calls == []


def test_completed_run_returns_text_and_sources(settings, store, fake_openai):
    fake_openai.run_statuses = ["queued", "in_progress", "completed"]
    citation = SimpleNamespace(type="file_citation", text="[1]", file_citation=SimpleNamespace(file_id="file_1"))
    fake_openai.thread_messages = [
        assistant_message("According to policy.pdf, you get 20 days.", [citation]),
        SimpleNamespace(role="user", content=[]),
    ]
    clock = FakeClock()
    orch = _orchestrator(fake_openai, settings, store, clock)

    result = orch.answer("How many PTO days?")

    assert result.success is True
    assert result.mock is False
    assert result.response == "According to policy.pdf, you get 20 days."
    assert result.sources == ["policy.pdf"]
    assert result.has_file_citations is True
    assert result.thread_id == "thread_1"
    assert result.run_status == "completed"
    assert clock.sleeps == [0.5, 0.5]

    msg = fake_openai.kwargs_for("messages.create")[0]
    assert msg == {"thread_id": "thread_1", "role": "user", "content": "How many PTO days?"}
    run = fake_openai.kwargs_for("runs.create")[0]
    assert run == {"thread_id": "thread_1", "assistant_id": "asst_123"}


def test_failed_run_carries_mock_fallback(settings, store, fake_openai):
    fake_openai.run_statuses = ["failed"]
    orch = _orchestrator(fake_openai, settings, store)

    result = orch.answer("What happened?")

    assert result.success is False
    assert "failed" in result.error
    assert result.run_status == "failed"
    assert result.mock_response is not None and result.mock_response.mock is True
    assert result.displayable() is result.mock_response


def test_poll_timeout_cancels_run_and_fails(settings, store, fake_openai):
    fake_openai.run_statuses = ["in_progress"]
    clock = FakeClock()
    orch = _orchestrator(fake_openai, settings, store, clock)

    result = orch.answer("Slow question")

    assert result.success is False
    assert result.run_status == "timeout"
    assert "did not finish" in result.error
    assert "runs.cancel" in fake_openai.names()
    assert clock.now >= settings.openai.poll_timeout_seconds


def test_remote_exception_becomes_failure(settings, store, fake_openai):
    fake_openai.fail_retrieve = True
    orch = _orchestrator(fake_openai, settings, store)

    result = orch.answer("Anything")

    assert result.success is False
    assert result.error == "assistant lookup failed"
    assert result.mock_response is not None


def test_completed_without_assistant_reply_is_failure(settings, store, fake_openai):
    fake_openai.thread_messages = [SimpleNamespace(role="user", content=[])]
    orch = _orchestrator(fake_openai, settings, store)

    result = orch.answer("Hello there")

    assert result.success is False
    assert result.run_status == "completed"


def test_empty_question_without_key_is_still_mock(tmp_path, store):
    orch = _orchestrator(None, make_settings(tmp_path, api_key=None, assistant_id=None), store)

    result = orch.answer("")

    assert result.mock is True
    assert result.available_files == 0
