from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Tuple

from assistant.gateway import AssistantGateway, tool_types, vector_store_ids
from files.store import MetadataStore
from query.citations import annotation_dicts, extract_sources
from query.mock import generate_mock_response
from query.models import QueryResult

log = logging.getLogger(__name__)

# Run statuses that mean "keep polling".
PENDING_STATUSES = {"queued", "in_progress"}


class QueryTimeoutError(RuntimeError):
    pass


class QueryOrchestrator:
    """
    Question in, QueryResult out.

    NOT_CONFIGURED -> mock answer
    SUBMITTED -> POLLING -> COMPLETED | FAILED | TIMEOUT

    The poll loop blocks the calling thread until the run leaves
    PENDING_STATUSES or poll_timeout_seconds elapses.
    """

    def __init__(
        self,
        gateway: AssistantGateway,
        store: MetadataStore,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Any = None,
    ) -> None:
        self.gateway = gateway
        self.store = store
        self._sleep = sleep
        self._clock = clock
        self._rng = rng

    def mock_answer(self, question: str) -> QueryResult:
        return generate_mock_response(question, self.store.get_all(), rng=self._rng)

    def _failure(self, question: str, error: str, **extra: Any) -> QueryResult:
        return QueryResult(
            success=False,
            error=error,
            mock_response=self.mock_answer(question),
            **extra,
        )

    def answer(self, question: str, user: Optional[str] = None, channel: Optional[str] = None) -> QueryResult:
        log.info("Processing query user=%s channel=%s chars=%s", user, channel, len(question or ""))

        if not self.gateway.is_configured:
            log.warning("OpenAI not configured, returning mock response")
            return self.mock_answer(question)

        if not self.gateway.has_assistant:
            log.warning("OpenAI assistant not configured, returning mock response")
            return self.mock_answer(question)

        client = self.gateway.client
        assistant_id = self.gateway.assistant_id
        thread_id: Optional[str] = None
        run_id: Optional[str] = None

        try:
            assistant = client.beta.assistants.retrieve(assistant_id)
            log.info(
                "Pre-query assistant check name=%s tools=%s vector_stores=%s",
                getattr(assistant, "name", None),
                ",".join(tool_types(assistant)),
                vector_store_ids(assistant),
            )

            thread = client.beta.threads.create()
            thread_id = thread.id
            client.beta.threads.messages.create(thread_id=thread_id, role="user", content=question)

            run = client.beta.threads.runs.create(thread_id=thread_id, assistant_id=assistant_id)
            run_id = run.id
            log.info("Run started thread=%s run=%s status=%s", thread_id, run_id, getattr(run, "status", None))

            run, polls = self._wait_for_run(thread_id, run_id)
            status = getattr(run, "status", None)
            log.info(
                "Run finished thread=%s run=%s status=%s polls=%s usage=%s last_error=%s",
                thread_id,
                run_id,
                status,
                polls,
                getattr(run, "usage", None),
                getattr(run, "last_error", None),
            )

            if status == "completed":
                result = self._read_answer(thread_id, run_id)
                if result is not None:
                    return result
                return self._failure(
                    question,
                    "Assistant run completed without a text reply",
                    thread_id=thread_id,
                    run_id=run_id,
                    run_status=status,
                )

            log.warning(
                "Assistant run failed or incomplete status=%s last_error=%s incomplete=%s",
                status,
                getattr(run, "last_error", None),
                getattr(run, "incomplete_details", None),
            )
            return self._failure(
                question,
                f"Assistant run failed with status: {status}",
                thread_id=thread_id,
                run_id=run_id,
                run_status=status,
            )

        except QueryTimeoutError as exc:
            log.error("Query timed out thread=%s run=%s: %s", thread_id, run_id, exc)
            return self._failure(question, str(exc), thread_id=thread_id, run_id=run_id, run_status="timeout")
        except Exception as exc:
            log.exception("Error processing query thread=%s run=%s", thread_id, run_id)
            return self._failure(question, str(exc), thread_id=thread_id, run_id=run_id)

    def _wait_for_run(self, thread_id: str, run_id: str) -> Tuple[Any, int]:
        settings = self.gateway.settings
        runs = self.gateway.client.beta.threads.runs
        deadline = self._clock() + settings.poll_timeout_seconds

        run = runs.retrieve(run_id=run_id, thread_id=thread_id)
        polls = 0
        while getattr(run, "status", None) in PENDING_STATUSES:
            if self._clock() >= deadline:
                self._cancel_run(thread_id, run_id)
                raise QueryTimeoutError(
                    f"Assistant run did not finish within {settings.poll_timeout_seconds:g} seconds"
                )
            polls += 1
            log.debug("Poll %s run=%s status=%s", polls, run_id, run.status)
            self._sleep(settings.poll_interval_seconds)
            run = runs.retrieve(run_id=run_id, thread_id=thread_id)
        return run, polls

    def _cancel_run(self, thread_id: str, run_id: str) -> None:
        try:
            self.gateway.client.beta.threads.runs.cancel(run_id=run_id, thread_id=thread_id)
        except Exception as exc:
            log.warning("Could not cancel run %s: %s", run_id, exc)

    def _read_answer(self, thread_id: str, run_id: str) -> Optional[QueryResult]:
        messages = self.gateway.client.beta.threads.messages.list(thread_id=thread_id)
        items = list(getattr(messages, "data", None) or [])

        reply = next((m for m in items if getattr(m, "role", None) == "assistant"), None)
        if reply is None or not getattr(reply, "content", None):
            log.warning("No assistant reply found in thread %s (messages=%s)", thread_id, len(items))
            return None

        text_obj = getattr(reply.content[0], "text", None)
        if text_obj is None:
            log.warning("Assistant reply in thread %s has no text content", thread_id)
            return None

        response_text = text_obj.value
        annotations = annotation_dicts(getattr(text_obj, "annotations", None))
        has_citations = any(a.get("type") == "file_citation" for a in annotations)
        if not has_citations:
            log.warning("No file citations found; vector store may not be attached")

        sources = extract_sources(response_text)
        log.info(
            "Assistant response chars=%s annotations=%s sources=%s",
            len(response_text),
            len(annotations),
            sources,
        )
        return QueryResult(
            success=True,
            response=response_text,
            sources=sources,
            thread_id=thread_id,
            run_id=run_id,
            run_status="completed",
            annotations=annotations,
            has_file_citations=has_citations,
        )
