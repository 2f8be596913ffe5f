import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from core.settings import (  # noqa: E402
    OpenAISettings,
    ServerSettings,
    Settings,
    SlackSettings,
    StorageSettings,
    UploadSettings,
)
from files.store import MetadataStore  # noqa: E402


# ---------------------------------------------------------------------
# Fake OpenAI client
# ---------------------------------------------------------------------

class _Recorder:
    def __init__(self, owner: "FakeOpenAI"):
        self.owner = owner

    def _record(self, _call: str, **kwargs):
        self.owner.calls.append((_call, kwargs))


class FakeAssistants(_Recorder):
    def create(self, **kwargs):
        self._record("assistants.create", **kwargs)
        return SimpleNamespace(id="asst_new", name=kwargs.get("name"), tools=[SimpleNamespace(type="file_search")])

    def retrieve(self, assistant_id):
        self._record("assistants.retrieve", assistant_id=assistant_id)
        if self.owner.fail_retrieve:
            raise RuntimeError("assistant lookup failed")
        return self.owner.assistant

    def update(self, assistant_id, **kwargs):
        self._record("assistants.update", assistant_id=assistant_id, **kwargs)
        resources = kwargs.get("tool_resources")
        if resources:
            ids = resources["file_search"]["vector_store_ids"]
            self.owner.assistant.tool_resources = SimpleNamespace(
                file_search=SimpleNamespace(vector_store_ids=list(ids))
            )
        if "instructions" in kwargs:
            self.owner.assistant.instructions = kwargs["instructions"]
        return self.owner.assistant


class FakeMessages(_Recorder):
    def create(self, **kwargs):
        self._record("messages.create", **kwargs)
        return SimpleNamespace(id="msg_user")

    def list(self, **kwargs):
        self._record("messages.list", **kwargs)
        return SimpleNamespace(data=list(self.owner.thread_messages))


class FakeRuns(_Recorder):
    def create(self, **kwargs):
        self._record("runs.create", **kwargs)
        return SimpleNamespace(id="run_1", status="queued")

    def retrieve(self, **kwargs):
        self._record("runs.retrieve", **kwargs)
        statuses = self.owner.run_statuses
        status = statuses.pop(0) if len(statuses) > 1 else statuses[0]
        return SimpleNamespace(id="run_1", status=status, usage=None, last_error=None, incomplete_details=None)

    def cancel(self, **kwargs):
        self._record("runs.cancel", **kwargs)
        return SimpleNamespace(id="run_1", status="cancelling")


class FakeThreads(_Recorder):
    def __init__(self, owner):
        super().__init__(owner)
        self.messages = FakeMessages(owner)
        self.runs = FakeRuns(owner)

    def create(self, **kwargs):
        self._record("threads.create", **kwargs)
        return SimpleNamespace(id="thread_1")


class FakeFiles(_Recorder):
    def create(self, file, purpose):
        content = file.read()
        self.owner.uploaded.append({"name": getattr(file, "name", ""), "content": content, "purpose": purpose})
        self._record("files.create", purpose=purpose)
        return SimpleNamespace(id=f"file_{len(self.owner.uploaded)}")


class FakeVectorStoreFiles(_Recorder):
    def create(self, vector_store_id, file_id):
        self._record("vector_stores.files.create", vector_store_id=vector_store_id, file_id=file_id)
        if file_id in self.owner.failing_file_ids:
            raise RuntimeError(f"cannot attach {file_id}")
        return SimpleNamespace(id=file_id, status="in_progress")

    def list(self, vector_store_id):
        self._record("vector_stores.files.list", vector_store_id=vector_store_id)
        return SimpleNamespace(data=[SimpleNamespace(id="file_1", status="completed")])


class FakeVectorStores(_Recorder):
    def __init__(self, owner):
        super().__init__(owner)
        self.files = FakeVectorStoreFiles(owner)
        self.created = 0

    def create(self, name):
        self.created += 1
        self._record("vector_stores.create", name=name)
        return SimpleNamespace(id=f"vs_{self.created}", name=name, created_at=1700000000)

    def retrieve(self, vector_store_id):
        self._record("vector_stores.retrieve", vector_store_id=vector_store_id)
        return SimpleNamespace(
            id=vector_store_id,
            name="Scout Knowledge Base",
            status="completed",
            file_counts={"completed": 1},
            usage_bytes=42,
        )


class FakeOpenAI:
    """
    Just enough of the OpenAI SDK surface for the gateway and orchestrator.
    Every call is appended to `calls` as (name, kwargs).
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.uploaded: List[Dict[str, Any]] = []
        self.failing_file_ids: set = set()
        self.fail_retrieve = False
        self.run_statuses: List[str] = ["completed"]
        self.thread_messages: List[Any] = []
        self.assistant = SimpleNamespace(
            id="asst_123",
            name="Scout",
            tools=[SimpleNamespace(type="file_search")],
            tool_resources=SimpleNamespace(file_search=SimpleNamespace(vector_store_ids=["vs_old"])),
            instructions="",
        )
        self.beta = SimpleNamespace(assistants=FakeAssistants(self), threads=FakeThreads(self))
        self.files = FakeFiles(self)
        self.vector_stores = FakeVectorStores(self)

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def kwargs_for(self, name: str) -> List[Dict[str, Any]]:
        return [kw for n, kw in self.calls if n == name]


def assistant_message(text: str, annotations: Optional[list] = None) -> Any:
    return SimpleNamespace(
        role="assistant",
        content=[SimpleNamespace(type="text", text=SimpleNamespace(value=text, annotations=annotations or []))],
    )


# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------

def make_settings(
    tmp_path,
    api_key: Optional[str] = "sk-test",
    assistant_id: Optional[str] = "asst_123",
    **upload_kwargs,
) -> Settings:
    return Settings(
        openai=OpenAISettings(
            api_key=api_key,
            assistant_id=assistant_id,
            poll_interval_seconds=0.5,
            poll_timeout_seconds=5.0,
        ),
        slack=SlackSettings(bot_token=None, signing_secret=None, app_token=None),
        storage=StorageSettings(
            local_dir=str(tmp_path / "uploads"),
            metadata_file=str(tmp_path / "data" / "files.json"),
        ),
        upload=UploadSettings(**upload_kwargs),
        server=ServerSettings(),
    )


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def store(tmp_path):
    return MetadataStore(str(tmp_path / "data" / "files.json"))


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)
