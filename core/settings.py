from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

# Values shipped in the sample .env; treated the same as "not set".
PLACEHOLDER_VALUES = {
    "your_openai_api_key_here",
    "your_assistant_id_here",
}


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else str(v)


def _env_float(name: str, default: float) -> float:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except Exception:
        return default


def _env_int(name: str, default: int) -> int:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _split_csv(value: str) -> List[str]:
    return [x.strip() for x in (value or "").split(",") if x.strip()]


def _secret(name: str) -> Optional[str]:
    """
    Read a credential-like env var.

    Whitespace is stripped (tokens pasted into .env often carry a trailing
    newline) and placeholder values count as missing.
    """
    raw = _env(name, "").strip()
    if not raw or raw in PLACEHOLDER_VALUES:
        return None
    return raw


def _normalize_extensions(values: List[str]) -> List[str]:
    out: List[str] = []
    for v in values:
        v = v.strip().lower()
        if not v:
            continue
        if not v.startswith("."):
            v = "." + v
        if v not in out:
            out.append(v)
    return out


# ---------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class OpenAISettings:
    api_key: Optional[str]
    assistant_id: Optional[str]
    model: str = "gpt-4o"
    assistant_name: str = "Scout"
    org_name: str = "Arrow"
    temperature: float = 0.1
    index_name: str = "Scout Knowledge Base"
    poll_interval_seconds: float = 1.0
    poll_timeout_seconds: float = 120.0

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    @property
    def has_assistant(self) -> bool:
        return bool(self.assistant_id)


@dataclass(frozen=True)
class SlackSettings:
    bot_token: Optional[str]
    signing_secret: Optional[str]
    app_token: Optional[str]
    bot_name: str = "scout"

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.signing_secret and self.app_token)


@dataclass(frozen=True)
class StorageSettings:
    """
    Local persistence layout.

    local_dir      -> uploaded blobs, named "{timestamp}-{originalName}"
    metadata_file  -> single JSON document mapping filename -> FileRecord
    """
    local_dir: str = "./uploads"
    metadata_file: str = "./data/files.json"


@dataclass(frozen=True)
class UploadSettings:
    max_bytes: int = 10 * 1024 * 1024
    allowed_extensions: tuple = (".pdf", ".csv", ".txt", ".docx")
    # What the remote file_search tool indexes natively. CSV is transcoded.
    remote_extensions: tuple = (".pdf", ".doc", ".docx", ".txt", ".md", ".html", ".json")


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: tuple = ()
    log_level: str = "INFO"


@dataclass(frozen=True)
class Settings:
    openai: OpenAISettings
    slack: SlackSettings
    storage: StorageSettings
    upload: UploadSettings
    server: ServerSettings


# ---------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------

def _load_openai_settings() -> OpenAISettings:
    model = (_env("OPENAI_MODEL", "") or "gpt-4o").strip()
    assistant_name = (_env("ASSISTANT_NAME", "") or "Scout").strip()
    org_name = (_env("ORG_NAME", "") or "Arrow").strip()
    index_name = (_env("OPENAI_VECTOR_STORE_NAME", "") or f"{assistant_name} Knowledge Base").strip()

    poll_interval = _env_float("QUERY_POLL_INTERVAL_SECONDS", 1.0)
    poll_timeout = _env_float("QUERY_POLL_TIMEOUT_SECONDS", 120.0)

    poll_interval = max(0.1, float(poll_interval))
    poll_timeout = max(poll_interval, float(poll_timeout))

    return OpenAISettings(
        api_key=_secret("OPENAI_API_KEY"),
        assistant_id=_secret("OPENAI_ASSISTANT_ID"),
        model=model,
        assistant_name=assistant_name,
        org_name=org_name,
        index_name=index_name,
        poll_interval_seconds=poll_interval,
        poll_timeout_seconds=poll_timeout,
    )


def _load_slack_settings() -> SlackSettings:
    bot_name = (_env("SLACK_BOT_NAME", "") or "scout").strip().lower()
    return SlackSettings(
        bot_token=_secret("SLACK_BOT_TOKEN"),
        signing_secret=_secret("SLACK_SIGNING_SECRET"),
        app_token=_secret("SLACK_APP_TOKEN"),
        bot_name=bot_name,
    )


def _load_storage_settings() -> StorageSettings:
    local_dir = (_env("STORAGE_LOCAL_DIR", "") or _env("UPLOAD_DIR", "") or "./uploads").strip()
    metadata_file = (_env("METADATA_FILE", "") or "./data/files.json").strip()
    return StorageSettings(local_dir=local_dir, metadata_file=metadata_file)


def _load_upload_settings() -> UploadSettings:
    max_bytes = _env_int("UPLOAD_MAX_BYTES", 10 * 1024 * 1024)
    if max_bytes <= 0:
        max_bytes = 10 * 1024 * 1024

    raw_allowed = (_env("UPLOAD_ALLOWED_EXTENSIONS", "") or "").strip()
    allowed = _normalize_extensions(_split_csv(raw_allowed)) if raw_allowed else []

    if allowed:
        return UploadSettings(max_bytes=max_bytes, allowed_extensions=tuple(allowed))
    return UploadSettings(max_bytes=max_bytes)


def _load_server_settings() -> ServerSettings:
    host = (_env("HOST", "") or "0.0.0.0").strip()
    port = _env_int("PORT", 3000)
    if port <= 0:
        port = 3000
    origins = tuple(x.rstrip("/") for x in _split_csv(_env("CORS_ORIGINS", "")))
    log_level = (_env("LOG_LEVEL", "") or "INFO").strip().upper()
    return ServerSettings(host=host, port=port, cors_origins=origins, log_level=log_level)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        openai=_load_openai_settings(),
        slack=_load_slack_settings(),
        storage=_load_storage_settings(),
        upload=_load_upload_settings(),
        server=_load_server_settings(),
    )
