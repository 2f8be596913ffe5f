"""
One-time setup: create the knowledge assistant and record its id in .env.

    python -m tools.create_assistant [--env-file .env]
"""
from __future__ import annotations

import argparse
import logging
import os
import re
import sys

from dotenv import load_dotenv

log = logging.getLogger("tools.create_assistant")

_ASSISTANT_LINE = re.compile(r"^OPENAI_ASSISTANT_ID=.*$", re.MULTILINE)


def write_assistant_id(env_path: str, assistant_id: str) -> None:
    """
    Replace (or append) the OPENAI_ASSISTANT_ID line in an env file.
    """
    content = ""
    if os.path.exists(env_path):
        with open(env_path, "r", encoding="utf-8") as f:
            content = f.read()

    line = f"OPENAI_ASSISTANT_ID={assistant_id}"
    if _ASSISTANT_LINE.search(content):
        content = _ASSISTANT_LINE.sub(line, content)
    else:
        if content and not content.endswith("\n"):
            content += "\n"
        content += line + "\n"

    with open(env_path, "w", encoding="utf-8") as f:
        f.write(content)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the OpenAI assistant used for document Q&A.")
    parser.add_argument("--env-file", default=".env")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    load_dotenv(args.env_file)

    from core.settings import get_settings
    from providers.factory import build_providers

    settings = get_settings()
    if not settings.openai.has_credentials:
        print("OPENAI_API_KEY not found in environment variables")
        return 1

    try:
        providers = build_providers(settings)
        assistant = providers.gateway.create_assistant()
    except Exception as exc:
        print(f"Failed to create assistant: {exc}")
        return 1

    print("Assistant created successfully!")
    print(f"  id:    {assistant.id}")
    print(f"  name:  {assistant.name}")
    print(f"  model: {settings.openai.model}")

    try:
        write_assistant_id(args.env_file, assistant.id)
        print(f"Updated {args.env_file} with OPENAI_ASSISTANT_ID")
    except OSError as exc:
        print(f"Could not update {args.env_file} ({exc}); add this line manually:")
        print(f"OPENAI_ASSISTANT_ID={assistant.id}")

    print("Next: restart the server so it picks up the new assistant id.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
