from __future__ import annotations

from typing import Iterable

from files.models import FileRecord


def base_instructions(assistant_name: str, org_name: str) -> str:
    return (
        f"You are {assistant_name}, an internal knowledge assistant for {org_name}. "
        "You help employees access company information by searching through uploaded "
        "documents and providing accurate, cited answers. Always cite your sources when "
        "referencing specific documents."
    )


def empty_instructions(assistant_name: str, org_name: str) -> str:
    return (
        f"You are {assistant_name}, an internal knowledge assistant for {org_name}. "
        "You help employees access company information. Currently no documents are available."
    )


def file_lines(records: Iterable[FileRecord]) -> list[str]:
    return [f"- {r.originalName}: {r.description}" for r in records]


def build_instructions(records: Iterable[FileRecord], assistant_name: str, org_name: str) -> str:
    """
    Instruction text for the assistant, one "- name: description" line per file
    in the order given.
    """
    lines = file_lines(records)
    if not lines:
        return empty_instructions(assistant_name, org_name)

    file_block = "\n".join(lines)
    return (
        f"You are {assistant_name}, an internal knowledge assistant for {org_name}. "
        "You help employees access company information by searching through uploaded "
        "documents and providing accurate, cited answers.\n"
        "\n"
        "You have access to these company files:\n"
        f"{file_block}\n"
        "\n"
        "When answering questions:\n"
        "1. Search through the most relevant files based on the question\n"
        "2. Provide accurate answers based on the document content\n"
        "3. Always cite your sources with specific file references\n"
        "4. If information isn't found in the documents, clearly state this\n"
        "5. Be helpful and professional in your responses"
    )
