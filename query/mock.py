from __future__ import annotations

import random
from typing import Mapping, Optional

from files.models import FileRecord
from query.models import QueryResult

SAMPLE_FILES = 3

_TEMPLATES = [
    (
        'I found relevant information about "{query}" in our company documents. '
        "Based on the uploaded files, here's what I can tell you:\n\n"
        "• Key insights from our documentation\n"
        "• Related processes and procedures\n"
        "• Contact information for follow-up\n\n"
        "This response would normally be generated from {count} uploaded documents using OpenAI Assistant."
    ),
    (
        'Great question about "{query}"! I searched through our knowledge base and found several '
        "relevant resources:\n\n"
        "• Documentation covering this topic\n"
        "• Best practices from our team\n"
        "• Step-by-step guidance\n\n"
        "Once OpenAI integration is active, I'll provide specific citations and detailed answers "
        "from our {count} uploaded files."
    ),
    (
        "I understand you're asking about \"{query}\". Here's what I found in our company resources:\n\n"
        "• Relevant policies and guidelines\n"
        "• Technical documentation\n"
        "• Team recommendations\n\n"
        "With full OpenAI integration, I'll search through all {count} documents and provide cited responses."
    ),
]


def generate_mock_response(
    query: str,
    files: Mapping[str, FileRecord],
    rng: Optional[random.Random] = None,
) -> QueryResult:
    """
    Canned answer used whenever the assistant service is unusable.

    Depends only on the question, the number of files and the first few
    records, so it is safe to call from any failure path.
    """
    chooser = rng or random
    count = len(files)
    sample = list(files.values())[:SAMPLE_FILES]

    text = chooser.choice(_TEMPLATES).format(query=query, count=count)
    if sample:
        listing = "\n".join(f"• {r.originalName}: {r.description}" for r in sample)
        text += f"\n\n**Available Sources:**\n{listing}"

    return QueryResult(
        success=True,
        response=text,
        mock=True,
        available_files=count,
    )
