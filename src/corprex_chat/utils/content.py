"""
Helpers that read message content for display: code block splitting, a short
conversation summary and follow-up prompt suggestions.
"""

import re
from collections.abc import Sequence
from typing import Literal

from pydantic import BaseModel

from corprex_chat.conversation_database.data_models.message import Message
from corprex_chat.llms.base import Roles

CODE_BLOCK = re.compile(r"```(\w+)?\n([\s\S]*?)```")
SUMMARY_MAX_CHARS = 100

SUGGESTED_PROMPTS = (
    "Can you explain this in more detail?",
    "What are the alternatives?",
    "Can you provide an example?",
    "What are the pros and cons?",
    "How does this compare to other solutions?",
    "Can you simplify this explanation?",
    "What are the best practices?",
    "What should I consider before implementing this?",
)


class ContentPart(BaseModel):
    type: Literal["text", "code"]
    content: str
    language: str | None = None


def extract_code_blocks(content: str) -> list[ContentPart]:
    """Split message content into text and fenced code parts, in order."""
    parts: list[ContentPart] = []
    last = 0
    for match in CODE_BLOCK.finditer(content):
        if match.start() > last:
            parts.append(ContentPart(type="text", content=content[last : match.start()]))
        parts.append(ContentPart(type="code", language=match.group(1) or "plaintext", content=match.group(2)))
        last = match.end()
    if last < len(content):
        parts.append(ContentPart(type="text", content=content[last:]))
    return parts or [ContentPart(type="text", content=content)]


def conversation_summary(messages: Sequence[Message], max_chars: int = SUMMARY_MAX_CHARS) -> str:
    if not messages:
        return "Empty conversation"
    first = next((m for m in messages if m.role == Roles.USER), None)
    if first is None:
        return "Conversation"
    return first.content[:max_chars] + ("..." if len(first.content) > max_chars else "")


def suggested_prompts(count: int = 4) -> list[str]:
    return list(SUGGESTED_PROMPTS[:count])
