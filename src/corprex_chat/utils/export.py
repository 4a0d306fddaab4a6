"""
Conversation export formats.

Each function takes the ordered message list of a conversation and returns the
rendered document as a string; writing it somewhere is up to the caller.
"""

import html
import json
from collections.abc import Sequence
from datetime import datetime, timezone

from corprex_chat.conversation_database.data_models.message import Message, MessageType
from corprex_chat.llms.base import Roles


def _format_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _body(message: Message) -> str:
    if message.type == MessageType.IMAGE and message.image_url:
        return f"{message.content}\n\n![generated image]({message.image_url})"
    return message.content


def to_markdown(messages: Sequence[Message], exported_at: datetime | None = None) -> str:
    exported_at = exported_at or datetime.now(timezone.utc)
    markdown = "# AI Chat Conversation\n\n"
    markdown += f"*Exported on {exported_at.strftime('%Y-%m-%d %H:%M:%S')}*\n\n---\n\n"
    for message in messages:
        heading = "You" if message.role == Roles.USER else "AI Assistant"
        markdown += f"## {heading}\n\n{_body(message)}\n\n---\n\n"
    return markdown


def to_json(messages: Sequence[Message], exported_at: datetime | None = None) -> str:
    exported_at = exported_at or datetime.now(timezone.utc)
    return json.dumps(
        {
            "exported": exported_at.isoformat(),
            "messages": [message.model_dump(mode="json") for message in messages],
        },
        indent=2,
    )


def to_html(messages: Sequence[Message], title: str = "Corprex AI Conversation") -> str:
    blocks = []
    for message in messages:
        body = html.escape(message.content)
        if message.type == MessageType.IMAGE and message.image_url:
            body += f'<br><img src="{html.escape(message.image_url, quote=True)}" alt="generated image">'
        blocks.append(
            f'<div class="message {message.role.value}">'
            f'<div class="timestamp">{_format_ts(message.create_timestamp)}</div>'
            f"<div>{body}</div></div>"
        )
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        f"<title>{html.escape(title)}</title>\n"
        "<style>\n"
        "body { font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }\n"
        ".message { margin: 20px 0; padding: 15px; border-radius: 8px; }\n"
        ".user { background: #f0f0f0; text-align: right; }\n"
        ".assistant { background: #e3f2fd; }\n"
        ".timestamp { font-size: 0.8em; color: #666; }\n"
        "</style>\n</head>\n<body>\n"
        f"<h1>{html.escape(title)}</h1>\n" + "\n".join(blocks) + "\n</body>\n</html>\n"
    )


def to_plain_text(messages: Sequence[Message]) -> str:
    return "\n\n".join(f"{message.role.value}: {message.content}" for message in messages)


EXPORTERS = {
    "markdown": to_markdown,
    "json": to_json,
    "html": to_html,
    "text": to_plain_text,
}


def export_conversation(messages: Sequence[Message], fmt: str) -> str:
    if fmt not in EXPORTERS:
        raise ValueError(f"Unsupported export format {fmt!r}. Choose one of {sorted(EXPORTERS)}.")
    return EXPORTERS[fmt](messages)
