"""
Narrow interfaces to the collaborators of the conversation state manager.

'DraftStore' keeps unsent input per conversation, 'Speaker' reads assistant
replies aloud, and 'CancellationToken' is the per-request cancellation signal
shared between the manager and an in-flight provider call.
"""

import asyncio
from abc import ABC, abstractmethod


def draft_key(conversation_id: str | None) -> str:
    return f"draft-{conversation_id or 'new'}"


class DraftStore(ABC):
    """String store for unsent input, keyed by conversation id ('new' before one exists)."""

    @abstractmethod
    def save(self, conversation_id: str | None, content: str) -> None:
        pass

    @abstractmethod
    def load(self, conversation_id: str | None) -> str:
        pass

    @abstractmethod
    def clear(self, conversation_id: str | None) -> None:
        pass


class InMemoryDraftStore(DraftStore):
    def __init__(self) -> None:
        self.drafts: dict[str, str] = {}

    def save(self, conversation_id: str | None, content: str) -> None:
        if content.strip():
            self.drafts[draft_key(conversation_id)] = content
        else:
            self.clear(conversation_id)

    def load(self, conversation_id: str | None) -> str:
        return self.drafts.get(draft_key(conversation_id), "")

    def clear(self, conversation_id: str | None) -> None:
        self.drafts.pop(draft_key(conversation_id), None)


class Speaker(ABC):
    """Text-to-speech output."""

    @abstractmethod
    def speak(self, text: str) -> None:
        pass


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
