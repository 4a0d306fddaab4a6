"""
Message data model and storage interface.

Messages within a conversation are ordered by 'create_timestamp'. 'id' and
'conversation_id' stay None until the message has been persisted, which lets
the state manager show a message before its storage round-trip completes.

The 'MessageDatabase' ABC is the pluggable storage backend. Concrete
implementations: 'InMemoryMessageDatabase', 'SQLiteMessageDatabase'.
"""

from abc import ABC, abstractmethod
from enum import StrEnum

from pydantic import BaseModel

from corprex_chat.llms.base import Roles


class MessageType(StrEnum):
    TEXT = "text"
    IMAGE = "image"


class Message(BaseModel):
    """
    A single message within a conversation.

    'model' is only set on assistant messages and records which model produced
    them. For image messages 'image_url' holds the generated image; the stored
    row keeps the URL in 'content'.
    """

    id: str | None = None
    conversation_id: str | None = None
    role: Roles
    content: str
    type: MessageType = MessageType.TEXT
    image_url: str | None = None
    model: str | None = None
    create_timestamp: int
    edited: bool = False


class MessageDatabase(ABC):
    """Abstract repository for 'Message' records."""

    @abstractmethod
    async def create_message(self, message: Message) -> Message:
        pass

    @abstractmethod
    async def get_messages_by_conversation_id(self, conversation_id: str) -> list[Message]:
        """Return the conversation's messages in creation order."""
        pass

    @abstractmethod
    async def get_message_by_id(self, message_id: str) -> Message:
        pass

    @abstractmethod
    async def update_message(self, message: Message) -> Message:
        """Persist a new 'content' and 'edited' flag for an existing message."""
        pass

    @abstractmethod
    async def delete_message(self, message_id: str) -> bool:
        pass
