"""
In-memory repositories.

Used by the tests and by sessions that do not need durable storage. Records are
copied on the way in and out so callers cannot mutate stored state by accident.
"""

from corprex_chat.conversation_database.data_models.conversation import Conversation, ConversationDatabase
from corprex_chat.conversation_database.data_models.message import Message, MessageDatabase
from corprex_chat.utils.database import generate_uid


class InMemoryConversationDatabase(ConversationDatabase):
    def __init__(self) -> None:
        self.conversations: dict[str, Conversation] = {}

    async def create_conversation(self, conversation: Conversation) -> Conversation:
        self.conversations[conversation.id] = conversation.model_copy()
        return conversation.model_copy()

    async def get_conversations_by_user_id(self, user_id: str) -> list[Conversation]:
        owned = [c.model_copy() for c in self.conversations.values() if c.user_id == user_id]
        return sorted(owned, key=lambda c: c.update_timestamp, reverse=True)

    async def get_conversation_by_id(self, conversation_id: str) -> Conversation:
        if conversation_id not in self.conversations:
            raise ValueError(f"Conversation with id {conversation_id} not found")
        return self.conversations[conversation_id].model_copy()

    async def update_conversation(self, conversation: Conversation) -> Conversation:
        if conversation.id not in self.conversations:
            raise ValueError(f"Conversation with id {conversation.id} not found")
        self.conversations[conversation.id] = conversation.model_copy()
        return conversation.model_copy()

    async def delete_conversation(self, conversation_id: str) -> bool:
        return self.conversations.pop(conversation_id, None) is not None


class InMemoryMessageDatabase(MessageDatabase):
    def __init__(self) -> None:
        self.messages: dict[str, Message] = {}

    async def create_message(self, message: Message) -> Message:
        stored = message.model_copy(update={"id": message.id or generate_uid()})
        self.messages[stored.id] = stored
        return stored.model_copy()

    async def get_messages_by_conversation_id(self, conversation_id: str) -> list[Message]:
        # dicts keep insertion order, so equal timestamps stay in creation order
        found = [m.model_copy() for m in self.messages.values() if m.conversation_id == conversation_id]
        return sorted(found, key=lambda m: m.create_timestamp)

    async def get_message_by_id(self, message_id: str) -> Message:
        if message_id not in self.messages:
            raise ValueError(f"Message with id {message_id} not found")
        return self.messages[message_id].model_copy()

    async def update_message(self, message: Message) -> Message:
        if message.id is None or message.id not in self.messages:
            raise ValueError(f"Message with id {message.id} not found")
        updated = self.messages[message.id].model_copy(update={"content": message.content, "edited": message.edited})
        self.messages[message.id] = updated
        return updated.model_copy()

    async def delete_message(self, message_id: str) -> bool:
        return self.messages.pop(message_id, None) is not None
