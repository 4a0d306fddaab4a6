from corprex_chat.conversation_database.data_models.conversation import Conversation, ConversationDatabase
from corprex_chat.conversation_database.data_models.message import Message, MessageDatabase, MessageType

__all__ = ["Conversation", "ConversationDatabase", "Message", "MessageDatabase", "MessageType"]
