"""
Multi-provider chat toolkit.

A 'ChatDispatcher' routes normalized chat requests to the OpenAI, Anthropic,
Google or Groq adapter serving the selected model, and a
'ConversationStateManager' keeps one conversation's transcript consistent
across streaming, edits, regeneration and persistence.
"""

from corprex_chat.dispatcher import ChatDispatcher, ChatStream
from corprex_chat.llms.base import GenerationRequest, GenerationResult, LLMMessage, Provider, Roles
from corprex_chat.llms.registry import ModelRegistry
from corprex_chat.state.manager import ChatCapabilities, ChatSettings, ConversationStateManager

__all__ = [
    "ChatCapabilities",
    "ChatDispatcher",
    "ChatSettings",
    "ChatStream",
    "ConversationStateManager",
    "GenerationRequest",
    "GenerationResult",
    "LLMMessage",
    "ModelRegistry",
    "Provider",
    "Roles",
]
