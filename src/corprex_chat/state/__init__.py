from corprex_chat.state.collaborators import CancellationToken, DraftStore, InMemoryDraftStore, Speaker
from corprex_chat.state.manager import (
    ChatCapabilities,
    ChatSettings,
    ChatStatus,
    ConversationState,
    ConversationStateManager,
    PersistenceFailure,
    derive_title,
)

__all__ = [
    "CancellationToken",
    "ChatCapabilities",
    "ChatSettings",
    "ChatStatus",
    "ConversationState",
    "ConversationStateManager",
    "DraftStore",
    "InMemoryDraftStore",
    "PersistenceFailure",
    "Speaker",
    "derive_title",
]
