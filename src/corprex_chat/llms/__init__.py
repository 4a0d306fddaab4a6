from corprex_chat.llms.base import (
    ErrorKind,
    GenerationRequest,
    GenerationResult,
    LLMMessage,
    Provider,
    ProviderAdapter,
    Roles,
)
from corprex_chat.llms.registry import DEFAULT_MODEL_ID, MODEL_CATALOG, ModelDescriptor, ModelRegistry

__all__ = [
    "DEFAULT_MODEL_ID",
    "MODEL_CATALOG",
    "ErrorKind",
    "GenerationRequest",
    "GenerationResult",
    "LLMMessage",
    "ModelDescriptor",
    "ModelRegistry",
    "Provider",
    "ProviderAdapter",
    "Roles",
]
