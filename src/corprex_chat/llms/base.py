"""
Core provider abstractions and the normalized request/response models.

All concrete provider backends ('OpenAIAdapter', 'AnthropicAdapter',
'GoogleAdapter', 'GroqAdapter') implement the 'ProviderAdapter' ABC. The shared
message format ('LLMMessage') is deliberately provider-agnostic so the
dispatcher and the conversation state manager never need to know which vendor
answers a request.

An adapter is always constructed, with or without an SDK client. Without a
client it is "unavailable": every call returns a 'configuration_missing'
result naming the environment variable to set, and no network call is made.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from contextlib import aclosing
from enum import StrEnum
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field


class Roles(StrEnum):
    """Conversation roles as used by the OpenAI chat completions API."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Provider(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    GROQ = "groq"
    UNKNOWN = "unknown"


class ErrorKind(StrEnum):
    CONFIGURATION_MISSING = "configuration_missing"
    PROVIDER_CALL_FAILURE = "provider_call_failure"
    INTERNAL = "internal"


class LLMMessage(BaseModel):
    """
    A single message sent to a provider.

    Only 'role' and 'content' travel over the wire. Extra fields supplied by a
    client (timestamps, message kinds) are dropped on validation.
    """

    content: str = ""
    role: Roles = Roles.ASSISTANT

    def to_wire(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class GenerationRequest(BaseModel):
    """
    A normalized chat completion request.

    'system_instructions' are custom instructions supplied by the user; when
    non-empty they are prepended to the conversation as a system message by
    'conversation()'. Adapters must always read the message list through that
    method.
    """

    messages: list[LLMMessage]
    model: str = ""
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=256, le=4096)
    stream: bool = False
    system_instructions: str | None = None

    def conversation(self) -> list[LLMMessage]:
        if self.system_instructions and self.system_instructions.strip():
            return [LLMMessage(role=Roles.SYSTEM, content=self.system_instructions), *self.messages]
        return list(self.messages)


class GenerationResult(BaseModel):
    """
    The normalized outcome of a provider call.

    'content' is always set: the assistant text on success, a human-readable
    message otherwise. Streaming adapters yield results whose 'content' is a
    delta rather than the full answer.
    """

    content: str = ""
    error: ErrorKind | None = None
    provider: Provider = Provider.UNKNOWN
    model: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def split_system_prompt(messages: list[LLMMessage]) -> tuple[str | None, list[LLMMessage]]:
    """Pull every system message out of 'messages'.

    Returns the joined system prompt (or None when there is none) and the
    remaining messages in their original order.
    """
    system_parts = [m.content for m in messages if m.role == Roles.SYSTEM and m.content.strip()]
    rest = [m for m in messages if m.role != Roles.SYSTEM]
    return ("\n\n".join(system_parts) if system_parts else None), rest


class ProviderAdapter(ABC):
    """
    Abstract base class for provider backends.

    Subclasses set the class attributes describing the provider and implement
    '_complete' and '_stream' against their SDK client. The public 'complete'
    and 'stream' methods gate on availability and translate any SDK exception
    into a 'provider_call_failure' result, so raw provider exceptions never
    reach the caller.
    """

    provider: Provider
    label: str
    env_var: str
    unavailable_message: str
    supports_streaming: bool = True

    def __init__(self, client: Any | None = None) -> None:
        self.client = client

    @property
    def available(self) -> bool:
        return self.client is not None

    def unavailable_result(self, model: str | None = None) -> GenerationResult:
        return GenerationResult(
            content=self.unavailable_message,
            error=ErrorKind.CONFIGURATION_MISSING,
            provider=self.provider,
            model=model,
        )

    def failure_result(self, exc: Exception, model: str | None = None) -> GenerationResult:
        message = str(exc) or exc.__class__.__name__
        return GenerationResult(
            content=f"{self.label}: {message}. Please check your API key.",
            error=ErrorKind.PROVIDER_CALL_FAILURE,
            provider=self.provider,
            model=model,
        )

    async def complete(self, request: GenerationRequest) -> GenerationResult:
        """Return a single complete response for the given request."""
        if not self.available:
            return self.unavailable_result(request.model)
        try:
            content = await self._complete(request)
        except Exception as exc:
            logger.error(f"{self.label} call failed for model {request.model!r}: {exc}")
            return self.failure_result(exc, request.model)
        return GenerationResult(content=content, provider=self.provider, model=request.model)

    async def stream(self, request: GenerationRequest) -> AsyncGenerator[GenerationResult, None]:
        """Yield content deltas as they arrive from the provider.

        A failure ends the stream with one error result. Adapters without
        streaming support yield their buffered answer as a single delta.
        """
        if not self.available:
            yield self.unavailable_result(request.model)
            return
        if not self.supports_streaming:
            yield await self.complete(request)
            return
        try:
            async with aclosing(self._stream(request)) as deltas:
                async for delta in deltas:
                    if delta:
                        yield GenerationResult(content=delta, provider=self.provider, model=request.model)
        except Exception as exc:
            logger.error(f"{self.label} stream failed for model {request.model!r}: {exc}")
            yield self.failure_result(exc, request.model)

    @abstractmethod
    async def _complete(self, request: GenerationRequest) -> str:
        pass

    @abstractmethod
    def _stream(self, request: GenerationRequest) -> AsyncGenerator[str, None]:
        pass
