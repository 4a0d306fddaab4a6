"""
Shared fakes for the test suite.

'ScriptedAdapter' stands in for a provider adapter and records every request
it receives. The 'Fake*Client' classes mimic just enough of each SDK's async
client surface to exercise the real adapters without network access.
"""

import asyncio
from collections.abc import AsyncGenerator
from types import SimpleNamespace
from typing import Any

import pytest

from corprex_chat.conversation_database.in_memory import InMemoryConversationDatabase, InMemoryMessageDatabase
from corprex_chat.dispatcher import ChatDispatcher
from corprex_chat.llms.base import GenerationRequest, Provider, ProviderAdapter
from corprex_chat.state.manager import ChatCapabilities, ConversationStateManager


class ScriptedAdapter(ProviderAdapter):
    def __init__(
        self,
        provider: Provider = Provider.OPENAI,
        reply: str = "Hi there!",
        chunks: list[str] | None = None,
        error: Exception | None = None,
        available: bool = True,
        gate: asyncio.Event | None = None,
    ) -> None:
        super().__init__(client=object() if available else None)
        self.provider = provider
        self.label = provider.value.capitalize()
        self.env_var = f"{provider.value.upper()}_API_KEY"
        self.unavailable_message = f"Add {self.env_var} to enable {self.label}."
        self.reply = reply
        self.chunks = chunks if chunks is not None else ["Hi", " there", "!"]
        self.error = error
        self.gate = gate
        self.requests: list[GenerationRequest] = []
        self.stream_closed = False

    async def _complete(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply

    async def _stream(self, request: GenerationRequest) -> AsyncGenerator[str, None]:
        self.requests.append(request)
        try:
            for chunk in self.chunks:
                yield chunk
                if self.gate is not None:
                    await self.gate.wait()
            if self.error is not None:
                raise self.error
        finally:
            self.stream_closed = True


class FailingStore:
    """Wraps a repository and raises on the named methods."""

    def __init__(self, inner: Any, failing: set[str]) -> None:
        self.inner = inner
        self.failing = failing

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self.inner, name)
        if name not in self.failing:
            return attr

        async def fail(*args: Any, **kwargs: Any) -> Any:
            raise RuntimeError(f"{name} is unavailable")

        return fail


# SDK client fakes


class FakeAsyncStream:
    def __init__(self, items: list[Any]) -> None:
        self.items = items
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self.items:
            yield item

    async def close(self) -> None:
        self.closed = True


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _delta(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeChatCompletions:
    def __init__(self, content: str | None, chunks: list[str | None], error: Exception | None) -> None:
        self.content = content
        self.chunks = chunks
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.streams: list[FakeAsyncStream] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if kwargs.get("stream"):
            stream = FakeAsyncStream([_delta(chunk) for chunk in self.chunks])
            self.streams.append(stream)
            return stream
        return _completion(self.content)


class FakeOpenAIClient:
    """Covers both AsyncOpenAI and AsyncGroq, which share the chat completions surface."""

    def __init__(
        self, content: str | None = "Hi there!", chunks: list[str | None] | None = None, error: Exception | None = None
    ) -> None:
        self.chat = SimpleNamespace(completions=FakeChatCompletions(content, chunks or ["Hi", None, " there"], error))

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self.chat.completions.calls


class FakeAnthropicStream:
    def __init__(self, chunks: list[str]) -> None:
        self.chunks = chunks

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None

    @property
    def text_stream(self):
        async def iterate():
            for chunk in self.chunks:
                yield chunk

        return iterate()


class FakeAnthropicMessages:
    def __init__(self, text: str, chunks: list[str], error: Exception | None) -> None:
        self.text = text
        self.chunks = chunks
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text=self.text), SimpleNamespace(type="tool_use", id="x")]
        )

    def stream(self, **kwargs: Any) -> FakeAnthropicStream:
        self.calls.append(kwargs)
        return FakeAnthropicStream(self.chunks)


class FakeAnthropicClient:
    def __init__(self, text: str = "Hello from Claude", chunks: list[str] | None = None, error: Exception | None = None):
        self.messages = FakeAnthropicMessages(text, chunks or ["Hello", " from", " Claude"], error)


class FakeGeminiChat:
    def __init__(self, owner: "FakeGeminiChats") -> None:
        self.owner = owner

    async def send_message(self, message: str) -> Any:
        self.owner.sent.append(message)
        if self.owner.error is not None:
            raise self.owner.error
        return SimpleNamespace(text=self.owner.text)

    async def send_message_stream(self, message: str) -> Any:
        self.owner.sent.append(message)

        async def iterate():
            for chunk in self.owner.chunks:
                yield SimpleNamespace(text=chunk)

        return iterate()


class FakeGeminiChats:
    def __init__(self, text: str, chunks: list[str], error: Exception | None) -> None:
        self.text = text
        self.chunks = chunks
        self.error = error
        self.created: list[dict[str, Any]] = []
        self.sent: list[str] = []

    def create(self, **kwargs: Any) -> FakeGeminiChat:
        self.created.append(kwargs)
        return FakeGeminiChat(self)


class FakeGeminiClient:
    def __init__(self, text: str = "Hello from Gemini", chunks: list[str] | None = None, error: Exception | None = None):
        self.aio = SimpleNamespace(chats=FakeGeminiChats(text, chunks or ["Hello", " from", " Gemini"], error))


# Fixtures


@pytest.fixture
def openai_adapter() -> ScriptedAdapter:
    return ScriptedAdapter(Provider.OPENAI)


@pytest.fixture
def adapters(openai_adapter: ScriptedAdapter) -> dict[Provider, ScriptedAdapter]:
    return {
        Provider.OPENAI: openai_adapter,
        Provider.ANTHROPIC: ScriptedAdapter(Provider.ANTHROPIC, available=False),
        Provider.GOOGLE: ScriptedAdapter(Provider.GOOGLE, reply="Gemini says hi"),
        Provider.GROQ: ScriptedAdapter(Provider.GROQ, reply="Groq says hi"),
    }


@pytest.fixture
def dispatcher(adapters: dict[Provider, ScriptedAdapter]) -> ChatDispatcher:
    return ChatDispatcher(adapters)


@pytest.fixture
def conversation_db() -> InMemoryConversationDatabase:
    return InMemoryConversationDatabase()


@pytest.fixture
def message_db() -> InMemoryMessageDatabase:
    return InMemoryMessageDatabase()


@pytest.fixture
def manager(
    dispatcher: ChatDispatcher, conversation_db: InMemoryConversationDatabase, message_db: InMemoryMessageDatabase
) -> ConversationStateManager:
    return ConversationStateManager(dispatcher, conversation_db, message_db, user_id="user_1")


@pytest.fixture
def streaming_manager(
    dispatcher: ChatDispatcher, conversation_db: InMemoryConversationDatabase, message_db: InMemoryMessageDatabase
) -> ConversationStateManager:
    return ConversationStateManager(
        dispatcher, conversation_db, message_db, user_id="user_1", capabilities=ChatCapabilities(streaming=True)
    )
