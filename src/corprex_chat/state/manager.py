"""
Conversation state manager.

'ConversationStateManager' owns the client-side state of one open
conversation: its id and title, the ordered message list, the unsent draft and
the request status. It is the single place where user actions (send, edit,
regenerate, delete, load) are turned into dispatcher calls and persistence
calls, in this order for a send:

    create the conversation if needed -> show the user message -> persist it ->
    dispatch -> show the reply (streamed or whole) -> persist it -> touch the
    conversation record.

Persistence is best effort. A failed storage call is logged, recorded as a
'PersistenceFailure' and reported through 'on_persistence_error', but the
in-memory transcript keeps going. Provider problems arrive as normal
'GenerationResult' errors and are shown as an assistant message.

Status moves 'idle -> sending -> (streaming)* -> idle'. A user cancel passes
through 'cancelled' before returning to 'idle'. Only one request is in flight at
a time; 'submit', 'edit_message' and 'regenerate' are no-ops while one is.
Opening another conversation cancels the request, and nothing it produces
afterwards reaches the newly opened state.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from corprex_chat.conversation_database.data_models.conversation import Conversation, ConversationDatabase
from corprex_chat.conversation_database.data_models.message import Message, MessageDatabase, MessageType
from corprex_chat.dispatcher import ChatDispatcher
from corprex_chat.images import DEFAULT_IMAGE_SIZE, ImageGenerator, ImageSize
from corprex_chat.llms.base import GenerationRequest, LLMMessage, Roles
from corprex_chat.llms.registry import DEFAULT_MODEL_ID
from corprex_chat.state.collaborators import CancellationToken, DraftStore, InMemoryDraftStore, Speaker
from corprex_chat.utils.content import conversation_summary, suggested_prompts
from corprex_chat.utils.database import generate_uid
from corprex_chat.utils.export import export_conversation
from corprex_chat.utils.time import get_current_timestamp
from corprex_chat.utils.usage import calculate_cost, estimate_tokens

TITLE_MAX_CHARS = 50
GENERATION_STOPPED = "Generation stopped"

_CANCELLED = object()
_END = object()


def derive_title(text: str, max_chars: int = TITLE_MAX_CHARS) -> str:
    return text[:max_chars] + ("..." if len(text) > max_chars else "")


class ChatStatus(StrEnum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    CANCELLED = "cancelled"


class ChatCapabilities(BaseModel):
    """Optional features of a chat surface."""

    voice_input: bool = False
    voice_output: bool = False
    image_generation: bool = False
    streaming: bool = False
    custom_instructions: bool = True


class ChatSettings(BaseModel):
    """Generation settings, read when each request is built."""

    model_config = ConfigDict(validate_assignment=True)

    model: str = DEFAULT_MODEL_ID
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=256, le=4096)
    custom_instructions: str = ""


class ConversationState(BaseModel):
    conversation_id: str | None = None
    title: str | None = None
    messages: list[Message] = Field(default_factory=list)
    draft: str = ""
    status: ChatStatus = ChatStatus.IDLE
    notices: list[str] = Field(default_factory=list)


class PersistenceFailure(BaseModel):
    operation: str
    error: str
    conversation_id: str | None = None


class ConversationStateManager:
    def __init__(
        self,
        dispatcher: ChatDispatcher,
        conversation_db: ConversationDatabase,
        message_db: MessageDatabase,
        user_id: str,
        capabilities: ChatCapabilities | None = None,
        settings: ChatSettings | None = None,
        draft_store: DraftStore | None = None,
        speaker: Speaker | None = None,
        image_generator: ImageGenerator | None = None,
        on_change: Callable[[ConversationState], None] | None = None,
        on_notice: Callable[[str], None] | None = None,
        on_persistence_error: Callable[[PersistenceFailure], None] | None = None,
    ):
        self.dispatcher = dispatcher
        self.conversation_db = conversation_db
        self.message_db = message_db
        self.user_id = user_id
        self.capabilities = capabilities or ChatCapabilities()
        self.settings = settings or ChatSettings(model=dispatcher.registry.default.id)
        self.draft_store = draft_store or InMemoryDraftStore()
        self.speaker = speaker
        self.image_generator = image_generator
        self.on_change = on_change
        self.on_notice = on_notice
        self.on_persistence_error = on_persistence_error

        self.state = ConversationState()
        self.conversations: list[Conversation] = []
        self.persistence_failures: list[PersistenceFailure] = []
        self._token: CancellationToken | None = None

    @property
    def busy(self) -> bool:
        return self.state.status in (ChatStatus.SENDING, ChatStatus.STREAMING)

    # Notifications

    def _changed(self, state: ConversationState | None = None) -> None:
        state = state or self.state
        if self.on_change is not None and state is self.state:
            self.on_change(state)

    def _notify(self, notice: str, state: ConversationState | None = None) -> None:
        state = state or self.state
        state.notices.append(notice)
        if self.on_notice is not None and state is self.state:
            self.on_notice(notice)

    def _persistence_failed(self, operation: str, exc: Exception) -> None:
        failure = PersistenceFailure(operation=operation, error=str(exc), conversation_id=self.state.conversation_id)
        logger.warning(f"Persistence failure during {operation}: {exc}")
        self.persistence_failures.append(failure)
        if self.on_persistence_error is not None:
            self.on_persistence_error(failure)

    async def _persist(self, operation: str, call: Awaitable[Any]) -> Any:
        try:
            return await call
        except Exception as exc:
            self._persistence_failed(operation, exc)
            return None

    # Conversation list

    async def refresh_conversations(self) -> list[Conversation]:
        conversations = await self._persist(
            "list conversations", self.conversation_db.get_conversations_by_user_id(self.user_id)
        )
        if conversations is not None:
            self.conversations = conversations
        return self.conversations

    def search_conversations(self, query: str) -> list[Conversation]:
        query = query.lower()
        return [c for c in self.conversations if query in c.title.lower()]

    def search_messages(self, query: str) -> list[Message]:
        query = query.lower()
        return [m for m in self.state.messages if query in m.content.lower()]

    # Draft input

    def set_draft(self, text: str) -> None:
        self.state.draft = text
        self.draft_store.save(self.state.conversation_id, text)

    def accept_transcript(self, transcript: str) -> bool:
        """Use a speech recognition transcript as the draft."""
        if not self.capabilities.voice_input:
            logger.warning("Voice input is disabled, ignoring transcript")
            return False
        self.set_draft(transcript)
        self._changed()
        return True

    # Sending

    def _begin(self) -> tuple[ConversationState, CancellationToken]:
        """Mark the current state as sending and hand out the token that can stop it."""
        state = self.state
        state.status = ChatStatus.SENDING
        token = CancellationToken()
        self._token = token
        return state, token

    def _end(self, state: ConversationState, token: CancellationToken) -> None:
        if self._token is token:
            self._token = None
        state.status = ChatStatus.IDLE
        self._changed(state)

    def _abandoned(self, state: ConversationState, token: CancellationToken) -> bool:
        """True when the request must not go on: the user cancelled or switched conversations."""
        if state is not self.state:
            logger.info("Conversation switched during send, dropping the request")
            return True
        if token.cancelled:
            self._stopped(state)
            return True
        return False

    async def submit(self, text: str) -> Message | None:
        """Send 'text' as a user message and return the assistant reply that was shown.

        Returns None when the call was a no-op (blank text or a request already
        in flight), when the user cancelled before anything was received, or
        when another conversation was opened before the request went out.
        """
        if not text.strip() or self.busy:
            return None
        state, token = self._begin()
        try:
            if state.conversation_id is None:
                await self._create_conversation(text, state)
                if state is not self.state:
                    logger.info("Conversation switched during send, dropping the request")
                    return None

            user_message = Message(
                conversation_id=state.conversation_id,
                role=Roles.USER,
                content=text,
                create_timestamp=get_current_timestamp(),
            )
            state.messages.append(user_message)
            state.draft = ""
            self.draft_store.clear(state.conversation_id)
            self._changed(state)

            await self._persist_new(user_message, state)
            if self._abandoned(state, token):
                return None
            return await self._generate(state, token)
        finally:
            self._end(state, token)

    async def _create_conversation(self, first_message: str, state: ConversationState) -> None:
        title = derive_title(first_message)
        now = get_current_timestamp()
        conversation = Conversation(
            id=generate_uid(),
            user_id=self.user_id,
            title=title,
            model=self.settings.model,
            create_timestamp=now,
            update_timestamp=now,
        )
        state.title = title
        created = await self._persist("create conversation", self.conversation_db.create_conversation(conversation))
        if created is None:
            return
        self.draft_store.clear(None)
        state.conversation_id = created.id
        logger.info(f"Created conversation {created.id} ({title!r})")
        await self.refresh_conversations()

    async def _persist_new(self, message: Message, state: ConversationState | None = None) -> None:
        state = state or self.state
        if state is not self.state or state.conversation_id is None:
            return
        record = message.model_copy(update={"conversation_id": state.conversation_id})
        if message.type == MessageType.IMAGE and message.image_url:
            record.content = message.image_url
        stored = await self._persist(f"save {message.role} message", self.message_db.create_message(record))
        if stored is not None:
            message.id = stored.id
            message.conversation_id = stored.conversation_id

    async def _touch_conversation(self, state: ConversationState | None = None) -> None:
        state = state or self.state
        if state is not self.state or state.conversation_id is None:
            return
        conversation = await self._persist(
            "load conversation", self.conversation_db.get_conversation_by_id(state.conversation_id)
        )
        if conversation is None:
            return
        conversation.update_timestamp = get_current_timestamp()
        conversation.model = self.settings.model
        if await self._persist("update conversation", self.conversation_db.update_conversation(conversation)):
            await self.refresh_conversations()

    def _build_request(self, state: ConversationState) -> GenerationRequest:
        instructions = self.settings.custom_instructions if self.capabilities.custom_instructions else None
        return GenerationRequest(
            messages=[LLMMessage(role=m.role, content=m.content) for m in state.messages],
            model=self.settings.model,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
            stream=self.capabilities.streaming,
            system_instructions=instructions or None,
        )

    async def _generate(self, state: ConversationState, token: CancellationToken) -> Message | None:
        """Request a reply for the transcript of 'state'. The caller owns 'token' and the status."""
        request = self._build_request(state)
        logger.debug(f"Requesting {request.model!r} with {len(request.messages)} messages (stream={request.stream})")
        if request.stream:
            return await self._generate_streaming(state, request, token)
        return await self._generate_buffered(state, request, token)

    async def _until_cancelled(self, awaitable: Awaitable[Any], token: CancellationToken) -> Any:
        """Await 'awaitable' unless 'token' fires first, in which case it is cancelled."""
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        if task.cancelled():
            return _CANCELLED
        return task.result()

    def _assistant_message(self, state: ConversationState, content: str) -> Message:
        return Message(
            conversation_id=state.conversation_id,
            role=Roles.ASSISTANT,
            content=content,
            model=self.settings.model,
            create_timestamp=get_current_timestamp(),
        )

    async def _generate_buffered(
        self, state: ConversationState, request: GenerationRequest, token: CancellationToken
    ) -> Message | None:
        result = await self._until_cancelled(self.dispatcher.dispatch(request), token)
        if result is _CANCELLED:
            self._stopped(state)
            return None
        reply = self._assistant_message(state, result.content)
        state.messages.append(reply)
        self._changed(state)
        if result.ok:
            await self._finalize(reply, state, speak=True)
        else:
            logger.info(f"Showing {result.error} result for model {request.model!r}")
        return reply

    async def _generate_streaming(
        self, state: ConversationState, request: GenerationRequest, token: CancellationToken
    ) -> Message | None:
        stream = self.dispatcher.dispatch_stream(request)
        reply = self._assistant_message(state, "")
        state.messages.append(reply)
        self._changed(state)

        cancelled = False
        chunks = aiter(stream)
        try:
            while not cancelled:
                chunk = await self._until_cancelled(anext(chunks, _END), token)
                if chunk is _CANCELLED:
                    cancelled = True
                elif chunk is _END:
                    break
                else:
                    reply.content += chunk
                    state.status = ChatStatus.STREAMING
                    self._changed(state)
                    cancelled = token.cancelled
        finally:
            await stream.aclose()
        logger.debug(f"Stream for {request.model!r} ended after {stream.chunk_count} chunks (cancelled={cancelled})")

        if cancelled:
            self._stopped(state)
            if not reply.content:
                state.messages.remove(reply)
                self._changed(state)
                return None
            await self._finalize(reply, state, speak=False)
            return reply

        if stream.error is not None:
            reply.content = f"{reply.content}\n\n{stream.error.content}" if reply.content else stream.error.content
            self._changed(state)
            return reply

        await self._finalize(reply, state, speak=True)
        return reply

    async def _finalize(self, reply: Message, state: ConversationState, speak: bool) -> None:
        if speak and self.capabilities.voice_output and self.speaker is not None:
            try:
                self.speaker.speak(reply.content)
            except Exception as exc:
                logger.warning(f"Voice output failed: {exc}")
        await self._persist_new(reply, state)
        await self._touch_conversation(state)

    def _stopped(self, state: ConversationState) -> None:
        state.status = ChatStatus.CANCELLED
        self._changed(state)
        self._notify(GENERATION_STOPPED, state)

    def cancel(self) -> bool:
        """Stop the in-flight request. Returns False when there is none."""
        if self._token is None or self._token.cancelled:
            return False
        logger.info("Cancelling in-flight generation")
        self._token.cancel()
        return True

    # Editing the transcript

    async def _discard(self, messages: list[Message]) -> None:
        for message in messages:
            if message.id is not None:
                await self._persist("delete message", self.message_db.delete_message(message.id))

    def _position(self, index: int) -> int:
        """Resolve a possibly negative 'index' to a position in the transcript."""
        return range(len(self.state.messages))[index]

    async def edit_message(self, index: int, new_content: str) -> Message | None:
        """Replace the content of the message at 'index'.

        Editing a user message drops every later message and requests a new
        reply from the truncated transcript; that reply is returned. Editing any
        other message only updates it in place.
        """
        if self.busy or not new_content.strip():
            return None
        index = self._position(index)
        message = self.state.messages[index]
        if message.role != Roles.USER:
            message.content = new_content
            message.edited = True
            self._changed()
            if message.id is not None:
                await self._persist("update message", self.message_db.update_message(message))
            return None

        state, token = self._begin()
        try:
            message.content = new_content
            message.edited = True
            discarded = state.messages[index + 1 :]
            state.messages = state.messages[: index + 1]
            self._changed(state)
            if message.id is not None:
                await self._persist("update message", self.message_db.update_message(message))
            await self._discard(discarded)
            if self._abandoned(state, token):
                return None
            return await self._generate(state, token)
        finally:
            self._end(state, token)

    async def regenerate(self, index: int) -> Message | None:
        """Replace everything after the latest user message at or before 'index' with a new reply."""
        if self.busy or not self.state.messages:
            return None
        start = self._position(min(index, len(self.state.messages) - 1))
        user_index = next((i for i in range(start, -1, -1) if self.state.messages[i].role == Roles.USER), None)
        if user_index is None:
            logger.warning(f"No user message at or before index {index}, nothing to regenerate")
            return None
        state, token = self._begin()
        try:
            discarded = state.messages[user_index + 1 :]
            state.messages = state.messages[: user_index + 1]
            self._changed(state)
            await self._discard(discarded)
            if self._abandoned(state, token):
                return None
            return await self._generate(state, token)
        finally:
            self._end(state, token)

    async def delete_message(self, index: int) -> Message | None:
        if self.busy:
            return None
        removed = self.state.messages.pop(self._position(index))
        self._changed()
        await self._discard([removed])
        return removed

    # Images

    async def generate_image(self, prompt: str, size: ImageSize = DEFAULT_IMAGE_SIZE) -> Message | None:
        if not self.capabilities.image_generation or self.image_generator is None:
            logger.warning("Image generation is disabled")
            return None
        if not prompt.strip():
            return None
        result = await self.image_generator.generate(prompt, size)
        if not result.ok:
            self._notify(f"Image generation failed: {result.error}")
            return None
        message = Message(
            conversation_id=self.state.conversation_id,
            role=Roles.ASSISTANT,
            content=f'Generated image: "{prompt}"',
            type=MessageType.IMAGE,
            image_url=result.image_url,
            create_timestamp=get_current_timestamp(),
        )
        self.state.messages.append(message)
        self._changed()
        await self._persist_new(message)
        return message

    # Switching conversations

    def new_conversation(self) -> None:
        self.cancel()
        self.state = ConversationState(draft=self.draft_store.load(None))
        self._changed()

    async def load_conversation(self, conversation_id: str) -> bool:
        conversation = await self._persist(
            "load conversation", self.conversation_db.get_conversation_by_id(conversation_id)
        )
        if conversation is None:
            return False
        messages = await self._persist(
            "load messages", self.message_db.get_messages_by_conversation_id(conversation_id)
        )
        if messages is None:
            return False
        self.cancel()
        self.state = ConversationState(
            conversation_id=conversation.id,
            title=conversation.title,
            messages=messages,
            draft=self.draft_store.load(conversation.id),
        )
        self.settings.model = conversation.model or self.dispatcher.registry.default.id
        logger.info(f"Loaded conversation {conversation_id} with {len(messages)} messages")
        self._changed()
        return True

    async def delete_conversation(self, conversation_id: str) -> bool:
        messages = await self._persist(
            "load messages", self.message_db.get_messages_by_conversation_id(conversation_id)
        )
        for message in messages or []:
            await self._persist("delete message", self.message_db.delete_message(message.id))
        deleted = await self._persist("delete conversation", self.conversation_db.delete_conversation(conversation_id))
        self.draft_store.clear(conversation_id)
        if conversation_id == self.state.conversation_id:
            self.new_conversation()
        await self.refresh_conversations()
        return bool(deleted)

    # Reporting

    def export(self, fmt: str = "markdown") -> str:
        return export_conversation(self.state.messages, fmt)

    def summary(self) -> str:
        return conversation_summary(self.state.messages)

    def suggestions(self, count: int = 4) -> list[str]:
        """Follow-up prompts to offer once the conversation has a reply."""
        if not any(m.role == Roles.ASSISTANT for m in self.state.messages):
            return []
        return suggested_prompts(count)

    def usage_summary(self) -> dict[str, Any]:
        input_tokens = sum(estimate_tokens(m.content) for m in self.state.messages if m.role != Roles.ASSISTANT)
        output_tokens = sum(estimate_tokens(m.content) for m in self.state.messages if m.role == Roles.ASSISTANT)
        return {
            "messages": len(self.state.messages),
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "estimated_cost": calculate_cost(self.settings.model, input_tokens, output_tokens),
        }
