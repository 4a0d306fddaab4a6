"""
Google Gemini backend.

Gemini chats are seeded with the prior turns as history ('assistant' becomes
'model') and only the final message is sent as the new turn. System messages
become the model's system instruction.
"""

from collections.abc import AsyncGenerator
from typing import Any

from google import genai
from google.genai import types

from corprex_chat.llms.base import GenerationRequest, LLMMessage, Provider, ProviderAdapter, Roles, split_system_prompt

NO_RESPONSE = "No response generated"


def to_history(messages: list[LLMMessage]) -> list[types.Content]:
    return [
        types.Content(
            role="model" if message.role == Roles.ASSISTANT else "user",
            parts=[types.Part(text=message.content)],
        )
        for message in messages
    ]


def shape_request(request: GenerationRequest) -> dict[str, Any]:
    """Split a request into chat-creation arguments and the new turn's text."""
    system_prompt, turns = split_system_prompt(request.conversation())
    if not turns:
        raise ValueError("Gemini requests need at least one user or assistant message")
    return {
        "model": request.model,
        "history": to_history(turns[:-1]),
        "message": turns[-1].content,
        "config": types.GenerateContentConfig(
            temperature=request.temperature,
            max_output_tokens=request.max_tokens,
            system_instruction=system_prompt,
        ),
    }


class GoogleAdapter(ProviderAdapter):
    provider = Provider.GOOGLE
    label = "Google"
    env_var = "GOOGLE_AI_API_KEY"
    unavailable_message = "Gemini models require a Google AI API key. Add GOOGLE_AI_API_KEY to enable Gemini."

    def __init__(self, client: genai.Client | None = None) -> None:
        super().__init__(client)

    def _start_chat(self, shaped: dict[str, Any]) -> Any:
        return self.client.aio.chats.create(model=shaped["model"], history=shaped["history"], config=shaped["config"])

    async def _complete(self, request: GenerationRequest) -> str:
        shaped = shape_request(request)
        chat = self._start_chat(shaped)
        response = await chat.send_message(shaped["message"])
        return response.text or NO_RESPONSE

    async def _stream(self, request: GenerationRequest) -> AsyncGenerator[str, None]:
        shaped = shape_request(request)
        chat = self._start_chat(shaped)
        async for chunk in await chat.send_message_stream(shaped["message"]):
            if chunk.text:
                yield chunk.text
