"""
Anthropic messages backend.

The Messages API takes the system prompt as a top-level field and accepts only
'user' and 'assistant' turns. 'shape_request' does that translation up front so
the rule can be exercised without a client.
"""

from collections.abc import AsyncGenerator
from typing import Any

from anthropic import AsyncAnthropic

from corprex_chat.llms.base import GenerationRequest, Provider, ProviderAdapter, Roles, split_system_prompt


def shape_request(request: GenerationRequest) -> dict[str, Any]:
    """Build the keyword arguments for 'messages.create' / 'messages.stream'."""
    system_prompt, turns = split_system_prompt(request.conversation())
    payload: dict[str, Any] = {
        "model": request.model,
        "max_tokens": request.max_tokens,
        "temperature": request.temperature,
        "messages": [
            {
                "role": Roles.ASSISTANT.value if message.role == Roles.ASSISTANT else Roles.USER.value,
                "content": message.content,
            }
            for message in turns
        ],
    }
    if system_prompt:
        payload["system"] = system_prompt
    return payload


class AnthropicAdapter(ProviderAdapter):
    provider = Provider.ANTHROPIC
    label = "Anthropic"
    env_var = "ANTHROPIC_API_KEY"
    unavailable_message = "Claude models require an Anthropic API key. Add ANTHROPIC_API_KEY to enable Claude."

    def __init__(self, client: AsyncAnthropic | None = None) -> None:
        super().__init__(client)

    async def _complete(self, request: GenerationRequest) -> str:
        message = await self.client.messages.create(**shape_request(request))
        return "".join(block.text for block in message.content if block.type == "text")

    async def _stream(self, request: GenerationRequest) -> AsyncGenerator[str, None]:
        async with self.client.messages.stream(**shape_request(request)) as stream:
            async for text in stream.text_stream:
                yield text
