"""
OpenAI chat completions backend.

Messages are passed through unchanged, system messages included.
"""

from collections.abc import AsyncGenerator

from openai import AsyncOpenAI

from corprex_chat.llms.base import GenerationRequest, Provider, ProviderAdapter

NO_RESPONSE = "No response generated"


class OpenAIAdapter(ProviderAdapter):
    provider = Provider.OPENAI
    label = "OpenAI"
    env_var = "OPENAI_API_KEY"
    unavailable_message = (
        "I'm working! However, no OpenAI API key is configured. Add your OPENAI_API_KEY to enable AI responses."
    )

    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        super().__init__(client)

    @staticmethod
    def build_messages(request: GenerationRequest) -> list[dict[str, str]]:
        return [message.to_wire() for message in request.conversation()]

    async def _complete(self, request: GenerationRequest) -> str:
        completion = await self.client.chat.completions.create(
            model=request.model,
            messages=self.build_messages(request),
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )
        if not completion.choices:
            return NO_RESPONSE
        return completion.choices[0].message.content or NO_RESPONSE

    async def _stream(self, request: GenerationRequest) -> AsyncGenerator[str, None]:
        response = await self.client.chat.completions.create(
            model=request.model,
            messages=self.build_messages(request),
            temperature=request.temperature,
            max_tokens=request.max_tokens,
            stream=True,
        )
        try:
            async for chunk in response:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        finally:
            await response.close()
