"""
Groq backend (OpenAI-compatible request shape) for Llama and Mixtral models.

Only 'role' and 'content' are transmitted; any other field a client attached to
a message is stripped before the call.
"""

from collections.abc import AsyncGenerator

from groq import AsyncGroq

from corprex_chat.llms.base import GenerationRequest, Provider, ProviderAdapter

NO_RESPONSE = "No response generated"


class GroqAdapter(ProviderAdapter):
    provider = Provider.GROQ
    label = "Groq"
    env_var = "GROQ_API_KEY"
    unavailable_message = "Groq models require a Groq API key. Add GROQ_API_KEY to enable Llama/Mixtral."

    def __init__(self, client: AsyncGroq | None = None) -> None:
        super().__init__(client)

    @staticmethod
    def build_messages(request: GenerationRequest) -> list[dict[str, str]]:
        return [{"role": message.role.value, "content": message.content} for message in request.conversation()]

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
