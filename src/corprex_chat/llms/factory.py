"""
Adapter construction.

'build_adapters' runs once at process start. Each provider gets an adapter;
the SDK client is only created when the provider's credential is configured,
otherwise the adapter stays unavailable and answers with a configuration hint.
"""

from anthropic import AsyncAnthropic
from google import genai
from groq import AsyncGroq
from loguru import logger
from openai import AsyncOpenAI

from corprex_chat.config import Settings
from corprex_chat.llms.anthropic import AnthropicAdapter
from corprex_chat.llms.base import Provider, ProviderAdapter
from corprex_chat.llms.google import GoogleAdapter
from corprex_chat.llms.groq import GroqAdapter
from corprex_chat.llms.openai import OpenAIAdapter


def build_adapter(provider: Provider, api_key: str | None) -> ProviderAdapter:
    match provider:
        case Provider.OPENAI:
            return OpenAIAdapter(AsyncOpenAI(api_key=api_key) if api_key else None)
        case Provider.ANTHROPIC:
            return AnthropicAdapter(AsyncAnthropic(api_key=api_key) if api_key else None)
        case Provider.GOOGLE:
            return GoogleAdapter(genai.Client(api_key=api_key) if api_key else None)
        case Provider.GROQ:
            return GroqAdapter(AsyncGroq(api_key=api_key) if api_key else None)
        case _:
            raise ValueError(f"Unsupported provider {provider!r}")


def build_adapters(settings: Settings) -> dict[Provider, ProviderAdapter]:
    adapters: dict[Provider, ProviderAdapter] = {}
    for provider in (Provider.OPENAI, Provider.ANTHROPIC, Provider.GOOGLE, Provider.GROQ):
        adapter = build_adapter(provider, settings.credential_for(provider))
        state = "configured" if adapter.available else f"unavailable (set {adapter.env_var})"
        logger.info(f"Provider {adapter.label}: {state}")
        adapters[provider] = adapter
    return adapters
