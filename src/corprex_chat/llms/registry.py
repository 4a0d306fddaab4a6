"""
Static model catalog and provider classification.

'ModelRegistry.resolve' never fails: an id missing from the catalog (for
example a stale model id persisted on an old conversation) resolves to the
default descriptor. 'ModelRegistry.provider_for' classifies ids by prefix and
substring, in a fixed precedence order, so ids that are not in the catalog
still route to the right provider.
"""

from pydantic import BaseModel

from corprex_chat.llms.base import Provider


class ModelDescriptor(BaseModel):
    """A catalog entry. 'api_model' is the name sent to the provider when it differs from 'id'."""

    id: str
    name: str
    provider: Provider
    description: str
    hidden: bool = False
    supports_streaming: bool = True
    api_model: str | None = None


DEFAULT_MODEL_ID = "gpt-3.5-turbo"

MODEL_CATALOG: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(id="gpt-3.5-turbo", name="GPT-3.5", provider=Provider.OPENAI, description="Fast and efficient"),
    ModelDescriptor(id="gpt-4", name="GPT-4", provider=Provider.OPENAI, description="Advanced reasoning"),
    ModelDescriptor(
        id="claude-3-5-sonnet",
        name="Claude 3.5",
        provider=Provider.ANTHROPIC,
        description="Advanced analysis",
        api_model="claude-3-5-sonnet-latest",
    ),
    # Hidden from the model picker but still resolvable for existing conversations
    ModelDescriptor(
        id="gemini-1.5-flash",
        name="Gemini",
        provider=Provider.GOOGLE,
        description="Multimodal AI",
        hidden=True,
    ),
    ModelDescriptor(
        id="mixtral-8x7b",
        name="Mixtral",
        provider=Provider.GROQ,
        description="Open source",
        hidden=True,
        api_model="mixtral-8x7b-32768",
    ),
)


class ModelRegistry:
    def __init__(
        self,
        catalog: tuple[ModelDescriptor, ...] | list[ModelDescriptor] = MODEL_CATALOG,
        default_model_id: str = DEFAULT_MODEL_ID,
    ) -> None:
        if not catalog:
            raise ValueError("Model catalog must not be empty")
        self.catalog = tuple(catalog)
        self._by_id = {descriptor.id: descriptor for descriptor in self.catalog}
        self.default = self._by_id.get(default_model_id, self.catalog[0])

    def resolve(self, model_id: str | None) -> ModelDescriptor:
        if model_id and model_id in self._by_id:
            return self._by_id[model_id]
        return self.default

    def is_known(self, model_id: str | None) -> bool:
        return bool(model_id) and model_id in self._by_id

    def visible_models(self) -> list[ModelDescriptor]:
        return [descriptor for descriptor in self.catalog if not descriptor.hidden]

    @staticmethod
    def provider_for(model_id: str | None) -> Provider:
        """Classify a model id. The order of the checks is part of the contract.

        Matching is case-sensitive; catalog and provider ids are lowercase.
        """
        model_id = model_id or ""
        if model_id.startswith("gpt"):
            return Provider.OPENAI
        if "claude" in model_id:
            return Provider.ANTHROPIC
        if "gemini" in model_id:
            return Provider.GOOGLE
        if "llama" in model_id or "mixtral" in model_id:
            return Provider.GROQ
        return Provider.UNKNOWN

    def api_model_for(self, model_id: str) -> str:
        descriptor = self._by_id.get(model_id)
        if descriptor is not None and descriptor.api_model:
            return descriptor.api_model
        return model_id
