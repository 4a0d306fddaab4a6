import pytest

from corprex_chat.llms.base import Provider
from corprex_chat.llms.registry import DEFAULT_MODEL_ID, MODEL_CATALOG, ModelDescriptor, ModelRegistry


@pytest.fixture
def registry() -> ModelRegistry:
    return ModelRegistry()


def test_resolve_known_model(registry: ModelRegistry):
    descriptor = registry.resolve("claude-3-5-sonnet")
    assert descriptor.name == "Claude 3.5"
    assert descriptor.provider == Provider.ANTHROPIC


@pytest.mark.parametrize("model_id", ["", None, "gpt-2-retired", "not a model", "CLAUDE-3-5-SONNET"])
def test_resolve_unknown_model_falls_back_to_default(registry: ModelRegistry, model_id):
    assert registry.resolve(model_id).id == DEFAULT_MODEL_ID


def test_hidden_models_still_resolve(registry: ModelRegistry):
    assert registry.resolve("mixtral-8x7b").name == "Mixtral"
    assert registry.resolve("gemini-1.5-flash").provider == Provider.GOOGLE
    visible = [d.id for d in registry.visible_models()]
    assert visible == ["gpt-3.5-turbo", "gpt-4", "claude-3-5-sonnet"]


@pytest.mark.parametrize(
    "model_id, provider",
    [
        ("gpt-4", Provider.OPENAI),
        ("gpt-4-claude-gemini-llama", Provider.OPENAI),
        ("claude-3-5-sonnet", Provider.ANTHROPIC),
        ("claude-powered-mixtral", Provider.ANTHROPIC),
        ("my-claude-gemini", Provider.ANTHROPIC),
        ("gemini-1.5-flash", Provider.GOOGLE),
        ("gemini-llama-hybrid", Provider.GOOGLE),
        ("llama3-70b-8192", Provider.GROQ),
        ("mixtral-8x7b", Provider.GROQ),
        ("chatgpt-4o", Provider.UNKNOWN),
        ("GPT-4", Provider.UNKNOWN),
        ("Claude-3-Opus", Provider.UNKNOWN),
        ("mistral-large", Provider.UNKNOWN),
        ("", Provider.UNKNOWN),
    ],
)
def test_provider_precedence(model_id: str, provider: Provider):
    assert ModelRegistry.provider_for(model_id) == provider


def test_api_model_mapping(registry: ModelRegistry):
    assert registry.api_model_for("claude-3-5-sonnet") == "claude-3-5-sonnet-latest"
    assert registry.api_model_for("gpt-4") == "gpt-4"
    assert registry.api_model_for("llama3-70b-8192") == "llama3-70b-8192"


def test_custom_default_and_missing_default():
    assert ModelRegistry(default_model_id="gpt-4").resolve("nope").id == "gpt-4"
    assert ModelRegistry(default_model_id="unknown").default == MODEL_CATALOG[0]
    custom = [ModelDescriptor(id="x", name="X", provider=Provider.GROQ, description="")]
    assert ModelRegistry(custom).resolve("y").id == "x"
    with pytest.raises(ValueError):
        ModelRegistry([])
