from types import SimpleNamespace

import pytest
from conftest import ScriptedAdapter
from fastapi.testclient import TestClient

from corprex_chat.api.app import create_app
from corprex_chat.config import Settings
from corprex_chat.images import ImageGenerator
from corprex_chat.llms.base import Provider


class FakeImages:
    async def generate(self, **kwargs):
        return SimpleNamespace(data=[SimpleNamespace(url="https://images.example/generated.png")])


@pytest.fixture
def client(dispatcher) -> TestClient:
    app = create_app(
        settings=Settings(),
        dispatcher=dispatcher,
        image_generator=ImageGenerator(SimpleNamespace(images=FakeImages())),
    )
    return TestClient(app)


def _chat(**overrides) -> dict:
    body = {"messages": [{"role": "user", "content": "Hello"}], "model": "gpt-4"}
    body.update(overrides)
    return body


def test_list_models(client: TestClient):
    response = client.get("/api/models")
    assert response.status_code == 200
    assert [model["id"] for model in response.json()] == ["gpt-3.5-turbo", "gpt-4", "claude-3-5-sonnet"]


def test_chat_success(client: TestClient, openai_adapter):
    response = client.post(
        "/api/chat",
        json=_chat(
            messages=[{"role": "user", "content": "Hello", "timestamp": "2024-05-01T10:00:00Z"}],
            temperature=0.3,
            max_tokens=1024,
            custom_instructions="Be brief",
        ),
    )

    assert response.status_code == 200
    assert response.json() == {"content": "Hi there!"}
    request = openai_adapter.requests[0]
    assert request.temperature == 0.3
    assert request.max_tokens == 1024
    assert request.system_instructions == "Be brief"


def test_chat_without_model_uses_default(client: TestClient, openai_adapter):
    response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Hello"}]})
    assert response.status_code == 200
    assert openai_adapter.requests[0].model == "gpt-3.5-turbo"


def test_chat_missing_credential_is_not_an_error_status(client: TestClient):
    response = client.post("/api/chat", json=_chat(model="claude-3-5-sonnet"))
    assert response.status_code == 200
    assert "ANTHROPIC_API_KEY" in response.json()["content"]


def test_chat_provider_failure(client: TestClient, adapters):
    adapters[Provider.OPENAI] = ScriptedAdapter(Provider.OPENAI, error=RuntimeError("rate limited"))
    response = client.post("/api/chat", json=_chat())
    assert response.status_code == 500
    assert response.json()["content"] == "Openai: rate limited. Please check your API key."


@pytest.mark.parametrize(
    "overrides",
    [
        {"temperature": 2.5},
        {"max_tokens": 10},
        {"messages": []},
        {"messages": [{"role": "robot", "content": "beep"}]},
    ],
)
def test_chat_rejects_invalid_input(client: TestClient, openai_adapter, overrides):
    response = client.post("/api/chat", json=_chat(**overrides))
    assert response.status_code == 400
    assert response.json()["content"].startswith("Invalid request")
    assert openai_adapter.requests == []


def test_chat_stream(client: TestClient, openai_adapter):
    response = client.post("/api/chat", json=_chat(stream=True))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "Hi there!"
    assert openai_adapter.stream_closed


def test_chat_stream_reports_errors_inline(client: TestClient, adapters):
    adapters[Provider.OPENAI] = ScriptedAdapter(Provider.OPENAI, chunks=["Half"], error=RuntimeError("dropped"))
    response = client.post("/api/chat", json=_chat(stream=True))
    assert response.text == "Half\n\nOpenai: dropped. Please check your API key."


def test_image(client: TestClient):
    response = client.post("/api/image", json={"prompt": "a lighthouse at dusk", "size": "1024x1792"})
    assert response.status_code == 200
    assert response.json() == {"imageUrl": "https://images.example/generated.png"}


def test_image_without_credential(dispatcher):
    client = TestClient(create_app(settings=Settings(), dispatcher=dispatcher, image_generator=ImageGenerator(None)))
    response = client.post("/api/image", json={"prompt": "a lighthouse"})
    assert response.status_code == 500
    assert "OPENAI_API_KEY" in response.json()["error"]


def test_image_rejects_unknown_size(client: TestClient):
    response = client.post("/api/image", json={"prompt": "a lighthouse", "size": "10x10"})
    assert response.status_code == 422


def test_pdf_endpoint_extracts_text_files(client: TestClient):
    response = client.post("/api/pdf", files={"file": ("notes.txt", b"meeting notes", "text/plain")})
    assert response.status_code == 200
    assert response.json() == {"text": "meeting notes", "filename": "notes.txt", "size": 13}


def test_pdf_endpoint_without_file(client: TestClient):
    response = client.post("/api/pdf", data={"note": "nothing attached"})
    assert response.status_code == 400
    assert response.json() == {"error": "No file provided"}


def test_pdf_endpoint_with_broken_pdf(client: TestClient):
    response = client.post("/api/pdf", files={"file": ("broken.pdf", b"definitely not a pdf", "application/pdf")})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process PDF"}
