"""
HTTP API.

'create_app' assembles the FastAPI application around a 'ChatDispatcher' and an
'ImageGenerator'. Both are built from 'Settings' unless passed in, which is how
the tests run the routes against fake providers.

'/api/chat' always answers with a 'content' key, also on failure, so clients
need a single response parser. With 'stream: true' the body is plain text
streamed as the provider produces it.
"""

from collections.abc import AsyncGenerator
from typing import Any

import uvicorn
from fastapi import FastAPI, File, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from corprex_chat.config import Settings
from corprex_chat.dispatcher import ChatDispatcher, ChatStream
from corprex_chat.documents import extract_document_text
from corprex_chat.images import DEFAULT_IMAGE_SIZE, ImageGenerator, ImageSize
from corprex_chat.llms.base import ErrorKind, GenerationRequest
from corprex_chat.llms.factory import build_adapters
from corprex_chat.llms.registry import ModelRegistry
from corprex_chat.utils.logging import configure_logging


class ChatRequestBody(BaseModel):
    """Body of '/api/chat'. Ranges are checked when the 'GenerationRequest' is built."""

    messages: list[dict[str, Any]]
    model: str | None = None
    temperature: float = 0.7
    max_tokens: int = 2048
    stream: bool = False
    custom_instructions: str | None = None


class ImageRequestBody(BaseModel):
    prompt: str
    size: ImageSize = DEFAULT_IMAGE_SIZE


def _stream_body(stream: ChatStream) -> AsyncGenerator[str, None]:
    async def body() -> AsyncGenerator[str, None]:
        try:
            async for chunk in stream:
                yield chunk
        finally:
            await stream.aclose()
        if stream.error is not None:
            yield f"\n\n{stream.error.content}" if stream.content else stream.error.content

    return body()


def create_app(
    settings: Settings | None = None,
    dispatcher: ChatDispatcher | None = None,
    image_generator: ImageGenerator | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    registry = ModelRegistry(default_model_id=settings.default_model)
    if dispatcher is None:
        dispatcher = ChatDispatcher(build_adapters(settings), registry)
    if image_generator is None:
        key = settings.openai_api_key
        image_generator = ImageGenerator(AsyncOpenAI(api_key=key) if key else None)

    app = FastAPI(title="Corprex Chat API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher
    app.state.image_generator = image_generator

    @app.get("/api/models")
    async def list_models() -> list[dict[str, Any]]:
        return [descriptor.model_dump(mode="json") for descriptor in dispatcher.registry.visible_models()]

    @app.post("/api/chat", response_model=None)
    async def chat(body: ChatRequestBody) -> JSONResponse | StreamingResponse:
        try:
            request = GenerationRequest(
                messages=body.messages,
                model=body.model or settings.default_model,
                temperature=body.temperature,
                max_tokens=body.max_tokens,
                stream=body.stream,
                system_instructions=body.custom_instructions,
            )
        except ValidationError as exc:
            logger.info(f"Rejected chat request: {exc.error_count()} validation error(s)")
            return JSONResponse({"content": f"Invalid request: {exc.errors()[0]['msg']}"}, status_code=400)
        if not request.messages:
            return JSONResponse({"content": "Invalid request: messages must not be empty"}, status_code=400)

        if request.stream:
            stream = dispatcher.dispatch_stream(request)
            return StreamingResponse(_stream_body(stream), media_type="text/plain; charset=utf-8")

        result = await dispatcher.dispatch(request)
        failed = result.error in (ErrorKind.PROVIDER_CALL_FAILURE, ErrorKind.INTERNAL)
        return JSONResponse({"content": result.content}, status_code=500 if failed else 200)

    @app.post("/api/image")
    async def image(body: ImageRequestBody) -> JSONResponse:
        result = await image_generator.generate(body.prompt, body.size)
        if not result.ok:
            return JSONResponse({"error": result.error}, status_code=500)
        return JSONResponse({"imageUrl": result.image_url})

    @app.post("/api/pdf")
    async def pdf(file: UploadFile | None = File(default=None)) -> JSONResponse:
        if file is None:
            return JSONResponse({"error": "No file provided"}, status_code=400)
        data = await file.read()
        try:
            document = extract_document_text(file.filename or "upload", data)
        except Exception as exc:
            logger.error(f"Failed to extract text from {file.filename!r}: {exc}")
            return JSONResponse({"error": "Failed to process PDF"}, status_code=500)
        return JSONResponse(document.model_dump())

    return app


def main() -> None:
    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
