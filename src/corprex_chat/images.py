"""
Image generation through the OpenAI images API.

Like the chat adapters, 'ImageGenerator' is built with or without a client and
reports a missing credential as a normal result instead of raising.
"""

from typing import Literal

from loguru import logger
from openai import AsyncOpenAI
from pydantic import BaseModel

ImageSize = Literal["1024x1024", "1792x1024", "1024x1792"]

IMAGE_MODEL = "dall-e-3"
DEFAULT_IMAGE_SIZE: ImageSize = "1024x1024"


class ImageResult(BaseModel):
    image_url: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.image_url is not None


class ImageGenerator:
    def __init__(self, client: AsyncOpenAI | None = None, model: str = IMAGE_MODEL) -> None:
        self.client = client
        self.model = model

    @property
    def available(self) -> bool:
        return self.client is not None

    async def generate(self, prompt: str, size: ImageSize = DEFAULT_IMAGE_SIZE) -> ImageResult:
        if not prompt.strip():
            return ImageResult(error="Prompt must not be empty")
        if self.client is None:
            return ImageResult(error="Image generation requires an OpenAI API key. Add OPENAI_API_KEY to enable it.")
        try:
            response = await self.client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=size,
                quality="standard",
            )
        except Exception as exc:
            logger.error(f"Image generation failed: {exc}")
            return ImageResult(error=str(exc) or "Failed to generate image")
        if not response.data or not response.data[0].url:
            return ImageResult(error="Failed to generate image")
        logger.info(f"Generated {size} image with {self.model}")
        return ImageResult(image_url=response.data[0].url)
