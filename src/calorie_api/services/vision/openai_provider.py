"""
OpenAI provider for meal analysis.

Uses Chat Completions for image and text analysis and the Images API to
illustrate meals that were logged from a description.
"""

import base64
import binascii
import logging
import time
from typing import Any

import httpx

from calorie_api.models.analysis import CorrectionContext

from .base import (
    ReplySchema,
    VisionAnalysisError,
    VisionAnalysisService,
    VisionReply,
    coerce_media_type,
    post_json,
)
from .prompts import (
    DESCRIPTION_SCHEMA,
    DESCRIPTION_SYSTEM_PROMPT,
    GPT_IMAGE_PROMPT,
    GPT_IMAGE_SCHEMA,
    GPT_SYSTEM_PROMPT,
    MEAL_IMAGE_PROMPT,
    description_user_prompt,
    image_user_prompt,
)

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com"
MAX_TOKENS = 1000
IMAGE_SIZE = "1024x1024"
TEXT_TEMPERATURE = 0.7
TEXT_MAX_TOKENS = 500


class OpenAIVisionService(VisionAnalysisService):
    """
    Meal analysis using OpenAI Chat Completions, plus image generation.
    """

    def __init__(
        self,
        api_key: str,
        vision_model: str = "gpt-4o",
        text_model: str = "gpt-4o",
        image_model: str = "dall-e-3",
        base_url: str = OPENAI_BASE_URL,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            vision_model: Model for photo analysis
            text_model: Model for description analysis
            image_model: Model for meal image generation
            base_url: API base URL
            timeout: Request timeout in seconds
            client: Pre-built HTTP client (tests pass one with a mock transport)
        """
        self.api_key = api_key
        self.vision_model = vision_model
        self.text_model = text_model
        self.image_model = image_model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def provider_name(self) -> str:
        return f"openai/{self.vision_model}"

    def _headers(self) -> dict[str, str]:
        # Per request, so the key never reaches the generated-image host
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        schema: ReplySchema,
        **options: Any,
    ) -> VisionReply:
        start_time = time.time()
        request_body = {
            "model": model,
            "messages": messages,
            "max_tokens": MAX_TOKENS,
            **options,
        }

        logger.info(f"Sending analysis request to OpenAI ({model})")
        data = await post_json(
            self._client,
            f"{self.base_url}/v1/chat/completions",
            headers=self._headers(),
            payload=request_body,
            provider=self.provider_name,
        )

        text = self._message_content(data)
        processing_time = int((time.time() - start_time) * 1000)
        logger.debug(f"Raw OpenAI response: {text[:500]}")

        return VisionReply(
            text=text,
            schema=schema,
            provider=self.provider_name,
            processing_time_ms=processing_time,
        )

    def _message_content(self, data: dict[str, Any]) -> str:
        """Return `choices[0].message.content` of a completion response."""
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]

        raise VisionAnalysisError(
            message="Unexpected response format from OpenAI API",
            error_code="VENDOR_ERROR",
            provider=self.provider_name,
        )

    async def describe_image(
        self,
        image_data: bytes,
        media_type: str,
        *,
        correction: CorrectionContext | None = None,
    ) -> VisionReply:
        image_b64 = base64.b64encode(image_data).decode("utf-8")
        data_url = f"data:{coerce_media_type(media_type)};base64,{image_b64}"
        messages = [
            {"role": "system", "content": GPT_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": image_user_prompt(GPT_IMAGE_PROMPT, correction)},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            },
        ]
        return await self._chat(self.vision_model, messages, GPT_IMAGE_SCHEMA)

    async def describe_text(
        self,
        description: str,
        *,
        previous: str | None = None,
    ) -> VisionReply:
        messages = [
            {"role": "system", "content": DESCRIPTION_SYSTEM_PROMPT},
            {"role": "user", "content": description_user_prompt(description, previous)},
        ]
        return await self._chat(
            self.text_model,
            messages,
            DESCRIPTION_SCHEMA,
            temperature=TEXT_TEMPERATURE,
            max_tokens=TEXT_MAX_TOKENS,
        )

    async def generate_image(self, prompt: str) -> bytes | None:
        """
        Generate a meal illustration and download it.

        Raises:
            VisionAnalysisError: If generation or the download fails
        """
        request_body = {
            "model": self.image_model,
            "prompt": MEAL_IMAGE_PROMPT.format(description=prompt),
            "n": 1,
            "size": IMAGE_SIZE,
            "quality": "standard",
            "style": "natural",
        }

        logger.info(f"Generating meal image with {self.image_model}")
        data = await post_json(
            self._client,
            f"{self.base_url}/v1/images/generations",
            headers=self._headers(),
            payload=request_body,
            provider=f"openai/{self.image_model}",
        )

        items = data.get("data")
        item = items[0] if isinstance(items, list) and items else None
        if isinstance(item, dict) and isinstance(item.get("b64_json"), str):
            try:
                return base64.b64decode(item["b64_json"], validate=True)
            except binascii.Error as e:
                raise VisionAnalysisError(
                    message=f"Image generation returned invalid base64: {e}",
                    error_code="VENDOR_ERROR",
                    provider=f"openai/{self.image_model}",
                ) from e
        if not (isinstance(item, dict) and isinstance(item.get("url"), str)):
            raise VisionAnalysisError(
                message="Image generation returned no image",
                error_code="VENDOR_ERROR",
                provider=f"openai/{self.image_model}",
            )

        try:
            response = await self._client.get(item["url"])
        except httpx.RequestError as e:
            raise VisionAnalysisError(
                message=f"Failed to download generated image: {e}",
                error_code="CONNECTION_ERROR",
                provider=f"openai/{self.image_model}",
            ) from e
        if not response.is_success:
            raise VisionAnalysisError(
                message=f"Generated image download failed: {response.status_code}",
                error_code="VENDOR_ERROR",
                provider=f"openai/{self.image_model}",
            )
        return response.content

    async def health_check(self) -> bool:
        return bool(self.api_key)

    async def close(self) -> None:
        await self._client.aclose()
