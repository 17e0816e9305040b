"""
Anthropic Claude provider for meal analysis.

Sends the image as a base64 content block to the Messages API and returns the
first text block of the reply.
"""

import base64
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
    CLAUDE_IMAGE_PROMPT,
    CLAUDE_IMAGE_SCHEMA,
    CLAUDE_SYSTEM_PROMPT,
    DESCRIPTION_SCHEMA,
    DESCRIPTION_SYSTEM_PROMPT,
    description_user_prompt,
    image_user_prompt,
)

logger = logging.getLogger(__name__)

ANTHROPIC_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 1000


class AnthropicVisionService(VisionAnalysisService):
    """
    Meal analysis using the Anthropic Messages API.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5",
        base_url: str = ANTHROPIC_BASE_URL,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            model: Claude model to use
            base_url: API base URL
            timeout: Request timeout in seconds
            client: Pre-built HTTP client (tests pass one with a mock transport)
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def provider_name(self) -> str:
        return f"anthropic/{self.model}"

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    async def _complete(
        self,
        system: str,
        content: list[dict[str, Any]],
        schema: ReplySchema,
    ) -> VisionReply:
        start_time = time.time()
        request_body = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "system": system,
            "messages": [{"role": "user", "content": content}],
        }

        logger.info(f"Sending analysis request to Claude ({self.model})")
        data = await post_json(
            self._client,
            f"{self.base_url}/v1/messages",
            headers=self._headers(),
            payload=request_body,
            provider=self.provider_name,
        )

        text = self._first_text_block(data)
        processing_time = int((time.time() - start_time) * 1000)
        logger.debug(f"Raw Claude response: {text[:500]}")

        return VisionReply(
            text=text,
            schema=schema,
            provider=self.provider_name,
            processing_time_ms=processing_time,
        )

    def _first_text_block(self, data: dict[str, Any]) -> str:
        """Return the first text block of a Messages API response."""
        blocks = data.get("content")
        if isinstance(blocks, list):
            for block in blocks:
                if (
                    isinstance(block, dict)
                    and block.get("type") == "text"
                    and isinstance(block.get("text"), str)
                ):
                    return block["text"]

        raise VisionAnalysisError(
            message="Unexpected response format from Claude API",
            error_code="VENDOR_ERROR",
            provider=self.provider_name,
            details={"stop_reason": data.get("stop_reason")},
        )

    async def describe_image(
        self,
        image_data: bytes,
        media_type: str,
        *,
        correction: CorrectionContext | None = None,
    ) -> VisionReply:
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": coerce_media_type(media_type),
                    "data": base64.b64encode(image_data).decode("utf-8"),
                },
            },
            {"type": "text", "text": image_user_prompt(CLAUDE_IMAGE_PROMPT, correction)},
        ]
        return await self._complete(CLAUDE_SYSTEM_PROMPT, content, CLAUDE_IMAGE_SCHEMA)

    async def describe_text(
        self,
        description: str,
        *,
        previous: str | None = None,
    ) -> VisionReply:
        content = [{"type": "text", "text": description_user_prompt(description, previous)}]
        return await self._complete(DESCRIPTION_SYSTEM_PROMPT, content, DESCRIPTION_SCHEMA)

    async def health_check(self) -> bool:
        return bool(self.api_key)

    async def close(self) -> None:
        await self._client.aclose()
