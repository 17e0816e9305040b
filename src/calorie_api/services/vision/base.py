"""
Base classes and models for the vision analysis service.

Defines the abstract interface every model backend implements, the reply
envelope it returns and the error type it raises.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from calorie_api.models.analysis import CorrectionContext

SUPPORTED_MEDIA_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


def coerce_media_type(mime_type: str | None) -> str:
    """
    Restrict an outgoing MIME type to what vision vendors accept.

    Anything mentioning png/jpeg maps to that type, other supported types pass
    through, and everything else is sent as JPEG.
    """
    mime_type = (mime_type or "").lower()
    if "png" in mime_type:
        return "image/png"
    if "jpeg" in mime_type or "jpg" in mime_type:
        return "image/jpeg"
    if mime_type in SUPPORTED_MEDIA_TYPES:
        return mime_type
    return "image/jpeg"


@dataclass(frozen=True)
class ReplySchema:
    """
    The JSON shape a prompt asked the model for.

    `fields` lists the keys in the order the prompt names them; the extractor
    uses them to find and validate the JSON block. `health_scale` is the top
    of the health score range the prompt asked for (5 or 10).
    """

    name_key: str
    health_key: str
    fields: tuple[str, ...]
    health_scale: int = 5


@dataclass(frozen=True)
class VisionReply:
    """Raw text reply from a model, plus the shape it was asked for."""

    text: str
    schema: ReplySchema
    provider: str
    processing_time_ms: int = 0


class VisionAnalysisError(Exception):
    """Error during vision analysis.

    `error_code` tags the failure:
    - VENDOR_ERROR: the vendor answered with an error or an unusable envelope
    - CONNECTION_ERROR: the vendor could not be reached
    - UNAVAILABLE: no backend is configured for this deployment
    - PARSE_ERROR: the reply could not be turned into an analysis
    """

    def __init__(
        self,
        message: str,
        error_code: str = "VENDOR_ERROR",
        provider: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider = provider
        self.details = details or {}


class ResponseParseError(VisionAnalysisError):
    """Neither the JSON nor the per-field path produced usable fields."""

    def __init__(self, message: str, provider: str = "unknown", raw_text: str = ""):
        super().__init__(
            message,
            error_code="PARSE_ERROR",
            provider=provider,
            details={"raw_text": raw_text[:500]},
        )


class VisionAnalysisService(ABC):
    """
    Abstract base class for vision analysis backends.

    Every backend (Anthropic, OpenAI, fixture) implements this interface.
    Each call issues exactly one request; there is no retry.
    """

    # Status reported by /health: "available", "fixture" or "unavailable"
    status: str = "available"

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider."""
        ...

    @abstractmethod
    async def describe_image(
        self,
        image_data: bytes,
        media_type: str,
        *,
        correction: CorrectionContext | None = None,
    ) -> VisionReply:
        """
        Ask the model to analyze a meal photo.

        Args:
            image_data: Normalized image bytes
            media_type: MIME type of `image_data`
            correction: Prior result and user correction, for re-analysis

        Returns:
            VisionReply with the model's raw text

        Raises:
            VisionAnalysisError: If the call fails
        """
        ...

    @abstractmethod
    async def describe_text(
        self,
        description: str,
        *,
        previous: str | None = None,
    ) -> VisionReply:
        """
        Ask the model to analyze a free-text meal description.

        Args:
            description: What the user ate, or a correction when `previous` is set
            previous: Prior nutritional analysis being corrected

        Raises:
            VisionAnalysisError: If the call fails
        """
        ...

    async def generate_image(self, prompt: str) -> bytes | None:
        """
        Generate an illustrative meal image.

        Returns:
            Image bytes, or None when the backend cannot generate images
        """
        return None

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is configured and ready.

        Returns:
            True if the provider is ready to accept requests
        """
        ...

    async def close(self) -> None:
        """Release any HTTP resources."""
        return None


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str],
    payload: dict[str, Any],
    provider: str,
) -> dict[str, Any]:
    """
    POST a JSON payload to a vendor and return the decoded JSON envelope.

    Raises:
        VisionAnalysisError: CONNECTION_ERROR when the vendor is unreachable,
            VENDOR_ERROR for non-2xx statuses or a non-object body
    """
    try:
        response = await client.post(url, headers=headers, json=payload)
    except httpx.RequestError as e:
        raise VisionAnalysisError(
            message=f"Failed to connect to {provider}: {e}",
            error_code="CONNECTION_ERROR",
            provider=provider,
        ) from e

    if not response.is_success:
        raise VisionAnalysisError(
            message=f"{provider} API error: {response.status_code}",
            error_code="VENDOR_ERROR",
            provider=provider,
            details={"status_code": response.status_code, "body": response.text[:500]},
        )

    try:
        data = response.json()
    except ValueError as e:
        raise VisionAnalysisError(
            message=f"{provider} returned a non-JSON body",
            error_code="VENDOR_ERROR",
            provider=provider,
        ) from e

    if not isinstance(data, dict):
        raise VisionAnalysisError(
            message=f"Unexpected response format from {provider}",
            error_code="VENDOR_ERROR",
            provider=provider,
        )
    return data
