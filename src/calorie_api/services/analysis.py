"""
Meal analysis pipeline.

upload -> validate -> save -> normalize -> compress -> vision model -> extract.
Every scratch file written along the way is deleted before the call returns,
whether it succeeds or not.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from calorie_api.models.analysis import AnalysisResult, CorrectionContext
from calorie_api.models.meal import PLACEHOLDER_IMAGE_URL

from .image_processing import (
    IMAGE_ERRORS,
    compress_for_vision,
    make_thumbnail_data_url,
    normalize_image,
)
from .upload import ScratchFiles, UploadService
from .vision import VisionAnalysisError, VisionAnalysisService, extract_analysis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisEvent:
    """One step of a streamed analysis: a status line, the result, or an error."""

    event: str
    data: Any


class AnalysisService:
    """
    Service for analyzing meal photos and descriptions.

    Orchestrates the upload service, the image normalizer and the configured
    vision backend.
    """

    def __init__(
        self,
        vision: VisionAnalysisService,
        uploads: UploadService,
        generate_meal_images: bool = True,
    ):
        """
        Initialize analysis service.

        Args:
            vision: Vision analysis backend
            uploads: Upload service for scratch files
            generate_meal_images: Illustrate description-only meals
        """
        self.vision = vision
        self.uploads = uploads
        self.generate_meal_images = generate_meal_images

    async def _prepare_image(
        self,
        content: bytes,
        filename: str | None,
        content_type: str | None,
        scratch: ScratchFiles,
    ) -> tuple[bytes, str, list[str]]:
        """
        Validate, save, normalize and compress an upload.

        Returns:
            Tuple of (bytes to send, MIME type, status lines for streaming)
        """
        notes: list[str] = []
        stored = await asyncio.to_thread(self.uploads.save, content, filename, content_type)
        scratch.track(stored.path)
        notes.append(f"Image validated: {stored.size_mb:.2f}MB")

        normalized = await asyncio.to_thread(normalize_image, stored.path, stored.mime_type)
        if normalized.processed:
            scratch.track(normalized.path)
            notes.append(f"Image processed successfully. Format: {normalized.mime_type}")
        else:
            logger.warning(f"Using original image: {normalized.error}")
            notes.append(
                f"Warning: Image processing failed - {normalized.error}. Using original image."
            )

        data = await asyncio.to_thread(normalized.path.read_bytes)
        data, mime_type = await asyncio.to_thread(
            compress_for_vision, data, normalized.mime_type
        )
        return data, mime_type, notes

    async def _describe(
        self,
        data: bytes,
        mime_type: str,
        correction: CorrectionContext | None,
    ) -> AnalysisResult:
        reply = await self.vision.describe_image(data, mime_type, correction=correction)
        result = extract_analysis(reply.text, reply.schema, provider=reply.provider)
        logger.info(
            f"Analyzed image with {reply.provider} in {reply.processing_time_ms}ms: "
            f"{result.name} ({result.calories} kcal)"
        )
        return result

    async def analyze_upload(
        self,
        content: bytes,
        filename: str | None,
        content_type: str | None,
        correction: CorrectionContext | None = None,
    ) -> AnalysisResult:
        """
        Analyze an uploaded meal photo.

        Args:
            content: Raw upload bytes
            filename: Original filename
            content_type: Declared MIME type
            correction: Prior result and user correction, for re-analysis

        Returns:
            AnalysisResult for the meal

        Raises:
            ValidationError: If the upload is empty or too large
            VisionAnalysisError: If the model call or reply parsing fails
        """
        with ScratchFiles() as scratch:
            data, mime_type, _ = await self._prepare_image(
                content, filename, content_type, scratch
            )
            return await self._describe(data, mime_type, correction)

    async def stream_upload(
        self,
        content: bytes,
        filename: str | None,
        content_type: str | None,
    ) -> AsyncIterator[AnalysisEvent]:
        """
        Analyze an upload, yielding progress as it goes.

        Yields `status` events with human-readable lines, then a single
        `result` event carrying the AnalysisResult. Errors propagate to the
        caller after the scratch files are removed.
        """
        yield AnalysisEvent("status", "Starting analysis...")
        with ScratchFiles() as scratch:
            yield AnalysisEvent("status", "Saving uploaded file...")
            data, mime_type, notes = await self._prepare_image(
                content, filename, content_type, scratch
            )
            for note in notes:
                yield AnalysisEvent("status", note)

            yield AnalysisEvent("status", f"Sending to {self.vision.provider_name} for analysis...")
            result = await self._describe(data, mime_type, None)

        yield AnalysisEvent("status", "Analysis complete!")
        yield AnalysisEvent("result", result)

    async def _meal_image_url(self, description: str) -> str:
        """Generate a thumbnail data URL, or the placeholder if that fails."""
        try:
            image = await self.vision.generate_image(description)
            if image is None:
                return PLACEHOLDER_IMAGE_URL
            data_url = await asyncio.to_thread(make_thumbnail_data_url, image)
        except (VisionAnalysisError, *IMAGE_ERRORS) as e:
            logger.warning(f"Meal image generation failed, using placeholder: {e}")
            return PLACEHOLDER_IMAGE_URL

        logger.info(f"Generated meal thumbnail ({len(data_url) // 1024} KB data URL)")
        return data_url

    async def analyze_description(
        self,
        description: str,
        previous: str | None = None,
    ) -> AnalysisResult:
        """
        Analyze a free-text meal description.

        New descriptions get a generated thumbnail in `imageUrl` (placeholder
        on failure). Corrections (`previous` set) skip image generation and
        leave `imageUrl` unset so the client keeps its current image.

        Raises:
            VisionAnalysisError: If the model call or reply parsing fails
        """
        reply = await self.vision.describe_text(description, previous=previous)
        result = extract_analysis(reply.text, reply.schema, provider=reply.provider)
        logger.info(f"Analyzed description with {reply.provider}: {result.name}")

        if previous:
            return result

        image_url = PLACEHOLDER_IMAGE_URL
        if self.generate_meal_images:
            image_url = await self._meal_image_url(description)
        return result.model_copy(update={"imageUrl": image_url})
