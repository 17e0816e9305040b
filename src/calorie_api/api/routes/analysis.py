"""Meal analysis API routes."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi import APIRouter, File, Form, UploadFile
from sse_starlette.sse import EventSourceResponse

from calorie_api.api.dependencies import AnalysisServiceDep, OptionalUserDep
from calorie_api.core.exceptions import APIError, ValidationError
from calorie_api.models.analysis import AnalysisResponse, CorrectionContext, DescriptionRequest
from calorie_api.services.analysis import AnalysisService
from calorie_api.services.vision import VisionAnalysisError

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_image(image: UploadFile | None) -> bytes:
    if image is None:
        raise ValidationError("No image uploaded")
    return await image.read()


@router.post("/analyze-image", response_model=AnalysisResponse)
async def analyze_image(
    service: AnalysisServiceDep,
    user: OptionalUserDep,
    image: UploadFile | None = File(None, description="Meal photo (max 4.5MB)"),
):
    """
    Estimate a meal's nutrition from a photo.

    Returns the analysis fields for the client to review before saving;
    nothing is stored.
    """
    content = await _read_image(image)
    logger.info(f"Analyze image request from {user.uid if user else 'anonymous'}")
    result = await service.analyze_upload(content, image.filename, image.content_type)
    return AnalysisResponse.from_result(result, "Food analyzed with AI")


async def stream_events(
    service: AnalysisService,
    content: bytes,
    filename: str | None,
    content_type: str | None,
) -> AsyncIterator[dict[str, str]]:
    """Generate SSE events from the analysis pipeline."""
    try:
        # Closing this generator closes the pipeline too, which removes its scratch files
        async with aclosing(service.stream_upload(content, filename, content_type)) as events:
            async for event in events:
                if event.event == "result":
                    response = AnalysisResponse.from_result(event.data, "Food analyzed with AI")
                    yield {"event": "result", "data": response.model_dump_json()}
                else:
                    yield {"event": event.event, "data": event.data}
    except (APIError, VisionAnalysisError) as e:
        logger.warning(f"Streaming analysis failed: {e.message}")
        yield {
            "event": "error",
            "data": json.dumps({"success": False, "message": e.message}),
        }
    except Exception as e:
        logger.exception("Unexpected error in streaming analysis")
        yield {
            "event": "error",
            "data": json.dumps({"success": False, "message": f"Server error: {e}"}),
        }


@router.post("/analyze-stream", response_model=None)
async def analyze_stream(
    service: AnalysisServiceDep,
    user: OptionalUserDep,
    image: UploadFile | None = File(None, description="Meal photo (max 4.5MB)"),
):
    """
    Analyze a meal photo, streaming progress.

    Uses Server-Sent Events: `status` events carry progress lines, then one
    `result` event carries the analysis JSON, or an `error` event carries
    `{success: false, message}`.
    """
    content = await _read_image(image)
    filename, content_type = image.filename, image.content_type
    logger.info(f"Streaming analysis request from {user.uid if user else 'anonymous'}")

    return EventSourceResponse(stream_events(service, content, filename, content_type))


@router.post("/correct-meal", response_model=AnalysisResponse)
async def correct_meal(
    service: AnalysisServiceDep,
    user: OptionalUserDep,
    image: UploadFile | None = File(None, description="The original meal photo"),
    previousResult: str | None = Form(None, description="The analysis being corrected"),
    correctionText: str | None = Form(None, description="What the user says is wrong"),
):
    """
    Re-analyze a meal photo with the user's correction.
    """
    if image is None:
        raise ValidationError("No image provided")
    if not previousResult or not correctionText:
        raise ValidationError("Previous result and correction text are required")

    content = await image.read()
    correction = CorrectionContext(
        previous_result=previousResult,
        correction_text=correctionText,
    )
    logger.info(f"Correction request from {user.uid if user else 'anonymous'}: {correctionText}")
    result = await service.analyze_upload(
        content, image.filename, image.content_type, correction=correction
    )
    return AnalysisResponse.from_result(result, "Meal analysis corrected")


@router.post("/analyze-description", response_model=AnalysisResponse)
async def analyze_description(
    body: DescriptionRequest,
    service: AnalysisServiceDep,
    user: OptionalUserDep,
):
    """
    Estimate a meal's nutrition from a text description.

    - **description**: What was eaten, or a correction to a previous analysis
    - **previousNutritionalInfo**: The analysis being corrected, if any

    New descriptions also get a generated thumbnail in `imageUrl`.
    """
    if not body.description or not body.description.strip():
        raise ValidationError("Description is required")

    logger.info(f"Description analysis from {user.uid if user else 'anonymous'}")
    result = await service.analyze_description(
        body.description.strip(),
        previous=body.previousNutritionalInfo,
    )
    return AnalysisResponse.from_result(result, "Meal description analyzed")
