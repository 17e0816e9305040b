"""
Vision Analysis Service - facade over the vision-language model vendors.

Anthropic and OpenAI backends share one interface; the response extractor
turns their free-text replies into an AnalysisResult.
"""

from .anthropic_provider import AnthropicVisionService
from .base import (
    ReplySchema,
    ResponseParseError,
    VisionAnalysisError,
    VisionAnalysisService,
    VisionReply,
    coerce_media_type,
)
from .extraction import extract_analysis, normalize_health_score
from .factory import build_vision_service
from .fallback import FixtureVisionService, UnavailableVisionService
from .openai_provider import OpenAIVisionService

__all__ = [
    "VisionAnalysisService",
    "VisionReply",
    "ReplySchema",
    "VisionAnalysisError",
    "ResponseParseError",
    "coerce_media_type",
    "extract_analysis",
    "normalize_health_score",
    "build_vision_service",
    "AnthropicVisionService",
    "OpenAIVisionService",
    "FixtureVisionService",
    "UnavailableVisionService",
]
