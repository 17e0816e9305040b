"""Pydantic models for AI meal analysis."""

from pydantic import BaseModel, Field

from .meal import DEFAULT_HEALTH_SCORE


class AnalysisResult(BaseModel):
    """
    Nutritional estimate produced by a vision/text model.

    Transient: consumed once to pre-fill a meal before the client saves it.
    """

    name: str
    description: str
    calories: int = Field(0, ge=0)
    protein: int = Field(0, ge=0)
    carbs: int = Field(0, ge=0)
    fats: int = Field(0, ge=0)
    healthScore: int = Field(DEFAULT_HEALTH_SCORE, ge=1, le=5)
    imageUrl: str | None = None


class AnalysisResponse(AnalysisResult):
    """Response for the analysis endpoints (flat, not wrapped in `data`)."""

    success: bool = True
    message: str = "Food analyzed with AI"

    @classmethod
    def from_result(cls, result: AnalysisResult, message: str) -> "AnalysisResponse":
        return cls(**result.model_dump(), message=message)


class DescriptionRequest(BaseModel):
    """Request body for POST /api/analyze-description."""

    description: str | None = Field(None, description="Free-text meal description")
    previousNutritionalInfo: str | None = Field(
        None, description="Previous analysis, when the description is a correction"
    )


class CorrectionContext(BaseModel):
    """Prior result plus a user correction, for re-analysis flows."""

    previous_result: str
    correction_text: str
