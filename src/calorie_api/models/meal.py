"""Pydantic models for meal records.

Field names are camelCase to match the JSON the web and mobile clients
already exchange with the API.
"""

from pydantic import BaseModel, Field

PLACEHOLDER_IMAGE_URL = "/placeholder.svg"
DEFAULT_HEALTH_SCORE = 3


class MealCreate(BaseModel):
    """Request body for POST /api/meals."""

    name: str | None = Field(None, description="Meal name")
    calories: int | None = Field(None, ge=0, description="Total kcal")
    description: str | None = None
    protein: int | None = Field(None, ge=0, description="Protein in grams")
    carbs: int | None = Field(None, ge=0, description="Carbohydrates in grams")
    fats: int | None = Field(None, ge=0, description="Fat in grams")
    imageUrl: str | None = Field(None, description="Thumbnail data URL or path")
    timestamp: int | None = Field(None, ge=0, description="Epoch milliseconds")
    healthScore: int | None = Field(None, ge=1, le=5, description="1 (poor) to 5 (great)")


class Meal(BaseModel):
    """A stored meal record."""

    id: str
    name: str
    description: str | None = None
    calories: int = Field(ge=0)
    protein: int | None = Field(None, ge=0)
    carbs: int | None = Field(None, ge=0)
    fats: int | None = Field(None, ge=0)
    imageUrl: str = PLACEHOLDER_IMAGE_URL
    timestamp: int
    healthScore: int = Field(DEFAULT_HEALTH_SCORE, ge=1, le=5)
    userId: str


class MealResponse(BaseModel):
    """Envelope for a single meal."""

    success: bool = True
    data: Meal


class MealListResponse(BaseModel):
    """Envelope for a list of meals."""

    success: bool = True
    data: list[Meal] = Field(default_factory=list)


class MessageResponse(BaseModel):
    """Envelope for operations that return only a status message."""

    success: bool = True
    message: str
