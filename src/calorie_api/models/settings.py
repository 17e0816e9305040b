"""Pydantic models for per-user calorie and macro targets."""

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field

DEFAULT_DAILY_CALORIES = 2000

# Share of daily calories per macro, and kcal per gram
PROTEIN_SHARE, CARBS_SHARE, FATS_SHARE = 0.30, 0.50, 0.20
KCAL_PER_GRAM_PROTEIN, KCAL_PER_GRAM_CARBS, KCAL_PER_GRAM_FATS = 4, 4, 9


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def default_macro_targets(daily_calories: int) -> dict[str, int]:
    """
    Derive gram targets from a calorie target using a 30/50/20 split.

    Args:
        daily_calories: Daily calorie target

    Returns:
        Dict with proteinTarget, carbsTarget, fatsTarget in grams
    """
    return {
        "proteinTarget": round_half_up(daily_calories * PROTEIN_SHARE / KCAL_PER_GRAM_PROTEIN),
        "carbsTarget": round_half_up(daily_calories * CARBS_SHARE / KCAL_PER_GRAM_CARBS),
        "fatsTarget": round_half_up(daily_calories * FATS_SHARE / KCAL_PER_GRAM_FATS),
    }


class UserSettings(BaseModel):
    """Daily targets. Unset macro targets are derived from calories."""

    dailyCalorieTarget: int = Field(DEFAULT_DAILY_CALORIES, ge=500, le=10000)
    proteinTarget: int | None = Field(None, ge=0, description="Grams of protein")
    carbsTarget: int | None = Field(None, ge=0, description="Grams of carbohydrates")
    fatsTarget: int | None = Field(None, ge=0, description="Grams of fat")

    def resolved(self) -> "UserSettings":
        """Return a copy with every unset macro target filled in."""
        derived = default_macro_targets(self.dailyCalorieTarget)
        return self.model_copy(
            update={
                key: value
                for key, value in derived.items()
                if getattr(self, key) is None
            }
        )


class SettingsResponse(BaseModel):
    """Envelope for settings reads and writes."""

    success: bool = True
    data: UserSettings
