"""Prompts and reply schemas for meal analysis."""

from calorie_api.models.analysis import CorrectionContext

from .base import ReplySchema

# Claude image prompt: four fields, health rated 1-5
CLAUDE_IMAGE_SCHEMA = ReplySchema(
    name_key="title",
    health_key="healthRating",
    fields=("title", "description", "calories", "healthRating"),
    health_scale=5,
)

# GPT image prompt: full macro breakdown, health rated 1-10
GPT_IMAGE_SCHEMA = ReplySchema(
    name_key="name",
    health_key="healthScore",
    fields=("name", "description", "calories", "protein", "carbs", "fats", "healthScore"),
    health_scale=10,
)

# Text description prompt (both backends): full macro breakdown, health rated 1-5
DESCRIPTION_SCHEMA = ReplySchema(
    name_key="name",
    health_key="healthScore",
    fields=("name", "description", "calories", "protein", "carbs", "fats", "healthScore"),
    health_scale=5,
)


CLAUDE_SYSTEM_PROMPT = (
    "You are a food analysis assistant that helps identify foods, estimate their "
    "caloric content, and evaluate their healthiness."
)

CLAUDE_IMAGE_PROMPT = (
    "Please analyze this food image. Identify what food item(s) are in the image and "
    "estimate the calorie count and healthiness. Return your response in JSON format "
    "with four fields: 'title' (a brief name of the food), 'description' (a detailed "
    "description of the food including ingredients and preparation style), 'calories' "
    "(your estimate of calories as a number), and 'healthRating' (an integer from 1 to "
    "5, where 1 means highly processed unhealthy food and 5 means whole/nutritious "
    "healthy food)."
)

GPT_SYSTEM_PROMPT = """You are a meal analysis assistant. Analyze the food image and extract the following information:
1. Name of the dish/meal
2. Brief description
3. Estimated calories
4. Estimated macronutrients (protein, carbs, fats in grams)
5. Health score (1-10)

Format your response as a valid JSON object with the following keys:
{
  "name": "string",
  "description": "string",
  "calories": number,
  "protein": number,
  "carbs": number,
  "fats": number,
  "healthScore": number
}"""

GPT_IMAGE_PROMPT = "Analyze this food image and provide nutritional information."

CORRECTION_PROMPT = """Previous analysis result: {previous_result}

User correction: {correction_text}

Please reanalyze the food image with this correction in mind."""


DESCRIPTION_SYSTEM_PROMPT = (
    "You are a nutrition analysis assistant. Always respond with valid JSON only, "
    "no explanations or other text."
)

_DESCRIPTION_JSON_SHAPE = """{
  "name": "Brief name of the meal",
  "description": "Detailed description of the meal",
  "calories": number,
  "protein": number,
  "carbs": number,
  "fats": number,
  "healthScore": number from 1-5
}"""

DESCRIPTION_PROMPT = (
    "Analyze this meal description and provide nutritional information. Respond ONLY "
    "with a JSON object in this exact format, with no additional text or explanation:\n"
    f"{_DESCRIPTION_JSON_SHAPE}\n\n"
    'Meal to analyze: "{description}"'
)

DESCRIPTION_CORRECTION_PROMPT = (
    "I'm correcting a previous meal analysis. The previous analysis identified the "
    "meal as:\n{previous}\n\n"
    'The user is providing this correction: "{description}"\n\n'
    "Please analyze this correction and provide COMPLETE updated nutritional "
    "information. DO NOT zero out values unless specifically mentioned in the "
    "correction. If the user doesn't mention specific nutrients, estimate reasonable "
    "values based on the correction.\n\n"
    "Respond ONLY with a JSON object in this exact format, with no additional text or "
    f"explanation:\n{_DESCRIPTION_JSON_SHAPE}"
)

MEAL_IMAGE_PROMPT = (
    "A photorealistic image of: {description}. The image should be well-lit, "
    "appetizing, and styled like a professional food photograph."
)


def image_user_prompt(default: str, correction: CorrectionContext | None) -> str:
    """User prompt for an image request, switching wording for corrections."""
    if correction is None:
        return default
    return CORRECTION_PROMPT.format(
        previous_result=correction.previous_result,
        correction_text=correction.correction_text,
    )


def description_user_prompt(description: str, previous: str | None) -> str:
    """User prompt for a text-only request."""
    # str.replace, not format: the JSON shape contains literal braces
    if previous:
        return DESCRIPTION_CORRECTION_PROMPT.replace("{previous}", previous).replace(
            "{description}", description
        )
    return DESCRIPTION_PROMPT.replace("{description}", description)
