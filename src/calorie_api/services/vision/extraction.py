"""
Response extraction for vision model replies.

Models are asked for a JSON object but do not always return one cleanly: the
JSON may be wrapped in prose or code fences, or missing entirely. Extraction
tries the JSON path first and falls back to per-field patterns such as
`calories: 450`. Every numeric field is coerced to a non-negative integer and
health scores are mapped onto a single 1-5 scale.
"""

import json
import logging
import math
import re
from typing import Any

from calorie_api.models.analysis import AnalysisResult
from calorie_api.models.meal import DEFAULT_HEALTH_SCORE
from calorie_api.models.settings import round_half_up

from .base import ReplySchema, ResponseParseError

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Unknown Food"
MIN_HEALTH_SCORE = 1
MAX_HEALTH_SCORE = 5

# Leading integer, optionally with thousands separators ("1,200 kcal")
_LEADING_INT = re.compile(r"^\s*([+-]?(?:\d{1,3}(?:,\d{3})+|\d+))")

_TEXT_VALUE = r"([^,\n.\"'}]+)"
_INT_VALUE = r"(\d{1,3}(?:,\d{3})+|\d+)"

# Free-text values need an explicit colon so prose like "name and calories" is skipped
_TEXT_SEPARATOR = r"\s*:\s*"


def _field_pattern(keys: str, value: str, separator: str = r"[:\s]+") -> re.Pattern[str]:
    return re.compile(rf"\b(?:{keys})\b[\"']?{separator}[\"']?{value}", re.IGNORECASE)


NAME_PATTERN = _field_pattern("title|name", _TEXT_VALUE, _TEXT_SEPARATOR)
DESCRIPTION_PATTERN = _field_pattern("description", _TEXT_VALUE, _TEXT_SEPARATOR)
CALORIES_PATTERN = _field_pattern("calories", _INT_VALUE)
PROTEIN_PATTERN = _field_pattern("protein", _INT_VALUE)
CARBS_PATTERN = _field_pattern("carbs|carbohydrates", _INT_VALUE)
FATS_PATTERN = _field_pattern("fats?", _INT_VALUE)
HEALTH_PATTERN = re.compile(
    r"health\s*(?:score|rating)[\"']?[:\s]+[\"']?(\d+)", re.IGNORECASE
)


def coerce_int(value: Any, default: int = 0) -> int:
    """
    Parse a loosely typed value as an integer.

    Floats are truncated, strings contribute their leading integer
    ("285 kcal" -> 285) and anything else yields `default`.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1).replace(",", ""))
    return default


def coerce_amount(value: Any) -> int:
    """Coerce a calorie or gram amount; missing, invalid and negative become 0."""
    return max(0, coerce_int(value, 0))


def normalize_health_score(value: Any, scale: int = MAX_HEALTH_SCORE) -> int:
    """
    Map a health score onto the canonical 1-5 range.

    Args:
        value: Raw score from the model
        scale: Top of the range the model was asked to use (5 or 10)

    Returns:
        Integer in [1, 5]; 3 when the score is missing or unparseable
    """
    score = coerce_int(value, 0)
    if score <= 0:
        return DEFAULT_HEALTH_SCORE
    if scale != MAX_HEALTH_SCORE and scale > 1:
        score = round_half_up(
            MIN_HEALTH_SCORE
            + (score - 1) * (MAX_HEALTH_SCORE - MIN_HEALTH_SCORE) / (scale - 1)
        )
    return min(MAX_HEALTH_SCORE, max(MIN_HEALTH_SCORE, score))


def _has_fields(block: str, fields: tuple[str, ...]) -> bool:
    return all(f'"{field}"' in block for field in fields)


def _find_json_block(text: str, fields: tuple[str, ...]) -> str | None:
    """
    Find the widest `{ ... }` span that mentions every expected field.

    Spans start at the first `{` and end at the last `}`, which is what a
    greedy `\\{[\\s\\S]*"field"...\\}` match would select.
    """
    end = text.rfind("}")
    start = text.find("{")
    while start != -1 and start < end:
        candidate = text[start : end + 1]
        if _has_fields(candidate, fields):
            return candidate
        start = text.find("{", start + 1)
    return None


def _decode_first_object(text: str, fields: tuple[str, ...]) -> dict[str, Any] | None:
    """Decode the first JSON object in `text` that has every expected field."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict) and all(field in value for field in fields):
            return value
        start = text.find("{", start + 1)
    return None


def parse_json_reply(text: str, schema: ReplySchema) -> dict[str, Any] | None:
    """
    Primary extraction path: locate and decode the reply's JSON object.

    Returns:
        The decoded object if it contains every schema field, else None
    """
    block = _find_json_block(text, schema.fields)
    if block is not None:
        try:
            data = json.loads(block)
        except json.JSONDecodeError as e:
            logger.debug(f"Greedy JSON block did not parse: {e}")
        else:
            if isinstance(data, dict) and all(field in data for field in schema.fields):
                return data
            logger.debug("JSON block is missing expected fields")

    return _decode_first_object(text, schema.fields)


def _result_from_json(data: dict[str, Any], schema: ReplySchema) -> AnalysisResult:
    raw_name = data.get(schema.name_key)
    name = str(raw_name).strip() if raw_name not in (None, "") else DEFAULT_NAME
    raw_description = data.get("description")
    description = (
        str(raw_description).strip() if raw_description not in (None, "") else name
    )

    return AnalysisResult(
        name=name,
        description=description,
        calories=coerce_amount(data.get("calories")),
        protein=coerce_amount(data.get("protein")),
        carbs=coerce_amount(data.get("carbs")),
        fats=coerce_amount(data.get("fats")),
        healthScore=normalize_health_score(data.get(schema.health_key), schema.health_scale),
    )


def _search(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(1).strip() if match else None


def parse_field_reply(text: str, schema: ReplySchema) -> AnalysisResult | None:
    """
    Secondary extraction path: pick fields out with `field: value` patterns.

    Returns:
        AnalysisResult if a name or a calorie count was found, else None
    """
    name = _search(NAME_PATTERN, text)
    calories = _search(CALORIES_PATTERN, text)
    if not name and calories is None:
        return None

    name = name or DEFAULT_NAME
    description = _search(DESCRIPTION_PATTERN, text) or name

    return AnalysisResult(
        name=name,
        description=description,
        calories=coerce_amount(calories),
        protein=coerce_amount(_search(PROTEIN_PATTERN, text)),
        carbs=coerce_amount(_search(CARBS_PATTERN, text)),
        fats=coerce_amount(_search(FATS_PATTERN, text)),
        healthScore=normalize_health_score(_search(HEALTH_PATTERN, text), schema.health_scale),
    )


def extract_analysis(
    raw_text: str,
    schema: ReplySchema,
    provider: str = "unknown",
) -> AnalysisResult:
    """
    Turn a model reply into an AnalysisResult.

    Args:
        raw_text: The model's free-text reply
        schema: The JSON shape the prompt asked for
        provider: Provider name, for error reporting

    Returns:
        AnalysisResult with coerced numeric fields and a 1-5 health score

    Raises:
        ResponseParseError: If neither extraction path finds usable fields
    """
    text = (raw_text or "").strip()
    if not text:
        raise ResponseParseError("Empty response from model", provider=provider)

    data = parse_json_reply(text, schema)
    if data is not None:
        return _result_from_json(data, schema)

    logger.warning(f"No usable JSON in {provider} response, falling back to field patterns")
    result = parse_field_reply(text, schema)
    if result is not None:
        return result

    raise ResponseParseError(
        f"Could not parse {provider} response",
        provider=provider,
        raw_text=text,
    )
