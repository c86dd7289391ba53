"""Food Entries - Parsing and building food entries from submissions.

All functions are pure: same input always produces same output, no side effects.
"""

import json
import re
from datetime import datetime
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from .aggregation import round_half_up
from .errors import EstimationError, EstimationFailure
from .models import DailyLedger, FoodEntry, NutritionEstimate, SaveFoodInput


DEFAULT_FOOD_NAME = "Mixed Foods"
DEFAULT_UNIT = "serving"

UNIT_ALIASES = {
    "g": "g", "gr": "g", "gram": "g", "grams": "g",
    "г": "g", "гр": "g", "грам": "g", "грама": "g",
    "kg": "kg", "кг": "kg",
    "ml": "ml", "мл": "ml",
    "l": "l", "л": "l",
    "pc": "pcs", "pcs": "pcs", "piece": "pcs", "pieces": "pcs",
    "бр": "pcs", "брой": "pcs", "броя": "pcs",
    "cup": "cup", "cups": "cup", "чаша": "cup", "чаши": "cup",
    "slice": "slice", "slices": "slice", "филия": "slice", "филии": "slice",
    "tbsp": "tbsp", "с.л": "tbsp",
    "tsp": "tsp", "ч.л": "tsp",
    "serving": "serving", "servings": "serving", "порция": "serving", "порции": "serving",
}

_QUANTITY_RE = re.compile(r"^\s*(\d+(?:[.,]\d+)?(?:/\d+)?)\s*(.*?)\s*$", re.DOTALL)
_CLAUSE_SPLIT_RE = re.compile(r"[,;]|\s+(?:and|with|и|с|със)\s+", re.IGNORECASE)
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

# Estimator replies use camelCase keys
_ESTIMATE_KEYS = {"totalCalories": "total_calories"}
_OPTIONAL_ESTIMATE_FIELDS = ("fiber", "sugar", "sodium")


def _clamp(value: float) -> float:
    return max(0.0, float(value))


def _parse_number(token: str) -> float:
    token = token.replace(",", ".")
    if "/" in token:
        numerator, denominator = token.split("/", 1)
        if float(denominator) == 0:
            return float(numerator)
        return float(numerator) / float(denominator)
    return float(token)


def normalize_unit(token: str) -> str:
    """Map a unit token through the alias table; unknown tokens pass through."""
    token = token.strip()
    if not token:
        return DEFAULT_UNIT
    return UNIT_ALIASES.get(token.lower().rstrip("."), token)


def parse_quantity(text: Optional[str]) -> tuple[float, str]:
    """Split a free-text quantity into (quantity, unit).

    Examples:
        "200г" -> (200, "g"), "2 бр" -> (2, "pcs"), "" -> (1, "serving")
    """
    if not text or not text.strip():
        return 1.0, DEFAULT_UNIT

    match = _QUANTITY_RE.match(text)
    if match is None:
        return 1.0, normalize_unit(text)
    return _parse_number(match.group(1)), normalize_unit(match.group(2))


def derive_food_name(description: Optional[str]) -> str:
    """First clause of a description, capitalized.

    Clauses are delimited by commas, semicolons and conjunctions.
    """
    if not description:
        return DEFAULT_FOOD_NAME
    first = _CLAUSE_SPLIT_RE.split(description.strip(), maxsplit=1)[0].strip()
    if not first:
        return DEFAULT_FOOD_NAME
    return first[0].upper() + first[1:]


def build_food_entries(
    user_id: str,
    ledger: DailyLedger,
    payload: SaveFoodInput,
    created_at: datetime,
) -> list[FoodEntry]:
    """Turn a food submission into the entries to persist.

    With a foods list, one entry per food; otherwise a single entry from the
    aggregate totals. Negative numbers are clamped to zero.
    """
    common = {
        "user_id": user_id,
        "ledger_id": ledger.id,
        "log_date": ledger.log_date,
        "description": payload.description,
        "source_model": payload.source_model,
        "created_at": created_at,
    }

    if payload.foods:
        entries = []
        for item in payload.foods:
            quantity, unit = parse_quantity(item.quantity)
            entries.append(FoodEntry(
                food_name=item.name.strip() or DEFAULT_FOOD_NAME,
                quantity=quantity,
                unit=unit,
                calories=round_half_up(_clamp(item.calories)),
                protein=_clamp(item.protein),
                carbs=_clamp(item.carbs),
                fat=_clamp(item.fat),
                **common,
            ))
        return entries

    return [FoodEntry(
        food_name=derive_food_name(payload.description),
        calories=round_half_up(_clamp(payload.total_calories)),
        protein=_clamp(payload.protein),
        carbs=_clamp(payload.carbs),
        fat=_clamp(payload.fat),
        fiber=_clamp(payload.fiber),
        sugar=_clamp(payload.sugar),
        sodium=_clamp(payload.sodium),
        **common,
    )]


# ==================== Estimator Output ====================


def parse_estimate_text(text: str) -> dict[str, Any]:
    """Extract the JSON object from an estimator's text reply.

    Raises:
        EstimationError: If no JSON object can be decoded
    """
    match = _JSON_OBJECT_RE.search(text or "")
    if match is None:
        raise EstimationError(EstimationFailure.MALFORMED_RESPONSE, "No JSON object in estimator response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise EstimationError(EstimationFailure.MALFORMED_RESPONSE, f"Invalid JSON from estimator: {e.msg}") from e
    if not isinstance(data, dict):
        raise EstimationError(EstimationFailure.MALFORMED_RESPONSE, "Estimator response is not an object")
    return data


def validate_estimate(raw: Mapping[str, Any]) -> NutritionEstimate:
    """Validation pass over a raw estimate before it is used.

    All required numbers must be present and >= 0; optional fiber, sugar and
    sodium default to 0 when missing or null.

    Raises:
        EstimationError: With reason malformed_response on any violation
    """
    if not isinstance(raw, Mapping):
        raise EstimationError(EstimationFailure.MALFORMED_RESPONSE, "Estimator response is not an object")

    data = {_ESTIMATE_KEYS.get(k, k): v for k, v in raw.items()}
    for name in _OPTIONAL_ESTIMATE_FIELDS:
        if data.get(name) is None:
            data.pop(name, None)

    try:
        return NutritionEstimate.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise EstimationError(
            EstimationFailure.MALFORMED_RESPONSE,
            f"Invalid estimator field {field}: {first.get('msg', 'invalid value')}",
        ) from None


def estimate_to_food_input(
    estimate: NutritionEstimate,
    description: Optional[str],
    source_model: Optional[str],
    log_date: Optional[str] = None,
) -> dict[str, Any]:
    """Shape a validated estimate as a food submission payload."""
    return {
        "description": description,
        "total_calories": estimate.total_calories,
        "protein": estimate.protein,
        "carbs": estimate.carbs,
        "fat": estimate.fat,
        "fiber": estimate.fiber,
        "sugar": estimate.sugar,
        "sodium": estimate.sodium,
        "foods": [food.model_dump() for food in estimate.foods] or None,
        "source_model": source_model,
        "date": log_date,
    }
