import json
import re
from typing import Any

from loguru import logger
from pydantic import ValidationError

from fitplan.core.errors import NoJsonFound, SchemaViolation
from fitplan.models.schemas import DEFAULT_SAFETY_WARNING, DietSection, PlanResult, WorkoutDay

RECOGNIZED_FIELDS = ("workout", "diet", "safety_warnings")

_JSON_FENCE = re.compile(r"```json\s*", re.IGNORECASE)
_BARE_FENCE = re.compile(r"```\s*")


def clean_response_text(raw: str) -> str:
    """Strip code fences and stray backticks from a provider response."""
    text = (raw or "").strip()
    text = _JSON_FENCE.sub("", text)
    text = _BARE_FENCE.sub("", text)
    return text.replace("`", "")


def extract_json(raw: str) -> dict[str, Any]:
    """
    Locate and decode the JSON object inside a provider response.

    Providers routinely wrap the object in commentary despite instructions,
    so everything before the first `{` and after the last `}` is dropped.
    """
    text = clean_response_text(raw)
    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace == -1 or last_brace < first_brace:
        raise NoJsonFound("No valid JSON found in AI response")

    try:
        data = json.loads(text[first_brace:last_brace + 1])
    except json.JSONDecodeError as e:
        raise NoJsonFound(f"AI response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise NoJsonFound("AI response JSON is not an object")
    return data


def _first_error(prefix: str, error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in (prefix, *first["loc"]))
    return f"{location}: {first['msg']}"


def _safety_warnings(value: Any) -> Any:
    """Default advisory when the field is absent or empty; a lone string is wrapped, anything else is kept."""
    if value is None or value == "" or value == []:
        logger.debug("No safety_warnings in plan, using default advisory")
        return [DEFAULT_SAFETY_WARNING]
    if isinstance(value, str):
        return [value]
    return value


def parse(raw: str) -> PlanResult:
    """Turn raw provider text into a validated PlanResult.

    Raises:
        NoJsonFound: no decodable JSON object in the text.
        SchemaViolation: the workout or diet structure is missing or malformed.
    """
    data = extract_json(raw)

    workout = data.get("workout")
    if not isinstance(workout, list) or not workout:
        raise SchemaViolation("workout must be a non-empty list of days")

    diet = data.get("diet")
    if not isinstance(diet, dict) or not isinstance(diet.get("meals"), dict) or not diet["meals"]:
        raise SchemaViolation("diet.meals must be a non-empty mapping of meal slots")

    days = []
    for index, day in enumerate(workout):
        try:
            days.append(WorkoutDay.model_validate(day))
        except ValidationError as e:
            raise SchemaViolation(_first_error(f"workout.{index}", e)) from e

    try:
        diet_section = DietSection.model_validate(diet)
    except ValidationError as e:
        raise SchemaViolation(_first_error("diet", e)) from e

    return PlanResult(
        workout=days,
        diet=diet_section,
        safety_warnings=_safety_warnings(data.get("safety_warnings")),
        extra={key: value for key, value in data.items() if key not in RECOGNIZED_FIELDS},
    )
