# fitplan/services/retriever.py
# Finds top-rated plans from similar users and formats them as few-shot examples.
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import IntEnum
from typing import Any, Optional, Protocol

from loguru import logger

from fitplan.core.errors import RetrievalUnavailable
from fitplan.core.prompts import examples_footer, examples_header
from fitplan.models.schemas import DerivedMetrics, UserProfile
from fitplan.services.supabase_client import SupabaseExampleStore


class MatchTier(IntEnum):
    EXACT = 1
    STRONG = 2
    PARTIAL = 3
    LOOSE = 4

    @property
    def label(self) -> str:
        return f"{self.name.title()} match"


@dataclass(frozen=True)
class BucketConfig:
    """Heuristic bucketing thresholds. Upper bounds are inclusive for age, exclusive for BMI."""

    age_ranges: tuple[tuple[int, str], ...] = ((17, "13-17"), (24, "18-24"), (34, "25-34"), (44, "35-44"), (54, "45-54"))
    age_overflow: str = "55+"
    bmi_ranges: tuple[tuple[float, str], ...] = ((18.5, "under"), (25, "normal"), (30, "overweight"))
    bmi_overflow: str = "obese"
    gym_keywords: tuple[str, ...] = ("gym",)
    home_keywords: tuple[str, ...] = ("home", "dumbbell", "minimal", "band", "kettlebell")
    # Max mismatched dimensions for EXACT, STRONG, PARTIAL; anything above is LOOSE.
    tier_max_mismatches: tuple[int, int, int] = (1, 3, 5)


DEFAULT_BUCKETS = BucketConfig()


@dataclass(frozen=True)
class ProfileBuckets:
    goal: str
    diet: str
    age_range: str
    bmi_range: str
    level: str
    activity_level: str
    equipment_class: str
    gender: str
    has_injuries: bool
    has_conditions: bool

    def rpc_params(self, limit: int) -> dict[str, Any]:
        params = {f"p_{f.name}": getattr(self, f.name) for f in fields(self)}
        params["p_limit"] = limit
        return params

    def matched_dimensions(self, other: "ProfileBuckets") -> int:
        matched = 0
        for f in fields(self):
            mine, theirs = getattr(self, f.name), getattr(other, f.name)
            if isinstance(mine, str):
                matched += mine.lower() == str(theirs).lower()
            else:
                matched += mine == theirs
        return matched


DIMENSIONS = len(fields(ProfileBuckets))


@dataclass(frozen=True)
class RetrievalExample:
    plan: dict[str, Any]
    rating: int
    buckets: ProfileBuckets
    match_tier: MatchTier
    matched_dimensions: int
    profile_summary: dict[str, Any] = field(default_factory=dict)
    feedback: Optional[str] = None
    created_at: Optional[datetime] = None


class ExampleStore(Protocol):
    def fetch_similar(self, params: dict[str, Any]) -> list[dict[str, Any]]: ...


# --- Bucketing ---

def get_age_range(age: Optional[float], config: BucketConfig = DEFAULT_BUCKETS) -> str:
    if age is None:
        return "unknown"
    for upper, label in config.age_ranges:
        if age <= upper:
            return label
    return config.age_overflow


def get_bmi_range(bmi: Optional[float], config: BucketConfig = DEFAULT_BUCKETS) -> str:
    if bmi is None:
        return "unknown"
    for upper, label in config.bmi_ranges:
        if bmi < upper:
            return label
    return config.bmi_overflow


def get_equipment_class(equipment: Optional[str], config: BucketConfig = DEFAULT_BUCKETS) -> str:
    text = (equipment or "").lower()
    if any(keyword in text for keyword in config.gym_keywords):
        return "Gym"
    if any(keyword in text for keyword in config.home_keywords):
        return "Home"
    return "No-Equipment"


def _has_text(value: Any) -> bool:
    return bool(str(value).strip()) if value is not None else False


def bucket_profile(profile: UserProfile, metrics: DerivedMetrics, config: BucketConfig = DEFAULT_BUCKETS) -> ProfileBuckets:
    return ProfileBuckets(
        goal=profile.goal,
        diet=profile.diet,
        age_range=get_age_range(profile.age, config),
        bmi_range=get_bmi_range(metrics.bmi, config),
        level=profile.level,
        activity_level=profile.activity_level,
        equipment_class=get_equipment_class(profile.equipment, config),
        gender=profile.gender.value,
        has_injuries=_has_text(profile.injuries),
        has_conditions=_has_text(profile.chronic_conditions),
    )


def _pick(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) not in (None, ""):
            return data[key]
    return None


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _stored_buckets(row: dict[str, Any], user_data: dict[str, Any], config: BucketConfig) -> ProfileBuckets:
    """Bucket the profile that produced a stored plan (web layer keys are camelCase)."""
    weight = _as_float(user_data.get("weight"))
    height = _as_float(user_data.get("height"))
    bmi = _as_float(row.get("bmi"))
    if bmi is None and weight and height:
        bmi = weight / ((height / 100) ** 2)

    return ProfileBuckets(
        goal=str(user_data.get("goal") or ""),
        diet=str(user_data.get("diet") or ""),
        age_range=get_age_range(_as_float(user_data.get("age")), config),
        bmi_range=get_bmi_range(bmi, config),
        level=str(user_data.get("level") or ""),
        activity_level=str(_pick(user_data, "activityLevel", "activity_level") or ""),
        equipment_class=get_equipment_class(user_data.get("equipment"), config),
        gender=str(user_data.get("gender") or "").lower(),
        has_injuries=_has_text(user_data.get("injuries")),
        has_conditions=_has_text(_pick(user_data, "chronicConditions", "chronic_conditions")),
    )


def get_match_tier(matched: int, config: BucketConfig = DEFAULT_BUCKETS) -> MatchTier:
    mismatches = DIMENSIONS - matched
    for tier, max_mismatches in zip((MatchTier.EXACT, MatchTier.STRONG, MatchTier.PARTIAL), config.tier_max_mismatches):
        if mismatches <= max_mismatches:
            return tier
    return MatchTier.LOOSE


def _parse_created_at(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _to_example(row: dict[str, Any], current: ProfileBuckets, config: BucketConfig) -> Optional[RetrievalExample]:
    plan = row.get("plan_data")
    user_data = row.get("user_data") or {}
    rating = row.get("rating")
    if not isinstance(plan, dict) or not isinstance(user_data, dict):
        return None
    if isinstance(rating, bool) or not isinstance(rating, (int, float)) or not 1 <= rating <= 5:
        return None

    buckets = _stored_buckets(row, user_data, config)
    matched = current.matched_dimensions(buckets)
    feedback = row.get("feedback_note")
    return RetrievalExample(
        plan=plan,
        rating=int(rating),
        buckets=buckets,
        match_tier=get_match_tier(matched, config),
        matched_dimensions=matched,
        profile_summary={key: user_data.get(key) for key in ("age", "gender", "weight", "goal", "level")},
        feedback=feedback.strip() if isinstance(feedback, str) and feedback.strip() else None,
        created_at=_parse_created_at(row.get("created_at")),
    )


def _ranking_key(example: RetrievalExample):
    recency = example.created_at.timestamp() if example.created_at else float("-inf")
    return (example.match_tier, -example.rating, -recency)


def rank_examples(rows: list[Any], current: ProfileBuckets, limit: int, config: BucketConfig = DEFAULT_BUCKETS) -> list[RetrievalExample]:
    examples = []
    for row in rows:
        example = _to_example(row, current, config) if isinstance(row, dict) else None
        if example is None:
            logger.debug("Skipping malformed example row from store")
            continue
        examples.append(example)
    examples.sort(key=_ranking_key)
    return examples[:limit]


def retrieve(
    profile: UserProfile,
    metrics: DerivedMetrics,
    limit: int = 3,
    store: Optional[ExampleStore] = None,
    config: BucketConfig = DEFAULT_BUCKETS,
) -> list[RetrievalExample]:
    """Fetch and rank plans rated by similar users.

    Never raises: any store failure degrades to an empty list so generation
    can continue without examples.
    """
    current = bucket_profile(profile, metrics, config)
    try:
        if store is None:
            store = SupabaseExampleStore()
        rows = store.fetch_similar(current.rpc_params(limit))
        if not isinstance(rows, list):
            raise RetrievalUnavailable(f"example store returned {type(rows).__name__}")
    except RetrievalUnavailable as e:
        logger.info(f"RAG skipped: {e}")
        return []
    except Exception as e:
        logger.warning(f"RAG context fetch failed (non-fatal): {e}")
        return []

    examples = rank_examples(rows, current, limit, config)
    logger.info(f"🧠 RAG retrieved {len(examples)} example(s) for goal={profile.goal}, age={current.age_range}, bmi={current.bmi_range}")
    return examples


def retrieval_quality(examples: list[RetrievalExample]) -> str:
    if not examples:
        return "none"
    return min(example.match_tier for example in examples).label


# --- Formatting ---

def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    if limit <= 3:
        return text[:limit]
    return text[:limit - 3].rstrip() + "..."


def _workout_summary(plan: dict[str, Any], exercises_per_day: int) -> str:
    workout = plan.get("workout")
    if not isinstance(workout, list):
        return "N/A"
    days = []
    for day in workout:
        if not isinstance(day, dict):
            continue
        line = f"{day.get('day', '?')}: {day.get('focus', '?')}"
        exercises = day.get("exercises")
        if exercises_per_day and isinstance(exercises, list):
            names = [str(ex.get("name")) for ex in exercises if isinstance(ex, dict) and ex.get("name")]
            if names:
                line += f" ({', '.join(names[:exercises_per_day])})"
        days.append(line)
    return "; ".join(days) or "N/A"


def _meal_summary(plan: dict[str, Any]) -> str:
    diet = plan.get("diet") if isinstance(plan.get("diet"), dict) else {}
    meals = diet.get("meals") if isinstance(diet.get("meals"), dict) else diet
    names = []
    for meal in meals.values():
        if isinstance(meal, dict) and meal.get("meal"):
            names.append(str(meal["meal"]))
        elif isinstance(meal, str) and meal:
            names.append(meal)
    return ", ".join(names) or "N/A"


def _format_example(number: int, example: RetrievalExample, detail: int) -> str:
    """detail 2: top-2 exercises per day; 1: day/focus only; 0: also clips free text."""
    plan = example.plan
    summary = example.profile_summary
    text_limit = None if detail else 80

    diet = plan.get("diet") if isinstance(plan.get("diet"), dict) else {}
    calorie_target = diet.get("calorie_target")
    if isinstance(calorie_target, dict):
        calorie_target = calorie_target.get("daily")

    meals = _meal_summary(plan)
    quote = str(plan.get("motivation_quote") or "")
    feedback = example.feedback
    if text_limit:
        meals, quote = _clip(meals, text_limit), _clip(quote, text_limit)
        feedback = _clip(feedback, text_limit) if feedback else None

    lines = [
        f"Example {number} ({example.match_tier.label}, rated {example.rating}/5 by a similar user):",
        f"  Profile: Age {summary.get('age')}, {summary.get('gender')}, {summary.get('weight')}kg, "
        f"Goal: {summary.get('goal')}, Level: {summary.get('level')}",
        f"  Workout structure: {_workout_summary(plan, 2 if detail >= 2 else 0)}",
        f"  Meals: {meals}",
        f"  Calorie target: {calorie_target or 'N/A'}",
        f'  Motivation quote: "{quote}"',
    ]
    if feedback:
        lines.append(f'  User feedback: "{feedback}"')
    return "\n".join(lines)


def _wrap(blocks: list[str]) -> str:
    return f"{examples_header}\n" + "\n\n".join(blocks) + f"\n{examples_footer}"


def format_examples(examples: list[RetrievalExample], max_chars: int = 3500) -> str:
    """Render examples as one delimited block no longer than max_chars.

    Over budget, per-example detail shrinks; the number of examples does not.
    """
    if not examples:
        return ""

    for detail in (2, 1, 0):
        blocks = [_format_example(i, ex, detail) for i, ex in enumerate(examples, start=1)]
        text = _wrap(blocks)
        if len(text) <= max_chars:
            return text

    frame = len(_wrap([""] * len(blocks)))
    per_example = (max_chars - frame) // len(blocks)
    if per_example <= 0:
        logger.warning(f"Example budget of {max_chars} chars cannot fit the examples frame, omitting examples")
        return ""
    return _wrap([_clip(block, per_example) for block in blocks])
