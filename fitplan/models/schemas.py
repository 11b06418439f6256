from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Known values the web form sends. Unknown text is kept as-is so it still reaches the prompt.
GOALS = ("Weight Loss", "Muscle Gain", "Endurance", "Flexibility", "General Fitness")
LEVELS = ("Beginner", "Intermediate", "Advanced")
ACTIVITY_LEVELS = ("Sedentary", "Lightly Active", "Moderately Active", "Very Active")
STRESS_LEVELS = ("Low", "Medium", "High")

DEFAULT_SAFETY_WARNING = "Consult with a healthcare provider before starting any new fitness program."


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


def _canonical(value: Any, known: tuple, default: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        return default
    for option in known:
        if option.lower() == text.lower():
            return option
    return text


class UserProfile(BaseModel):
    """Profile sent by the web form. Only age, weight and height are required."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    age: int = Field(gt=0, lt=150)
    weight: float = Field(gt=0, lt=1000, allow_inf_nan=False)  # in kg
    height: float = Field(gt=0, lt=300, allow_inf_nan=False)  # in cm
    name: Optional[str] = None
    gender: Gender = Gender.OTHER
    goal: str = "General Fitness"
    level: str = "Beginner"
    diet: str = "No Preference"
    equipment: str = "No Equipment"
    activity_level: str = Field(default="Sedentary", alias="activityLevel")
    sleep_hours: Optional[float] = Field(default=None, alias="sleepHours")
    water_intake: Optional[float] = Field(default=None, alias="waterIntake")  # litres/day
    stress_level: str = Field(default="Medium", alias="stressLevel")
    allergies: Optional[str] = None
    injuries: Optional[str] = None
    chronic_conditions: Optional[str] = Field(default=None, alias="chronicConditions")
    medications: Optional[str] = None
    medical_history: Optional[str] = Field(default=None, alias="medicalHistory")

    @field_validator("gender", mode="before")
    @classmethod
    def _normalize_gender(cls, value):
        if isinstance(value, Gender):
            return value
        text = str(value or "").strip().lower()
        for gender in Gender:
            if text == gender.value:
                return gender
        return Gender.OTHER

    @field_validator("goal", mode="before")
    @classmethod
    def _normalize_goal(cls, value):
        return _canonical(value, GOALS, "General Fitness")

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value):
        return _canonical(value, LEVELS, "Beginner")

    @field_validator("activity_level", mode="before")
    @classmethod
    def _normalize_activity(cls, value):
        return _canonical(value, ACTIVITY_LEVELS, "Sedentary")

    @field_validator("stress_level", mode="before")
    @classmethod
    def _normalize_stress(cls, value):
        return _canonical(value, STRESS_LEVELS, "Medium")

    @field_validator("diet", "equipment", mode="before")
    @classmethod
    def _default_blank(cls, value, info):
        text = str(value).strip() if value is not None else ""
        return text or cls.model_fields[info.field_name].default

    @field_validator(
        "name", "allergies", "injuries", "chronic_conditions", "medications", "medical_history",
        "sleep_hours", "water_intake",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def health_context(self) -> list[tuple[str, str]]:
        """(label, text) pairs for every health field the user filled in."""
        fields = [
            ("ALLERGIES", self.allergies),
            ("CHRONIC CONDITIONS", self.chronic_conditions),
            ("INJURIES", self.injuries),
            ("MEDICATIONS", self.medications),
            ("MEDICAL NOTES", self.medical_history),
        ]
        return [(label, text.strip()) for label, text in fields if text]


class DerivedMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    bmi: float
    bmr: int  # kcal/day
    tdee: int  # kcal/day
    calorie_target: int  # kcal/day, adjusted for the goal
    hydration_liters: int


class ProviderDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    backend: str
    model: str
    label: str
    credential_key: str


# --- Plan returned by the providers ---

class Exercise(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    name: str = Field(min_length=1)
    sets: str
    reps: str


class WorkoutDay(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    day: str
    focus: str
    exercises: list[Exercise] = Field(min_length=1)


class DietSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    # meal slot -> meal description, kept as the provider sent it
    meals: dict[str, Any] = Field(min_length=1)


class PlanResult(BaseModel):
    """A validated plan: the recognized fields plus every other top-level field in `extra`."""

    workout: list[WorkoutDay] = Field(min_length=1)
    diet: DietSection
    safety_warnings: Any = Field(default_factory=lambda: [DEFAULT_SAFETY_WARNING])
    extra: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        payload = dict(self.extra)
        payload.update(self.model_dump(exclude={"extra"}))
        return payload


class PlanMetadata(BaseModel):
    provider: str
    metrics: DerivedMetrics
    generated_at: str
    rag_enhanced: bool
    retrieval_quality: str
    attempt_count: int
    has_health_conditions: bool
    health_factors_considered: int
