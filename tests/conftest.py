"""Shared fixtures for the plan generation tests.

Nothing here touches the network: providers are stubbed adapters, the
example store is an in-memory fake.
"""

import json
from typing import Any

import pytest

from fitplan.core.config import Settings
from fitplan.models.schemas import ProviderDescriptor


class StubAdapter:
    """Adapter double returning canned text or raising a canned error."""

    def __init__(self, response: Any = None, on_call=None):
        self.response = response
        self.on_call = on_call
        self.calls: list[tuple[str, str]] = []

    def call(self, prompt: str, model: str) -> str:
        self.calls.append((prompt, model))
        if self.on_call:
            self.on_call()
        if isinstance(self.response, BaseException):
            raise self.response
        return self.response


class FakeStore:
    """In-memory example store."""

    def __init__(self, rows: Any = None, error: Exception = None):
        self.rows = rows if rows is not None else []
        self.error = error
        self.params: list[dict[str, Any]] = []

    def fetch_similar(self, params: dict[str, Any]) -> Any:
        self.params.append(params)
        if self.error:
            raise self.error
        return self.rows


def make_descriptor(label: str, backend: str = "stub") -> ProviderDescriptor:
    return ProviderDescriptor(backend=backend, model=f"{label.lower()}-model", label=label, credential_key=f"{label.upper()}_KEY")


@pytest.fixture
def valid_plan() -> dict[str, Any]:
    """A plan with the recognized fields plus a few pass-through extras."""
    return {
        "safety_warnings": ["Warm up before every session."],
        "motivation_quote": "Small steps, every day.",
        "workout": [
            {
                "day": "Day 1",
                "focus": "Full Body",
                "duration": "45 mins",
                "exercises": [
                    {"name": "Goblet Squat", "sets": "3", "reps": "10-12", "rest": "60s"},
                    {"name": "Push Up", "sets": 3, "reps": 12},
                ],
            },
            {
                "day": "Day 2",
                "focus": "Cardio",
                "exercises": [{"name": "Brisk Walk", "sets": "1", "reps": "30 mins"}],
            },
        ],
        "diet": {
            "calorie_target": {"daily": "2136 kcal", "explanation": "Maintenance"},
            "meals": {
                "breakfast": {"meal": "Oats with berries", "calories": "400"},
                "lunch": "Chicken salad with quinoa",
            },
        },
        "hydration": {"target": "3L minimum"},
    }


@pytest.fixture
def valid_plan_text(valid_plan) -> str:
    return json.dumps(valid_plan)


@pytest.fixture
def minimal_profile() -> dict[str, Any]:
    return {"age": 30, "weight": 80, "height": 180}


@pytest.fixture
def full_profile() -> dict[str, Any]:
    """A web form submission, camelCase keys included."""
    return {
        "name": "Sam",
        "age": 30,
        "weight": 80,
        "height": 180,
        "gender": "Male",
        "goal": "weight loss",
        "level": "Intermediate",
        "diet": "Vegetarian",
        "equipment": "Full Gym",
        "activityLevel": "Moderately Active",
        "sleepHours": 6.5,
        "waterIntake": 2,
        "stressLevel": "High",
        "allergies": "Peanuts",
        "injuries": "Left knee",
        "chronicConditions": "",
        "medications": "",
        "medicalHistory": "",
    }


@pytest.fixture
def recorded_sleeps() -> list[float]:
    return []


@pytest.fixture
def make_settings():
    """Settings with credentials set for the given provider labels."""

    def _make(*descriptors: ProviderDescriptor, **overrides) -> Settings:
        credentials = overrides.pop("credentials", {d.credential_key: "test-key" for d in descriptors})
        return Settings(providers=tuple(descriptors), credentials=credentials, **overrides)

    return _make
