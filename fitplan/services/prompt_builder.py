import json
from typing import Optional, Sequence

from fitplan.core import prompts
from fitplan.models.schemas import DerivedMetrics, UserProfile
from fitplan.services.retriever import RetrievalExample, format_examples

HEALTH_ICONS = {
    "ALLERGIES": "🚨",
    "CHRONIC CONDITIONS": "⚕️",
    "INJURIES": "🩹",
    "MEDICATIONS": "💊",
    "MEDICAL NOTES": "📋",
}


def _num(value: Optional[float], unit: str = "") -> str:
    return f"{value:g}{unit}" if value is not None else "not provided"


def profile_summary(profile: UserProfile, metrics: DerivedMetrics) -> str:
    return "\n".join([
        "USER PROFILE:",
        f"- Name: {profile.name or 'Athlete'}",
        f"- Bio: {profile.age}yrs, {profile.gender.value.title()}, {profile.weight:g}kg, {profile.height:g}cm (BMI: {metrics.bmi})",
        f"- BMR: {metrics.bmr} kcal/day | TDEE: {metrics.tdee} kcal/day | Calorie target: {metrics.calorie_target} kcal/day",
        f"- Goal: {profile.goal}",
        f"- Experience: {profile.level}",
        f"- Diet Preference: {profile.diet}",
        f"- Equipment Access: {profile.equipment}",
        f"- Activity Level: {profile.activity_level}",
        f"- Sleep: {_num(profile.sleep_hours, ' hours/night')}",
        f"- Water Intake: {_num(profile.water_intake, 'L/day')} (target {metrics.hydration_liters}L/day)",
        f"- Stress Level: {profile.stress_level}",
    ])


def health_considerations(profile: UserProfile) -> str:
    context = profile.health_context()
    if not context:
        return ""
    lines = [f"{HEALTH_ICONS[label]} {label}: {text}" for label, text in context]
    return (
        "⚠️ CRITICAL HEALTH CONSIDERATIONS:\n"
        + "\n".join(lines)
        + "\n\nYou MUST consider these factors when creating the plan."
    )


def build(
    profile: UserProfile,
    metrics: DerivedMetrics,
    examples: Sequence[RetrievalExample] = (),
    max_example_chars: int = 3500,
) -> str:
    return compose(profile, metrics, format_examples(list(examples), max_example_chars))


def compose(profile: UserProfile, metrics: DerivedMetrics, examples_block: str = "") -> str:
    """
    Compose the full generation prompt around an already formatted examples block.

    Order: preamble, retrieved examples (only when the block is non-empty),
    profile and metrics, health considerations, safety checklist, plan
    requirements, the output schema, and the JSON-only closing instruction.
    """
    sections = [prompts.preamble]

    if examples_block:
        sections.append(examples_block)

    sections.append(profile_summary(profile, metrics))

    health = health_considerations(profile)
    if health:
        sections.append(health)

    schema = prompts.plan_schema(metrics.calorie_target, metrics.hydration_liters, profile.sleep_hours)
    sections.extend([
        prompts.safety_requirements,
        prompts.plan_requirements,
        "REQUIRED JSON STRUCTURE:\n" + json.dumps(schema, indent=2, ensure_ascii=False),
        prompts.closing_instruction,
    ])
    return "\n\n".join(sections)
