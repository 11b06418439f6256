import math

from fitplan.models.schemas import DerivedMetrics, Gender, UserProfile

ACTIVITY_MULTIPLIERS = {
    "Sedentary": 1.2,
    "Lightly Active": 1.375,
    "Moderately Active": 1.55,
    "Very Active": 1.725,
}
DEFAULT_ACTIVITY_MULTIPLIER = 1.2

# Mifflin-St Jeor constant per gender; "other" sits between the two.
BMR_GENDER_OFFSETS = {
    Gender.MALE: 5,
    Gender.FEMALE: -161,
    Gender.OTHER: -78,
}

WEIGHT_LOSS_DEFICIT = 500
MUSCLE_GAIN_SURPLUS = 300
HYDRATION_LITERS_PER_KG = 0.033


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_bmi(weight: float, height: float) -> float:
    """BMI from weight in kg and height in cm, one decimal."""
    height_m = height / 100
    return round(weight / (height_m * height_m), 1)


def get_bmr(profile: UserProfile) -> int:
    """Calculate Basal Metabolic Rate (Mifflin-St Jeor)"""
    base = 10 * profile.weight + 6.25 * profile.height - 5 * profile.age
    return _round_half_up(base + BMR_GENDER_OFFSETS[profile.gender])


def get_tdee(bmr: int, activity_level: str) -> int:
    """Calculate Total Daily Energy Expenditure (TDEE)"""
    multiplier = ACTIVITY_MULTIPLIERS.get(activity_level, DEFAULT_ACTIVITY_MULTIPLIER)
    return _round_half_up(bmr * multiplier)


def goal_based_calories(tdee: int, goal: str) -> int:
    """Calculate calorie target based on goal"""
    if goal == "Weight Loss":
        return tdee - WEIGHT_LOSS_DEFICIT
    elif goal == "Muscle Gain":
        return tdee + MUSCLE_GAIN_SURPLUS
    return tdee


def compute(profile: UserProfile) -> DerivedMetrics:
    """Derive the physiological numbers the prompt is built around.

    Pure and total for any validated profile.
    """
    bmr = get_bmr(profile)
    tdee = get_tdee(bmr, profile.activity_level)
    return DerivedMetrics(
        bmi=get_bmi(profile.weight, profile.height),
        bmr=bmr,
        tdee=tdee,
        calorie_target=goal_based_calories(tdee, profile.goal),
        hydration_liters=_round_half_up(profile.weight * HYDRATION_LITERS_PER_KG),
    )
