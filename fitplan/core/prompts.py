from typing import Any, Optional

# System message for chat-style providers.
system_prompt = """You are an expert fitness coach and nutritionist with medical knowledge. Prioritize safety and health. Return ONLY valid JSON. Do not include markdown formatting."""

preamble = """You are an elite Personal Trainer, Nutritionist, and Health Professional.
Generate a highly detailed, SAFE, and personalized fitness plan in JSON format only. No markdown, no intro text."""

examples_header = "=== HIGHLY-RATED PLANS FROM SIMILAR USERS (use as inspiration) ==="
examples_footer = """=== END OF EXAMPLES ===

Use the patterns above as reference for structure, intensity, and meal variety.
Adapt them to this user's specific profile. Do NOT copy verbatim."""

safety_requirements = """CRITICAL SAFETY REQUIREMENTS:
1. If user has injuries, MODIFY exercises to avoid affected areas
2. If user has chronic conditions, adjust intensity and include monitoring advice
3. If user has allergies, EXCLUDE those foods completely
4. If user takes medications, consider their effects
5. Include specific warnings and modifications"""

plan_requirements = """PLAN REQUIREMENTS:
1. SAFETY FIRST: Address all medical concerns explicitly
2. RESULTS TIMELINE: Be honest about when they'll see changes
3. DIET STRATEGY: Week-by-week progression with allergy considerations
4. WORKOUT: 3-5 days with injury modifications if needed
5. MACROS: Calculate based on TDEE and goal
6. HYDRATION & RECOVERY: Specific to their lifestyle"""

closing_instruction = """Return ONLY the JSON object described above. No prose before or after it, no markdown, no code fences.
Generate a comprehensive, safe, and personalized plan now."""


def _meal(name: str, calories: str, protein: str, carbs: str, fats: str, portion: str, prep_time: str, allergy_safe: bool = False) -> dict[str, str]:
    meal = {
        "meal": name,
        "calories": calories,
        "protein": protein,
        "carbs": carbs,
        "fats": fats,
        "portion": portion,
        "prep_time": prep_time,
    }
    if allergy_safe:
        meal["allergy_safe"] = "Yes/No with alternatives"
    return meal


def plan_schema(calorie_target: int, hydration_liters: int, sleep_hours: Optional[float] = None) -> dict[str, Any]:
    """The output structure every provider is asked for.

    `workout` days with exercises and `diet.meals` are the fields the response
    parser enforces; everything else is passed through.
    """
    current_sleep = f"{sleep_hours:g}" if sleep_hours is not None else "not reported"
    return {
        "safety_warnings": ["warning1", "warning2"],
        "motivation_quote": "Short, punchy, personalized quote",
        "results_timeline": {
            "estimated_start": "e.g., 2-4 weeks",
            "milestones": ["Week 2: ...", "Week 4: ...", "Week 8: ...", "Week 12: ..."],
        },
        "health_considerations": {
            "modifications": "Specific modifications",
            "monitoring": "What to track",
            "red_flags": "Warning signs",
        },
        "tips": ["Tip 1", "Tip 2", "Tip 3", "Tip 4"],
        "workout": [
            {
                "day": "Day 1",
                "focus": "Push / Pull / Legs / Cardio / Recovery",
                "duration": "45-60 mins",
                "intensity": "Low/Moderate/High",
                "exercises": [
                    {
                        "name": "Exercise Name",
                        "sets": "3",
                        "reps": "10-12",
                        "rest": "60s",
                        "calories": "50",
                        "modification": "Alternative if user has injury",
                    }
                ],
                "notes": "Specific guidance",
            }
        ],
        "diet": {
            "strategy": {
                "week_1": "Focus on adaptation",
                "week_2": "Optimize macros",
                "week_3_4": "Fine-tune based on progress",
                "allergy_notes": "Foods avoided and alternatives",
            },
            "calorie_target": {
                "daily": f"{calorie_target} kcal",
                "explanation": "Why this target",
            },
            "macros": {"protein": "Xg", "carbs": "Xg", "fats": "Xg"},
            "meals": {
                "breakfast": _meal("Name", "400", "30g", "40g", "15g", "Exact ingredients with measurements", "10 mins", allergy_safe=True),
                "mid_morning_snack": _meal("Name", "150", "10g", "15g", "5g", "Exact ingredients", "5 mins"),
                "lunch": _meal("Name", "500", "40g", "50g", "20g", "Exact ingredients", "15 mins", allergy_safe=True),
                "afternoon_snack": _meal("Name", "200", "15g", "20g", "8g", "Exact ingredients", "5 mins"),
                "dinner": _meal("Name", "550", "45g", "45g", "20g", "Exact ingredients", "20 mins", allergy_safe=True),
                "evening_snack": _meal("Optional light snack", "100", "8g", "10g", "3g", "Exact ingredients", "2 mins"),
            },
        },
        "hydration": {
            "target": f"{hydration_liters}L minimum",
            "timing": "When and how much to drink",
            "signs_of_dehydration": ["Dark urine", "Fatigue", "Dizziness"],
        },
        "recovery": {
            "sleep_target": f"7-9 hours (they currently get {current_sleep})",
            "rest_days": "How many per week and why",
            "stress_management": "Techniques for their stress level",
            "stretching": "Daily routine",
        },
        "supplements": ["Supplement 1 with reason", "Note: Consult doctor"],
        "progress_tracking": {
            "measurements": ["Weight", "Body measurements", "Progress photos"],
            "performance": ["Strength gains", "Endurance improvements"],
            "health_metrics": ["Energy levels", "Sleep quality", "Mood"],
        },
    }
