import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence, Union

from loguru import logger
from pydantic import ValidationError

from fitplan.core.config import Settings, get_settings
from fitplan.core.errors import ProfileInvalid
from fitplan.models import metrics as metrics_calculator
from fitplan.models.schemas import PlanMetadata, PlanResult, ProviderDescriptor, UserProfile
from fitplan.services import prompt_builder, retriever
from fitplan.services.orchestrator import GenerationAttempt, ProviderFallbackOrchestrator
from fitplan.services.supabase_client import SupabaseExampleStore

REQUIRED_FIELDS = ("age", "weight", "height")
MISSING_REQUIRED_MESSAGE = "Age, Weight, and Height are required to calculate plans."


def validate_profile(payload: Union[UserProfile, Mapping[str, Any]]) -> UserProfile:
    """Validate the inbound profile before anything else happens."""
    if isinstance(payload, UserProfile):
        return payload
    if not isinstance(payload, Mapping):
        raise ProfileInvalid("Profile must be a JSON object.")

    try:
        return UserProfile.model_validate(dict(payload))
    except ValidationError as e:
        errors = e.errors()
        if any(error["loc"] and error["loc"][0] in REQUIRED_FIELDS for error in errors):
            raise ProfileInvalid(MISSING_REQUIRED_MESSAGE) from e
        first = errors[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ProfileInvalid(f"Invalid profile field '{location}': {first['msg']}") from e


@dataclass
class GeneratedPlan:
    plan: PlanResult
    metadata: PlanMetadata
    attempts: list[GenerationAttempt] = field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        response = self.plan.to_payload()
        response["_metadata"] = self.metadata.model_dump()
        return response


def generate_plan(
    payload: Union[UserProfile, Mapping[str, Any]],
    *,
    settings: Optional[Settings] = None,
    store: Optional[retriever.ExampleStore] = None,
    orchestrator: Optional[ProviderFallbackOrchestrator] = None,
    providers: Optional[Sequence[ProviderDescriptor]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> GeneratedPlan:
    """
    Run the whole generation pipeline for one request.

    Profile -> metrics -> similar examples -> prompt -> provider fallback.
    ProfileInvalid is raised before any provider is contacted; on total
    failure AllProvidersExhausted propagates and no partial plan is returned.
    """
    profile = validate_profile(payload)
    settings = settings or get_settings()

    metrics = metrics_calculator.compute(profile)
    logger.info(f"📊 Metrics: BMI {metrics.bmi}, BMR {metrics.bmr}, TDEE {metrics.tdee}, target {metrics.calorie_target} kcal")

    if store is None:
        store = SupabaseExampleStore(settings)
    examples = retriever.retrieve(profile, metrics, limit=settings.retrieval_limit, store=store)
    examples_block = retriever.format_examples(examples, settings.retrieval_max_chars)
    prompt = prompt_builder.compose(profile, metrics, examples_block)
    rag_enhanced = bool(examples_block)
    logger.debug(f"Prompt built: {len(prompt)} chars, rag_enhanced={rag_enhanced}")

    if orchestrator is None:
        orchestrator = ProviderFallbackOrchestrator(settings, cancel_event=cancel_event)
    outcome = orchestrator.generate(prompt, providers)

    health = profile.health_context()
    metadata = PlanMetadata(
        provider=outcome.provider.label,
        metrics=metrics,
        generated_at=datetime.now(timezone.utc).isoformat(),
        rag_enhanced=rag_enhanced,
        retrieval_quality=retriever.retrieval_quality(examples) if rag_enhanced else "none",
        attempt_count=outcome.calls_made,
        has_health_conditions=bool(health),
        health_factors_considered=len(health),
    )
    return GeneratedPlan(plan=outcome.plan, metadata=metadata, attempts=outcome.attempts)
