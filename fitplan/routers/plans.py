from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from loguru import logger

from fitplan.core.config import Settings, get_settings
from fitplan.core.errors import AllProvidersExhausted, ProfileInvalid
from fitplan.services.plan_service import generate_plan
from fitplan.services.retriever import ExampleStore
from fitplan.services.supabase_client import SupabaseExampleStore

router = APIRouter(
    prefix="/plans",
    tags=["plans"]
)


def get_example_store(settings: Settings = Depends(get_settings)) -> ExampleStore:
    return SupabaseExampleStore(settings)


@router.post("/generate", response_class=JSONResponse)
def generate(
    profile: dict[str, Any] = Body(...),
    settings: Settings = Depends(get_settings),
    store: ExampleStore = Depends(get_example_store),
):
    """
    Generate a workout and diet plan for the submitted profile.

    Returns the plan JSON with a `_metadata` block describing which provider
    answered, the derived metrics and whether retrieved examples were used.
    """
    try:
        result = generate_plan(profile, settings=settings, store=store)
        return JSONResponse(content=result.to_response(), status_code=200)

    except ProfileInvalid as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AllProvidersExhausted as e:
        raise HTTPException(
            status_code=500,
            detail={
                "error": "Unable to generate plan. Please try again later.",
                "details": str(e.last_error) if e.last_error else str(e),
            },
        )
    except Exception as e:
        logger.exception(f"Unexpected error while generating plan: {e}")
        raise HTTPException(status_code=500, detail=f"Error generating plan: {str(e)}")


@router.get("/providers", response_class=JSONResponse)
def list_providers(settings: Settings = Depends(get_settings)):
    """Configured providers in fallback order, with whether their credential is set."""
    providers = [
        {
            "label": descriptor.label,
            "backend": descriptor.backend,
            "model": descriptor.model,
            "configured": settings.credential(descriptor.credential_key) is not None,
        }
        for descriptor in settings.providers
    ]
    return JSONResponse(content={"providers": providers}, status_code=200)
