from typing import Any

from fastapi import APIRouter, Body, HTTPException
from fastapi.responses import JSONResponse

from fitplan.core.errors import ProfileInvalid
from fitplan.models import metrics as metrics_calculator
from fitplan.services.plan_service import validate_profile

router = APIRouter(
    prefix="/public",
    tags=["public"]
)


@router.post("/metrics", response_class=JSONResponse)
def calculate_metrics(profile: dict[str, Any] = Body(...)):
    try:
        user_profile = validate_profile(profile)
        metrics = metrics_calculator.compute(user_profile)

        response_data = {
            "success": True,
            "data": {
                "metrics": metrics.model_dump(),
                "profile": {
                    "goal": user_profile.goal,
                    "activity_level": user_profile.activity_level,
                    "gender": user_profile.gender.value,
                },
            },
        }
        return JSONResponse(content=response_data, status_code=200)

    except ProfileInvalid as e:
        raise HTTPException(status_code=400, detail=str(e))
