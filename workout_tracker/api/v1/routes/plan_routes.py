"""
Plan Routes
"""
from fastapi import APIRouter, Depends

from workout_tracker.api.v1.controllers.plan_controller import PlanController
from workout_tracker.api.v1.dependencies import get_plan_generator
from workout_tracker.schemas.plan_schemas import PlanRequest, PlanResponse
from workout_tracker.services.plan_generator import PlanGenerator

router = APIRouter(prefix="/plans", tags=["AI Planner"])


@router.post(
    "",
    summary="Generate Weekly Plan",
    description="Generates a weekly workout plan with OpenAI. Returns 502 when the model is unavailable.",
    response_model=PlanResponse
)
async def generate_plan(payload: PlanRequest, generator: PlanGenerator = Depends(get_plan_generator)):
    return await PlanController.generate(generator, payload)
