"""
Plan Controller
"""
from workout_tracker.schemas.plan_schemas import PlanRequest, PlanResponse
from workout_tracker.services.plan_generator import PlanGenerator


class PlanController:

    @staticmethod
    async def generate(generator: PlanGenerator, payload: PlanRequest) -> PlanResponse:
        days = await generator.generate(payload)
        return PlanResponse(days=days)
