import json
from typing import List

import openai
from pydantic import ValidationError as PydanticValidationError

from workout_tracker.core.config import settings
from workout_tracker.core.logger import get_logger
from workout_tracker.exceptions import ExternalServiceError
from workout_tracker.schemas.plan_schemas import PlanDay, PlanRequest

logger = get_logger("plan_generator")

PLAN_SCHEMA = {
    "type": "object",
    "properties": {
        "days": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "day": {"type": "string", "description": "Day of the week or 'Day 1'"},
                    "focus": {"type": "string", "description": "Main focus, e.g. Upper Body"},
                    "exercises": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string"},
                                "sets": {"type": "integer"},
                                "reps": {"type": "string", "description": "Rep range such as '8-12'"}
                            },
                            "required": ["name", "sets", "reps"],
                            "additionalProperties": False
                        }
                    }
                },
                "required": ["day", "focus", "exercises"],
                "additionalProperties": False
            }
        }
    },
    "required": ["days"],
    "additionalProperties": False
}


class PlanGenerator:
    """Weekly workout plans from OpenAI with structured JSON output."""

    def __init__(self, client: openai.AsyncOpenAI = None, model: str = None):
        self._client = client
        self.model = model or settings.PLAN_MODEL

    @property
    def client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise ExternalServiceError("OpenAI API key is not configured (OPENAI_API_KEY).")
            self._client = openai.AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        return self._client

    def _build_prompt(self, request: PlanRequest) -> str:
        equipment = ", ".join(request.equipment) if request.equipment else "Bodyweight only"
        return f"""
Create a weekly workout plan for a user with the following details:
- Goal: {request.goal}
- Experience Level: {request.experience_level}
- Days per week: {request.days_per_week}
- Available Equipment: {equipment}

For each exercise, suggest a number of sets and a rep range (e.g. "8-12").
Balance muscle groups across the week.
If the goal is weight loss, include a mix of strength and cardio.
If the goal is endurance, favour higher reps or circuit-style training.
If the goal is muscle building, use progressive overload with low-to-moderate rep ranges.
"""

    async def generate(self, request: PlanRequest) -> List[PlanDay]:
        client = self.client
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are a certified strength and conditioning coach."},
                    {"role": "user", "content": self._build_prompt(request)}
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "workout_plan", "strict": True, "schema": PLAN_SCHEMA}
                },
                temperature=0.7,
            )
        except openai.OpenAIError as e:
            logger.error(f"Error calling OpenAI API: {e}", exc_info=True)
            raise ExternalServiceError(f"Failed to generate workout plan: {e}") from e

        content = (response.choices[0].message.content or "").strip()
        content = content.removeprefix("```json").removesuffix("```").strip()
        try:
            days = [PlanDay.model_validate(day) for day in json.loads(content)["days"]]
        except (ValueError, KeyError, TypeError, PydanticValidationError) as e:
            logger.error(f"Unusable plan response: {e}")
            raise ExternalServiceError("The plan generator returned an unreadable plan.") from e

        logger.info(f"Generated {len(days)}-day plan for goal '{request.goal}'")
        return days
