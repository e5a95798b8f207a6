from pydantic import BaseModel, Field
from typing import List


class PlanRequest(BaseModel):
    """Schema for an AI workout plan request"""
    goal: str = Field(..., min_length=1, description="Training goal, e.g. 'Build muscle', 'Lose weight'")
    experience_level: str = Field(..., description="Beginner, Intermediate or Advanced")
    days_per_week: int = Field(..., ge=1, le=7, description="Training days per week")
    equipment: List[str] = Field(default_factory=list, description="Available equipment; empty means bodyweight only")

    class Config:
        json_schema_extra = {
            "example": {
                "goal": "Build muscle",
                "experience_level": "Intermediate",
                "days_per_week": 4,
                "equipment": ["Dumbbells", "Barbell"]
            }
        }


class PlanExercise(BaseModel):
    name: str
    sets: int = Field(..., ge=1)
    reps: str = Field(..., description="Repetition range such as '8-12'")


class PlanDay(BaseModel):
    day: str
    focus: str
    exercises: List[PlanExercise]


class PlanResponse(BaseModel):
    days: List[PlanDay]
