from fastapi import Request

from workout_tracker.services.plan_generator import PlanGenerator
from workout_tracker.services.tracker_service import TrackerService


def get_tracker(request: Request) -> TrackerService:
    """The single TrackerService built in the app lifespan."""
    return request.app.state.tracker


def get_plan_generator(request: Request) -> PlanGenerator:
    return request.app.state.plan_generator
