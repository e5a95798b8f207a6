import json
from types import SimpleNamespace

import pytest

from workout_tracker.exceptions import ExternalServiceError
from workout_tracker.schemas.plan_schemas import PlanRequest
from workout_tracker.services.plan_generator import PlanGenerator

REQUEST = PlanRequest(goal="Build muscle", experience_level="Beginner", days_per_week=2, equipment=["Dumbbells"])


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content):
    completions = FakeCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


async def test_generate_parses_structured_plan():
    plan = {"days": [
        {"day": "Day 1", "focus": "Upper Body", "exercises": [{"name": "Press", "sets": 3, "reps": "8-12"}]},
        {"day": "Day 2", "focus": "Lower Body", "exercises": [{"name": "Lunge", "sets": 3, "reps": "10"}]},
    ]}
    client, completions = fake_client("```json\n" + json.dumps(plan) + "\n```")

    days = await PlanGenerator(client=client, model="test-model").generate(REQUEST)

    assert [d.focus for d in days] == ["Upper Body", "Lower Body"]
    call = completions.calls[0]
    assert call["model"] == "test-model"
    assert call["response_format"]["type"] == "json_schema"
    assert "Dumbbells" in call["messages"][1]["content"]


async def test_unreadable_plan_is_external_service_error():
    client, _ = fake_client("not json at all")
    with pytest.raises(ExternalServiceError):
        await PlanGenerator(client=client).generate(REQUEST)


def test_missing_api_key_is_external_service_error(monkeypatch):
    from workout_tracker.core.config import settings

    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
    with pytest.raises(ExternalServiceError):
        PlanGenerator().client
