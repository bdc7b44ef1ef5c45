"""End-to-end tests for POST /api/generate-plan with stand-in model clients."""
from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from subconic.api.routes import plan as plan_routes
from subconic.core.errors import UpstreamError
from subconic.main import app
from subconic.services.model_client import GeminiModelClient, GenerationOptions, ModelClient, get_model_client

VALID_PLAN = {
    "mainGoal": {"goal": "Learn Guitar", "deadline": "30 days", "committed": True},
    "planMeta": {
        "planGoal": "Play three songs confidently",
        "benefits": ["Confidence", "Creativity", "Calm", "Discipline"],
        "whyThisWorks": ["Repetition builds motor memory"],
    },
    "currentPlan": {
        "brainprogram": {"morning": "See yourself playing.", "night": "Replay today's progress."},
        "burningDesires": [f"Desire {i}" for i in range(1, 8)],
        "affirmations": [f"Affirmation {i}" for i in range(1, 6)],
        "dailyRoutine": {f"day{i}": ["07:00 chord practice"] for i in range(1, 8)},
    },
}


class StubModelClient(ModelClient):
    name = "stub"

    def __init__(self, text: str | None = None, error: Exception | None = None, hang: bool = False) -> None:
        self.text = text
        self.error = error
        self.hang = hang
        self.calls = 0
        self.prompts: list[str] = []

    async def _request(self, prompt: str, options: GenerationOptions) -> str:
        self.calls += 1
        self.prompts.append(prompt)
        if self.hang:
            await asyncio.sleep(30)
        if self.error:
            raise self.error
        return self.text or ""


@pytest.fixture()
def stub_client():
    stub = StubModelClient(text="```json\n" + json.dumps(VALID_PLAN) + "\n```")
    app.dependency_overrides[get_model_client] = lambda: stub
    yield stub
    app.dependency_overrides.clear()


@pytest.fixture()
def client(stub_client):
    with TestClient(app) as test_client:
        yield test_client


def test_generate_plan_end_to_end(client, stub_client) -> None:
    response = client.post("/api/generate-plan", json={"goal": "learn guitar", "deadline": "30 days"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["fallbackUsed"] is False
    assert payload["requestId"] == response.headers["X-Request-Id"]
    assert payload["plan"]["mainGoal"]["goal"] == "learn guitar"
    assert payload["plan"]["mainGoal"]["deadline"] == "30 days"
    assert payload["plan"]["planMeta"]["planGoal"] == "Play three songs confidently"
    assert len(payload["plan"]["currentPlan"]["burningDesires"]) == 7
    assert payload["plan"]["id"]
    assert payload["plan"]["createdAt"]
    assert stub_client.calls == 1
    assert "Goal: learn guitar" in stub_client.prompts[0]
    assert "Deadline: 30 days" in stub_client.prompts[0]


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"deadline": "30 days"},
        {"goal": ""},
        {"goal": "   "},
        {"goal": 42},
        {"goal": None},
    ],
)
def test_missing_or_invalid_goal_is_rejected_without_model_call(client, stub_client, body) -> None:
    response = client.post("/api/generate-plan", json=body)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "goal" in response.json()["error"]
    assert stub_client.calls == 0


def test_non_object_body_is_rejected(client, stub_client) -> None:
    response = client.post("/api/generate-plan", json=["learn guitar"])

    assert response.status_code == 400
    assert stub_client.calls == 0


def test_unparseable_model_output_returns_500_without_leaking(client, stub_client, caplog) -> None:
    stub_client.text = 'Sorry, here is half: {"mainGoal": {"goal": "SECRET-RAW"'

    with caplog.at_level(logging.WARNING):
        response = client.post("/api/generate-plan", json={"goal": "learn guitar"})

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert response.json()["error"] == "Plan generation failed"
    assert "SECRET-RAW" not in response.text
    assert "SECRET-RAW" in caplog.text


def test_missing_required_field_returns_500(client, stub_client) -> None:
    incomplete = json.loads(json.dumps(VALID_PLAN))
    del incomplete["currentPlan"]["dailyRoutine"]
    stub_client.text = json.dumps(incomplete)

    response = client.post("/api/generate-plan", json={"goal": "learn guitar"})

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Plan generation failed",
        "requestId": response.headers["X-Request-Id"],
    }


def test_upstream_error_returns_500(client, stub_client) -> None:
    stub_client.error = UpstreamError("Gemini error: status=503", upstream_status=503)

    response = client.post("/api/generate-plan", json={"goal": "learn guitar"})

    assert response.status_code == 500
    assert response.json()["error"] == "Plan generation failed"
    assert stub_client.calls == 1


def test_timeout_returns_504(client, stub_client) -> None:
    stub_client.hang = True
    app.dependency_overrides[plan_routes.get_generation_options] = lambda: GenerationOptions(timeout_ms=100)

    response = client.post("/api/generate-plan", json={"goal": "learn guitar"})

    assert response.status_code == 504
    assert response.json() == {
        "success": False,
        "error": "Plan generation timed out",
        "requestId": response.headers["X-Request-Id"],
    }
    assert stub_client.calls == 1


def test_fallback_policy_serves_fallback_plan_on_failure(monkeypatch, client, stub_client) -> None:
    monkeypatch.setattr(plan_routes.settings, "plan_failure_policy", "fallback")
    stub_client.text = "not json at all"

    response = client.post("/api/generate-plan", json={"goal": "learn guitar"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["fallbackUsed"] is True
    assert payload["plan"]["mainGoal"]["goal"] == "learn guitar"
    assert len(payload["plan"]["currentPlan"]["affirmations"]) == 5
    assert stub_client.calls == 1


def test_fallback_policy_still_rejects_missing_goal(monkeypatch, client, stub_client) -> None:
    monkeypatch.setattr(plan_routes.settings, "plan_failure_policy", "fallback")

    response = client.post("/api/generate-plan", json={"deadline": "tomorrow"})

    assert response.status_code == 400
    assert stub_client.calls == 0


def test_sectioned_template_is_selected_by_configuration(monkeypatch, client, stub_client) -> None:
    monkeypatch.setattr(plan_routes.settings, "prompt_template", "sectioned")
    stub_client.text = (
        "### PLAN GOAL\nPlay a song\n### BENEFITS\n- Joy\n### WHY THIS WORKS\n- Practice\n"
        "### MORNING PROGRAM\nWake and play\n### NIGHT PROGRAM\nReflect\n"
        "### BURNING DESIRES\n- Play live\n### AFFIRMATIONS\n- I am a player\n"
        "### DAILY GUIDE\n07:00 scales\n"
    )

    response = client.post("/api/generate-plan", json={"goal": "learn guitar"})

    assert response.status_code == 200
    current = response.json()["plan"]["currentPlan"]
    assert current["dailyGuide"] == "07:00 scales"
    assert "dailyRoutine" not in current
    assert "### DAILY GUIDE" in stub_client.prompts[0]


def test_numeric_optional_fields_are_accepted(client, stub_client) -> None:
    response = client.post(
        "/api/generate-plan",
        json={"goal": "learn guitar", "deadline": 30, "weeklyGoal": 3, "startTime": 7},
    )

    assert response.status_code == 200
    assert response.json()["plan"]["mainGoal"]["deadline"] == "30 days"
    assert "Deadline: 30" in stub_client.prompts[0]
    assert "Weekly Goal: 3" in stub_client.prompts[0]
    assert "Time Window: 7 to" in stub_client.prompts[0]


def test_structured_response_omits_daily_guide(client, stub_client) -> None:
    response = client.post("/api/generate-plan", json={"goal": "learn guitar"})

    current = response.json()["plan"]["currentPlan"]
    assert "dailyRoutine" in current
    assert "dailyGuide" not in current


@pytest.mark.parametrize("failure", ["timeout", "upstream"])
def test_fallback_policy_covers_timeout_and_upstream_failures(monkeypatch, client, stub_client, failure) -> None:
    monkeypatch.setattr(plan_routes.settings, "plan_failure_policy", "fallback")
    if failure == "timeout":
        stub_client.hang = True
        app.dependency_overrides[plan_routes.get_generation_options] = lambda: GenerationOptions(timeout_ms=100)
    else:
        stub_client.error = UpstreamError("Gemini error: status=503", upstream_status=503)

    response = client.post("/api/generate-plan", json={"goal": "learn guitar"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["fallbackUsed"] is True
    assert payload["plan"]["mainGoal"]["goal"] == "learn guitar"
    assert stub_client.calls == 1


def test_fallback_policy_covers_malformed_gemini_candidate(monkeypatch, client) -> None:
    monkeypatch.setattr(plan_routes.settings, "plan_failure_policy", "fallback")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": [{"content": "blocked"}]})

    gemini = GeminiModelClient(
        api_key="test-key",
        model="gemini-2.5-flash",
        base_url="https://gemini.test/v1beta",
        transport=httpx.MockTransport(handler),
    )
    app.dependency_overrides[get_model_client] = lambda: gemini

    response = client.post("/api/generate-plan", json={"goal": "learn guitar"})

    assert response.status_code == 200
    assert response.json()["fallbackUsed"] is True
