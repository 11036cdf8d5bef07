"""API tests for the onboarding stream and generation routes."""

import pytest
from fakes import FakeGenerator, RecordingHooks, onboarding_payload, parse_frames
from fastapi.testclient import TestClient

from coachflow.database import get_db
from coachflow.main import app
from coachflow.models.generation import GenerationRequest
from coachflow.routes.generations import get_worker
from coachflow.routes.onboarding import get_orchestrator
from coachflow.services.generation_queue import GenerationQueueStore
from coachflow.streaming.dispatch import SyncFallback
from coachflow.streaming.orchestrator import OnboardingStreamOrchestrator


class RecordingWorker:
    def __init__(self):
        self.events = []

    def handle_event(self, name, data):
        self.events.append((name, data))


@pytest.fixture
def worker():
    return RecordingWorker()


@pytest.fixture
def client(session_factory, test_db, worker):
    orchestrator = OnboardingStreamOrchestrator(
        strategy=SyncFallback(generator_factory=FakeGenerator(plan_id="plan-1"), tick_seconds=60),
        session_factory=session_factory,
        hooks=RecordingHooks(),
    )

    def override_get_db():
        yield test_db

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_worker] = lambda: worker

    yield TestClient(app)

    app.dependency_overrides.clear()


def _event(**overrides):
    event = {
        "name": "split/generate.requested",
        "data": {
            "requestId": "r1",
            "userId": "u1",
            "input": {"userId": "u1", "approachId": "a1", "splitType": "full_body", "weeklyFrequency": 3},
            "targetLanguage": "en",
        },
    }
    event.update(overrides)
    return event


def test_stream_onboarding(client):
    """The stream is SSE and ends with the complete frame."""
    response = client.post(
        "/onboarding/complete/stream",
        json=onboarding_payload(splitType="full_body", weeklyFrequency=3),
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache, no-transform"
    assert response.headers["x-accel-buffering"] == "no"

    frames = parse_frames([response.content])
    assert frames[0]["phase"] == "profile"
    assert frames[-1] == {"phase": "complete", "progress": 100, "message": "All set!", "splitPlanId": "plan-1"}


def test_stream_requires_user_and_approach(client, test_db):
    """Missing required fields are rejected before streaming."""
    response = client.post("/onboarding/complete/stream", json={"userId": "u1"})

    assert response.status_code == 400
    assert response.json() == {"error": "userId and approachId are required"}
    assert response.headers["content-type"].startswith("application/json")
    assert test_db.query(GenerationRequest).count() == 0


def test_stream_resumes_completed_request(client, test_db):
    """Reconnecting with a finished request id returns the result immediately."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "done", {"type": "onboarding"})
    queue.mark_completed("done", "plan-5")

    response = client.post("/onboarding/complete/stream", json=onboarding_payload(generationRequestId="done"))

    assert parse_frames([response.content]) == [
        {"phase": "complete", "progress": 100, "message": "All set!", "splitPlanId": "plan-5"},
    ]


def test_generation_status(client, test_db):
    """The status endpoint reports the queue row."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", {"type": "onboarding"})
    queue.update_progress("r1", 60, "Generating")

    response = client.get("/generations/r1")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "pending"
    assert body["progress_percent"] == 60
    assert body["current_phase"] == "Generating"


def test_generation_status_not_found(client):
    """Unknown request ids are 404."""
    assert client.get("/generations/missing").status_code == 404


def test_generation_stats(client):
    """Stats are empty for a user without samples."""
    response = client.get("/generations/users/u1/stats")

    assert response.status_code == 200
    assert response.json() == {
        "user_id": "u1",
        "average_successful_duration_ms": None,
        "estimated_onboarding_duration_ms": None,
        "recent": [],
    }


def test_event_delivery(client, worker):
    """A valid event is accepted and handed to the worker."""
    response = client.post("/events/split-generate", json=_event())

    assert response.status_code == 202
    assert response.json() == {"status": "accepted", "requestId": "r1"}
    assert worker.events[0][0] == "split/generate.requested"


def test_event_with_wrong_name(client, worker):
    """Other events are refused."""
    response = client.post("/events/split-generate", json=_event(name="program/generate.requested"))

    assert response.status_code == 400
    assert worker.events == []


def test_event_missing_data(client, worker):
    """Events without the request identity are refused."""
    response = client.post("/events/split-generate", json=_event(data={"userId": "u1"}))

    assert response.status_code == 400
    assert "requestId" in response.json()["detail"]


def test_event_with_invalid_input(client, worker):
    """Events whose input cannot drive the planner are refused."""
    response = client.post(
        "/events/split-generate",
        json=_event(data={"requestId": "r1", "userId": "u1", "input": {"userId": "u1"}}),
    )

    assert response.status_code == 400
    assert worker.events == []


def test_health(client):
    """Health check endpoint."""
    assert client.get("/health").json() == {"status": "healthy"}
