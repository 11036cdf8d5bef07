"""Generation status, statistics and event delivery routes."""

import logging
from functools import lru_cache

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from coachflow.database import get_db
from coachflow.schemas.generation import EventEnvelope, GenerationStats, GenerationStatus, MetricSample
from coachflow.schemas.onboarding import SplitPlannerInput
from coachflow.services.event_publisher import SPLIT_GENERATE_REQUESTED
from coachflow.services.generation_metrics import GenerationMetricsTracker
from coachflow.services.generation_queue import GenerationQueueStore
from coachflow.worker import SplitGenerationWorker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generations", tags=["generations"])
events_router = APIRouter(prefix="/events", tags=["events"])

REQUIRED_EVENT_KEYS = ("requestId", "userId", "input")


@lru_cache()
def get_worker() -> SplitGenerationWorker:
    return SplitGenerationWorker()


@router.get("/users/{user_id}/stats", response_model=GenerationStats)
def get_generation_stats(user_id: str, db: Session = Depends(get_db)):
    """Recent timing samples and averages for a user."""
    metrics = GenerationMetricsTracker(db)
    return GenerationStats(
        user_id=user_id,
        average_successful_duration_ms=metrics.get_average_successful_duration(user_id),
        estimated_onboarding_duration_ms=metrics.get_estimated_duration(user_id, {"type": "onboarding"}),
        recent=[MetricSample.model_validate(m) for m in metrics.get_recent_metrics(user_id)],
    )


@router.get("/{request_id}", response_model=GenerationStatus)
def get_generation_status(request_id: str, db: Session = Depends(get_db)):
    """Polling endpoint for a generation handed off to the background worker."""
    entry = GenerationQueueStore(db).get_by_request_id(request_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Generation request not found")
    return GenerationStatus.model_validate(entry)


@events_router.post("/split-generate", status_code=202)
def receive_split_generate_event(
    event: EventEnvelope,
    background_tasks: BackgroundTasks,
    worker: SplitGenerationWorker = Depends(get_worker),
):
    """Event bus delivery of `split/generate.requested`."""
    if event.name != SPLIT_GENERATE_REQUESTED:
        raise HTTPException(status_code=400, detail=f"Unsupported event: {event.name}")

    missing = [key for key in REQUIRED_EVENT_KEYS if key not in event.data]
    if missing:
        raise HTTPException(status_code=400, detail=f"Event data missing: {', '.join(missing)}")

    try:
        SplitPlannerInput(**event.data["input"])
    except (TypeError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid generation input: {e}")

    background_tasks.add_task(worker.handle_event, event.name, event.data)
    logger.info(f"Accepted {event.name} for {event.data['requestId']}")

    return {"status": "accepted", "requestId": event.data["requestId"]}
