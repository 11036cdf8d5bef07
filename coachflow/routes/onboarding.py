"""Onboarding routes."""

import logging
import threading
from functools import lru_cache

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from coachflow.config import settings
from coachflow.schemas.onboarding import OnboardingRequest
from coachflow.services.notifications import PostOnboardingHooks
from coachflow.streaming.dispatch import select_dispatch_strategy
from coachflow.streaming.orchestrator import OnboardingStreamOrchestrator
from coachflow.streaming.sse import SSE_HEADERS, FrameChannel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


@lru_cache()
def get_orchestrator() -> OnboardingStreamOrchestrator:
    """Orchestrator with the dispatch strategy selected once from settings."""
    strategy = select_dispatch_strategy(settings)
    logger.info(f"Onboarding generation uses {strategy.name} dispatch")
    return OnboardingStreamOrchestrator(strategy=strategy, hooks=PostOnboardingHooks())


@router.post(
    "/complete/stream",
    responses={
        200: {"content": {"text/event-stream": {}}},
        400: {"description": "userId or approachId missing"},
    },
)
def complete_onboarding_stream(
    data: OnboardingRequest,
    orchestrator: OnboardingStreamOrchestrator = Depends(get_orchestrator),
):
    """
    Complete onboarding and stream progress as Server-Sent Events.

    Each frame is `data: <json>`. Failures after the stream has started are
    reported in-band with an `error` frame; the status is always 200.
    """
    missing = data.missing_fields()
    if missing:
        logger.info(f"Rejecting onboarding stream, missing {missing}")
        return JSONResponse(status_code=400, content={"error": "userId and approachId are required"})

    channel = FrameChannel()
    worker = threading.Thread(
        target=orchestrator.run,
        args=(data, channel),
        name=f"onboarding-stream-{data.user_id}",
        daemon=True,
    )
    worker.start()

    return StreamingResponse(channel.aiter_bytes(), media_type="text/event-stream", headers=SSE_HEADERS)
