"""Background worker for split generation events."""

import logging
from typing import Any, Callable, Dict

from sqlalchemy.orm import Session

from coachflow.database import SessionLocal
from coachflow.i18n import get_translator, resolve_locale
from coachflow.schemas.onboarding import SplitPlannerInput
from coachflow.services.event_publisher import SPLIT_GENERATE_REQUESTED
from coachflow.services.generation_metrics import GenerationMetricsTracker
from coachflow.services.generation_queue import GenerationQueueStore
from coachflow.streaming.dispatch import build_split_generator

logger = logging.getLogger(__name__)


class SplitGenerationWorker:
    """Consumes `split/generate.requested` events published by the onboarding stream."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        generator_factory: Callable = build_split_generator,
    ):
        self.session_factory = session_factory
        self.generator_factory = generator_factory

    def handle_event(self, name: str, data: Dict[str, Any]) -> None:
        """Route an event to its handler."""
        if name != SPLIT_GENERATE_REQUESTED:
            raise ValueError(f"Unknown event: {name}")
        self.process(data)

    def process(self, data: Dict[str, Any]) -> None:
        """Generate the split for one request and record the outcome on its queue row."""
        request_id = data["requestId"]
        user_id = data["userId"]
        plan_input = SplitPlannerInput(**data["input"])
        locale = resolve_locale(data.get("targetLanguage"))
        t = get_translator(locale)

        logger.info(f"Processing split generation {request_id} for user {user_id}")

        db = self.session_factory()
        try:
            queue = GenerationQueueStore(db)
            metrics = GenerationMetricsTracker(db)

            entry = queue.get_by_request_id(request_id)
            if entry is None:
                entry = queue.create(user_id, request_id, {"type": "onboarding", "splitType": plan_input.split_type})
            if entry.is_terminal:
                logger.info(f"Generation {request_id} already {entry.status}, skipping")
                return

            if not queue.claim(request_id, t("analyzingApproach")):
                logger.info(f"Generation {request_id} is already being processed, skipping")
                return

            metrics.start_generation(user_id, request_id, {"type": "onboarding"})

            try:
                queue.update_progress(request_id, 60, t("generatingSplit"))

                split_plan_id = self.generator_factory(db).generate(plan_input, locale)

                queue.mark_completed(request_id, split_plan_id, t("splitCreated"))
                metrics.complete_generation(request_id, True)
                logger.info(f"Generation {request_id} completed successfully")

            except Exception as e:
                logger.error(f"Generation {request_id} failed: {e}", exc_info=True)
                db.rollback()
                queue.mark_failed(request_id, str(e) or t("failedToGenerate"))
                metrics.complete_generation(request_id, False)

        finally:
            db.close()
