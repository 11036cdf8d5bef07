"""How split generation is carried out once the stream reaches the split phase.

Two strategies exist: hand the work to the background worker through the
event bus (`AsyncDispatch`), or generate in-process while the stream stays
open (`SyncFallback`). The choice is made once, when the orchestrator is
built, from configuration.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from coachflow.config import Settings, settings
from coachflow.exceptions import CoachflowError, GenerationFailure
from coachflow.schemas.onboarding import SplitPlannerInput
from coachflow.services.event_publisher import SPLIT_GENERATE_REQUESTED, EventPublisher
from coachflow.services.generation_queue import GenerationQueueStore
from coachflow.services.split_generation import SplitGenerationService
from coachflow.streaming.progress import ProgressEmitter, ProgressTicker

logger = logging.getLogger(__name__)

AI_START_PROGRESS = 50
AI_END_PROGRESS = 90


@dataclass
class GenerationJob:
    """What a strategy needs to know about the generation it runs."""

    db: Session
    queue: GenerationQueueStore
    request_id: str
    user_id: str
    plan_input: SplitPlannerInput
    locale: str
    translate: Callable[[str], str]
    estimate_ms: Optional[int] = None


@dataclass
class DispatchOutcome:
    handed_off: bool = False
    output_id: Optional[str] = None


def build_split_generator(db: Session) -> SplitGenerationService:
    return SplitGenerationService(db)


class GenerationDispatchStrategy:
    """Runs the split phase of an onboarding stream."""

    name = "base"

    def run(self, job: GenerationJob, emitter: ProgressEmitter) -> DispatchOutcome:
        raise NotImplementedError


class AsyncDispatch(GenerationDispatchStrategy):
    """Publishes the generation to the background worker and hands off."""

    name = "async"

    def __init__(self, publisher: EventPublisher):
        self.publisher = publisher

    def run(self, job: GenerationJob, emitter: ProgressEmitter) -> DispatchOutcome:
        message = job.translate("analyzingApproach")
        # Written before publishing: once the event is out, the worker owns the row
        job.queue.update_progress(job.request_id, AI_START_PROGRESS, message)

        logger.info(f"Dispatching split generation {job.request_id} to background worker")
        self.publisher.publish(SPLIT_GENERATE_REQUESTED, {
            "requestId": job.request_id,
            "userId": job.user_id,
            "input": job.plan_input.model_dump(by_alias=True),
            "targetLanguage": job.locale,
        })

        # The client polls GET /generations/{request_id} from here on
        emitter.progress("split", AI_START_PROGRESS, message, detail=job.request_id)
        return DispatchOutcome(handed_off=True)


class SyncFallback(GenerationDispatchStrategy):
    """Generates the split in-process, streaming simulated progress meanwhile."""

    name = "sync"

    def __init__(
        self,
        generator_factory: Callable[[Session], SplitGenerationService] = build_split_generator,
        tick_seconds: float = 2.0,
        default_ai_duration_ms: int = 120000,
        ai_duration_share: float = 0.4,
    ):
        self.generator_factory = generator_factory
        self.tick_seconds = tick_seconds
        self.default_ai_duration_ms = default_ai_duration_ms
        self.ai_duration_share = ai_duration_share

    def expected_duration_s(self, estimate_ms: Optional[int]) -> float:
        """Expected length of the AI call: a share of the total estimate."""
        if estimate_ms:
            return estimate_ms * self.ai_duration_share / 1000
        return self.default_ai_duration_ms / 1000

    def run(self, job: GenerationJob, emitter: ProgressEmitter) -> DispatchOutcome:
        t = job.translate
        job.queue.mark_started(job.request_id, t("analyzingApproach"))
        job.queue.update_progress(job.request_id, AI_START_PROGRESS, t("analyzingApproach"))
        emitter.progress("split", AI_START_PROGRESS, t("analyzingApproach"))

        generator = self.generator_factory(job.db)
        ticker = ProgressTicker(
            emitter,
            "split",
            AI_START_PROGRESS,
            AI_END_PROGRESS,
            self.expected_duration_s(job.estimate_ms),
            t("generatingSplit"),
            interval_s=self.tick_seconds,
        )
        try:
            with ticker:
                split_plan_id = generator.generate(job.plan_input, job.locale)
        except CoachflowError:
            raise
        except Exception as e:
            raise GenerationFailure(str(e) or "Split generation failed") from e

        job.queue.mark_completed(job.request_id, split_plan_id, t("splitCreated"))
        return DispatchOutcome(output_id=split_plan_id)


def select_dispatch_strategy(
    config: Settings = settings,
    publisher: Optional[EventPublisher] = None,
    generator_factory: Optional[Callable[[Session], SplitGenerationService]] = None,
) -> GenerationDispatchStrategy:
    """AsyncDispatch when an event key (or dev mode) is configured, else SyncFallback."""
    if config.async_dispatch_enabled:
        return AsyncDispatch(publisher or EventPublisher())
    return SyncFallback(
        generator_factory=generator_factory or build_split_generator,
        tick_seconds=config.PROGRESS_TICK_SECONDS,
        default_ai_duration_ms=config.DEFAULT_AI_DURATION_MS,
        ai_duration_share=config.AI_DURATION_SHARE,
    )
