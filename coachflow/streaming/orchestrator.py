"""Onboarding completion stream.

Drives one client-visible stream: profile upsert, optional split plan
generation, finalize. Streams are resumable: a reconnecting client either
gets the finished result right away or a single frame with the last known
progress of the generation still in flight.
"""

import logging
import uuid
from typing import Callable, Optional

from sqlalchemy.orm import Session

from coachflow.database import SessionLocal
from coachflow.exceptions import CoachflowError, DuplicateRequest
from coachflow.i18n import get_translator, resolve_locale
from coachflow.models.generation import STATUS_COMPLETED, STATUS_FAILED, GenerationRequest
from coachflow.schemas.onboarding import OnboardingRequest
from coachflow.services.generation_metrics import GenerationMetricsTracker
from coachflow.services.generation_queue import GenerationQueueStore, context_type_is
from coachflow.services.notifications import PostOnboardingHooks
from coachflow.services.profiles import ProfileService
from coachflow.streaming.dispatch import GenerationDispatchStrategy, GenerationJob
from coachflow.streaming.progress import ProgressEmitter
from coachflow.streaming.sse import FrameChannel
from coachflow.streaming.state import StreamStage, StreamState

logger = logging.getLogger(__name__)

CONTEXT_TYPE = "onboarding"


def new_request_id() -> str:
    return str(uuid.uuid4())


class OnboardingStreamOrchestrator:
    """Runs onboarding stream invocations. Holds no per-request state."""

    def __init__(
        self,
        strategy: GenerationDispatchStrategy,
        session_factory: Callable[[], Session] = SessionLocal,
        hooks: Optional[PostOnboardingHooks] = None,
        id_factory: Callable[[], str] = new_request_id,
    ):
        self.strategy = strategy
        self.session_factory = session_factory
        self.hooks = hooks
        self.id_factory = id_factory

    def run(self, data: OnboardingRequest, channel: FrameChannel) -> StreamState:
        """
        Run one stream invocation to its end and close the channel.

        Never raises: failures become a single `error` frame.
        """
        state = StreamState(user_id=data.user_id, request_id=data.generation_request_id)
        emitter = ProgressEmitter(channel)
        locale = resolve_locale(data.locale)
        t = get_translator(locale)
        db = None

        try:
            db = self.session_factory()
            self._run(db, data, state, emitter, locale, t)
        except Exception as e:
            logger.error(f"Onboarding stream error for user {data.user_id}: {e}", exc_info=True)
            self._fail(db, state, emitter, e, t)
        finally:
            channel.close()
            if db is not None:
                db.close()

        logger.info(f"Onboarding stream for user {data.user_id} ended in stage {state.stage.value}")
        return state

    def _run(self, db: Session, data: OnboardingRequest, state: StreamState, emitter: ProgressEmitter, locale: str, t):
        queue = GenerationQueueStore(db)
        metrics = GenerationMetricsTracker(db)

        emitter.estimate_ms = metrics.get_estimated_duration(data.user_id, {"type": CONTEXT_TYPE})

        existing = self._find_existing(queue, data.user_id, state)
        if existing is not None:
            self._resume(existing, state, emitter, t)
            return

        self._generate(db, data, state, emitter, queue, metrics, locale, t)

    def _find_existing(self, queue: GenerationQueueStore, user_id: str, state: StreamState) -> Optional[GenerationRequest]:
        """Generation this stream should attach to instead of starting over."""
        if state.request_id:
            entry = queue.get_by_request_id(state.request_id)
            if entry is not None and entry.user_id != user_id:
                raise DuplicateRequest(state.request_id)
            return entry

        entry = queue.get_active_for_user(user_id, context_type_is(CONTEXT_TYPE))
        if entry is not None:
            logger.info(f"Found active generation {entry.request_id} for user {user_id}")
            state.request_id = entry.request_id
        return entry

    def _resume(self, entry: GenerationRequest, state: StreamState, emitter: ProgressEmitter, t):
        if entry.status == STATUS_COMPLETED:
            logger.info(f"Returning completed generation {entry.request_id}")
            state.split_plan_id = entry.output_id
            state.advance(StreamStage.COMPLETE)
            emitter.complete(entry.output_id, t("setupComplete"))
            return

        if entry.status == STATUS_FAILED:
            state.advance(StreamStage.ERROR)
            emitter.error(entry.error_message or t("failedToGenerate"))
            return

        # Only the worker (or the stream that started it) writes the row; we just report
        state.resuming = True
        state.advance(StreamStage.RESUMING)
        emitter.progress(
            "profile",
            entry.progress_percent or 0,
            entry.current_phase or t("resuming"),
            detail=entry.request_id,
        )
        state.advance(StreamStage.HANDED_OFF)

    def _generate(self, db, data, state, emitter, queue, metrics, locale, t):
        if not state.request_id:
            state.request_id = self.id_factory()
        request_id = state.request_id

        metrics.start_generation(data.user_id, request_id, {"type": CONTEXT_TYPE})
        state.metrics_open = True

        # Phase 1: profile (0-30%)
        state.advance(StreamStage.PROFILE)
        emitter.progress("profile", 0, t("starting"))
        queue.create(data.user_id, request_id, {"type": CONTEXT_TYPE, "splitType": data.split_type})
        state.queue_row_created = True
        emitter.progress("profile", 10, t("creatingProfile"))
        ProfileService(db).upsert_from_onboarding(data, locale)
        emitter.progress("profile", 30, t("profileCreated"))

        # Phase 2: split plan (40-90%)
        state.advance(StreamStage.SPLIT)
        if data.wants_plan:
            emitter.progress("split", 40, t("planningWorkout"))

            job = GenerationJob(
                db=db,
                queue=queue,
                request_id=request_id,
                user_id=data.user_id,
                plan_input=data.plan_input(),
                locale=locale,
                translate=t,
                estimate_ms=emitter.estimate_ms,
            )
            outcome = self.strategy.run(job, emitter)
            if outcome.handed_off:
                # Worker closes the metrics sample and the queue row
                logger.info(f"Generation {request_id} handed off, closing stream")
                state.advance(StreamStage.HANDED_OFF)
                return

            state.split_plan_id = outcome.output_id
            emitter.progress("split", 90, t("splitCreated"))
        else:
            emitter.progress("split", 85, t("finalizingSetup"))

        # Phase 3: finalize (95-100%)
        state.advance(StreamStage.FINALIZE)
        emitter.progress("finalize", 95, t("finalizingSetup"))
        if not data.wants_plan:
            # Plan generations are closed by the dispatch strategy
            queue.mark_completed(request_id, None, t("setupComplete"))

        metrics.complete_generation(request_id, True)
        state.metrics_open = False

        state.advance(StreamStage.COMPLETE)
        emitter.complete(state.split_plan_id, t("setupComplete"))

        if self.hooks is not None:
            self.hooks.fire(data.user_id, data.first_name, state.split_plan_id, locale)

    def _fail(self, db: Optional[Session], state: StreamState, emitter: ProgressEmitter, error: Exception, t):
        if state.is_terminal:
            logger.warning(f"Error after stream reached {state.stage.value}, not reporting: {error}")
            return

        message = str(error) if isinstance(error, CoachflowError) and str(error) else t("failedToGenerate")

        if db is not None:
            try:
                db.rollback()
                if state.queue_row_created:
                    GenerationQueueStore(db).mark_failed(state.request_id, message)
            except Exception as e:
                logger.error(f"Failed to mark generation {state.request_id} as failed: {e}")

            if state.metrics_open:
                try:
                    db.rollback()
                    GenerationMetricsTracker(db).complete_generation(state.request_id, False)
                    state.metrics_open = False
                except Exception as e:
                    logger.error(f"Failed to close metrics for {state.request_id}: {e}")

        state.advance(StreamStage.ERROR)
        emitter.error(message)
