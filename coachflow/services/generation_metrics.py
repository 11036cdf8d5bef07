"""Generation timing samples and duration estimates for ETA display."""

import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from coachflow.config import settings
from coachflow.database import utcnow
from coachflow.models.generation import GenerationMetric

logger = logging.getLogger(__name__)


class GenerationMetricsTracker:
    """Tracks how long generations of each context type take."""

    def __init__(
        self,
        db: Session,
        clock: Callable = utcnow,
        min_samples: Optional[int] = None,
        window: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock
        self.min_samples = min_samples if min_samples is not None else settings.METRICS_MIN_SAMPLES
        self.window = window if window is not None else settings.METRICS_WINDOW

    def start_generation(self, user_id: str, request_id: str, context: Dict[str, Any]) -> None:
        """Open a sample. A second call for the same request id is a no-op."""
        existing = self.db.query(GenerationMetric).filter(GenerationMetric.request_id == request_id).first()
        if existing:
            logger.info(f"Metrics sample for {request_id} already exists, not restarting")
            return

        sample = GenerationMetric(
            user_id=user_id,
            request_id=request_id,
            context_type=context.get("type", "unknown"),
            context=dict(context),
            started_at=self.clock(),
        )
        self.db.add(sample)
        self.db.commit()

    def complete_generation(self, request_id: str, success: bool = True) -> None:
        """Close the open sample for the request, if there is one."""
        sample = (
            self.db.query(GenerationMetric)
            .filter(
                GenerationMetric.request_id == request_id,
                GenerationMetric.completed_at.is_(None),
            )
            .first()
        )
        if not sample:
            logger.info(f"No open metrics sample for {request_id}")
            return

        completed_at = self.clock()
        sample.completed_at = completed_at
        sample.duration_ms = int((completed_at - sample.started_at).total_seconds() * 1000)
        sample.success = success
        self.db.commit()

    def get_estimated_duration(self, user_id: str, context: Dict[str, Any]) -> Optional[int]:
        """
        Estimated total duration in milliseconds for this context type.

        Uses the user's own recent samples when there are enough of them,
        otherwise recent samples of all users. Returns None when history is
        too thin to be useful.
        """
        context_type = context.get("type", "unknown")

        durations = self._recent_durations(context_type, user_id)
        if len(durations) < self.min_samples:
            durations = self._recent_durations(context_type)
        if len(durations) < self.min_samples:
            return None

        # Most recent sample weighs the most
        total_weight = 0
        weighted_sum = 0
        for index, duration in enumerate(durations):
            weight = len(durations) - index
            weighted_sum += duration * weight
            total_weight += weight

        return round(weighted_sum / total_weight)

    def get_average_successful_duration(self, user_id: str, limit: int = 20) -> Optional[int]:
        durations = (
            self.db.query(GenerationMetric.duration_ms)
            .filter(
                GenerationMetric.user_id == user_id,
                GenerationMetric.success.is_(True),
                GenerationMetric.duration_ms.isnot(None),
            )
            .order_by(GenerationMetric.completed_at.desc())
            .limit(limit)
            .all()
        )
        if not durations:
            return None
        return round(sum(d for (d,) in durations) / len(durations))

    def get_recent_metrics(self, user_id: str, limit: int = 10) -> List[GenerationMetric]:
        return (
            self.db.query(GenerationMetric)
            .filter(GenerationMetric.user_id == user_id)
            .order_by(GenerationMetric.started_at.desc(), GenerationMetric.id.desc())
            .limit(limit)
            .all()
        )

    def _recent_durations(self, context_type: str, user_id: Optional[str] = None) -> List[int]:
        query = self.db.query(GenerationMetric.duration_ms).filter(
            GenerationMetric.context_type == context_type,
            GenerationMetric.success.is_(True),
            GenerationMetric.duration_ms.isnot(None),
        )
        if user_id is not None:
            query = query.filter(GenerationMetric.user_id == user_id)

        rows = query.order_by(GenerationMetric.completed_at.desc(), GenerationMetric.id.desc()).limit(self.window).all()
        return [duration for (duration,) in rows]
