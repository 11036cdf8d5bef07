"""Database-backed generation queue.

One row per generation request. The row survives client reconnects and
server restarts, and is the join key between an onboarding stream and the
background worker. Only the side actively performing the work writes to a
row; readers (resumed streams, the status endpoint) never mutate it.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from coachflow.database import utcnow
from coachflow.exceptions import DuplicateRequest
from coachflow.models.generation import (
    ACTIVE_STATUSES,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    GenerationRequest,
)

logger = logging.getLogger(__name__)

ContextPredicate = Callable[[Dict[str, Any]], bool]


def context_type_is(context_type: str) -> ContextPredicate:
    """Predicate matching rows whose context has the given type."""
    return lambda context: (context or {}).get("type") == context_type


class GenerationQueueStore:
    """User-scoped lookup and mutation of generation requests."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, request_id: str, context: Dict[str, Any]) -> GenerationRequest:
        """
        Create a pending generation request.

        Creating the same request id twice for the same user returns the
        existing row.

        Raises:
            DuplicateRequest: If the request id belongs to another user
        """
        existing = self.get_by_request_id(request_id)
        if existing:
            if existing.user_id != user_id:
                logger.warning(f"Request id {request_id} already owned by another user")
                raise DuplicateRequest(request_id)
            return existing

        entry = GenerationRequest(
            request_id=request_id,
            user_id=user_id,
            context=dict(context or {}),
            status=STATUS_PENDING,
            progress_percent=0,
        )
        self.db.add(entry)
        self.db.commit()

        logger.info(f"Created generation request {request_id} for user {user_id}")
        return entry

    def get_by_request_id(self, request_id: str) -> Optional[GenerationRequest]:
        return self.db.query(GenerationRequest).filter(GenerationRequest.request_id == request_id).first()

    def get_active_for_user(
        self,
        user_id: str,
        context_predicate: Optional[ContextPredicate] = None,
    ) -> Optional[GenerationRequest]:
        """Most recent pending/processing request of the user matching the predicate."""
        rows = (
            self.db.query(GenerationRequest)
            .filter(
                GenerationRequest.user_id == user_id,
                GenerationRequest.status.in_(ACTIVE_STATUSES),
            )
            .order_by(GenerationRequest.created_at.desc(), GenerationRequest.id.desc())
            .all()
        )
        for row in rows:
            if context_predicate is None or context_predicate(row.context):
                return row
        return None

    def recent_for_user(self, user_id: str, limit: int = 10) -> List[GenerationRequest]:
        return (
            self.db.query(GenerationRequest)
            .filter(GenerationRequest.user_id == user_id)
            .order_by(GenerationRequest.created_at.desc(), GenerationRequest.id.desc())
            .limit(limit)
            .all()
        )

    def mark_started(self, request_id: str, current_phase: Optional[str] = None) -> Optional[GenerationRequest]:
        entry = self._writable(request_id)
        if not entry:
            return None

        entry.status = STATUS_PROCESSING
        if entry.started_at is None:
            entry.started_at = utcnow()
        if current_phase:
            entry.current_phase = current_phase
        self.db.commit()
        return entry

    def claim(self, request_id: str, current_phase: Optional[str] = None) -> bool:
        """
        Atomically move a pending request to processing.

        Returns True for exactly one caller per request; a row that is
        already processing or finished is not claimed again.
        """
        now = utcnow()
        values = {
            GenerationRequest.status: STATUS_PROCESSING,
            GenerationRequest.started_at: now,
            GenerationRequest.updated_at: now,
        }
        if current_phase:
            values[GenerationRequest.current_phase] = current_phase

        claimed = (
            self.db.query(GenerationRequest)
            .filter(
                GenerationRequest.request_id == request_id,
                GenerationRequest.status == STATUS_PENDING,
            )
            .update(values, synchronize_session=False)
        )
        self.db.commit()

        if claimed != 1:
            logger.info(f"Generation request {request_id} not claimable, already taken or finished")
        return claimed == 1

    def update_progress(self, request_id: str, progress_percent: int, current_phase: str) -> Optional[GenerationRequest]:
        """Record progress. Progress never moves backwards."""
        entry = self._writable(request_id)
        if not entry:
            return None

        entry.progress_percent = max(entry.progress_percent or 0, min(100, int(progress_percent)))
        entry.current_phase = current_phase
        self.db.commit()
        return entry

    def mark_completed(
        self,
        request_id: str,
        output_id: Optional[str],
        current_phase: str = "Generation complete",
    ) -> Optional[GenerationRequest]:
        entry = self._writable(request_id)
        if not entry:
            return None

        entry.status = STATUS_COMPLETED
        entry.progress_percent = 100
        entry.current_phase = current_phase
        entry.output_id = output_id
        entry.completed_at = utcnow()
        self.db.commit()

        logger.info(f"Generation request {request_id} completed with output {output_id}")
        return entry

    def mark_failed(self, request_id: str, error_message: str) -> Optional[GenerationRequest]:
        entry = self._writable(request_id)
        if not entry:
            return None

        entry.status = STATUS_FAILED
        entry.error_message = error_message
        entry.completed_at = utcnow()
        self.db.commit()

        logger.info(f"Generation request {request_id} failed: {error_message}")
        return entry

    def _writable(self, request_id: str) -> Optional[GenerationRequest]:
        """Row to mutate, or None when missing or already terminal."""
        entry = self.get_by_request_id(request_id)
        if entry is None:
            logger.warning(f"Generation request {request_id} not found")
            return None
        if entry.is_terminal:
            logger.warning(f"Ignoring write to terminal generation request {request_id} ({entry.status})")
            return None
        return entry
