"""Generation queue and generation metrics models."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, Text

from coachflow.database import Base, JSONType, utcnow

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

ACTIVE_STATUSES = (STATUS_PENDING, STATUS_PROCESSING)
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED)


class GenerationRequest(Base):
    """One in-flight or finished generation, trackable across reconnects."""

    __tablename__ = "generation_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(Text, nullable=False, unique=True)
    user_id = Column(Text, nullable=False)
    context = Column(JSONType, nullable=False, default=dict)  # {'type': 'onboarding', 'splitType': ...}
    status = Column(Text, nullable=False, default=STATUS_PENDING)  # 'pending', 'processing', 'completed', 'failed'
    progress_percent = Column(Integer, nullable=False, default=0)
    current_phase = Column(Text)
    output_id = Column(Text)  # split plan id, set on completion
    error_message = Column(Text)
    created_at = Column(DateTime, default=utcnow)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_generation_requests_user_status", "user_id", "status"),
    )

    @property
    def context_type(self):
        return (self.context or {}).get("type")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f"<GenerationRequest(request_id='{self.request_id}', status='{self.status}')>"


class GenerationMetric(Base):
    """Timing sample covering the lifetime of one generation request."""

    __tablename__ = "generation_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False)
    request_id = Column(Text, nullable=False, unique=True)
    context_type = Column(Text, nullable=False)
    context = Column(JSONType)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime)
    duration_ms = Column(Integer)
    success = Column(Boolean)

    __table_args__ = (
        Index("idx_generation_metrics_type_success", "context_type", "success"),
        Index("idx_generation_metrics_user", "user_id"),
    )
