"""Generation status and metrics response schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class GenerationStatus(BaseModel):
    """Polling response for one generation request."""

    model_config = ConfigDict(from_attributes=True)

    request_id: str
    status: str  # 'pending', 'processing', 'completed', 'failed'
    progress_percent: int
    current_phase: Optional[str] = None
    output_id: Optional[str] = None
    error_message: Optional[str] = None
    context: Dict[str, Any]
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class MetricSample(BaseModel):
    """One timing sample."""

    model_config = ConfigDict(from_attributes=True)

    request_id: str
    context_type: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    success: Optional[bool] = None


class GenerationStats(BaseModel):
    """Per-user generation statistics."""

    user_id: str
    average_successful_duration_ms: Optional[int]
    estimated_onboarding_duration_ms: Optional[int]
    recent: List[MetricSample]


class EventEnvelope(BaseModel):
    """Event delivered by the event bus."""

    name: str
    data: Dict[str, Any]
