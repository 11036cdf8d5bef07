"""Split plan model."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, Text

from coachflow.database import Base, JSONType, utcnow


class SplitPlan(Base):
    """AI-generated training split for a user."""

    __tablename__ = "split_plans"

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Text, nullable=False, index=True)
    approach_id = Column(Text, nullable=False)
    split_type = Column(Text, nullable=False)  # 'push_pull_legs', 'upper_lower', 'full_body', ...
    cycle_days = Column(Integer, nullable=False)
    sessions = Column(JSONType, nullable=False)
    frequency_map = Column(JSONType)
    volume_distribution = Column(JSONType)
    rationale = Column(Text)
    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
