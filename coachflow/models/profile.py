"""User profile and milestone models."""

from sqlalchemy import Column, DateTime, Float, Integer, Text, UniqueConstraint

from coachflow.database import Base, JSONType, utcnow


class UserProfile(Base):
    """Training profile captured during onboarding."""

    __tablename__ = "user_profiles"

    user_id = Column(Text, primary_key=True)
    approach_id = Column(Text, nullable=False)
    weak_points = Column(JSONType, default=list)
    available_equipment = Column(JSONType, default=list)
    equipment_preferences = Column(JSONType, default=dict)
    strength_baseline = Column(JSONType, default=dict)
    first_name = Column(Text)
    gender = Column(Text)
    age = Column(Integer)
    weight = Column(Float)
    height = Column(Float)
    experience_years = Column(Float, default=0)
    preferred_split = Column(Text)
    preferred_language = Column(Text)
    active_split_plan_id = Column(Text)
    current_cycle_day = Column(Integer)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class UserMilestone(Base):
    """Milestone reached by a user, recorded at most once per type."""

    __tablename__ = "user_milestones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False)
    milestone_type = Column(Text, nullable=False)  # 'onboarding_completed', ...
    details = Column("metadata", JSONType)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "milestone_type", name="uq_user_milestones_user_type"),
    )
