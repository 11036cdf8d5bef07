"""SQLAlchemy ORM models."""

from coachflow.models.generation import GenerationMetric, GenerationRequest
from coachflow.models.profile import UserMilestone, UserProfile
from coachflow.models.split_plan import SplitPlan

__all__ = [
    "GenerationRequest",
    "GenerationMetric",
    "UserProfile",
    "UserMilestone",
    "SplitPlan",
]
