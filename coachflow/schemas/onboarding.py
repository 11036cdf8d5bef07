"""Onboarding stream request schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

REQUIRED_FIELDS = ("userId", "approachId")


class CamelModel(BaseModel):
    """Accepts camelCase keys from the client, snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OnboardingRequest(CamelModel):
    """Body of POST /onboarding/complete/stream."""

    user_id: Optional[str] = None
    approach_id: Optional[str] = None
    weak_points: List[str] = Field(default_factory=list)
    available_equipment: List[str] = Field(default_factory=list)
    equipment_preferences: Dict[str, Any] = Field(default_factory=dict)
    strength_baseline: Dict[str, Any] = Field(default_factory=dict)
    first_name: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    confirmed_experience: Optional[float] = None
    split_type: Optional[str] = None
    weekly_frequency: Optional[int] = None
    generation_request_id: Optional[str] = None
    locale: Optional[str] = None

    def missing_fields(self) -> List[str]:
        """Names (as sent by the client) of required fields that are empty."""
        missing = []
        if not self.user_id:
            missing.append("userId")
        if not self.approach_id:
            missing.append("approachId")
        return missing

    @property
    def wants_plan(self) -> bool:
        return bool(self.split_type and self.weekly_frequency)

    def plan_input(self) -> "SplitPlannerInput":
        """Plan-generation parameters derived from the onboarding answers."""
        return SplitPlannerInput(
            user_id=self.user_id,
            approach_id=self.approach_id,
            split_type=self.split_type,
            weekly_frequency=self.weekly_frequency,
            weak_points=self.weak_points,
            equipment_available=self.available_equipment,
            experience_years=self.confirmed_experience,
            user_age=self.age,
            user_gender=self.gender if self.gender in ("male", "female", "other") else None,
        )


class SplitPlannerInput(CamelModel):
    """Input for the split planner; also the `input` of the dispatch event."""

    user_id: str
    approach_id: str
    split_type: str
    weekly_frequency: int
    weak_points: List[str] = Field(default_factory=list)
    equipment_available: List[str] = Field(default_factory=list)
    experience_years: Optional[float] = None
    user_age: Optional[int] = None
    user_gender: Optional[str] = None
