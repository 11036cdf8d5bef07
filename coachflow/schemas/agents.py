"""Agent input/output schemas."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class SessionSchema(BaseModel):
    """One training session within the split cycle."""

    day: int
    name: str
    workout_type: str  # 'push', 'pull', 'legs', 'upper', 'lower', 'full_body'
    variation: Optional[str] = None
    focus: List[str] = Field(default_factory=list)
    target_volume: Dict[str, int] = Field(default_factory=dict)


class SplitPlanOutput(BaseModel):
    """Output from SplitPlanner."""

    cycle_days: int
    sessions: List[SessionSchema]
    frequency_map: Dict[str, int] = Field(default_factory=dict)
    volume_distribution: Dict[str, float] = Field(default_factory=dict)
    rationale: Optional[str] = None

    @model_validator(mode="after")
    def sessions_fit_cycle(self):
        if self.cycle_days < 1:
            raise ValueError("cycle_days must be at least 1")
        if not self.sessions:
            raise ValueError("plan has no sessions")
        outside = [s.day for s in self.sessions if not 1 <= s.day <= self.cycle_days]
        if outside:
            raise ValueError(f"session days {outside} fall outside a {self.cycle_days}-day cycle")
        return self
