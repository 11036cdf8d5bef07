"""User profile persistence."""

import logging

from sqlalchemy.orm import Session

from coachflow.exceptions import GenerationFailure
from coachflow.models.profile import UserProfile
from coachflow.schemas.onboarding import OnboardingRequest

logger = logging.getLogger(__name__)


class ProfileService:
    """Creates and updates the onboarding profile of a user."""

    def __init__(self, db: Session):
        self.db = db

    def upsert_from_onboarding(self, data: OnboardingRequest, locale: str) -> UserProfile:
        """
        Insert or replace the profile with the onboarding answers.

        Any previously active split plan is detached; it is re-attached once
        a new plan has been generated.

        Raises:
            GenerationFailure: If the profile could not be written
        """
        try:
            profile = self.db.get(UserProfile, data.user_id)
            if profile is None:
                profile = UserProfile(user_id=data.user_id)
                self.db.add(profile)

            profile.approach_id = data.approach_id
            profile.weak_points = data.weak_points or []
            profile.available_equipment = data.available_equipment or []
            profile.equipment_preferences = data.equipment_preferences or {}
            profile.strength_baseline = data.strength_baseline or {}
            profile.first_name = data.first_name or None
            profile.gender = data.gender or None
            profile.age = data.age or None
            profile.weight = data.weight or None
            profile.height = data.height or None
            profile.experience_years = data.confirmed_experience or 0
            profile.preferred_split = data.split_type or None
            profile.preferred_language = locale
            profile.active_split_plan_id = None
            profile.current_cycle_day = None

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise GenerationFailure(f"Failed to create profile: {e}") from e

        logger.info(f"Upserted profile for user {data.user_id}")
        return profile

    def attach_split_plan(self, user_id: str, split_plan_id: str) -> None:
        """Make the plan the user's active one, starting at cycle day 1."""
        profile = self.db.get(UserProfile, user_id)
        if profile is None:
            logger.warning(f"No profile for user {user_id}, cannot attach plan {split_plan_id}")
            return

        profile.active_split_plan_id = split_plan_id
        profile.current_cycle_day = 1
        self.db.commit()
