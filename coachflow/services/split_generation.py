"""Split plan generation shared by the in-process path and the background worker."""

import logging

from sqlalchemy.orm import Session

from coachflow.agents.split_planner import SplitPlanner
from coachflow.exceptions import GenerationFailure
from coachflow.models.split_plan import SplitPlan
from coachflow.schemas.onboarding import SplitPlannerInput
from coachflow.services.llm_client import LLMClient
from coachflow.services.profiles import ProfileService

logger = logging.getLogger(__name__)


class SplitGenerationService:
    """Runs the split planner, stores the plan and activates it for the user."""

    def __init__(self, db: Session, llm_client: LLMClient = None, planner: SplitPlanner = None):
        self.db = db
        self.planner = planner or SplitPlanner(llm_client or LLMClient())

    def generate(self, plan_input: SplitPlannerInput, target_language: str) -> str:
        """
        Generate and persist a split plan.

        Returns:
            Id of the new split plan

        Raises:
            GenerationFailure: If the planner fails or returns an unusable plan
        """
        try:
            output = self.planner.plan(plan_input, target_language)
        except GenerationFailure:
            raise
        except Exception as e:
            raise GenerationFailure(f"Split planning failed: {e}") from e

        split_plan = SplitPlan(
            user_id=plan_input.user_id,
            approach_id=plan_input.approach_id,
            split_type=plan_input.split_type,
            cycle_days=output.cycle_days,
            sessions=[session.model_dump() for session in output.sessions],
            frequency_map=output.frequency_map,
            volume_distribution=output.volume_distribution,
            rationale=output.rationale,
            active=True,
        )
        self.db.add(split_plan)
        self.db.commit()

        ProfileService(self.db).attach_split_plan(plan_input.user_id, split_plan.id)

        logger.info(f"Generated split plan {split_plan.id} for user {plan_input.user_id}")
        return split_plan.id
