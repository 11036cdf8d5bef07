"""Split planner agent: designs a training split from the onboarding answers."""

import logging
from typing import Optional

from pydantic import ValidationError
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_incrementing

from coachflow.config import settings
from coachflow.exceptions import GenerationFailure
from coachflow.schemas.agents import SplitPlanOutput
from coachflow.schemas.onboarding import SplitPlannerInput
from coachflow.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {"en": "English", "de": "German"}

SYSTEM_PROMPT = """You are an expert strength coach and periodization specialist creating personalized training split plans.

Design splits that align with the SPECIFIC training approach provided.
Do NOT impose your own training philosophy; follow the approach's principles exactly.

Training approaches vary widely:
- Some use high frequency (2-4x/week per muscle), others low frequency (1x/week)
- Some use workout variations (A/B), others use identical sessions
- Some emphasize volume, others emphasize intensity to failure

Return valid JSON only. Do not include explanations or markdown."""


class SplitPlanner:
    """
    Asks the model for a split plan and parses it into `SplitPlanOutput`.

    Responses that are not valid JSON or describe an impossible cycle are
    requested again; LLM client errors propagate on the first occurrence
    since the client already retries transient failures.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        self.llm = llm_client
        self.max_attempts = max_attempts or settings.SPLIT_PLANNER_MAX_ATTEMPTS
        self.retry_delay = settings.SPLIT_PLANNER_RETRY_DELAY if retry_delay is None else retry_delay

    def plan(self, input_data: SplitPlannerInput, target_language: str) -> SplitPlanOutput:
        """
        Design a split for the user.

        Raises:
            GenerationFailure: If every attempt returned an unusable plan
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.retry_delay, increment=self.retry_delay),
            retry=retry_if_exception_type(ValidationError),
            before_sleep=self._log_rejected,
        )
        try:
            return retrying(self._request_plan, input_data, target_language)
        except RetryError as e:
            error = e.last_attempt.exception()
            raise GenerationFailure(
                f"Split planning failed after {self.max_attempts} attempts: {error}"
            ) from error

    def _request_plan(self, input_data: SplitPlannerInput, target_language: str) -> SplitPlanOutput:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": self._prompt(input_data, target_language)},
        ]
        response = self.llm.chat_completion(
            model=settings.SPLIT_PLANNER_MODEL,
            messages=messages,
            temperature=0.4,
            max_tokens=6000,
            json_mode=True,
        )
        return SplitPlanOutput.model_validate_json(response)

    @staticmethod
    def _log_rejected(retry_state) -> None:
        logger.warning(
            f"Split plan rejected on attempt {retry_state.attempt_number}: "
            f"{retry_state.outcome.exception()}"
        )

    def _prompt(self, input_data: SplitPlannerInput, target_language: str) -> str:
        language = LANGUAGE_NAMES.get(target_language, "English")
        return f"""Create a complete training split plan for this user.

Training approach id: {input_data.approach_id}
Split type: {input_data.split_type}
Training days per week: {input_data.weekly_frequency}
Weak points: {", ".join(input_data.weak_points) or "none"}
Available equipment: {", ".join(input_data.equipment_available) or "unknown"}
{self._demographics(input_data)}
Requirements:
1. cycle_days: number of days in one cycle (including rest days)
2. sessions: one entry per training day with
   - day (1 to cycle_days)
   - name (e.g. "Push A", "Upper B")
   - workout_type ('push', 'pull', 'legs', 'upper', 'lower', 'full_body')
   - variation ('A' or 'B', optional)
   - focus (list of emphasized muscle groups)
   - target_volume (sets per muscle group in this session)
3. frequency_map: times per week each muscle group is trained
4. volume_distribution: share of weekly volume per muscle group
5. rationale: short explanation written in {language}
6. Return valid JSON: {{"cycle_days": ..., "sessions": [...], "frequency_map": {{...}}, "volume_distribution": {{...}}, "rationale": "..."}}
"""

    def _demographics(self, input_data: SplitPlannerInput) -> str:
        lines = []
        if input_data.experience_years is not None:
            lines.append(f"Training experience: {input_data.experience_years} years")
        if input_data.user_age:
            lines.append(f"Age: {input_data.user_age}")
        if input_data.user_gender:
            lines.append(f"Gender: {input_data.user_gender}")
        return "\n".join(lines) + ("\n" if lines else "")
