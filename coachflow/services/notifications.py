"""Post-onboarding side effects: welcome email and milestone.

These run on a detached thread after the stream has sent its `complete`
frame. Failures are logged and never reach the client.
"""

import logging
import threading
from typing import Callable, Optional

import httpx
from sqlalchemy.exc import IntegrityError

from coachflow.config import settings
from coachflow.database import SessionLocal
from coachflow.models.profile import UserMilestone

logger = logging.getLogger(__name__)

ONBOARDING_COMPLETED = "onboarding_completed"


def spawn_detached(name: str, target: Callable, *args, **kwargs) -> threading.Thread:
    """Run target on a daemon thread with its own error boundary."""

    def guarded():
        try:
            target(*args, **kwargs)
        except Exception as e:
            logger.error(f"Detached task {name} failed: {e}", exc_info=True)

    thread = threading.Thread(target=guarded, name=name, daemon=True)
    thread.start()
    return thread


class EmailSender:
    """Sends transactional email through an HTTP email API."""

    def __init__(self, api_url: Optional[str] = None, api_key: Optional[str] = None, sender: Optional[str] = None):
        self.api_url = api_url if api_url is not None else settings.EMAIL_API_URL
        self.api_key = api_key if api_key is not None else settings.EMAIL_API_KEY
        self.sender = sender or settings.EMAIL_FROM

    def send_welcome(self, user_id: str, first_name: Optional[str], locale: str) -> bool:
        """Send the welcome mail. Returns False when email is not configured."""
        if not self.api_url:
            logger.info(f"Email API not configured, skipping welcome mail for {user_id}")
            return False

        with httpx.Client(timeout=10.0) as client:
            response = client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.sender,
                    "template": "welcome",
                    "user_id": user_id,
                    "locale": locale,
                    "variables": {"first_name": first_name or ""},
                },
            )
            response.raise_for_status()

        logger.info(f"Sent welcome mail to user {user_id}")
        return True


class PostOnboardingHooks:
    """Fires the non-blocking side effects of a finished onboarding."""

    def __init__(self, session_factory=SessionLocal, email_sender: Optional[EmailSender] = None):
        self.session_factory = session_factory
        self.email_sender = email_sender or EmailSender()

    def fire(self, user_id: str, first_name: Optional[str], split_plan_id: Optional[str], locale: str) -> threading.Thread:
        """Start the side effects without waiting for them."""
        return spawn_detached(
            f"post-onboarding-{user_id}",
            self.run,
            user_id,
            first_name,
            split_plan_id,
            locale,
        )

    def run(self, user_id: str, first_name: Optional[str], split_plan_id: Optional[str], locale: str) -> None:
        # Each effect has its own boundary so one failing does not skip the other
        try:
            self.record_milestone(user_id, ONBOARDING_COMPLETED, {"split_plan_id": split_plan_id})
        except Exception as e:
            logger.error(f"Failed to record onboarding milestone for {user_id}: {e}")

        try:
            self.email_sender.send_welcome(user_id, first_name, locale)
        except Exception as e:
            logger.error(f"Failed to send welcome mail to {user_id}: {e}")

    def record_milestone(self, user_id: str, milestone_type: str, details: Optional[dict] = None) -> bool:
        """Record a milestone once. Returns False if it already existed."""
        db = self.session_factory()
        try:
            db.add(UserMilestone(user_id=user_id, milestone_type=milestone_type, details=details or {}))
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info(f"Milestone '{milestone_type}' already exists for user {user_id}")
            return False
        finally:
            db.close()

        logger.info(f"Created milestone '{milestone_type}' for user {user_id}")
        return True
