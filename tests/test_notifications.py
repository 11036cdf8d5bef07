"""Tests for the post-onboarding side effects."""

from coachflow.models.profile import UserMilestone
from coachflow.services.notifications import (
    ONBOARDING_COMPLETED,
    EmailSender,
    PostOnboardingHooks,
    spawn_detached,
)


class FakeEmailSender:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send_welcome(self, user_id, first_name, locale):
        if self.fail:
            raise ConnectionError("smtp relay down")
        self.sent.append((user_id, first_name, locale))
        return True


def test_milestone_recorded_once(session_factory, test_db):
    """The second record of the same milestone is a no-op."""
    hooks = PostOnboardingHooks(session_factory=session_factory, email_sender=FakeEmailSender())

    assert hooks.record_milestone("u1", ONBOARDING_COMPLETED, {"split_plan_id": "plan-1"})
    assert not hooks.record_milestone("u1", ONBOARDING_COMPLETED)

    milestones = test_db.query(UserMilestone).all()
    assert len(milestones) == 1
    assert milestones[0].details == {"split_plan_id": "plan-1"}


def test_fire_runs_detached(session_factory, test_db):
    """Both effects run on a background thread."""
    sender = FakeEmailSender()
    hooks = PostOnboardingHooks(session_factory=session_factory, email_sender=sender)

    hooks.fire("u1", "Alex", "plan-1", "de").join(timeout=5)

    assert sender.sent == [("u1", "Alex", "de")]
    assert test_db.query(UserMilestone).filter_by(user_id="u1").count() == 1


def test_email_failure_keeps_milestone(session_factory, test_db):
    """A failing mail does not undo or block the milestone."""
    hooks = PostOnboardingHooks(session_factory=session_factory, email_sender=FakeEmailSender(fail=True))

    hooks.run("u1", "Alex", None, "en")

    assert test_db.query(UserMilestone).count() == 1


def test_spawn_detached_contains_errors():
    """Exceptions in detached work are logged, not raised."""
    calls = []

    def boom(value):
        calls.append(value)
        raise RuntimeError("boom")

    thread = spawn_detached("boom", boom, 42)
    thread.join(timeout=5)

    assert calls == [42]
    assert thread.daemon


def test_email_sender_without_configuration():
    """Without an email API nothing is sent."""
    assert EmailSender(api_url="").send_welcome("u1", "Alex", "en") is False
