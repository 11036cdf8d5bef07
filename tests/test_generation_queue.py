"""Tests for the generation queue store."""

import pytest

from coachflow.exceptions import DuplicateRequest
from coachflow.models.generation import GenerationRequest
from coachflow.services.generation_queue import GenerationQueueStore, context_type_is

ONBOARDING = {"type": "onboarding"}


def test_create_pending_request(test_db):
    """A new request starts pending at zero progress."""
    queue = GenerationQueueStore(test_db)

    entry = queue.create("u1", "r1", ONBOARDING)

    assert entry.status == "pending"
    assert entry.progress_percent == 0
    assert entry.context == {"type": "onboarding"}
    assert entry.started_at is None


def test_create_same_request_for_same_user_returns_existing(test_db):
    """Creating a request id twice for its owner does not add a row."""
    queue = GenerationQueueStore(test_db)

    first = queue.create("u1", "r1", ONBOARDING)
    second = queue.create("u1", "r1", {"type": "other"})

    assert second.id == first.id
    assert test_db.query(GenerationRequest).count() == 1


def test_create_request_owned_by_other_user(test_db):
    """A request id cannot be claimed by a second user."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", ONBOARDING)

    with pytest.raises(DuplicateRequest):
        queue.create("u2", "r1", ONBOARDING)


def test_get_active_returns_most_recent_match(test_db):
    """The newest pending or processing row matching the predicate wins."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "old", ONBOARDING)
    queue.create("u1", "new", ONBOARDING)
    queue.create("u1", "newest-other", {"type": "program"})

    entry = queue.get_active_for_user("u1", context_type_is("onboarding"))

    assert entry.request_id == "new"


def test_get_active_skips_terminal_and_foreign_rows(test_db):
    """Finished rows and other users' rows are never returned."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "done", ONBOARDING)
    queue.mark_completed("done", "plan-1")
    queue.create("u1", "broken", ONBOARDING)
    queue.mark_failed("broken", "boom")
    queue.create("u2", "someone-else", ONBOARDING)

    assert queue.get_active_for_user("u1", context_type_is("onboarding")) is None


def test_get_active_without_predicate(test_db):
    """Without a predicate any active row of the user matches."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", {"type": "program"})

    assert queue.get_active_for_user("u1").request_id == "r1"


def test_mark_started(test_db):
    """Starting moves the row to processing and stamps started_at once."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", ONBOARDING)

    entry = queue.mark_started("r1", "Analyzing")
    started_at = entry.started_at
    queue.mark_started("r1")

    assert entry.status == "processing"
    assert entry.current_phase == "Analyzing"
    assert started_at is not None
    assert entry.started_at == started_at


def test_claim_pending_request_once(test_db):
    """Only the first claim of a pending row succeeds."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", ONBOARDING)

    assert queue.claim("r1", "Analyzing") is True
    assert queue.claim("r1", "Analyzing") is False

    entry = queue.get_by_request_id("r1")
    assert entry.status == "processing"
    assert entry.current_phase == "Analyzing"
    assert entry.started_at is not None


def test_claim_finished_or_missing_request(test_db):
    """Terminal and unknown rows cannot be claimed."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", ONBOARDING)
    queue.mark_completed("r1", "plan-1")

    assert queue.claim("r1") is False
    assert queue.claim("missing") is False
    assert queue.get_by_request_id("r1").status == "completed"


def test_progress_never_decreases(test_db):
    """A lower progress value keeps the stored maximum but updates the phase."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", ONBOARDING)

    queue.update_progress("r1", 60, "Generating")
    entry = queue.update_progress("r1", 40, "Still generating")

    assert entry.progress_percent == 60
    assert entry.current_phase == "Still generating"


def test_progress_is_capped_at_100(test_db):
    """Progress values above 100 are clamped."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", ONBOARDING)

    assert queue.update_progress("r1", 150, "Done").progress_percent == 100


def test_mark_completed(test_db):
    """Completion records the output and sets progress to 100."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", ONBOARDING)

    entry = queue.mark_completed("r1", "plan-1")

    assert entry.status == "completed"
    assert entry.progress_percent == 100
    assert entry.output_id == "plan-1"
    assert entry.completed_at is not None


def test_terminal_rows_are_immutable(test_db):
    """Writes to completed or failed rows are ignored."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", ONBOARDING)
    queue.mark_completed("r1", "plan-1")

    assert queue.mark_failed("r1", "late failure") is None
    assert queue.update_progress("r1", 10, "Restarting") is None
    assert queue.mark_started("r1") is None

    entry = queue.get_by_request_id("r1")
    assert entry.status == "completed"
    assert entry.error_message is None
    assert entry.output_id == "plan-1"


def test_failed_row_keeps_first_error(test_db):
    """A failed row cannot be completed or failed again."""
    queue = GenerationQueueStore(test_db)
    queue.create("u1", "r1", ONBOARDING)
    queue.mark_failed("r1", "first")

    assert queue.mark_completed("r1", "plan-1") is None
    assert queue.mark_failed("r1", "second") is None
    assert queue.get_by_request_id("r1").error_message == "first"


def test_writes_to_missing_request(test_db):
    """Unknown request ids are reported as None."""
    queue = GenerationQueueStore(test_db)

    assert queue.get_by_request_id("missing") is None
    assert queue.update_progress("missing", 50, "x") is None
    assert queue.mark_completed("missing", "plan") is None


def test_recent_for_user(test_db):
    """Recent requests are newest first and limited."""
    queue = GenerationQueueStore(test_db)
    for i in range(4):
        queue.create("u1", f"r{i}", ONBOARDING)

    recent = queue.recent_for_user("u1", limit=2)

    assert [e.request_id for e in recent] == ["r3", "r2"]
