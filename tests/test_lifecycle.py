from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from gatherly.domain import ActivityCategory, ActivityStatus, Coordinates, Participant, ParticipantStatus
from gatherly.domain.errors import (
    AlreadyJoinedError,
    CapacityExceededError,
    ExpiredError,
    ForbiddenError,
    InvalidStateError,
    ValidationFailedError,
)
from gatherly.domain.lifecycle import (
    apply_draft_updates,
    can_transition,
    ensure_can_cancel,
    ensure_can_join,
    ensure_can_leave,
    ensure_can_publish,
    ensure_can_refine,
    ensure_transition,
)

from .helpers import NOW, make_activity


def test_transition_table_matches_lifecycle() -> None:
    assert can_transition(ActivityStatus.DRAFT, ActivityStatus.ACTIVE)
    assert can_transition(ActivityStatus.DRAFT, ActivityStatus.CANCELLED)
    assert can_transition(ActivityStatus.ACTIVE, ActivityStatus.CANCELLED)
    assert can_transition(ActivityStatus.ACTIVE, ActivityStatus.COMPLETED)
    assert not can_transition(ActivityStatus.DRAFT, ActivityStatus.COMPLETED)
    assert not can_transition(ActivityStatus.CANCELLED, ActivityStatus.ACTIVE)
    assert not can_transition(ActivityStatus.COMPLETED, ActivityStatus.CANCELLED)


def test_publish_guards_check_owner_before_state() -> None:
    active = make_activity("a1", "Run club", status=ActivityStatus.ACTIVE)

    with pytest.raises(ForbiddenError):
        ensure_can_publish(active, "someone-else", NOW)
    with pytest.raises(InvalidStateError):
        ensure_can_publish(active, "creator", NOW)


def test_publish_rejects_start_time_in_the_past() -> None:
    draft = replace(make_activity("a1", "Brunch"), start_at=NOW - timedelta(minutes=1))

    with pytest.raises(ExpiredError):
        ensure_can_publish(draft, "creator", NOW)


def test_publish_rejects_start_time_equal_to_now() -> None:
    draft = replace(make_activity("a1", "Brunch"), start_at=NOW)

    with pytest.raises(ExpiredError):
        ensure_can_publish(draft, "creator", NOW)


def test_cancel_rejects_terminal_states() -> None:
    for status in (ActivityStatus.CANCELLED, ActivityStatus.COMPLETED):
        with pytest.raises(InvalidStateError):
            ensure_can_cancel(make_activity("a1", "Hike", status=status), "creator")

    ensure_can_cancel(make_activity("a2", "Hike", status=ActivityStatus.ACTIVE), "creator")


def test_tools_cannot_drive_completion() -> None:
    active = make_activity("a1", "Karaoke", status=ActivityStatus.ACTIVE)

    with pytest.raises(InvalidStateError):
        ensure_transition(active, "creator", ActivityStatus.COMPLETED, NOW)


def test_refine_only_allowed_on_own_drafts() -> None:
    with pytest.raises(ForbiddenError):
        ensure_can_refine(make_activity("a1", "Chess"), "intruder")
    with pytest.raises(InvalidStateError):
        ensure_can_refine(make_activity("a1", "Chess", status=ActivityStatus.ACTIVE), "creator")


def test_draft_updates_are_partial() -> None:
    draft = make_activity("a1", "Chess")
    later = NOW + timedelta(minutes=5)

    updated = apply_draft_updates(draft, {"title": "Chess & tea", "coordinates": {"lat": 1.5, "lng": 2.5}}, later)

    assert updated.title == "Chess & tea"
    assert updated.coordinates == Coordinates(lat=1.5, lng=2.5)
    assert updated.location_name == draft.location_name
    assert updated.category is ActivityCategory.OTHER
    assert updated.max_participants == draft.max_participants
    assert updated.updated_at == later
    assert draft.title == "Chess"


def test_draft_updates_validation() -> None:
    draft = make_activity("a1", "Chess", max_participants=6, current_participants=3)

    with pytest.raises(ValidationFailedError):
        apply_draft_updates(draft, {}, NOW)
    with pytest.raises(ValidationFailedError):
        apply_draft_updates(draft, {"status": "active"}, NOW)
    with pytest.raises(ValidationFailedError):
        apply_draft_updates(draft, {"max_participants": 2}, NOW)
    with pytest.raises(ValidationFailedError):
        apply_draft_updates(draft, {"max_participants": 51}, NOW)

    assert apply_draft_updates(draft, {"max_participants": 3}, NOW).max_participants == 3


def test_join_guards_run_in_contract_order() -> None:
    draft = make_activity("a1", "Badminton")
    with pytest.raises(InvalidStateError):
        ensure_can_join(draft, "creator", None, NOW)

    active = replace(draft, status=ActivityStatus.ACTIVE)
    with pytest.raises(ForbiddenError):
        ensure_can_join(active, "creator", None, NOW)
    with pytest.raises(ExpiredError):
        ensure_can_join(active, "guest", None, active.start_at)

    joined = Participant(activity_id="a1", user_id="guest")
    full = replace(active, current_participants=active.max_participants)
    with pytest.raises(AlreadyJoinedError):
        ensure_can_join(full, "guest", joined, NOW)
    with pytest.raises(CapacityExceededError):
        ensure_can_join(full, "other", None, NOW)

    quit_row = replace(joined, status=ParticipantStatus.QUIT)
    ensure_can_join(active, "guest", quit_row, NOW)


def test_leave_guards() -> None:
    active = make_activity("a1", "Badminton", status=ActivityStatus.ACTIVE, current_participants=2)
    joined = Participant(activity_id="a1", user_id="guest")

    with pytest.raises(ForbiddenError):
        ensure_can_leave(active, "creator", None)
    with pytest.raises(InvalidStateError):
        ensure_can_leave(active, "guest", None)
    with pytest.raises(InvalidStateError):
        ensure_can_leave(active, "guest", replace(joined, status=ParticipantStatus.QUIT))
    with pytest.raises(InvalidStateError):
        ensure_can_leave(replace(active, status=ActivityStatus.CANCELLED), "guest", joined)

    ensure_can_leave(active, "guest", joined)
