from __future__ import annotations

from datetime import timedelta

import pytest

from gatherly.api import ApiState
from gatherly.domain.errors import NotFoundError
from gatherly.services.resolver import (
    MATCHED_BY_ID,
    MATCHED_BY_RECENCY,
    MATCHED_BY_TITLE,
    normalize_title,
    resolve_reference,
)

from .helpers import NOW, FrozenClock, create_draft, make_activity


def test_normalize_title_strips_pictographs_and_case() -> None:
    assert normalize_title("\U0001F004\ufe0f 观音桥麻将局") == "观音桥麻将局"
    assert normalize_title("  Hotpot \U0001F372 Night ") == "hotpot  night"
    assert normalize_title("\U0001F3B2\U0001F3B2") == ""


def test_title_hint_matches_ignoring_emoji() -> None:
    candidates = [
        make_activity("a1", "\U0001F004\ufe0f 观音桥麻将局"),
        make_activity("a2", "\U0001F372 火锅局"),
    ]

    resolution = resolve_reference(candidates, title_hint="麻将")

    assert resolution.activity.id == "a1"
    assert resolution.matched_by == MATCHED_BY_TITLE
    assert resolution.alternatives == []


def test_exact_id_wins_over_conflicting_hint() -> None:
    candidates = [make_activity("a1", "Hotpot"), make_activity("a2", "Mahjong")]

    resolution = resolve_reference(candidates, activity_id="a2", title_hint="hotpot")

    assert resolution.activity.id == "a2"
    assert resolution.matched_by == MATCHED_BY_ID


def test_hint_contained_in_title_or_title_in_hint() -> None:
    candidates = [make_activity("a1", "Chess")]

    assert resolve_reference(candidates, title_hint="that chess game on friday").activity.id == "a1"
    assert resolve_reference(candidates, title_hint="CHE").activity.id == "a1"


def test_several_matches_return_most_recent_and_alternatives() -> None:
    candidates = [
        make_activity("new", "Badminton doubles"),
        make_activity("mid", "Hotpot"),
        make_activity("old", "Badminton singles"),
    ]

    resolution = resolve_reference(candidates, title_hint="badminton")

    assert resolution.activity.id == "new"
    assert [alternative.id for alternative in resolution.alternatives] == ["old"]


def test_missing_reference_falls_back_to_most_recent() -> None:
    candidates = [make_activity("new", "Karaoke"), make_activity("old", "Hike")]

    assert resolve_reference(candidates).matched_by == MATCHED_BY_RECENCY
    assert resolve_reference(candidates, title_hint="\U0001F3A4").activity.id == "new"
    assert resolve_reference(candidates, title_hint="bowling").activity.id == "new"


def test_no_fallback_rejects_unmatched_references() -> None:
    candidates = [make_activity("a1", "Karaoke")]

    with pytest.raises(NotFoundError):
        resolve_reference(candidates, title_hint="bowling", fallback_to_recent=False)
    with pytest.raises(NotFoundError):
        resolve_reference(candidates, activity_id="missing", fallback_to_recent=False)
    assert resolve_reference(candidates, fallback_to_recent=False).activity.id == "a1"


def test_empty_candidates_are_not_found_with_hint() -> None:
    with pytest.raises(NotFoundError) as excinfo:
        resolve_reference([], title_hint="anything", empty_hint="Create a draft first.")

    assert excinfo.value.hint == "Create a draft first."


def test_get_draft_resolves_title_among_recent_drafts(state: ApiState, clock: FrozenClock) -> None:
    mahjong = create_draft(state, "alice", title="\U0001F004\ufe0f 观音桥麻将局")
    clock.advance(minutes=1)
    create_draft(state, "alice", title="\U0001F372 火锅局")

    by_title = state.activities.get_draft("alice", title="麻将")
    by_recency = state.activities.get_draft("alice")

    assert by_title.activity.id == mahjong.id
    assert by_recency.activity.title == "\U0001F372 火锅局"


def test_get_draft_scope_is_the_callers_five_newest_drafts(state: ApiState, clock: FrozenClock) -> None:
    oldest = create_draft(state, "alice", title="Pottery class")
    for index in range(5):
        clock.advance(minutes=1)
        create_draft(state, "alice", title=f"Draft {index}")
    create_draft(state, "bob", title="Pottery class for bob")

    by_hint = state.activities.get_draft("alice", title="pottery")
    by_id = state.activities.get_draft("alice", activity_id=oldest.id)

    assert by_hint.matched_by == MATCHED_BY_RECENCY
    assert by_hint.activity.title == "Draft 4"
    assert by_id.matched_by == MATCHED_BY_ID
    assert by_id.activity.id == oldest.id


def test_get_draft_ignores_published_and_foreign_drafts(state: ApiState) -> None:
    published = create_draft(state, "alice", title="Run club")
    state.activities.publish("alice", published.id)
    foreign = create_draft(state, "bob", title="Bob's draft")

    with pytest.raises(NotFoundError):
        state.activities.get_draft("alice", activity_id=published.id)

    create_draft(state, "alice", title="Picnic")
    resolution = state.activities.get_draft("alice", activity_id=foreign.id)
    assert resolution.activity.title == "Picnic"


def test_detail_resolves_active_activity_by_title(state: ApiState) -> None:
    draft = create_draft(state, "alice", title="Sunset hike", start_at=NOW + timedelta(days=2))
    state.activities.publish("alice", draft.id)

    detail = state.activities.detail("bob", title="hike")

    assert detail.activity.id == draft.id
    assert detail.can_join is True
    assert detail.is_creator is False
    assert [participant.user_id for participant in detail.participants] == ["alice"]


def test_detail_unknown_title_is_not_found(state: ApiState) -> None:
    create_draft(state, "alice", title="Sunset hike")

    with pytest.raises(NotFoundError):
        state.activities.detail("alice", title="bowling")
