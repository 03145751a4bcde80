from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import orjson
import pytest

from gatherly.data import ActivityStore, JsonActivityStore
from gatherly.domain import ActivityStatus, ParticipantStatus
from gatherly.domain.errors import DuplicateActionError, InvalidStateError, NotFoundError, StoreUnavailableError

from .helpers import NOW, make_activity


def test_json_store_satisfies_store_protocol(store: JsonActivityStore) -> None:
    assert isinstance(store, ActivityStore)


def test_insert_draft_adds_creator_and_persists(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    store = JsonActivityStore(path)
    store.insert_draft(make_activity("a1", "Hotpot", creator_id="alice"))

    reopened = JsonActivityStore(path)
    activity = reopened.get_activity("a1")
    assert activity is not None
    assert activity.current_participants == 1
    creator = reopened.get_participant("a1", "alice")
    assert creator is not None and creator.status is ParticipantStatus.JOINED

    raw = orjson.loads(path.read_bytes())
    assert set(raw) >= {"activities", "participants", "users", "publish_ledger", "intents"}


def test_insert_draft_rejects_duplicate_id(store: JsonActivityStore) -> None:
    store.insert_draft(make_activity("a1", "Hotpot"))

    with pytest.raises(DuplicateActionError):
        store.insert_draft(make_activity("a1", "Hotpot again"))


def test_rejected_mutation_leaves_no_trace(store: JsonActivityStore) -> None:
    store.insert_draft(make_activity("a1", "Hotpot", creator_id="alice"))

    with pytest.raises(InvalidStateError):
        store.join("a1", "bob", NOW)

    assert store.get_participant("a1", "bob") is None
    assert store.get_activity("a1").current_participants == 1


def test_missing_activity_is_not_found(store: JsonActivityStore) -> None:
    with pytest.raises(NotFoundError):
        store.join("missing", "bob", NOW)
    with pytest.raises(NotFoundError):
        store.transition("missing", "bob", ActivityStatus.ACTIVE, NOW)


def test_list_activities_is_newest_first_even_with_equal_timestamps(store: JsonActivityStore) -> None:
    for index in range(3):
        store.insert_draft(make_activity(f"a{index}", f"Draft {index}", creator_id="alice"))
    store.insert_draft(make_activity("older", "Old", creator_id="alice", created_at=NOW - timedelta(days=1)))

    listed = store.list_activities(creator_id="alice", limit=10)

    assert [activity.id for activity in listed] == ["a2", "a1", "a0", "older"]
    assert [activity.id for activity in store.list_activities(creator_id="alice", limit=2)] == ["a2", "a1"]


def test_transition_to_active_settles_ledger(store: JsonActivityStore) -> None:
    store.insert_draft(make_activity("a1", "Hotpot", creator_id="alice"))
    assert store.consume_quota("alice", "a1", NOW) == 2

    store.transition("a1", "alice", ActivityStatus.ACTIVE, NOW)

    assert store.list_ledger(older_than=NOW + timedelta(days=1)) == []
    assert store.get_quota("alice") == 2


def test_consume_quota_again_for_same_activity_reuses_the_unit(store: JsonActivityStore) -> None:
    assert store.consume_quota("alice", "a1", NOW) == 2

    assert store.consume_quota("alice", "a1", NOW) == 2
    assert store.get_quota("alice") == 2
    assert [entry.activity_id for entry in store.list_ledger(older_than=NOW + timedelta(seconds=1))] == ["a1"]


def test_consume_quota_for_activity_paid_by_another_user_is_duplicate(store: JsonActivityStore) -> None:
    store.consume_quota("alice", "a1", NOW)

    with pytest.raises(DuplicateActionError):
        store.consume_quota("bob", "a1", NOW)
    assert store.get_quota("bob") == 3


def test_consume_quota_denies_at_zero(store: JsonActivityStore) -> None:
    store.set_quota("alice", 0)

    assert store.consume_quota("alice", "a1", NOW) is None
    assert store.get_quota("alice") == 0
    assert store.list_ledger(older_than=NOW) == []


def test_refund_without_ledger_entry_is_noop(store: JsonActivityStore) -> None:
    store.set_quota("alice", 1)

    assert store.refund_quota("alice", "never-consumed") == 1
    assert store.get_quota("alice") == 1


def test_set_quota_rejects_negative(store: JsonActivityStore) -> None:
    with pytest.raises(ValueError):
        store.set_quota("alice", -1)


def test_scheduler_completion_blocks_cancel(store: JsonActivityStore) -> None:
    store.insert_draft(make_activity("a1", "Hotpot", creator_id="alice", status=ActivityStatus.DRAFT))
    store.transition("a1", "alice", ActivityStatus.ACTIVE, NOW)
    store.set_status("a1", ActivityStatus.COMPLETED, NOW)

    with pytest.raises(InvalidStateError):
        store.transition("a1", "alice", ActivityStatus.CANCELLED, NOW)


def test_unreadable_store_is_unavailable(tmp_path: Path) -> None:
    path = tmp_path / "as-directory"
    path.mkdir()
    store = JsonActivityStore(path)

    with pytest.raises(StoreUnavailableError):
        store.get_activity("a1")
