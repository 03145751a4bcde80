from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from gatherly.api import ApiState
from gatherly.cli import run_reconcile
from gatherly.domain import Activity, ActivityStatus
from gatherly.domain.errors import ActivityError, InvalidStateError, QuotaExhaustedError, StoreUnavailableError
from gatherly.services import QuotaController, ServiceContext

from .helpers import FrozenClock, create_draft, publish_new


def test_publish_consumes_one_unit_and_reports_remaining(state: ApiState) -> None:
    draft = create_draft(state, "alice")

    outcome = state.activities.publish("alice", draft.id)

    assert outcome.activity.status is ActivityStatus.ACTIVE
    assert outcome.quota_remaining == 2
    assert outcome.share_url.endswith(draft.id)
    assert state.activities.quota.remaining("alice") == 2


def test_exhausted_quota_leaves_second_draft_unpublished(state: ApiState) -> None:
    state.context.store.set_quota("alice", 1)
    first = create_draft(state, "alice", title="Draft X")
    second = create_draft(state, "alice", title="Draft Y")

    state.activities.publish("alice", first.id)
    assert state.activities.quota.remaining("alice") == 0

    with pytest.raises(QuotaExhaustedError):
        state.activities.publish("alice", second.id)

    assert state.context.store.get_activity(second.id).status is ActivityStatus.DRAFT
    assert state.activities.quota.remaining("alice") == 0


def test_guard_failures_do_not_touch_quota(state: ApiState, clock: FrozenClock) -> None:
    draft = create_draft(state, "alice")
    clock.advance(days=3)

    with pytest.raises(ActivityError):
        state.activities.publish("alice", draft.id)
    with pytest.raises(ActivityError):
        state.activities.publish("mallory", draft.id)

    assert state.activities.quota.remaining("alice") == 3
    assert state.context.store.list_ledger(older_than=clock() + timedelta(days=1)) == []


def test_concurrent_publishes_of_distinct_drafts_stop_at_quota(state: ApiState) -> None:
    drafts = [create_draft(state, "alice", title=f"Draft {index}") for index in range(5)]

    def attempt(activity_id: str) -> str:
        try:
            state.activities.publish("alice", activity_id)
        except ActivityError as exc:
            return exc.kind.value
        return "ok"

    with ThreadPoolExecutor(max_workers=5) as pool:
        outcomes = list(pool.map(attempt, [draft.id for draft in drafts]))

    assert outcomes.count("ok") == 3
    assert outcomes.count("QuotaExhausted") == 2
    assert state.activities.quota.remaining("alice") == 0
    statuses = [state.context.store.get_activity(draft.id).status for draft in drafts]
    assert statuses.count(ActivityStatus.ACTIVE) == 3


def test_concurrent_publishes_of_same_draft_cost_one_unit(state: ApiState) -> None:
    draft = create_draft(state, "alice")

    def attempt(_: int) -> str:
        try:
            state.activities.publish("alice", draft.id)
        except ActivityError as exc:
            return exc.kind.value
        return "ok"

    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(attempt, range(4)))

    assert outcomes.count("ok") == 1
    assert set(outcomes) - {"ok"} <= {"InvalidState"}
    assert state.activities.quota.remaining("alice") == 2
    assert state.context.store.list_ledger(older_than=state.context.now()) == []


def test_rejected_transition_refunds_quota(state: ApiState, monkeypatch: pytest.MonkeyPatch) -> None:
    draft = create_draft(state, "alice")

    def reject(*args: object, **kwargs: object) -> None:
        raise InvalidStateError("Activity changed underneath the publish.")

    monkeypatch.setattr(state.context.store, "transition", reject)

    with pytest.raises(InvalidStateError):
        state.activities.publish("alice", draft.id)

    assert state.activities.quota.remaining("alice") == 3
    assert state.context.store.list_ledger(older_than=state.context.now()) == []


def test_retry_after_transition_outage_charges_once(state: ApiState, monkeypatch: pytest.MonkeyPatch) -> None:
    draft = create_draft(state, "alice")
    store = state.context.store
    original = store.transition
    calls = []

    def flaky(*args: object, **kwargs: object) -> Activity:
        calls.append(args)
        if len(calls) == 1:
            raise StoreUnavailableError("connection reset")
        return original(*args, **kwargs)

    monkeypatch.setattr(store, "transition", flaky)

    with pytest.raises(StoreUnavailableError):
        state.activities.publish("alice", draft.id)
    assert state.activities.quota.remaining("alice") == 2

    outcome = state.activities.publish("alice", draft.id)

    assert outcome.activity.status is ActivityStatus.ACTIVE
    assert outcome.quota_remaining == 2
    assert state.activities.quota.remaining("alice") == 2
    assert store.list_ledger(older_than=state.context.now()) == []


def test_reconcile_refunds_stranded_and_settles_published(context: ServiceContext, clock: FrozenClock) -> None:
    state = ApiState(context=context)
    stranded = create_draft(state, "alice", title="Stranded")
    published = create_draft(state, "alice", title="Published")
    store = context.store
    store.consume_quota("alice", stranded.id, clock())
    store.consume_quota("alice", published.id, clock())
    store.set_status(published.id, ActivityStatus.ACTIVE, clock())

    controller = QuotaController(context)
    assert controller.reconcile().refunded == []

    clock.advance(minutes=10)
    report = controller.reconcile()

    assert report.refunded == [stranded.id]
    assert report.settled == [published.id]
    assert controller.remaining("alice") == 2
    assert store.list_ledger(older_than=clock()) == []


def test_reconcile_is_idempotent(context: ServiceContext, clock: FrozenClock) -> None:
    state = ApiState(context=context)
    draft = create_draft(state, "alice")
    context.store.consume_quota("alice", draft.id, clock())
    clock.advance(hours=1)
    controller = QuotaController(context)

    first = controller.reconcile()
    second = controller.reconcile()

    assert first.refunded == [draft.id]
    assert second.refunded == [] and second.settled == []
    assert controller.remaining("alice") == 3


def test_run_reconcile_reports_refunds(
    context: ServiceContext, clock: FrozenClock, capsys: pytest.CaptureFixture[str]
) -> None:
    state = ApiState(context=context)
    draft = create_draft(state, "alice")
    context.store.consume_quota("alice", draft.id, clock())

    refunded = run_reconcile(0, context=context)

    assert refunded == 1
    assert "Refunded 1 publishes" in capsys.readouterr().out
    assert context.store.get_quota("alice") == 3


def test_published_activity_keeps_its_unit_after_reconcile(state: ApiState, clock: FrozenClock) -> None:
    publish_new(state, "alice")
    clock.advance(hours=1)

    report = state.activities.quota.reconcile()

    assert report.refunded == [] and report.settled == []
    assert state.activities.quota.remaining("alice") == 2


def test_ledger_records_consumption_time(state: ApiState, clock: FrozenClock) -> None:
    draft = create_draft(state, "alice")
    state.activities.quota.try_consume("alice", draft.id)

    entries = state.context.store.list_ledger(older_than=clock())
    assert [entry.consumed_at for entry in entries] == [clock()]
