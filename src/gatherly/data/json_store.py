from __future__ import annotations

import os
import threading
from copy import deepcopy
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

import orjson

from ..domain import (
    Activity,
    ActivityStatus,
    IntentStatus,
    PartnerIntent,
    Participant,
    ParticipantStatus,
    PublishLedgerEntry,
)
from ..domain.errors import (
    DuplicateActionError,
    ExpiredError,
    InvalidStateError,
    NotFoundError,
    StoreUnavailableError,
)
from ..domain.lifecycle import (
    apply_draft_updates,
    apply_transition,
    can_transition,
    ensure_can_join,
    ensure_can_leave,
    ensure_can_refine,
    ensure_transition,
    require_activity,
)
from ..domain.models import parse_datetime

T = TypeVar("T")

DEFAULT_STORE_STATE: Dict[str, Any] = {
    "activities": {},
    "participants": {},
    "users": {},
    "intents": {},
    "publish_ledger": {},
    "counters": {"activity": 0, "intent": 0},
    "metadata": {"schema_version": 1},
}

QUOTA_FIELD = "ai_create_quota_today"


def _participant_key(activity_id: str, user_id: str) -> str:
    return f"{activity_id}:{user_id}"


class JsonActivityStore:
    """File-backed store whose mutations run as serialized transactions.

    ``mutate`` holds the store lock for the whole read-check-write of a
    callback, works on a copy of the state, and only swaps the copy in once it
    has been written to disk. A callback that raises leaves no trace. The lock
    is per process: one process owns a given file.
    """

    def __init__(self, path: Path, *, daily_allowance: int = 3) -> None:
        self._path = path
        self._daily_allowance = daily_allowance
        self._lock = threading.RLock()
        self._state: Optional[Dict[str, Any]] = None

    # Persistence ---------------------------------------------------------------

    def _ensure_materialized(self) -> Dict[str, Any]:
        if self._state is not None:
            return self._state
        try:
            raw = self._path.read_bytes() if self._path.exists() else b""
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot read store file {self._path}: {exc}") from exc
        state = orjson.loads(raw) if raw.strip() else deepcopy(DEFAULT_STORE_STATE)
        # Backfill missing keys when upgrading.
        for key, value in DEFAULT_STORE_STATE.items():
            if key not in state:
                state[key] = deepcopy(value)
        self._state = state
        return state

    def _write(self, state: Dict[str, Any]) -> None:
        payload = orjson.dumps(state, option=orjson.OPT_INDENT_2)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(payload + b"\n")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot write store file {self._path}: {exc}") from exc

    def read(self, callback: Callable[[Dict[str, Any]], T]) -> T:
        with self._lock:
            return callback(self._ensure_materialized())

    def mutate(self, callback: Callable[[Dict[str, Any]], T]) -> T:
        with self._lock:
            working = deepcopy(self._ensure_materialized())
            result = callback(working)
            self._write(working)
            self._state = working
            return result

    @staticmethod
    def consume_seq(state: Dict[str, Any], prefix: str) -> int:
        counters = state.setdefault("counters", {})
        current = counters.get(prefix, 0) + 1
        counters[prefix] = current
        return current

    # Record helpers ------------------------------------------------------------

    @staticmethod
    def _load_activity(state: Dict[str, Any], activity_id: str) -> Optional[Activity]:
        record = state["activities"].get(activity_id)
        return Activity.from_record(record) if record else None

    @staticmethod
    def _save_activity(state: Dict[str, Any], activity: Activity) -> None:
        record = activity.to_record()
        existing = state["activities"].get(activity.id) or {}
        record["seq"] = existing.get("seq", 0)
        state["activities"][activity.id] = record

    @staticmethod
    def _load_participant(state: Dict[str, Any], activity_id: str, user_id: str) -> Optional[Participant]:
        record = state["participants"].get(_participant_key(activity_id, user_id))
        return Participant.from_record(record) if record else None

    @staticmethod
    def _save_participant(state: Dict[str, Any], participant: Participant) -> None:
        key = _participant_key(participant.activity_id, participant.user_id)
        state["participants"][key] = participant.to_record()

    @staticmethod
    def _newest_first(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return sorted(
            records,
            key=lambda record: (parse_datetime(record["created_at"]), record.get("seq", 0)),
            reverse=True,
        )

    # Activities ----------------------------------------------------------------

    def insert_draft(self, activity: Activity) -> Activity:
        def _insert(state: Dict[str, Any]) -> Activity:
            if activity.id in state["activities"]:
                raise DuplicateActionError(f"Activity '{activity.id}' already exists.")
            record = activity.to_record()
            record["seq"] = self.consume_seq(state, "activity")
            state["activities"][activity.id] = record
            self._save_participant(
                state,
                Participant(
                    activity_id=activity.id,
                    user_id=activity.creator_id,
                    status=ParticipantStatus.JOINED,
                    joined_at=activity.created_at,
                    updated_at=activity.created_at,
                ),
            )
            return Activity.from_record(record)

        return self.mutate(_insert)

    def get_activity(self, activity_id: str) -> Optional[Activity]:
        return self.read(lambda state: self._load_activity(state, activity_id))

    def list_activities(
        self,
        *,
        creator_id: Optional[str] = None,
        statuses: Optional[Iterable[ActivityStatus]] = None,
        limit: int = 10,
    ) -> List[Activity]:
        wanted = {status.value for status in statuses} if statuses is not None else None

        def _list(state: Dict[str, Any]) -> List[Activity]:
            records = [
                record
                for record in state["activities"].values()
                if (creator_id is None or record["creator_id"] == creator_id)
                and (wanted is None or record["status"] in wanted)
            ]
            return [Activity.from_record(record) for record in self._newest_first(records)[:limit]]

        return self.read(_list)

    def list_joined_activities(self, user_id: str, *, limit: int = 10) -> List[Activity]:
        def _list(state: Dict[str, Any]) -> List[Activity]:
            activities: List[Activity] = []
            for record in state["participants"].values():
                if record["user_id"] != user_id or record["status"] != ParticipantStatus.JOINED.value:
                    continue
                activity = self._load_activity(state, record["activity_id"])
                if activity is not None and activity.creator_id != user_id:
                    activities.append(activity)
            activities.sort(key=lambda item: item.start_at, reverse=True)
            return activities[:limit]

        return self.read(_list)

    def update_draft(self, activity_id: str, actor_id: str, updates: Mapping[str, object], now: datetime) -> Activity:
        def _update(state: Dict[str, Any]) -> Activity:
            activity = require_activity(self._load_activity(state, activity_id), activity_id)
            ensure_can_refine(activity, actor_id)
            updated = apply_draft_updates(activity, updates, now)
            self._save_activity(state, updated)
            return updated

        return self.mutate(_update)

    def transition(self, activity_id: str, actor_id: str, target: ActivityStatus, now: datetime) -> Activity:
        def _transition(state: Dict[str, Any]) -> Activity:
            activity = require_activity(self._load_activity(state, activity_id), activity_id)
            ensure_transition(activity, actor_id, target, now)
            updated = apply_transition(activity, target, now)
            self._save_activity(state, updated)
            if target is ActivityStatus.ACTIVE:
                state["publish_ledger"].pop(activity_id, None)
            return updated

        return self.mutate(_transition)

    def set_status(self, activity_id: str, status: ActivityStatus, now: datetime) -> Activity:
        def _set(state: Dict[str, Any]) -> Activity:
            activity = require_activity(self._load_activity(state, activity_id), activity_id)
            if not can_transition(activity.status, status):
                raise InvalidStateError(f"Cannot move from {activity.status.value} to {status.value}.")
            updated = apply_transition(activity, status, now)
            self._save_activity(state, updated)
            return updated

        return self.mutate(_set)

    # Roster --------------------------------------------------------------------

    def get_participant(self, activity_id: str, user_id: str) -> Optional[Participant]:
        return self.read(lambda state: self._load_participant(state, activity_id, user_id))

    def list_participants(self, activity_id: str, *, limit: int = 10) -> List[Participant]:
        def _list(state: Dict[str, Any]) -> List[Participant]:
            rows = [
                Participant.from_record(record)
                for record in state["participants"].values()
                if record["activity_id"] == activity_id and record["status"] == ParticipantStatus.JOINED.value
            ]
            rows.sort(key=lambda row: row.joined_at.isoformat() if row.joined_at else "")
            return rows[:limit]

        return self.read(_list)

    def join(self, activity_id: str, user_id: str, now: datetime) -> Activity:
        def _join(state: Dict[str, Any]) -> Activity:
            activity = require_activity(self._load_activity(state, activity_id), activity_id)
            participant = self._load_participant(state, activity_id, user_id)
            ensure_can_join(activity, user_id, participant, now)
            if participant is None:
                participant = Participant(activity_id=activity_id, user_id=user_id, joined_at=now, updated_at=now)
            else:
                participant = replace(participant, status=ParticipantStatus.JOINED, joined_at=now, updated_at=now)
            updated = replace(activity, current_participants=activity.current_participants + 1, updated_at=now)
            self._save_participant(state, participant)
            self._save_activity(state, updated)
            return updated

        return self.mutate(_join)

    def leave(self, activity_id: str, user_id: str, now: datetime) -> Activity:
        def _leave(state: Dict[str, Any]) -> Activity:
            activity = require_activity(self._load_activity(state, activity_id), activity_id)
            participant = self._load_participant(state, activity_id, user_id)
            ensure_can_leave(activity, user_id, participant)
            assert participant is not None
            self._save_participant(state, replace(participant, status=ParticipantStatus.QUIT, updated_at=now))
            updated = replace(activity, current_participants=max(1, activity.current_participants - 1), updated_at=now)
            self._save_activity(state, updated)
            return updated

        return self.mutate(_leave)

    # Quota ---------------------------------------------------------------------

    def get_quota(self, user_id: str) -> int:
        def _get(state: Dict[str, Any]) -> int:
            user = state["users"].get(user_id) or {}
            return int(user.get(QUOTA_FIELD, self._daily_allowance))

        return self.read(_get)

    def set_quota(self, user_id: str, value: int) -> None:
        if value < 0:
            raise ValueError("quota cannot be negative")

        def _set(state: Dict[str, Any]) -> None:
            state["users"].setdefault(user_id, {})[QUOTA_FIELD] = value

        self.mutate(_set)

    def consume_quota(self, user_id: str, activity_id: str, now: datetime) -> Optional[int]:
        def _consume(state: Dict[str, Any]) -> Optional[int]:
            user = state["users"].setdefault(user_id, {QUOTA_FIELD: self._daily_allowance})
            remaining = int(user.get(QUOTA_FIELD, self._daily_allowance))
            existing = state["publish_ledger"].get(activity_id)
            if existing is not None:
                if existing.get("user_id") != user_id:
                    raise DuplicateActionError(
                        "A publish for this activity is already in progress.",
                        hint="Wait a moment and check the activity before retrying.",
                    )
                # Already paid for by an earlier attempt; the status flip decides.
                return remaining
            if remaining <= 0:
                return None
            user[QUOTA_FIELD] = remaining - 1
            entry = PublishLedgerEntry(activity_id=activity_id, user_id=user_id, consumed_at=now)
            state["publish_ledger"][activity_id] = entry.to_record()
            return remaining - 1

        return self.mutate(_consume)

    def refund_quota(self, user_id: str, activity_id: str) -> int:
        def _refund(state: Dict[str, Any]) -> int:
            record = state["publish_ledger"].pop(activity_id, None)
            owner = record["user_id"] if record else user_id
            user = state["users"].setdefault(owner, {QUOTA_FIELD: self._daily_allowance})
            if record is not None:
                user[QUOTA_FIELD] = int(user.get(QUOTA_FIELD, self._daily_allowance)) + 1
            return int(user[QUOTA_FIELD])

        return self.mutate(_refund)

    def list_ledger(self, *, older_than: datetime) -> List[PublishLedgerEntry]:
        def _list(state: Dict[str, Any]) -> List[PublishLedgerEntry]:
            entries = [PublishLedgerEntry.from_record(record) for record in state["publish_ledger"].values()]
            return sorted(
                (entry for entry in entries if entry.consumed_at <= older_than),
                key=lambda entry: entry.consumed_at,
            )

        return self.read(_list)

    def clear_ledger(self, activity_id: str) -> None:
        self.mutate(lambda state: state["publish_ledger"].pop(activity_id, None))

    # Partner intents -------------------------------------------------------------

    def insert_intent(self, intent: PartnerIntent, now: datetime) -> PartnerIntent:
        def _insert(state: Dict[str, Any]) -> PartnerIntent:
            for record in state["intents"].values():
                existing = PartnerIntent.from_record(record)
                if (
                    existing.user_id == intent.user_id
                    and existing.category is intent.category
                    and existing.effective_status(now) is IntentStatus.ACTIVE
                ):
                    raise DuplicateActionError(
                        f"You already have an active {intent.category.value} intent waiting for a match.",
                        details={"intentId": existing.id},
                    )
            record = intent.to_record()
            record["seq"] = self.consume_seq(state, "intent")
            state["intents"][intent.id] = record
            return PartnerIntent.from_record(record)

        return self.mutate(_insert)

    def list_intents(self, user_id: str) -> List[PartnerIntent]:
        def _list(state: Dict[str, Any]) -> List[PartnerIntent]:
            records = [record for record in state["intents"].values() if record["user_id"] == user_id]
            return [PartnerIntent.from_record(record) for record in self._newest_first(records)]

        return self.read(_list)

    def cancel_intent(self, intent_id: str, user_id: str, now: datetime) -> PartnerIntent:
        def _cancel(state: Dict[str, Any]) -> PartnerIntent:
            record = state["intents"].get(intent_id)
            if not record or record["user_id"] != user_id:
                raise NotFoundError(f"Intent '{intent_id}' was not found.")
            intent = PartnerIntent.from_record(record)
            status = intent.effective_status(now)
            if status is IntentStatus.EXPIRED:
                raise ExpiredError("This intent has already expired.")
            if status is not IntentStatus.ACTIVE:
                raise InvalidStateError(f"This intent is {status.value} and can no longer be cancelled.")
            cancelled = replace(intent, status=IntentStatus.CANCELLED, updated_at=now)
            updated_record = cancelled.to_record()
            updated_record["seq"] = record.get("seq", 0)
            state["intents"][intent_id] = updated_record
            return cancelled

        return self.mutate(_cancel)


__all__ = ["DEFAULT_STORE_STATE", "JsonActivityStore"]
