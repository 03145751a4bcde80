from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx
from postgrest.exceptions import APIError

from ..config.settings import StoreSettings
from ..domain import (
    Activity,
    ActivityStatus,
    Coordinates,
    PartnerIntent,
    Participant,
    ParticipantStatus,
    PublishLedgerEntry,
)
from ..domain.errors import StoreUnavailableError, error_for_kind
from .supabase import SupabaseGateway, SupabaseNotInitializedError

logger = logging.getLogger(__name__)

# Postgres functions defined in data/sql/admission.sql.
FN_CREATE_DRAFT = "gatherly_create_draft"
FN_UPDATE_DRAFT = "gatherly_update_draft"
FN_TRANSITION = "gatherly_transition_activity"
FN_SET_STATUS = "gatherly_set_status"
FN_JOIN = "gatherly_join_activity"
FN_LEAVE = "gatherly_leave_activity"
FN_CONSUME_QUOTA = "gatherly_consume_quota"
FN_REFUND_QUOTA = "gatherly_refund_quota"
FN_CREATE_INTENT = "gatherly_create_intent"
FN_CANCEL_INTENT = "gatherly_cancel_intent"


@dataclass
class SupabaseActivityStore:
    """Postgres-backed store; every guarded write is one SQL function call.

    Reads go through the PostgREST table API. Writes that read and
    conditionally modify a counter or a status run server-side inside a single
    function, which locks the row it decides on.
    """

    gateway: SupabaseGateway
    settings: StoreSettings
    daily_allowance: int = 3

    # Transport helpers -------------------------------------------------------------

    def _execute(self, query) -> Any:
        try:
            return query.execute().data
        except (APIError, httpx.HTTPError) as exc:
            logger.warning("Supabase call failed: %s", exc)
            raise StoreUnavailableError(str(exc)) from exc

    def _table(self, name: str) -> Any:
        try:
            return self.gateway.table(name)
        except SupabaseNotInitializedError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    def _rpc(self, function: str, params: Dict[str, Any]) -> Any:
        try:
            query = self.gateway.rpc(function, params)
        except SupabaseNotInitializedError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        return self._execute(query)

    def _guarded(self, function: str, params: Dict[str, Any]) -> Dict[str, Any]:
        outcome = self._rpc(function, params) or {}
        if not outcome.get("ok"):
            kind = outcome.get("error_kind", "ValidationFailed")
            message = outcome.get("message") or f"{function} was rejected."
            logger.debug("%s rejected: %s (%s)", function, kind, message)
            raise error_for_kind(kind, message)
        return outcome

    # Serialization -------------------------------------------------------------------

    @staticmethod
    def _serialize_activity(activity: Activity) -> Dict[str, Any]:
        record = activity.to_record()
        coordinates = record.pop("coordinates")
        record["lat"] = coordinates["lat"]
        record["lng"] = coordinates["lng"]
        return record

    @staticmethod
    def _deserialize_activity(row: Dict[str, Any]) -> Activity:
        record = dict(row)
        record["coordinates"] = {"lat": row["lat"], "lng": row["lng"]}
        return Activity.from_record(record)

    @staticmethod
    def _serialize_updates(updates: Mapping[str, Any]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for key, value in updates.items():
            if key == "coordinates":
                coordinates = value if isinstance(value, Coordinates) else Coordinates.from_record(value)
                payload["lat"] = coordinates.lat
                payload["lng"] = coordinates.lng
            elif isinstance(value, datetime):
                payload[key] = value.isoformat()
            elif hasattr(value, "value"):
                payload[key] = value.value
            else:
                payload[key] = value
        return payload

    # Activities ----------------------------------------------------------------------

    def insert_draft(self, activity: Activity) -> Activity:
        outcome = self._guarded(FN_CREATE_DRAFT, {"p_activity": self._serialize_activity(activity)})
        return self._deserialize_activity(outcome["activity"])

    def get_activity(self, activity_id: str) -> Optional[Activity]:
        rows = self._execute(
            self._table(self.settings.activities_table).select("*").eq("id", activity_id).limit(1)
        )
        return self._deserialize_activity(rows[0]) if rows else None

    def list_activities(
        self,
        *,
        creator_id: Optional[str] = None,
        statuses: Optional[Iterable[ActivityStatus]] = None,
        limit: int = 10,
    ) -> List[Activity]:
        query = self._table(self.settings.activities_table).select("*")
        if creator_id is not None:
            query = query.eq("creator_id", creator_id)
        if statuses is not None:
            query = query.in_("status", [status.value for status in statuses])
        query = query.order("created_at", desc=True).limit(limit)
        return [self._deserialize_activity(row) for row in self._execute(query) or []]

    def list_joined_activities(self, user_id: str, *, limit: int = 10) -> List[Activity]:
        query = (
            self._table(self.settings.participants_table)
            .select(f"activity:{self.settings.activities_table}(*)")
            .eq("user_id", user_id)
            .eq("status", ParticipantStatus.JOINED.value)
        )
        activities = [
            self._deserialize_activity(row["activity"])
            for row in self._execute(query) or []
            if row.get("activity") and row["activity"]["creator_id"] != user_id
        ]
        activities.sort(key=lambda item: item.start_at, reverse=True)
        return activities[:limit]

    def update_draft(self, activity_id: str, actor_id: str, updates: Mapping[str, object], now: datetime) -> Activity:
        outcome = self._guarded(
            FN_UPDATE_DRAFT,
            {
                "p_activity_id": activity_id,
                "p_actor_id": actor_id,
                "p_updates": self._serialize_updates(updates),
                "p_now": now.isoformat(),
            },
        )
        return self._deserialize_activity(outcome["activity"])

    def transition(self, activity_id: str, actor_id: str, target: ActivityStatus, now: datetime) -> Activity:
        outcome = self._guarded(
            FN_TRANSITION,
            {
                "p_activity_id": activity_id,
                "p_actor_id": actor_id,
                "p_target": target.value,
                "p_now": now.isoformat(),
            },
        )
        return self._deserialize_activity(outcome["activity"])

    def set_status(self, activity_id: str, status: ActivityStatus, now: datetime) -> Activity:
        outcome = self._guarded(
            FN_SET_STATUS,
            {"p_activity_id": activity_id, "p_status": status.value, "p_now": now.isoformat()},
        )
        return self._deserialize_activity(outcome["activity"])

    # Roster --------------------------------------------------------------------------

    def get_participant(self, activity_id: str, user_id: str) -> Optional[Participant]:
        rows = self._execute(
            self._table(self.settings.participants_table)
            .select("*")
            .eq("activity_id", activity_id)
            .eq("user_id", user_id)
            .limit(1)
        )
        return Participant.from_record(rows[0]) if rows else None

    def list_participants(self, activity_id: str, *, limit: int = 10) -> List[Participant]:
        rows = self._execute(
            self._table(self.settings.participants_table)
            .select("*")
            .eq("activity_id", activity_id)
            .eq("status", ParticipantStatus.JOINED.value)
            .order("joined_at")
            .limit(limit)
        )
        return [Participant.from_record(row) for row in rows or []]

    def join(self, activity_id: str, user_id: str, now: datetime) -> Activity:
        outcome = self._guarded(
            FN_JOIN,
            {"p_activity_id": activity_id, "p_user_id": user_id, "p_now": now.isoformat()},
        )
        return self._deserialize_activity(outcome["activity"])

    def leave(self, activity_id: str, user_id: str, now: datetime) -> Activity:
        outcome = self._guarded(
            FN_LEAVE,
            {"p_activity_id": activity_id, "p_user_id": user_id, "p_now": now.isoformat()},
        )
        return self._deserialize_activity(outcome["activity"])

    # Quota ---------------------------------------------------------------------------

    def get_quota(self, user_id: str) -> int:
        rows = self._execute(
            self._table(self.settings.users_table)
            .select("ai_create_quota_today")
            .eq("id", user_id)
            .limit(1)
        )
        return int(rows[0]["ai_create_quota_today"]) if rows else self.daily_allowance

    def set_quota(self, user_id: str, value: int) -> None:
        if value < 0:
            raise ValueError("quota cannot be negative")
        self._execute(
            self._table(self.settings.users_table)
            .update({"ai_create_quota_today": value})
            .eq("id", user_id)
        )

    def consume_quota(self, user_id: str, activity_id: str, now: datetime) -> Optional[int]:
        outcome = self._guarded(
            FN_CONSUME_QUOTA,
            {
                "p_user_id": user_id,
                "p_activity_id": activity_id,
                "p_allowance": self.daily_allowance,
                "p_now": now.isoformat(),
            },
        )
        if not outcome.get("granted"):
            return None
        return int(outcome["remaining"])

    def refund_quota(self, user_id: str, activity_id: str) -> int:
        outcome = self._guarded(FN_REFUND_QUOTA, {"p_user_id": user_id, "p_activity_id": activity_id})
        return int(outcome["remaining"])

    def list_ledger(self, *, older_than: datetime) -> List[PublishLedgerEntry]:
        rows = self._execute(
            self._table(self.settings.ledger_table)
            .select("*")
            .lte("consumed_at", older_than.isoformat())
            .order("consumed_at")
        )
        return [PublishLedgerEntry.from_record(row) for row in rows or []]

    def clear_ledger(self, activity_id: str) -> None:
        self._execute(self._table(self.settings.ledger_table).delete().eq("activity_id", activity_id))

    # Partner intents -------------------------------------------------------------------

    def insert_intent(self, intent: PartnerIntent, now: datetime) -> PartnerIntent:
        outcome = self._guarded(FN_CREATE_INTENT, {"p_intent": intent.to_record(), "p_now": now.isoformat()})
        return PartnerIntent.from_record(outcome["intent"])

    def list_intents(self, user_id: str) -> List[PartnerIntent]:
        rows = self._execute(
            self._table(self.settings.intents_table)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
        )
        return [PartnerIntent.from_record(row) for row in rows or []]

    def cancel_intent(self, intent_id: str, user_id: str, now: datetime) -> PartnerIntent:
        outcome = self._guarded(
            FN_CANCEL_INTENT,
            {"p_intent_id": intent_id, "p_user_id": user_id, "p_now": now.isoformat()},
        )
        return PartnerIntent.from_record(outcome["intent"])


__all__ = ["SupabaseActivityStore"]
