"""Storage boundary.

Every method that reads and conditionally writes the activity unit
(status, counter, participant rows) or the quota unit is a single atomic
operation of the backend. Callers never compose a read with a later write of
the same value.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Protocol, runtime_checkable

from ..domain import Activity, ActivityStatus, PartnerIntent, Participant, PublishLedgerEntry


@runtime_checkable
class ActivityStore(Protocol):
    # Activities ---------------------------------------------------------------

    def insert_draft(self, activity: Activity) -> Activity:
        """Insert ``activity`` in draft together with its creator's participant row."""

    def get_activity(self, activity_id: str) -> Optional[Activity]: ...

    def list_activities(
        self,
        *,
        creator_id: Optional[str] = None,
        statuses: Optional[Iterable[ActivityStatus]] = None,
        limit: int = 10,
    ) -> List[Activity]:
        """Newest first."""

    def list_joined_activities(self, user_id: str, *, limit: int = 10) -> List[Activity]:
        """Activities ``user_id`` has a joined row in, excluding their own, latest start first."""

    def update_draft(self, activity_id: str, actor_id: str, updates: Mapping[str, object], now: datetime) -> Activity: ...

    def transition(self, activity_id: str, actor_id: str, target: ActivityStatus, now: datetime) -> Activity:
        """Guarded status change; moving to active also settles the publish ledger entry."""

    def set_status(self, activity_id: str, status: ActivityStatus, now: datetime) -> Activity:
        """Unguarded by ownership; for the external completion scheduler."""

    # Roster -------------------------------------------------------------------

    def get_participant(self, activity_id: str, user_id: str) -> Optional[Participant]: ...

    def list_participants(self, activity_id: str, *, limit: int = 10) -> List[Participant]: ...

    def join(self, activity_id: str, user_id: str, now: datetime) -> Activity: ...

    def leave(self, activity_id: str, user_id: str, now: datetime) -> Activity: ...

    # Quota --------------------------------------------------------------------

    def get_quota(self, user_id: str) -> int: ...

    def set_quota(self, user_id: str, value: int) -> None:
        """For the external nightly reset."""

    def consume_quota(self, user_id: str, activity_id: str, now: datetime) -> Optional[int]:
        """Decrement if positive and record a ledger entry; remaining units, or ``None`` when denied."""

    def refund_quota(self, user_id: str, activity_id: str) -> int:
        """Give back the unit recorded for ``activity_id``; no-op when no entry exists."""

    def list_ledger(self, *, older_than: datetime) -> List[PublishLedgerEntry]: ...

    def clear_ledger(self, activity_id: str) -> None: ...

    # Partner intents ------------------------------------------------------------

    def insert_intent(self, intent: PartnerIntent, now: datetime) -> PartnerIntent:
        """Insert unless the user already has an unexpired active intent in the category."""

    def list_intents(self, user_id: str) -> List[PartnerIntent]: ...

    def cancel_intent(self, intent_id: str, user_id: str, now: datetime) -> PartnerIntent: ...


__all__ = ["ActivityStore"]
