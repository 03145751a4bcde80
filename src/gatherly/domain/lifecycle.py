"""Activity lifecycle state machine and roster guards.

Every guard here is a pure function of the records it is handed. Stores call
them while holding whatever makes the surrounding read-and-write atomic, and
services call them up front to fail fast before consuming quota.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping, Optional

from .enums import ActivityStatus
from .errors import (
    AlreadyJoinedError,
    CapacityExceededError,
    ExpiredError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from .models import Activity, Coordinates, Participant

TRANSITIONS: Dict[ActivityStatus, FrozenSet[ActivityStatus]] = {
    ActivityStatus.DRAFT: frozenset({ActivityStatus.ACTIVE, ActivityStatus.CANCELLED}),
    ActivityStatus.ACTIVE: frozenset({ActivityStatus.CANCELLED, ActivityStatus.COMPLETED}),
    ActivityStatus.CANCELLED: frozenset(),
    ActivityStatus.COMPLETED: frozenset(),
}

# active -> completed belongs to the external scheduler.
TOOL_TARGETS: FrozenSet[ActivityStatus] = frozenset({ActivityStatus.ACTIVE, ActivityStatus.CANCELLED})

REFINABLE_FIELDS: FrozenSet[str] = frozenset(
    {
        "title",
        "category",
        "location_name",
        "location_hint",
        "coordinates",
        "start_at",
        "max_participants",
    }
)

MIN_PARTICIPANTS = 2
MAX_PARTICIPANTS = 50


def can_transition(current: ActivityStatus, target: ActivityStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def require_activity(activity: Optional[Activity], activity_id: str) -> Activity:
    if activity is None:
        raise NotFoundError(
            f"Activity '{activity_id}' was not found; it may have been deleted.",
            details={"activityId": activity_id},
        )
    return activity


def ensure_creator(activity: Activity, user_id: str, action: str) -> None:
    if activity.creator_id != user_id:
        raise ForbiddenError(f"Only the creator of '{activity.title}' can {action} it.")


def ensure_can_refine(activity: Activity, user_id: str) -> None:
    ensure_creator(activity, user_id, "edit")
    if activity.status is not ActivityStatus.DRAFT:
        raise InvalidStateError(
            f"Only drafts can be edited; '{activity.title}' is {activity.status.value}.",
        )


def ensure_can_publish(activity: Activity, user_id: str, now: datetime) -> None:
    ensure_creator(activity, user_id, "publish")
    if activity.status is not ActivityStatus.DRAFT:
        raise InvalidStateError(
            f"'{activity.title}' is {activity.status.value} and cannot be published again.",
        )
    if activity.start_at <= now:
        raise ExpiredError(
            f"The start time of '{activity.title}' has already passed.",
            hint="Move the start time into the future before publishing.",
        )


def ensure_can_cancel(activity: Activity, user_id: str) -> None:
    ensure_creator(activity, user_id, "cancel")
    if activity.status is ActivityStatus.CANCELLED:
        raise InvalidStateError(f"'{activity.title}' is already cancelled.")
    if activity.status is ActivityStatus.COMPLETED:
        raise InvalidStateError(f"'{activity.title}' has already finished and cannot be cancelled.")


def ensure_transition(activity: Activity, actor_id: str, target: ActivityStatus, now: datetime) -> None:
    """Check every guard for moving ``activity`` to ``target`` on behalf of ``actor_id``."""

    if target not in TOOL_TARGETS:
        raise InvalidStateError(f"Transition to {target.value} is not available to tools.")
    if target is ActivityStatus.ACTIVE:
        ensure_can_publish(activity, actor_id, now)
    else:
        ensure_can_cancel(activity, actor_id)
    if not can_transition(activity.status, target):  # pragma: no cover - guards above are stricter
        raise InvalidStateError(f"Cannot move from {activity.status.value} to {target.value}.")


def apply_transition(activity: Activity, target: ActivityStatus, now: datetime) -> Activity:
    return replace(activity, status=target, updated_at=now)


def apply_draft_updates(activity: Activity, updates: Mapping[str, Any], now: datetime) -> Activity:
    """Return a copy of ``activity`` with only the supplied draft fields overwritten."""

    unknown = set(updates) - REFINABLE_FIELDS
    if unknown:
        raise ValidationFailedError(f"Fields cannot be edited: {', '.join(sorted(unknown))}.")
    if not updates:
        raise ValidationFailedError("No fields to update were supplied.")

    changes: Dict[str, Any] = dict(updates)
    if "coordinates" in changes and not isinstance(changes["coordinates"], Coordinates):
        changes["coordinates"] = Coordinates.from_record(changes["coordinates"])
    max_participants = changes.get("max_participants")
    if max_participants is not None:
        if not MIN_PARTICIPANTS <= max_participants <= MAX_PARTICIPANTS:
            raise ValidationFailedError(
                f"maxParticipants must be between {MIN_PARTICIPANTS} and {MAX_PARTICIPANTS}."
            )
        if max_participants < activity.current_participants:
            raise ValidationFailedError(
                f"maxParticipants cannot drop below the {activity.current_participants} people already in.",
            )
    return replace(activity, updated_at=now, **changes)


def ensure_can_join(activity: Activity, user_id: str, participant: Optional[Participant], now: datetime) -> None:
    """Join guards in contract order; capacity is checked last."""

    if activity.status is not ActivityStatus.ACTIVE:
        raise InvalidStateError(
            f"'{activity.title}' is {activity.status.value} and is not open for joining.",
        )
    if activity.creator_id == user_id:
        raise ForbiddenError("Creators are already part of their own activity.")
    if activity.has_started(now):
        raise ExpiredError(f"'{activity.title}' has already started.")
    if participant is not None and participant.is_joined:
        raise AlreadyJoinedError(f"You have already joined '{activity.title}'.")
    if activity.is_full:
        raise CapacityExceededError(
            f"'{activity.title}' is full ({activity.current_participants}/{activity.max_participants}).",
            hint="Try another activity or create your own.",
        )


def ensure_can_leave(activity: Activity, user_id: str, participant: Optional[Participant]) -> None:
    if activity.creator_id == user_id:
        raise ForbiddenError("Creators cannot leave their own activity; cancel it instead.")
    if activity.status is not ActivityStatus.ACTIVE:
        raise InvalidStateError(f"'{activity.title}' is {activity.status.value}; there is nothing to leave.")
    if participant is None or not participant.is_joined:
        raise InvalidStateError(f"You have not joined '{activity.title}'.")
