from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from gatherly.api import ApiState
from gatherly.domain import Activity, ActivityCategory, ActivityStatus, Coordinates

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


def draft_arguments(**overrides: Any) -> Dict[str, Any]:
    """Wire-format arguments for createDraft."""

    arguments: Dict[str, Any] = {
        "title": "Hotpot night",
        "category": "food",
        "locationName": "Jiefangbei",
        "locationHint": "Exit 8 of the metro",
        "coordinates": {"lat": 29.557, "lng": 106.577},
        "startAt": (NOW + timedelta(days=2)).isoformat(),
        "maxParticipants": 4,
        "summary": "Spicy, bring friends",
    }
    arguments.update(overrides)
    return arguments


def make_activity(
    activity_id: str,
    title: str,
    *,
    creator_id: str = "creator",
    status: ActivityStatus = ActivityStatus.DRAFT,
    created_at: datetime = NOW,
    max_participants: int = 4,
    current_participants: int = 1,
) -> Activity:
    return Activity(
        id=activity_id,
        creator_id=creator_id,
        title=title,
        category=ActivityCategory.OTHER,
        location_name="Guanyinqiao",
        location_hint="Near the square",
        coordinates=Coordinates(lat=29.58, lng=106.53),
        start_at=NOW + timedelta(days=1),
        max_participants=max_participants,
        current_participants=current_participants,
        status=status,
        created_at=created_at,
        updated_at=created_at,
    )


def create_draft(state: ApiState, user_id: str, **overrides: Any) -> Activity:
    fields: Dict[str, Any] = {
        "title": "Board games",
        "category": ActivityCategory.BOARDGAME,
        "location_name": "Dice Cafe",
        "location_hint": "Upstairs",
        "coordinates": Coordinates(lat=29.56, lng=106.55),
        "start_at": state.context.now() + timedelta(days=1),
        "max_participants": 4,
    }
    fields.update(overrides)
    return state.activities.create_draft(user_id, **fields)


def publish_new(state: ApiState, user_id: str, **overrides: Any) -> Activity:
    draft = create_draft(state, user_id, **overrides)
    return state.activities.publish(user_id, draft.id).activity
