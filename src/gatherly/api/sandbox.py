"""Synthetic records served to callers without an identity.

Sandbox handlers read nothing user-scoped and write nothing; they validate
the request and answer with records shaped exactly like real ones.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

from ..domain import Activity, ActivityCategory, ActivityStatus, Coordinates, Participant

SANDBOX_USER_ID = "sandbox-user"
SANDBOX_ACTIVITY_ID = "sandbox-activity"
SANDBOX_TITLE = "Board game night"


def synthetic_id() -> str:
    return f"sandbox-{uuid4()}"


def synthetic_activity(now: datetime, status: ActivityStatus = ActivityStatus.DRAFT) -> Activity:
    return Activity(
        id=SANDBOX_ACTIVITY_ID,
        creator_id=SANDBOX_USER_ID,
        title=SANDBOX_TITLE,
        category=ActivityCategory.BOARDGAME,
        location_name="Central Library Cafe",
        location_hint="Second floor, by the window",
        coordinates=Coordinates(lat=29.5630, lng=106.5516),
        start_at=now + timedelta(days=1),
        max_participants=4,
        current_participants=1,
        status=status,
        created_at=now,
        updated_at=now,
    )


def synthetic_creator(activity: Activity) -> Participant:
    return Participant(
        activity_id=activity.id,
        user_id=activity.creator_id,
        joined_at=activity.created_at,
        updated_at=activity.created_at,
    )
