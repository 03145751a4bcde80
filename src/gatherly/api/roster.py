from __future__ import annotations

from typing import Any, Dict

from .models import ActivityRefRequest
from .registry import register_tool
from .sandbox import SANDBOX_TITLE
from .state import ApiState


def _sandbox_join(state: ApiState, request: ActivityRefRequest) -> Dict[str, Any]:
    return {
        "activityId": request.activity_id,
        "activityTitle": SANDBOX_TITLE,
        "currentParticipants": 2,
        "maxParticipants": 4,
        "message": f"You joined '{SANDBOX_TITLE}' (sandbox, nothing was saved).",
    }


@register_tool(
    "joinActivity",
    description=(
        "Join a published activity on the caller's behalf. Fails when it is full, has started, "
        "or the caller already joined."
    ),
    category="roster",
    request_model=ActivityRefRequest,
    sandbox=_sandbox_join,
    tags=("activity", "join"),
)
def join_activity(state: ApiState, user_id: str, request: ActivityRefRequest) -> Dict[str, Any]:
    activity = state.roster.join(user_id, request.activity_id)
    return {
        "activityId": activity.id,
        "activityTitle": activity.title,
        "currentParticipants": activity.current_participants,
        "maxParticipants": activity.max_participants,
        "message": (
            f"You joined '{activity.title}' "
            f"({activity.current_participants}/{activity.max_participants})."
        ),
    }


def _sandbox_leave(state: ApiState, request: ActivityRefRequest) -> Dict[str, Any]:
    return {
        "activityId": request.activity_id,
        "currentParticipants": 1,
        "message": f"You left '{SANDBOX_TITLE}' (sandbox, nothing was saved).",
    }


@register_tool(
    "leaveActivity",
    description="Leave an activity the caller joined. Creators cancel instead of leaving.",
    category="roster",
    request_model=ActivityRefRequest,
    sandbox=_sandbox_leave,
    tags=("activity", "leave"),
)
def leave_activity(state: ApiState, user_id: str, request: ActivityRefRequest) -> Dict[str, Any]:
    activity = state.roster.leave(user_id, request.activity_id)
    return {
        "activityId": activity.id,
        "currentParticipants": activity.current_participants,
        "message": f"You left '{activity.title}'.",
    }
