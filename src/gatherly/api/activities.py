from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional

from ..domain import Activity, ActivityStatus, MyActivitiesScope
from ..domain.lifecycle import apply_draft_updates
from ..services.resolver import Resolution, resolve_reference
from .models import (
    ActivityLookupRequest,
    ActivityRefRequest,
    CancelActivityRequest,
    CreateDraftRequest,
    DraftLookupRequest,
    MyActivitiesRequest,
    RefineDraftRequest,
)
from .registry import register_tool
from .sandbox import SANDBOX_TITLE, SANDBOX_USER_ID, synthetic_activity, synthetic_creator, synthetic_id
from .serializers import serialize_activity, serialize_activity_summary, serialize_participant
from .state import ApiState


def _draft_fields(request: CreateDraftRequest) -> Dict[str, Any]:
    return {
        "title": request.title,
        "category": request.category,
        "location_name": request.location_name,
        "location_hint": request.location_hint,
        "coordinates": request.coordinates.to_domain(),
        "start_at": request.start_at,
        "max_participants": request.max_participants,
        "summary": request.summary,
    }


def _draft_response(draft: Activity, message: str) -> Dict[str, Any]:
    return {"activityId": draft.id, "draft": serialize_activity(draft), "message": message}


def _summaries(activities: List[Activity]) -> List[Dict[str, Any]]:
    return [serialize_activity_summary(activity) for activity in activities]


# createDraft ----------------------------------------------------------------------


def _sandbox_create_draft(state: ApiState, request: CreateDraftRequest) -> Dict[str, Any]:
    now = state.context.now()
    draft = Activity(
        id=synthetic_id(),
        creator_id=SANDBOX_USER_ID,
        created_at=now,
        updated_at=now,
        **_draft_fields(request),
    )
    return _draft_response(draft, f"Draft '{draft.title}' is ready (sandbox, nothing was saved).")


@register_tool(
    "createDraft",
    description=(
        "Create an activity draft from the details gathered in conversation. The creator is counted as the "
        "first participant. Drafts are private until published."
    ),
    category="activities",
    request_model=CreateDraftRequest,
    sandbox=_sandbox_create_draft,
    tags=("activity", "draft", "create"),
)
def create_draft(state: ApiState, user_id: str, request: CreateDraftRequest) -> Dict[str, Any]:
    draft = state.activities.create_draft(user_id, **_draft_fields(request))
    return _draft_response(draft, f"Draft '{draft.title}' is ready. Publish it when it looks right.")


# refineDraft ----------------------------------------------------------------------


def _sandbox_refine_draft(state: ApiState, request: RefineDraftRequest) -> Dict[str, Any]:
    now = state.context.now()
    base = replace(synthetic_activity(now), id=request.activity_id)
    refined = apply_draft_updates(base, request.updates.changes(), now)
    return _draft_response(refined, f"Draft '{refined.title}' updated (sandbox, nothing was saved).")


@register_tool(
    "refineDraft",
    description=(
        "Change fields of one of the caller's drafts. Only the fields supplied in `updates` are overwritten; "
        "everything else keeps its current value. Published or cancelled activities cannot be refined."
    ),
    category="activities",
    request_model=RefineDraftRequest,
    sandbox=_sandbox_refine_draft,
    tags=("activity", "draft", "update"),
)
def refine_draft(state: ApiState, user_id: str, request: RefineDraftRequest) -> Dict[str, Any]:
    changes = request.updates.changes()
    draft = state.activities.refine_draft(user_id, request.activity_id, changes)
    fields = ", ".join(sorted(changes))
    return _draft_response(draft, f"Updated {fields} on '{draft.title}'.")


# publishActivity ------------------------------------------------------------------


def _sandbox_publish(state: ApiState, request: ActivityRefRequest) -> Dict[str, Any]:
    settings = state.context.settings
    return {
        "activityId": request.activity_id,
        "title": SANDBOX_TITLE,
        "shareUrl": settings.share.url_for(request.activity_id),
        "quotaRemaining": max(0, settings.quota.daily_allowance - 1),
        "message": "Activity published (sandbox, nothing was saved).",
    }


@register_tool(
    "publishActivity",
    description=(
        "Publish a draft so others can join. Only call after the user confirmed. Uses one of the caller's "
        "daily activity creations; the start time must still be in the future."
    ),
    category="activities",
    request_model=ActivityRefRequest,
    sandbox=_sandbox_publish,
    tags=("activity", "publish", "quota"),
)
def publish_activity(state: ApiState, user_id: str, request: ActivityRefRequest) -> Dict[str, Any]:
    outcome = state.activities.publish(user_id, request.activity_id)
    return {
        "activityId": outcome.activity.id,
        "title": outcome.activity.title,
        "shareUrl": outcome.share_url,
        "quotaRemaining": outcome.quota_remaining,
        "message": f"'{outcome.activity.title}' is live. Share it: {outcome.share_url}",
    }


# cancelActivity -------------------------------------------------------------------


def _cancel_message(title: str, reason: Optional[str]) -> str:
    return f"'{title}' was cancelled. Reason: {reason}" if reason else f"'{title}' was cancelled."


def _sandbox_cancel(state: ApiState, request: CancelActivityRequest) -> Dict[str, Any]:
    return {
        "activityId": request.activity_id,
        "activityTitle": SANDBOX_TITLE,
        "message": _cancel_message(SANDBOX_TITLE, request.reason),
    }


@register_tool(
    "cancelActivity",
    description="Cancel a draft or published activity the caller created. Finished activities cannot be cancelled.",
    category="activities",
    request_model=CancelActivityRequest,
    sandbox=_sandbox_cancel,
    tags=("activity", "cancel"),
)
def cancel_activity(state: ApiState, user_id: str, request: CancelActivityRequest) -> Dict[str, Any]:
    activity = state.activities.cancel(user_id, request.activity_id, request.reason)
    return {
        "activityId": activity.id,
        "activityTitle": activity.title,
        "message": _cancel_message(activity.title, request.reason),
    }


# getActivityDetail ----------------------------------------------------------------


def _detail_message(activity: Activity) -> str:
    return f"'{activity.title}' {activity.current_participants}/{activity.max_participants} people"


def _sandbox_detail(state: ApiState, request: ActivityLookupRequest) -> Dict[str, Any]:
    activity = synthetic_activity(state.context.now(), ActivityStatus.ACTIVE)
    if request.activity_id:
        activity = replace(activity, id=request.activity_id)
    return {
        "activity": serialize_activity(activity),
        "participants": [serialize_participant(synthetic_creator(activity))],
        "isJoined": False,
        "isCreator": False,
        "canJoin": True,
        "alternatives": [],
        "message": _detail_message(activity),
    }


@register_tool(
    "getActivityDetail",
    description=(
        "Show one activity by id or by (part of) its title: details, a participant preview and whether the "
        "caller can join."
    ),
    category="queries",
    request_model=ActivityLookupRequest,
    sandbox=_sandbox_detail,
    tags=("activity", "detail", "read"),
)
def get_activity_detail(state: ApiState, user_id: str, request: ActivityLookupRequest) -> Dict[str, Any]:
    detail = state.activities.detail(user_id, activity_id=request.activity_id, title=request.title)
    return {
        "activity": serialize_activity(detail.activity),
        "participants": [serialize_participant(participant) for participant in detail.participants],
        "isJoined": detail.is_joined,
        "isCreator": detail.is_creator,
        "canJoin": detail.can_join,
        "alternatives": _summaries(detail.alternatives),
        "message": _detail_message(detail.activity),
    }


# getDraft -------------------------------------------------------------------------


def _draft_lookup_response(resolution: Resolution) -> Dict[str, Any]:
    draft = resolution.activity
    message = f"Found draft '{draft.title}'."
    if resolution.alternatives:
        message += f" {len(resolution.alternatives)} other drafts also match; confirm which one is meant."
    return {
        "draft": serialize_activity(draft),
        "alternatives": _summaries(resolution.alternatives),
        "matchedBy": resolution.matched_by,
        "message": message,
    }


def _sandbox_get_draft(state: ApiState, request: DraftLookupRequest) -> Dict[str, Any]:
    resolution = resolve_reference(
        [synthetic_activity(state.context.now())],
        activity_id=request.activity_id,
        title_hint=request.title,
    )
    return _draft_lookup_response(resolution)


@register_tool(
    "getDraft",
    description=(
        "Find one of the caller's recent drafts by id, by (part of) its title, or the most recent one when the "
        "user just says 'that draft'."
    ),
    category="queries",
    request_model=DraftLookupRequest,
    sandbox=_sandbox_get_draft,
    tags=("activity", "draft", "read"),
)
def get_draft(state: ApiState, user_id: str, request: DraftLookupRequest) -> Dict[str, Any]:
    resolution = state.activities.get_draft(user_id, activity_id=request.activity_id, title=request.title)
    return _draft_lookup_response(resolution)


# getMyActivities ------------------------------------------------------------------


def _sandbox_my_activities(state: ApiState, request: MyActivitiesRequest) -> Dict[str, Any]:
    return {
        "type": request.scope.value,
        "activities": [],
        "message": "Sign in to see your activities.",
    }


@register_tool(
    "getMyActivities",
    description="List activities the caller created (`created`) or joined (`joined`).",
    category="queries",
    request_model=MyActivitiesRequest,
    sandbox=_sandbox_my_activities,
    tags=("activity", "list", "read"),
)
def get_my_activities(state: ApiState, user_id: str, request: MyActivitiesRequest) -> Dict[str, Any]:
    activities = state.activities.my_activities(user_id, request.scope, limit=request.limit)
    if not activities:
        message = (
            "You have not created any activities yet. Want to start one?"
            if request.scope is MyActivitiesScope.CREATED
            else "You have not joined any activities yet. Want to look for one nearby?"
        )
    else:
        message = f"You have {len(activities)} {request.scope.value} activities."
    return {"type": request.scope.value, "activities": _summaries(activities), "message": message}
