from __future__ import annotations

from typing import Any, Dict

from ..domain import Activity, PartnerIntent, Participant
from .models import ActivityPayload, ActivitySummaryPayload, IntentPayload, ParticipantPayload


def serialize_activity(activity: Activity) -> Dict[str, Any]:
    return ActivityPayload.from_domain(activity).model_dump(by_alias=True)


def serialize_activity_summary(activity: Activity) -> Dict[str, Any]:
    return ActivitySummaryPayload.from_domain(activity).model_dump(by_alias=True)


def serialize_participant(participant: Participant) -> Dict[str, Any]:
    return ParticipantPayload.from_domain(participant).model_dump(by_alias=True)


def serialize_intent(intent: PartnerIntent) -> Dict[str, Any]:
    return IntentPayload.from_domain(intent).model_dump(by_alias=True)
