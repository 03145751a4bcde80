from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..domain import (
    Activity,
    ActivityCategory,
    BudgetType,
    Coordinates,
    MyActivitiesScope,
    PartnerIntent,
    Participant,
    QuestionType,
)
from ..domain.lifecycle import MAX_PARTICIPANTS, MIN_PARTICIPANTS


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# Requests -----------------------------------------------------------------------


class CoordinatesModel(CamelModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

    def to_domain(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)


class CreateDraftRequest(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    category: ActivityCategory
    location_name: str = Field(min_length=1, max_length=100)
    location_hint: str = Field(min_length=1, max_length=100)
    coordinates: CoordinatesModel
    start_at: datetime
    max_participants: int = Field(ge=MIN_PARTICIPANTS, le=MAX_PARTICIPANTS)
    summary: str = Field(default="", max_length=30)

    @field_validator("start_at")
    @classmethod
    def ensure_aware_start(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _aware(value)


class DraftUpdates(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    category: Optional[ActivityCategory] = None
    location_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    location_hint: Optional[str] = Field(default=None, min_length=1, max_length=100)
    coordinates: Optional[CoordinatesModel] = None
    start_at: Optional[datetime] = None
    max_participants: Optional[int] = Field(default=None, ge=MIN_PARTICIPANTS, le=MAX_PARTICIPANTS)

    @field_validator("start_at")
    @classmethod
    def ensure_aware_start(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _aware(value)

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually supplied."""

        changes: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None:
                continue
            changes[name] = value.to_domain() if isinstance(value, CoordinatesModel) else value
        return changes


class RefineDraftRequest(CamelModel):
    activity_id: str = Field(min_length=1)
    updates: DraftUpdates
    reason: str = Field(default="", max_length=200)


class ActivityRefRequest(CamelModel):
    activity_id: str = Field(min_length=1)


class CancelActivityRequest(CamelModel):
    activity_id: str = Field(min_length=1)
    reason: Optional[str] = Field(default=None, max_length=200)


class DraftLookupRequest(CamelModel):
    activity_id: Optional[str] = None
    title: Optional[str] = None


class ActivityLookupRequest(DraftLookupRequest):
    @model_validator(mode="after")
    def require_reference(self) -> "ActivityLookupRequest":
        if not (self.activity_id or (self.title and self.title.strip())):
            raise ValueError("Provide activityId or title.")
        return self


class MyActivitiesRequest(CamelModel):
    scope: MyActivitiesScope = Field(default=MyActivitiesScope.CREATED, alias="type")
    limit: int = Field(default=5, ge=1, le=10)


class CreatePartnerIntentRequest(CamelModel):
    category: ActivityCategory
    location_hint: str = Field(min_length=1, max_length=100)
    time_preference: Optional[str] = Field(default=None, max_length=50)
    tags: List[str] = Field(default_factory=list, max_length=5)
    budget_type: Optional[BudgetType] = None
    poi_preference: Optional[str] = Field(default=None, max_length=100)
    raw_input: Optional[str] = Field(default=None, max_length=500)


class EmptyRequest(CamelModel):
    pass


class CancelIntentRequest(CamelModel):
    intent_id: str = Field(min_length=1)


class PreferenceOption(CamelModel):
    label: str = Field(min_length=1)
    value: str = Field(min_length=1)


class CollectedInfo(CamelModel):
    location: Optional[str] = None
    type: Optional[str] = None


class AskPreferenceRequest(CamelModel):
    question_type: QuestionType
    question: str = Field(min_length=1)
    options: List[PreferenceOption] = Field(min_length=3)
    allow_skip: bool = True
    collected_info: CollectedInfo = Field(default_factory=CollectedInfo)

    @field_validator("options")
    @classmethod
    def unique_option_values(cls, options: List[PreferenceOption]) -> List[PreferenceOption]:
        values = [option.value for option in options]
        if len(set(values)) != len(values):
            raise ValueError("option values must be unique")
        return options


# Payloads -----------------------------------------------------------------------


class ActivityPayload(CamelModel):
    id: str
    creator_id: str
    title: str
    category: str
    status: str
    location_name: str
    location_hint: str
    coordinates: Dict[str, float]
    start_at: str
    max_participants: int
    current_participants: int
    summary: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_domain(cls, activity: Activity) -> "ActivityPayload":
        return cls(
            id=activity.id,
            creator_id=activity.creator_id,
            title=activity.title,
            category=activity.category.value,
            status=activity.status.value,
            location_name=activity.location_name,
            location_hint=activity.location_hint,
            coordinates=activity.coordinates.to_record(),
            start_at=activity.start_at.isoformat(),
            max_participants=activity.max_participants,
            current_participants=activity.current_participants,
            summary=activity.summary,
            created_at=_iso(activity.created_at),
            updated_at=_iso(activity.updated_at),
        )


class ActivitySummaryPayload(CamelModel):
    id: str
    title: str
    category: str
    status: str
    start_at: str
    location_name: str
    current_participants: int
    max_participants: int

    @classmethod
    def from_domain(cls, activity: Activity) -> "ActivitySummaryPayload":
        return cls(
            id=activity.id,
            title=activity.title,
            category=activity.category.value,
            status=activity.status.value,
            start_at=activity.start_at.isoformat(),
            location_name=activity.location_name,
            current_participants=activity.current_participants,
            max_participants=activity.max_participants,
        )


class ParticipantPayload(CamelModel):
    user_id: str
    status: str
    joined_at: Optional[str] = None

    @classmethod
    def from_domain(cls, participant: Participant) -> "ParticipantPayload":
        return cls(
            user_id=participant.user_id,
            status=participant.status.value,
            joined_at=_iso(participant.joined_at),
        )


class IntentPayload(CamelModel):
    id: str
    category: str
    location_hint: str
    time_preference: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    budget_type: Optional[str] = None
    poi_preference: Optional[str] = None
    status: str
    expires_at: str
    created_at: Optional[str] = None

    @classmethod
    def from_domain(cls, intent: PartnerIntent) -> "IntentPayload":
        return cls(
            id=intent.id,
            category=intent.category.value,
            location_hint=intent.location_hint,
            time_preference=intent.time_preference,
            tags=list(intent.tags),
            budget_type=intent.budget_type.value if intent.budget_type else None,
            poi_preference=intent.poi_preference,
            status=intent.status.value,
            expires_at=intent.expires_at.isoformat(),
            created_at=_iso(intent.created_at),
        )
