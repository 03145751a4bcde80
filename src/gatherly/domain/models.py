from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .enums import ActivityCategory, ActivityStatus, BudgetType, IntentStatus, ParticipantStatus


def parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported datetime value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_datetime(value: Any) -> Optional[datetime]:
    return parse_datetime(value) if value else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True, slots=True)
class Coordinates:
    lat: float
    lng: float

    @classmethod
    def from_record(cls, record: Any) -> "Coordinates":
        if isinstance(record, dict):
            return cls(lat=float(record["lat"]), lng=float(record["lng"]))
        lat, lng = record
        return cls(lat=float(lat), lng=float(lng))

    def to_record(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(slots=True)
class Activity:
    id: str
    creator_id: str
    title: str
    category: ActivityCategory
    location_name: str
    location_hint: str
    coordinates: Coordinates
    start_at: datetime
    max_participants: int
    current_participants: int = 1
    status: ActivityStatus = ActivityStatus.DRAFT
    summary: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def remaining_capacity(self) -> int:
        return max(0, self.max_participants - self.current_participants)

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants

    def has_started(self, now: datetime) -> bool:
        return self.start_at <= now

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Activity":
        return cls(
            id=str(record["id"]),
            creator_id=str(record["creator_id"]),
            title=str(record["title"]),
            category=ActivityCategory(record.get("category") or ActivityCategory.OTHER),
            location_name=record.get("location_name") or "",
            location_hint=record.get("location_hint") or "",
            coordinates=Coordinates.from_record(record["coordinates"]),
            start_at=parse_datetime(record["start_at"]),
            max_participants=int(record["max_participants"]),
            current_participants=int(record.get("current_participants", 1)),
            status=ActivityStatus(record.get("status") or ActivityStatus.DRAFT),
            summary=record.get("summary") or "",
            created_at=_optional_datetime(record.get("created_at")),
            updated_at=_optional_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "creator_id": self.creator_id,
            "title": self.title,
            "category": self.category.value,
            "location_name": self.location_name,
            "location_hint": self.location_hint,
            "coordinates": self.coordinates.to_record(),
            "start_at": self.start_at.isoformat(),
            "max_participants": self.max_participants,
            "current_participants": self.current_participants,
            "status": self.status.value,
            "summary": self.summary,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(slots=True)
class Participant:
    activity_id: str
    user_id: str
    status: ParticipantStatus = ParticipantStatus.JOINED
    joined_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_joined(self) -> bool:
        return self.status is ParticipantStatus.JOINED

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Participant":
        return cls(
            activity_id=str(record["activity_id"]),
            user_id=str(record["user_id"]),
            status=ParticipantStatus(record.get("status") or ParticipantStatus.JOINED),
            joined_at=_optional_datetime(record.get("joined_at")),
            updated_at=_optional_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "activity_id": self.activity_id,
            "user_id": self.user_id,
            "status": self.status.value,
            "joined_at": _iso(self.joined_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(slots=True)
class PartnerIntent:
    id: str
    user_id: str
    category: ActivityCategory
    location_hint: str
    expires_at: datetime
    time_preference: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    budget_type: Optional[BudgetType] = None
    poi_preference: Optional[str] = None
    raw_input: Optional[str] = None
    status: IntentStatus = IntentStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def effective_status(self, now: datetime) -> IntentStatus:
        """Active intents past their expiry read as expired."""

        if self.status is IntentStatus.ACTIVE and self.expires_at <= now:
            return IntentStatus.EXPIRED
        return self.status

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "PartnerIntent":
        return cls(
            id=str(record["id"]),
            user_id=str(record["user_id"]),
            category=ActivityCategory(record.get("category") or ActivityCategory.OTHER),
            location_hint=record.get("location_hint") or "",
            expires_at=parse_datetime(record["expires_at"]),
            time_preference=record.get("time_preference"),
            tags=list(record.get("tags") or []),
            budget_type=BudgetType(record["budget_type"]) if record.get("budget_type") else None,
            poi_preference=record.get("poi_preference"),
            raw_input=record.get("raw_input"),
            status=IntentStatus(record.get("status") or IntentStatus.ACTIVE),
            created_at=_optional_datetime(record.get("created_at")),
            updated_at=_optional_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "category": self.category.value,
            "location_hint": self.location_hint,
            "expires_at": self.expires_at.isoformat(),
            "time_preference": self.time_preference,
            "tags": list(self.tags),
            "budget_type": self.budget_type.value if self.budget_type else None,
            "poi_preference": self.poi_preference,
            "raw_input": self.raw_input,
            "status": self.status.value,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(frozen=True, slots=True)
class PublishLedgerEntry:
    """A quota unit consumed for a publish whose status flip has not landed yet."""

    activity_id: str
    user_id: str
    consumed_at: datetime

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "PublishLedgerEntry":
        return cls(
            activity_id=str(record["activity_id"]),
            user_id=str(record["user_id"]),
            consumed_at=parse_datetime(record["consumed_at"]),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "activity_id": self.activity_id,
            "user_id": self.user_id,
            "consumed_at": self.consumed_at.isoformat(),
        }
