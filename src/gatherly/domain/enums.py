from __future__ import annotations

from enum import Enum


class ActivityStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ActivityCategory(str, Enum):
    FOOD = "food"
    ENTERTAINMENT = "entertainment"
    SPORTS = "sports"
    BOARDGAME = "boardgame"
    OTHER = "other"


class ParticipantStatus(str, Enum):
    JOINED = "joined"
    QUIT = "quit"


class IntentStatus(str, Enum):
    ACTIVE = "active"
    MATCHED = "matched"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class BudgetType(str, Enum):
    SPLIT = "AA"
    TREAT = "Treat"
    FREE = "Free"


class QuestionType(str, Enum):
    LOCATION = "location"
    TYPE = "type"


class MyActivitiesScope(str, Enum):
    CREATED = "created"
    JOINED = "joined"


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    INVALID_STATE = "InvalidState"
    CAPACITY_EXCEEDED = "CapacityExceeded"
    QUOTA_EXHAUSTED = "QuotaExhausted"
    EXPIRED = "Expired"
    ALREADY_JOINED = "AlreadyJoined"
    DUPLICATE_ACTION = "DuplicateAction"
    VALIDATION_FAILED = "ValidationFailed"
    UNAVAILABLE = "Unavailable"
