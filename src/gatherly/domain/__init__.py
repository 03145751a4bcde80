"""Domain models for shared activities."""

from __future__ import annotations

from .caller import SANDBOX, Authenticated, Caller, Sandbox
from .enums import (
    ActivityCategory,
    ActivityStatus,
    BudgetType,
    ErrorKind,
    IntentStatus,
    MyActivitiesScope,
    ParticipantStatus,
    QuestionType,
)
from .models import Activity, Coordinates, PartnerIntent, Participant, PublishLedgerEntry

__all__ = [
    "Activity",
    "ActivityCategory",
    "ActivityStatus",
    "Authenticated",
    "BudgetType",
    "Caller",
    "Coordinates",
    "ErrorKind",
    "IntentStatus",
    "MyActivitiesScope",
    "PartnerIntent",
    "Participant",
    "ParticipantStatus",
    "PublishLedgerEntry",
    "QuestionType",
    "SANDBOX",
    "Sandbox",
]
