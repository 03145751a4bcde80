"""Application services orchestrating the store, quota and domain rules."""

from __future__ import annotations

from .activities import ActivityDetail, ActivityService, PublishOutcome
from .context import ServiceContext
from .identity import IdentityBinder, LocalIdentityBinder, SupabaseIdentityBinder
from .intents import IntentService
from .moderation import ContentModerator, OpenAIModerator, PassthroughModerator
from .quota import QuotaController, QuotaGrant, ReconcileReport
from .roster import RosterService

__all__ = [
    "ActivityDetail",
    "ActivityService",
    "ContentModerator",
    "IdentityBinder",
    "IntentService",
    "LocalIdentityBinder",
    "OpenAIModerator",
    "PassthroughModerator",
    "PublishOutcome",
    "QuotaController",
    "QuotaGrant",
    "ReconcileReport",
    "RosterService",
    "ServiceContext",
    "SupabaseIdentityBinder",
]
