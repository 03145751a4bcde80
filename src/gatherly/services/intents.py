from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence
from uuid import uuid4

from ..domain import ActivityCategory, BudgetType, IntentStatus, PartnerIntent
from .context import ServiceContext

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IntentService:
    """Looser "looking for a partner" records; one active intent per user and category."""

    context: ServiceContext

    def create(
        self,
        user_id: str,
        *,
        category: ActivityCategory,
        location_hint: str,
        time_preference: Optional[str] = None,
        tags: Sequence[str] = (),
        budget_type: Optional[BudgetType] = None,
        poi_preference: Optional[str] = None,
        raw_input: Optional[str] = None,
    ) -> PartnerIntent:
        """Register an open intent. ``raw_input`` keeps the caller's own words for later matching."""

        self.context.moderator.check(
            {
                "location_hint": location_hint,
                "time_preference": time_preference,
                "poi_preference": poi_preference,
                "raw_input": raw_input,
            }
        )
        now = self.context.now()
        intent = PartnerIntent(
            id=str(uuid4()),
            user_id=user_id,
            category=category,
            location_hint=location_hint,
            expires_at=now + self.context.settings.intents.ttl,
            time_preference=time_preference,
            tags=list(tags),
            budget_type=budget_type,
            poi_preference=poi_preference,
            raw_input=raw_input,
            status=IntentStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        saved = self.context.store.insert_intent(intent, now)
        logger.info("User %s registered a %s intent %s", user_id, category.value, saved.id)
        return saved

    def list_for(self, user_id: str) -> List[PartnerIntent]:
        """Newest first, with lapsed intents reported as expired."""

        now = self.context.now()
        return [
            replace(intent, status=intent.effective_status(now))
            for intent in self.context.store.list_intents(user_id)
        ]

    def cancel(self, user_id: str, intent_id: str) -> PartnerIntent:
        cancelled = self.context.store.cancel_intent(intent_id, user_id, self.context.now())
        logger.info("User %s cancelled intent %s", user_id, intent_id)
        return cancelled


__all__ = ["IntentService"]
