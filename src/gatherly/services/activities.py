from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional
from uuid import uuid4

from ..domain import (
    Activity,
    ActivityCategory,
    ActivityStatus,
    Coordinates,
    MyActivitiesScope,
    Participant,
)
from ..domain.errors import ActivityError, QuotaExhaustedError
from ..domain.lifecycle import apply_draft_updates, ensure_can_publish, ensure_can_refine, require_activity
from .context import ServiceContext
from .quota import QuotaController
from .resolver import Resolution, resolve_reference

logger = logging.getLogger(__name__)

# Free-text fields screened before they are persisted.
MODERATED_FIELDS = ("title", "location_name", "location_hint", "summary")


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    activity: Activity
    quota_remaining: int
    share_url: str


@dataclass(slots=True)
class ActivityDetail:
    activity: Activity
    participants: List[Participant]
    is_joined: bool
    is_creator: bool
    can_join: bool
    alternatives: List[Activity] = field(default_factory=list)


@dataclass(slots=True)
class ActivityService:
    context: ServiceContext
    quota: QuotaController = field(init=False)

    def __post_init__(self) -> None:
        self.quota = QuotaController(self.context)

    def _moderate(self, values: Mapping[str, object]) -> None:
        texts: Dict[str, Optional[str]] = {
            name: value for name, value in values.items() if name in MODERATED_FIELDS and isinstance(value, str)
        }
        if texts:
            self.context.moderator.check(texts)

    # Lifecycle -------------------------------------------------------------------

    def create_draft(
        self,
        user_id: str,
        *,
        title: str,
        category: ActivityCategory,
        location_name: str,
        location_hint: str,
        coordinates: Coordinates,
        start_at: datetime,
        max_participants: int,
        summary: str = "",
    ) -> Activity:
        self._moderate(
            {
                "title": title,
                "location_name": location_name,
                "location_hint": location_hint,
                "summary": summary,
            }
        )
        now = self.context.now()
        draft = Activity(
            id=str(uuid4()),
            creator_id=user_id,
            title=title,
            category=category,
            location_name=location_name,
            location_hint=location_hint,
            coordinates=coordinates,
            start_at=start_at,
            max_participants=max_participants,
            current_participants=1,
            status=ActivityStatus.DRAFT,
            summary=summary,
            created_at=now,
            updated_at=now,
        )
        saved = self.context.store.insert_draft(draft)
        logger.info("User %s created draft %s", user_id, saved.id)
        return saved

    def refine_draft(self, user_id: str, activity_id: str, updates: Mapping[str, object]) -> Activity:
        store = self.context.store
        activity = require_activity(store.get_activity(activity_id), activity_id)
        ensure_can_refine(activity, user_id)
        # Validate before moderation so malformed updates fail without a network call.
        apply_draft_updates(activity, updates, self.context.now())
        self._moderate(updates)
        refined = store.update_draft(activity_id, user_id, updates, self.context.now())
        logger.info("User %s refined draft %s: %s", user_id, activity_id, ", ".join(sorted(updates)))
        return refined

    def publish(self, user_id: str, activity_id: str) -> PublishOutcome:
        """Consume one quota unit and move the draft to active.

        Quota and the activity are separate consistency units. A status flip
        rejected after consumption is refunded here. A publish that dies in
        between keeps its ledger entry, so a retry by the same user reuses the
        unit it already paid for; ``QuotaController.reconcile`` refunds the
        ones nobody retries.
        """

        store = self.context.store
        activity = require_activity(store.get_activity(activity_id), activity_id)
        ensure_can_publish(activity, user_id, self.context.now())

        grant = self.quota.try_consume(user_id, activity_id)
        if not grant.granted:
            raise QuotaExhaustedError(
                "You have used up today's activity creations.",
                hint="Quota resets tomorrow; the draft stays saved until then.",
                details={"quotaRemaining": 0},
            )

        try:
            published = store.transition(activity_id, user_id, ActivityStatus.ACTIVE, self.context.now())
        except ActivityError:
            self.quota.refund(user_id, activity_id)
            raise
        logger.info("User %s published %s (%d creations left today)", user_id, activity_id, grant.remaining)
        return PublishOutcome(
            activity=published,
            quota_remaining=grant.remaining,
            share_url=self.context.settings.share.url_for(activity_id),
        )

    def cancel(self, user_id: str, activity_id: str, reason: Optional[str] = None) -> Activity:
        cancelled = self.context.store.transition(activity_id, user_id, ActivityStatus.CANCELLED, self.context.now())
        logger.info("User %s cancelled %s%s", user_id, activity_id, f" ({reason})" if reason else "")
        return cancelled

    # Queries ---------------------------------------------------------------------

    def get_draft(self, user_id: str, *, activity_id: Optional[str] = None, title: Optional[str] = None) -> Resolution:
        store = self.context.store
        candidates = store.list_activities(
            creator_id=user_id,
            statuses=[ActivityStatus.DRAFT],
            limit=self.context.settings.resolver.draft_scope_limit,
        )
        if activity_id and all(candidate.id != activity_id for candidate in candidates):
            # An older draft named by id is still the caller's draft.
            named = store.get_activity(activity_id)
            if named is not None and named.creator_id == user_id and named.status is ActivityStatus.DRAFT:
                candidates = [named, *candidates]
        return resolve_reference(
            candidates,
            activity_id=activity_id,
            title_hint=title,
            empty_hint="You have no drafts yet; create one with createDraft.",
        )

    def _detail_candidates(self, user_id: str, activity_id: Optional[str]) -> List[Activity]:
        store = self.context.store
        limit = self.context.settings.resolver.detail_scope_limit
        candidates: List[Activity] = []
        if activity_id:
            named = store.get_activity(activity_id)
            if named is not None:
                candidates.append(named)
        recent = store.list_activities(statuses=[ActivityStatus.ACTIVE], limit=limit)
        drafts = store.list_activities(creator_id=user_id, statuses=[ActivityStatus.DRAFT], limit=limit)
        seen = {candidate.id for candidate in candidates}
        merged: List[Activity] = []
        for activity in sorted(recent + drafts, key=_created_key, reverse=True):
            if activity.id not in seen:
                seen.add(activity.id)
                merged.append(activity)
        return (candidates + merged)[:limit]

    def detail(self, user_id: str, *, activity_id: Optional[str] = None, title: Optional[str] = None) -> ActivityDetail:
        store = self.context.store
        resolution = resolve_reference(
            self._detail_candidates(user_id, activity_id),
            activity_id=activity_id,
            title_hint=title,
            fallback_to_recent=False,
            empty_hint="There are no open activities yet; create one with createDraft.",
        )
        activity = resolution.activity
        participant = store.get_participant(activity.id, user_id)
        is_creator = activity.creator_id == user_id
        is_joined = participant is not None and participant.is_joined
        can_join = (
            activity.status is ActivityStatus.ACTIVE
            and not activity.is_full
            and not activity.has_started(self.context.now())
            and not is_joined
            and not is_creator
        )
        return ActivityDetail(
            activity=activity,
            participants=store.list_participants(activity.id, limit=10),
            is_joined=is_joined,
            is_creator=is_creator,
            can_join=can_join,
            alternatives=resolution.alternatives,
        )

    def my_activities(self, user_id: str, scope: MyActivitiesScope, *, limit: int = 5) -> List[Activity]:
        store = self.context.store
        if scope is MyActivitiesScope.CREATED:
            return store.list_activities(creator_id=user_id, limit=limit)
        return store.list_joined_activities(user_id, limit=limit)


def _created_key(activity: Activity) -> datetime:
    return activity.created_at or activity.start_at


__all__ = ["ActivityDetail", "ActivityService", "MODERATED_FIELDS", "PublishOutcome"]
