from __future__ import annotations

import logging
from dataclasses import dataclass

from ..domain import Activity
from .context import ServiceContext

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RosterService:
    """Joins and leaves; the store checks every guard and moves the counter in one step."""

    context: ServiceContext

    def join(self, user_id: str, activity_id: str) -> Activity:
        activity = self.context.store.join(activity_id, user_id, self.context.now())
        logger.info(
            "User %s joined %s (%d/%d)",
            user_id,
            activity_id,
            activity.current_participants,
            activity.max_participants,
        )
        return activity

    def leave(self, user_id: str, activity_id: str) -> Activity:
        activity = self.context.store.leave(activity_id, user_id, self.context.now())
        logger.info("User %s left %s (%d remain)", user_id, activity_id, activity.current_participants)
        return activity


__all__ = ["RosterService"]
