from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from ..domain import ActivityStatus
from .context import ServiceContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QuotaGrant:
    granted: bool
    remaining: int


@dataclass(frozen=True, slots=True)
class ReconcileReport:
    refunded: List[str]
    settled: List[str]


@dataclass(slots=True)
class QuotaController:
    """Per-user daily creation allowance, consumed once per publish.

    Every consumption is recorded in the publish ledger under the activity it
    pays for, so a publish that dies between consuming and flipping the status
    can be found and refunded by ``reconcile``.
    """

    context: ServiceContext

    def remaining(self, user_id: str) -> int:
        return self.context.store.get_quota(user_id)

    def try_consume(self, user_id: str, activity_id: str) -> QuotaGrant:
        remaining = self.context.store.consume_quota(user_id, activity_id, self.context.now())
        if remaining is None:
            logger.info("Quota exhausted for user %s", user_id)
            return QuotaGrant(granted=False, remaining=0)
        return QuotaGrant(granted=True, remaining=remaining)

    def refund(self, user_id: str, activity_id: str) -> int:
        remaining = self.context.store.refund_quota(user_id, activity_id)
        logger.info("Refunded quota for activity %s (user %s now has %d)", activity_id, user_id, remaining)
        return remaining

    def reconcile(self, older_than: Optional[datetime] = None) -> ReconcileReport:
        """Settle ledger entries left behind by publishes that never completed."""

        store = self.context.store
        cutoff = older_than or self.context.now() - self.context.settings.quota.reconcile_grace
        refunded: List[str] = []
        settled: List[str] = []
        for entry in store.list_ledger(older_than=cutoff):
            activity = store.get_activity(entry.activity_id)
            if activity is not None and activity.status is ActivityStatus.ACTIVE:
                store.clear_ledger(entry.activity_id)
                settled.append(entry.activity_id)
            else:
                store.refund_quota(entry.user_id, entry.activity_id)
                refunded.append(entry.activity_id)
        if refunded or settled:
            logger.info("Reconciled publish ledger: %d refunded, %d settled", len(refunded), len(settled))
        return ReconcileReport(refunded=refunded, settled=settled)


__all__ = ["QuotaController", "QuotaGrant", "ReconcileReport"]
