from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import AppSettings, get_settings
from ..data import ActivityStore, JsonActivityStore, SupabaseActivityStore, SupabaseGateway
from .identity import IdentityBinder, LocalIdentityBinder, SupabaseIdentityBinder
from .moderation import ContentModerator, build_moderator

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ServiceContext:
    """Aggregate root for services to share settings, the store and collaborators."""

    settings: AppSettings = field(default_factory=get_settings)
    store: Optional[ActivityStore] = None
    moderator: Optional[ContentModerator] = None
    identity: Optional[IdentityBinder] = None
    clock: Clock = utcnow
    gateway: Optional[SupabaseGateway] = field(default=None, init=False)

    def __post_init__(self) -> None:
        backend = self.settings.store.backend
        if backend == "supabase":
            self.gateway = SupabaseGateway(self.settings.supabase)
        elif backend != "json":
            raise ValueError(f"Unknown store backend: {backend}")

        if self.store is None:
            if self.gateway is not None:
                self.store = SupabaseActivityStore(
                    gateway=self.gateway,
                    settings=self.settings.store,
                    daily_allowance=self.settings.quota.daily_allowance,
                )
            else:
                self.store = JsonActivityStore(
                    self.settings.store.json_path,
                    daily_allowance=self.settings.quota.daily_allowance,
                )
            logger.debug("Using %s store backend", backend)

        if self.identity is None:
            self.identity = SupabaseIdentityBinder(self.gateway) if self.gateway else LocalIdentityBinder()
        if self.moderator is None:
            self.moderator = build_moderator(self.settings.moderation)

    def now(self) -> datetime:
        return self.clock()


__all__ = ["Clock", "ServiceContext", "utcnow"]
