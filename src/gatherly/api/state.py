from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional

from ..services import ActivityService, IntentService, RosterService, ServiceContext


@dataclass(slots=True)
class ApiState:
    context: ServiceContext = field(default_factory=ServiceContext)
    activities: ActivityService = field(init=False)
    roster: RosterService = field(init=False)
    intents: IntentService = field(init=False)

    def __post_init__(self) -> None:
        self.activities = ActivityService(self.context)
        self.roster = RosterService(self.context)
        self.intents = IntentService(self.context)


_api_state: Optional[ApiState] = None
_state_lock = threading.Lock()


def get_api_state() -> ApiState:
    """Process-wide state, built from settings on first use."""

    global _api_state
    with _state_lock:
        if _api_state is None:
            _api_state = ApiState()
        return _api_state


def set_api_state(state: Optional[ApiState]) -> None:
    global _api_state
    with _state_lock:
        _api_state = state


__all__ = ["ApiState", "get_api_state", "set_api_state"]
