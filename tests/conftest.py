"""Shared pytest fixtures."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Iterator

import pytest

from gatherly.api import ApiState, set_api_state
from gatherly.config import AppSettings, get_settings
from gatherly.data import JsonActivityStore
from gatherly.services import LocalIdentityBinder, PassthroughModerator, ServiceContext

from .helpers import FrozenClock


@pytest.fixture
def settings() -> AppSettings:
    base = get_settings()
    return replace(base, store=replace(base.store, backend="json"))


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store(tmp_path: Path) -> JsonActivityStore:
    return JsonActivityStore(tmp_path / "activities.json", daily_allowance=3)


@pytest.fixture
def context(settings: AppSettings, store: JsonActivityStore, clock: FrozenClock) -> ServiceContext:
    return ServiceContext(
        settings=settings,
        store=store,
        moderator=PassthroughModerator(),
        identity=LocalIdentityBinder(),
        clock=clock,
    )


@pytest.fixture
def state(context: ServiceContext) -> Iterator[ApiState]:
    api_state = ApiState(context=context)
    set_api_state(api_state)
    yield api_state
    set_api_state(None)
