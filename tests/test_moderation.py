from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from gatherly.config.settings import ModerationSettings
from gatherly.domain.errors import ModerationUnavailableError, ValidationFailedError
from gatherly.services import OpenAIModerator, PassthroughModerator
from gatherly.services.moderation import build_moderator

SETTINGS = ModerationSettings(enabled=True, api_key="sk-test", model="omni-moderation-latest", timeout_seconds=3.0)


def _moderator(*flags: bool) -> tuple[OpenAIModerator, MagicMock]:
    client = MagicMock()
    client.moderations.create.return_value = SimpleNamespace(
        results=[SimpleNamespace(flagged=flag) for flag in flags]
    )
    return OpenAIModerator(SETTINGS, _client=client), client


def test_clean_text_passes() -> None:
    moderator, client = _moderator(False, False)

    moderator.check({"title": "Hotpot night", "location_hint": "Exit 8"})

    client.moderations.create.assert_called_once_with(
        model="omni-moderation-latest", input=["Hotpot night", "Exit 8"]
    )


def test_flagged_fields_are_named_as_sent_on_the_wire() -> None:
    moderator, _ = _moderator(False, True, True)

    with pytest.raises(ValidationFailedError) as excinfo:
        moderator.check({"title": "Hotpot night", "summary": "something nasty", "location_hint": "dark alley"})

    assert excinfo.value.details == {"fields": ["summary", "locationHint"]}


def test_blank_fields_are_not_sent() -> None:
    moderator, client = _moderator(False)

    moderator.check({"title": "Chess", "summary": "", "time_preference": None})
    moderator.check({"summary": "   "})

    client.moderations.create.assert_called_once_with(model="omni-moderation-latest", input=["Chess"])


def test_classifier_outage_is_unavailable() -> None:
    moderator, client = _moderator()
    client.moderations.create.side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", "https://api.openai.com/v1/moderations")
    )

    with pytest.raises(ModerationUnavailableError):
        moderator.check({"title": "Hotpot night"})


def test_build_moderator_requires_key_and_flag() -> None:
    assert isinstance(build_moderator(SETTINGS), OpenAIModerator)
    disabled = ModerationSettings(enabled=False, api_key="sk-test", model="m", timeout_seconds=1.0)
    keyless = ModerationSettings(enabled=True, api_key=None, model="m", timeout_seconds=1.0)
    assert isinstance(build_moderator(disabled), PassthroughModerator)
    assert isinstance(build_moderator(keyless), PassthroughModerator)
