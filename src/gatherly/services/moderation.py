"""Content-safety screening for user-authored text.

Moderation runs before any store transaction is opened. A flagged field is a
business failure; an unreachable classifier is an infrastructure fault.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol

import openai
from openai import OpenAI
from pydantic.alias_generators import to_camel

from ..config.settings import ModerationSettings
from ..domain.errors import ModerationUnavailableError, ValidationFailedError

logger = logging.getLogger(__name__)


class ContentModerator(Protocol):
    def check(self, fields: Mapping[str, Optional[str]]) -> None:
        """Raise ``ValidationFailedError`` naming every flagged field."""


@dataclass(slots=True)
class PassthroughModerator:
    def check(self, fields: Mapping[str, Optional[str]]) -> None:
        return None


@dataclass
class OpenAIModerator:
    settings: ModerationSettings
    _client: Optional[OpenAI] = None

    def _ensure_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self.settings.api_key,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def check(self, fields: Mapping[str, Optional[str]]) -> None:
        texts: Dict[str, str] = {name: value for name, value in fields.items() if value and value.strip()}
        if not texts:
            return
        try:
            response = self._ensure_client().moderations.create(
                model=self.settings.model,
                input=list(texts.values()),
            )
        except openai.OpenAIError as exc:
            logger.warning("Moderation call failed: %s", exc)
            raise ModerationUnavailableError(str(exc)) from exc

        flagged = [name for name, result in zip(texts, response.results) if result.flagged]
        if flagged:
            logger.info("Moderation flagged fields: %s", ", ".join(flagged))
            raise ValidationFailedError(
                "Some of the text did not pass the content check.",
                hint="Rephrase the flagged fields and try again.",
                details={"fields": [to_camel(name) for name in flagged]},
            )


def build_moderator(settings: ModerationSettings) -> ContentModerator:
    if settings.is_configured:
        return OpenAIModerator(settings)
    if settings.enabled:
        logger.warning("Moderation is enabled but OPENAI_API_KEY is missing; text will not be screened.")
    return PassthroughModerator()


__all__ = ["ContentModerator", "OpenAIModerator", "PassthroughModerator", "build_moderator"]
