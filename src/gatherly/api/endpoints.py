"""Import every tool module so its registrations run."""

from __future__ import annotations

from . import activities, intents, preferences, roster  # noqa: F401
