"""Loose-reference resolution for multi-turn conversations.

A turn may name an activity by id, by a fragment of its title, or not at all
("that draft"). Resolution is read-only and always works against a candidate
list the calling tool has already scoped and ordered newest first.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..domain import Activity
from ..domain.errors import NotFoundError

_PICTOGRAPHS = re.compile(
    "["
    "\U0001F000-\U0001FAFF"  # mahjong tiles, emoji blocks
    "\u2600-\u27BF"  # misc symbols, dingbats
    "\u2300-\u23FF"  # misc technical
    "\u2B00-\u2BFF"  # arrows, stars
    "\U0001F1E6-\U0001F1FF"  # regional indicators
    "\uFE0E\uFE0F"  # variation selectors
    "\u200D"  # zero-width joiner
    "]+"
)

MATCHED_BY_ID = "id"
MATCHED_BY_TITLE = "title"
MATCHED_BY_RECENCY = "recent"


def normalize_title(value: str) -> str:
    return _PICTOGRAPHS.sub("", value).strip().casefold()


def _titles_overlap(hint: str, title: str) -> bool:
    return bool(title) and (hint in title or title in hint)


@dataclass(slots=True)
class Resolution:
    activity: Activity
    matched_by: str
    alternatives: List[Activity] = field(default_factory=list)


def resolve_reference(
    candidates: Sequence[Activity],
    *,
    activity_id: Optional[str] = None,
    title_hint: Optional[str] = None,
    fallback_to_recent: bool = True,
    empty_hint: str = "Create one first.",
) -> Resolution:
    """Pick one activity out of ``candidates`` (most recent first).

    An exact id wins over any hint. A hint matches when either normalized
    string contains the other; the most recent match wins and the remaining
    matches come back as alternatives. Without a usable reference the most
    recent candidate is returned, unless ``fallback_to_recent`` is off and a
    hint was given that matched nothing.
    """

    if not candidates:
        raise NotFoundError("No matching activity was found.", hint=empty_hint)

    if activity_id:
        for candidate in candidates:
            if candidate.id == activity_id:
                return Resolution(activity=candidate, matched_by=MATCHED_BY_ID)

    hint = normalize_title(title_hint or "")
    if hint:
        matches = [candidate for candidate in candidates if _titles_overlap(hint, normalize_title(candidate.title))]
        if matches:
            return Resolution(activity=matches[0], matched_by=MATCHED_BY_TITLE, alternatives=matches[1:])
        if not fallback_to_recent:
            raise NotFoundError(
                f"No activity matching '{title_hint}' was found.",
                hint="Check the title or pass the activity id.",
            )
    elif activity_id and not fallback_to_recent:
        raise NotFoundError(f"Activity '{activity_id}' was not found.", details={"activityId": activity_id})

    return Resolution(activity=candidates[0], matched_by=MATCHED_BY_RECENCY)


__all__ = [
    "MATCHED_BY_ID",
    "MATCHED_BY_RECENCY",
    "MATCHED_BY_TITLE",
    "Resolution",
    "normalize_title",
    "resolve_reference",
]
