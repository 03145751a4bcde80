"""Packaging for preference questions the agent puts to the user.

Nothing here is stored. The collected-info bag travels with the conversation
and comes back on the next call; how often to ask is the agent's decision.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..domain import QuestionType
from ..domain.errors import ValidationFailedError

WIDGET_TYPE = "widget_ask_preference"
SKIP_VALUE = "skip"
SKIP_LABEL = "Skip, anything works"
MIN_OPTIONS = 3


def build_preference_prompt(
    question_type: QuestionType,
    question: str,
    options: Sequence[Mapping[str, str]],
    *,
    allow_skip: bool = True,
    collected_info: Optional[Mapping[str, Optional[str]]] = None,
) -> Dict[str, Any]:
    if len(options) < MIN_OPTIONS:
        raise ValidationFailedError(f"Provide at least {MIN_OPTIONS} options.")
    values = [option["value"] for option in options]
    if len(set(values)) != len(values):
        raise ValidationFailedError("Option values must be unique.")

    echoed: List[Dict[str, str]] = [{"label": option["label"], "value": option["value"]} for option in options]
    carried = {key: value for key, value in (collected_info or {}).items() if value}
    return {
        "widgetType": WIDGET_TYPE,
        "questionType": question_type.value,
        "question": question,
        "options": echoed,
        "allowSkip": allow_skip,
        "skipOption": {"label": SKIP_LABEL, "value": SKIP_VALUE} if allow_skip else None,
        "collectedInfo": carried,
    }


__all__ = ["MIN_OPTIONS", "SKIP_VALUE", "WIDGET_TYPE", "build_preference_prompt"]
