from __future__ import annotations

from typing import Any, Dict

from ..services.preferences import build_preference_prompt
from .models import AskPreferenceRequest
from .registry import register_tool
from .state import ApiState


def _prompt(state: ApiState, request: AskPreferenceRequest) -> Dict[str, Any]:
    return build_preference_prompt(
        request.question_type,
        request.question,
        [option.model_dump() for option in request.options],
        allow_skip=request.allow_skip,
        collected_info=request.collected_info.model_dump(),
    )


@register_tool(
    "askPreference",
    description=(
        "Ask the user to pick a location or activity type from at least three options. Pass back whatever "
        "was already collected in `collectedInfo`. Stores nothing."
    ),
    category="conversation",
    request_model=AskPreferenceRequest,
    sandbox=_prompt,
    tags=("preference", "widget"),
)
def ask_preference(state: ApiState, user_id: str, request: AskPreferenceRequest) -> Dict[str, Any]:
    return _prompt(state, request)
