from __future__ import annotations

from typing import Any, Dict

from .models import CancelIntentRequest, CreatePartnerIntentRequest, EmptyRequest
from .registry import register_tool
from .sandbox import synthetic_id
from .serializers import serialize_intent
from .state import ApiState


def _intent_created_message(category: str) -> str:
    return f"Got it. We will look for {category} partners for you over the next day."


def _sandbox_create_intent(state: ApiState, request: CreatePartnerIntentRequest) -> Dict[str, Any]:
    expires_at = state.context.now() + state.context.settings.intents.ttl
    return {
        "intentId": synthetic_id(),
        "expiresAt": expires_at.isoformat(),
        "extractedTags": list(request.tags),
        "message": _intent_created_message(request.category.value),
    }


@register_tool(
    "createPartnerIntent",
    description=(
        "Record that the caller is looking for partners in a category without creating an activity. "
        "One open intent per category; intents expire after a day."
    ),
    category="intents",
    request_model=CreatePartnerIntentRequest,
    sandbox=_sandbox_create_intent,
    tags=("intent", "create"),
)
def create_partner_intent(state: ApiState, user_id: str, request: CreatePartnerIntentRequest) -> Dict[str, Any]:
    intent = state.intents.create(
        user_id,
        category=request.category,
        location_hint=request.location_hint,
        time_preference=request.time_preference,
        tags=request.tags,
        budget_type=request.budget_type,
        poi_preference=request.poi_preference,
        raw_input=request.raw_input,
    )
    return {
        "intentId": intent.id,
        "expiresAt": intent.expires_at.isoformat(),
        "extractedTags": list(intent.tags),
        "message": _intent_created_message(intent.category.value),
    }


def _sandbox_my_intents(state: ApiState, request: EmptyRequest) -> Dict[str, Any]:
    return {"intents": [], "message": "Sign in to see your partner intents."}


@register_tool(
    "getMyIntents",
    description="List the caller's partner intents, newest first, including cancelled and expired ones.",
    category="intents",
    request_model=EmptyRequest,
    sandbox=_sandbox_my_intents,
    tags=("intent", "list", "read"),
)
def get_my_intents(state: ApiState, user_id: str, request: EmptyRequest) -> Dict[str, Any]:
    intents = state.intents.list_for(user_id)
    message = f"You have {len(intents)} partner intents." if intents else "You have no partner intents yet."
    return {"intents": [serialize_intent(intent) for intent in intents], "message": message}


def _sandbox_cancel_intent(state: ApiState, request: CancelIntentRequest) -> Dict[str, Any]:
    return {"intentId": request.intent_id, "message": "Partner intent cancelled (sandbox, nothing was saved)."}


@register_tool(
    "cancelIntent",
    description="Cancel one of the caller's open partner intents.",
    category="intents",
    request_model=CancelIntentRequest,
    sandbox=_sandbox_cancel_intent,
    tags=("intent", "cancel"),
)
def cancel_intent(state: ApiState, user_id: str, request: CancelIntentRequest) -> Dict[str, Any]:
    intent = state.intents.cancel(user_id, request.intent_id)
    return {"intentId": intent.id, "message": f"Your {intent.category.value} partner intent was cancelled."}
