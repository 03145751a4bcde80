from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
from supabase import AuthError

from ..data.supabase import SupabaseGateway, SupabaseNotInitializedError
from ..domain import SANDBOX, Authenticated, Caller
from ..domain.errors import IdentityUnavailableError

logger = logging.getLogger(__name__)


class IdentityBinder(Protocol):
    def bind(self, token: Optional[str]) -> Caller: ...


def strip_bearer(token: Optional[str]) -> Optional[str]:
    """Return the raw credential from ``token``, or ``None`` when it is blank."""

    if token is None:
        return None
    raw = token.strip()
    scheme, _, credential = raw.partition(" ")
    if scheme.lower() == "bearer":
        raw = credential.strip()
    return raw or None


@dataclass(slots=True)
class LocalIdentityBinder:
    """Development binder: the bearer token is the user id."""

    def bind(self, token: Optional[str]) -> Caller:
        raw = strip_bearer(token)
        return Authenticated(user_id=raw) if raw else SANDBOX


@dataclass(slots=True)
class SupabaseIdentityBinder:
    """Verifies access tokens against Supabase auth."""

    gateway: SupabaseGateway

    def bind(self, token: Optional[str]) -> Caller:
        raw = strip_bearer(token)
        if raw is None:
            return SANDBOX
        try:
            response = self.gateway.ensure_client().auth.get_user(raw)
        except AuthError as exc:
            logger.info("Rejected caller token: %s", exc)
            return SANDBOX
        except (httpx.HTTPError, SupabaseNotInitializedError) as exc:
            logger.warning("Identity provider unavailable: %s", exc)
            raise IdentityUnavailableError(str(exc)) from exc
        user = getattr(response, "user", None) if response is not None else None
        if user is None:
            return SANDBOX
        return Authenticated(user_id=str(user.id))


__all__ = ["IdentityBinder", "LocalIdentityBinder", "SupabaseIdentityBinder", "strip_bearer"]
