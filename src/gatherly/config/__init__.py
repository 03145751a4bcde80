from __future__ import annotations

from .settings import (
    AppSettings,
    IntentSettings,
    ModerationSettings,
    QuotaSettings,
    ResolverSettings,
    ServerSettings,
    ShareSettings,
    StoreSettings,
    SupabaseSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "IntentSettings",
    "ModerationSettings",
    "QuotaSettings",
    "ResolverSettings",
    "ServerSettings",
    "ShareSettings",
    "StoreSettings",
    "SupabaseSettings",
    "get_settings",
]
