"""Persistence backends for activities, rosters, quota and intents."""

from .json_store import JsonActivityStore
from .store import ActivityStore
from .supabase import SupabaseGateway, SupabaseNotInitializedError
from .supabase_store import SupabaseActivityStore

__all__ = [
    "ActivityStore",
    "JsonActivityStore",
    "SupabaseActivityStore",
    "SupabaseGateway",
    "SupabaseNotInitializedError",
]
