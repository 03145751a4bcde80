from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from supabase import Client, create_client

from ..config.settings import SupabaseSettings


class SupabaseNotInitializedError(RuntimeError):
    """Raised when accessing the Supabase client before it can be created."""


@dataclass
class SupabaseGateway:
    """Thin wrapper around the Supabase Python client, created on first use."""

    settings: SupabaseSettings
    _client: Optional[Client] = None

    def ensure_client(self) -> Client:
        if self._client is not None:
            return self._client
        if not self.settings.is_configured:
            missing = ", ".join(self.settings.missing_env_vars)
            raise SupabaseNotInitializedError(f"Supabase settings are incomplete; missing {missing}.")
        self._client = create_client(self.settings.url, self.settings.service_key)
        return self._client

    def table(self, name: str):
        return self.ensure_client().table(name)

    def rpc(self, function: str, params: dict):
        return self.ensure_client().rpc(function, params)
