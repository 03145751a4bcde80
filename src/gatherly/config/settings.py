from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from platformdirs import user_data_dir

load_dotenv()

APP_NAME = "Gatherly"
APP_AUTHOR = "Gatherly"


@dataclass(frozen=True)
class SupabaseSettings:
    url: Optional[str]
    service_key: Optional[str]

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.service_key)

    @property
    def missing_env_vars(self) -> list[str]:
        missing = []
        if not self.url:
            missing.append("SUPABASE_URL")
        if not self.service_key:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        return missing


@dataclass(frozen=True)
class StoreSettings:
    backend: str
    data_dir: Path
    json_path: Path
    activities_table: str
    participants_table: str
    users_table: str
    intents_table: str
    ledger_table: str


@dataclass(frozen=True)
class QuotaSettings:
    daily_allowance: int
    reconcile_grace: timedelta


@dataclass(frozen=True)
class ResolverSettings:
    draft_scope_limit: int
    detail_scope_limit: int


@dataclass(frozen=True)
class IntentSettings:
    ttl: timedelta


@dataclass(frozen=True)
class ModerationSettings:
    enabled: bool
    api_key: Optional[str]
    model: str
    timeout_seconds: float

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key)


@dataclass(frozen=True)
class ShareSettings:
    base_url: str

    def url_for(self, activity_id: str) -> str:
        return f"{self.base_url.rstrip('/')}/activity/{activity_id}"


@dataclass(frozen=True)
class ServerSettings:
    host: str
    api_port: int
    mcp_port: int
    log_level: str


@dataclass(frozen=True)
class AppSettings:
    store: StoreSettings
    supabase: SupabaseSettings
    quota: QuotaSettings
    resolver: ResolverSettings
    intents: IntentSettings
    moderation: ModerationSettings
    share: ShareSettings
    server: ServerSettings


def _bool_from_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    data_dir = Path(os.getenv("GATHERLY_DATA_DIR") or user_data_dir(APP_NAME, APP_AUTHOR))
    store = StoreSettings(
        backend=os.getenv("GATHERLY_STORE_BACKEND", "json").lower(),
        data_dir=data_dir,
        json_path=Path(os.getenv("GATHERLY_JSON_PATH") or data_dir / "activities.json"),
        activities_table=os.getenv("SUPABASE_ACTIVITIES_TABLE", "activities"),
        participants_table=os.getenv("SUPABASE_PARTICIPANTS_TABLE", "participants"),
        users_table=os.getenv("SUPABASE_USERS_TABLE", "users"),
        intents_table=os.getenv("SUPABASE_INTENTS_TABLE", "partner_intents"),
        ledger_table=os.getenv("SUPABASE_LEDGER_TABLE", "publish_ledger"),
    )

    supabase = SupabaseSettings(
        url=os.getenv("SUPABASE_URL"),
        service_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
    )

    quota = QuotaSettings(
        daily_allowance=_int_from_env("GATHERLY_DAILY_CREATE_QUOTA", 3),
        reconcile_grace=timedelta(seconds=_int_from_env("GATHERLY_RECONCILE_GRACE_SECONDS", 300)),
    )

    resolver = ResolverSettings(
        draft_scope_limit=_int_from_env("GATHERLY_DRAFT_SCOPE_LIMIT", 5),
        detail_scope_limit=_int_from_env("GATHERLY_DETAIL_SCOPE_LIMIT", 10),
    )

    intents = IntentSettings(ttl=timedelta(hours=_float_from_env("GATHERLY_INTENT_TTL_HOURS", 24.0)))

    moderation = ModerationSettings(
        enabled=_bool_from_env("GATHERLY_MODERATION_ENABLED", False),
        api_key=os.getenv("OPENAI_API_KEY"),
        model=os.getenv("GATHERLY_MODERATION_MODEL", "omni-moderation-latest"),
        timeout_seconds=_float_from_env("GATHERLY_MODERATION_TIMEOUT_SECONDS", 3.0),
    )

    share = ShareSettings(base_url=os.getenv("GATHERLY_SHARE_BASE_URL", "https://gatherly.app"))

    server = ServerSettings(
        host=os.getenv("GATHERLY_HOST", "127.0.0.1"),
        api_port=_int_from_env("GATHERLY_API_PORT", 8000),
        mcp_port=_int_from_env("GATHERLY_MCP_PORT", 8765),
        log_level=os.getenv("GATHERLY_LOG_LEVEL", "INFO").upper(),
    )

    return AppSettings(
        store=store,
        supabase=supabase,
        quota=quota,
        resolver=resolver,
        intents=intents,
        moderation=moderation,
        share=share,
        server=server,
    )
