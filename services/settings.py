# ─────────────────────────────────────────────────────────────────────────────
# File: settings.py
# Directory: services
# Purpose: Build the immutable process configuration from the environment,
#          exactly once, and refuse to start when anything required is absent.
#
# Upstream:
#   - ENV (required): SUPABASE_URL, SUPABASE_KEY, CLIENT_ID, TENANT_ID,
#     CLIENT_SECRET, SITE_ID, DRIVE_ID, FOLDER_ID_<CATEGORY> (one or more),
#     NEWS_LIST_ID, CALENDAR_LIST_ID, PARTNERS_LIST_ID
#   - ENV (optional): SYNC_INTERVAL_S, SYNC_CONCURRENCY, UPSTREAM_TIMEOUT_S,
#     SEARCH_STRATEGY, USERS_TABLE, ADMIN_API_KEY, FRONTEND_ORIGINS,
#     HTTP_TIMEOUT_S, ENV / APP_ENV
#   - Imports: dotenv, utils.env
#
# Downstream:
#   - main (create_app), services.graph_client, services.identity
#
# Contents:
#   - Settings.from_env()
#   - load_dotenv_file()
# ─────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from services.errors import ConfigurationError
from utils.env import get_float, get_int, get_list, get_str

FOLDER_PREFIX = "FOLDER_ID_"
SEARCH_STRATEGIES = ("indexed", "live")

REQUIRED_KEYS: Tuple[str, ...] = (
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "CLIENT_ID",
    "TENANT_ID",
    "CLIENT_SECRET",
    "SITE_ID",
    "DRIVE_ID",
    "NEWS_LIST_ID",
    "CALENDAR_LIST_ID",
    "PARTNERS_LIST_ID",
)


def load_dotenv_file(path: Optional[Path] = None) -> None:
    """Load .env (repo root by default). Real environment values win."""
    load_dotenv(dotenv_path=path or Path(__file__).resolve().parents[1] / ".env", override=False)


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_key: str
    client_id: str
    tenant_id: str
    client_secret: str
    site_id: str
    drive_id: str
    category_folders: Mapping[str, str]
    news_list_id: str
    calendar_list_id: str
    partners_list_id: str
    users_table: str = "users"
    sync_interval_s: float = 3600.0
    sync_concurrency: int = 4
    upstream_timeout_s: float = 20.0
    search_strategy: str = "indexed"
    admin_api_key: Optional[str] = None
    frontend_origins: Tuple[str, ...] = field(default_factory=tuple)
    http_timeout_s: float = 35.0
    app_env: str = "dev"

    def __post_init__(self) -> None:
        object.__setattr__(self, "category_folders", MappingProxyType(dict(self.category_folders)))
        if self.search_strategy not in SEARCH_STRATEGIES:
            raise ConfigurationError(
                f"SEARCH_STRATEGY must be one of {SEARCH_STRATEGIES}, got {self.search_strategy!r}"
            )
        if self.sync_interval_s <= 0:
            raise ConfigurationError("SYNC_INTERVAL_S must be > 0")
        if self.sync_concurrency <= 0:
            raise ConfigurationError("SYNC_CONCURRENCY must be > 0")
        if self.upstream_timeout_s <= 0:
            raise ConfigurationError("UPSTREAM_TIMEOUT_S must be > 0")

    @property
    def is_prod(self) -> bool:
        return self.app_env in {"prod", "production"}

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Read every value once. Raises ConfigurationError naming all missing keys.
        """
        env = os.environ if env is None else env

        missing: List[str] = [k for k in REQUIRED_KEYS if not get_str(env, k)]

        folders: Dict[str, str] = {}
        for key, value in env.items():
            if key.startswith(FOLDER_PREFIX) and len(key) > len(FOLDER_PREFIX):
                if (value or "").strip():
                    folders[key[len(FOLDER_PREFIX):].lower()] = value.strip()
                else:
                    missing.append(key)
        if not folders:
            missing.append(f"{FOLDER_PREFIX}<CATEGORY>")

        if missing:
            raise ConfigurationError(
                "Missing required configuration: " + ", ".join(sorted(missing)),
                missing=missing,
            )

        admin_key = get_str(env, "ADMIN_API_KEY")
        return cls(
            supabase_url=get_str(env, "SUPABASE_URL").rstrip("/"),
            supabase_key=get_str(env, "SUPABASE_KEY"),
            client_id=get_str(env, "CLIENT_ID"),
            tenant_id=get_str(env, "TENANT_ID"),
            client_secret=get_str(env, "CLIENT_SECRET"),
            site_id=get_str(env, "SITE_ID"),
            drive_id=get_str(env, "DRIVE_ID"),
            category_folders=folders,
            news_list_id=get_str(env, "NEWS_LIST_ID"),
            calendar_list_id=get_str(env, "CALENDAR_LIST_ID"),
            partners_list_id=get_str(env, "PARTNERS_LIST_ID"),
            users_table=get_str(env, "USERS_TABLE", "users"),
            sync_interval_s=get_float(env, "SYNC_INTERVAL_S", 3600.0),
            sync_concurrency=get_int(env, "SYNC_CONCURRENCY", 4),
            upstream_timeout_s=get_float(env, "UPSTREAM_TIMEOUT_S", 20.0),
            search_strategy=get_str(env, "SEARCH_STRATEGY", "indexed").lower(),
            admin_api_key=admin_key or None,
            frontend_origins=tuple(get_list(env, "FRONTEND_ORIGINS", [])),
            http_timeout_s=get_float(env, "HTTP_TIMEOUT_S", 35.0),
            app_env=(get_str(env, "ENV") or get_str(env, "APP_ENV") or "dev").lower(),
        )
