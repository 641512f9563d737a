"""
Configuration loader.

- Reads env vars (.env supported by deploy)
- Provides strongly-typed Settings
- Holds platform_env flag defaults (lowest precedence layer) & API knobs
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

# Platform flags with a deploy-time default. Anything not listed here has no
# platform_env layer and resolves purely from the snapshot (or off).
ENV_FLAG_DEFAULTS: Dict[str, bool] = {
    "FF_MAP_CARD": False,
    "FF_SWIS_PREVIEW": False,
    "FF_BUSINESS_PROFILE": True,
    "FF_GOOGLE_CONNECT_SUITE": False,
    "FF_TENANT_URLS": False,
    "FF_TENANT_GBP_CATEGORY_SYNC": False,
    "FF_CATEGORY_MANAGEMENT_PAGE": False,
    "FF_DARK_MODE": False,
}


def _get(name: str, default: Optional[str] = None) -> str:
    v = os.environ.get(name, default)
    if v is None:
        raise RuntimeError(f"Missing required env: {name}")
    return v


@dataclass(frozen=True)
class Settings:
    ENV: str                     # development | test | production
    SECRET_KEY: str

    # Backend API
    API_BASE_URL: str
    API_TIMEOUT: float

    # Local flag sources
    SNAPSHOT_DIR: str
    FF_DEV_OVERRIDES: bool       # honour DEV_OVERRIDES_PATH (never in production)
    DEV_OVERRIDES_PATH: str | None

    # Admin panel
    ERROR_CLEAR_SECONDS: float

    # Logging
    LOG_DIR: str
    LOG_LEVEL: str

    # platform_env layer
    FLAG_DEFAULTS: Dict[str, bool] = field(default_factory=dict)


def _to_bool(s: str | None, default: bool = False) -> bool:
    if s is None:
        return default
    if isinstance(s, bool):
        return s
    return str(s).strip().lower() in {"1", "true", "yes", "on"}


def _flag_defaults(o: dict) -> Dict[str, bool]:
    out: Dict[str, bool] = {}
    for key, default in ENV_FLAG_DEFAULTS.items():
        out[key] = _to_bool(o.get(key, os.environ.get(key)), default)
    # any other FF_* env var also becomes a platform_env default
    for key, value in os.environ.items():
        if key.startswith("FF_") and key not in out and key != "FF_DEV_OVERRIDES":
            out[key] = _to_bool(value)
    for key, value in o.items():
        if key.startswith("FF_") and key not in out and key != "FF_DEV_OVERRIDES":
            out[key] = _to_bool(value)
    return out


def load_settings(override: dict | None = None) -> Settings:
    o = override or {}
    env = o.get("ENV", _get("ENV", "development"))
    dev_overrides = _to_bool(o.get("FF_DEV_OVERRIDES", os.environ.get("FF_DEV_OVERRIDES")), False)
    return Settings(
        ENV=env,
        SECRET_KEY=o.get("SECRET_KEY", _get("SECRET_KEY", "change-me")),

        API_BASE_URL=o.get("API_BASE_URL", os.environ.get("API_BASE_URL", "http://localhost:4000")).rstrip("/"),
        API_TIMEOUT=float(o.get("API_TIMEOUT", os.environ.get("API_TIMEOUT", 10))),

        SNAPSHOT_DIR=o.get("SNAPSHOT_DIR", os.environ.get("SNAPSHOT_DIR", "tenants")),
        FF_DEV_OVERRIDES=dev_overrides and env != "production",
        DEV_OVERRIDES_PATH=o.get("DEV_OVERRIDES_PATH", os.environ.get("DEV_OVERRIDES_PATH")),

        ERROR_CLEAR_SECONDS=float(o.get("ERROR_CLEAR_SECONDS", os.environ.get("ERROR_CLEAR_SECONDS", 5))),

        LOG_DIR=o.get("LOG_DIR", os.environ.get("LOG_DIR", "logs")),
        LOG_LEVEL=o.get("LOG_LEVEL", os.environ.get("LOG_LEVEL", "INFO")).upper(),

        FLAG_DEFAULTS=_flag_defaults(o),
    )
