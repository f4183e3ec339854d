"""Shared runtime settings for the server and CLI adapters.

This module owns environment-backed application settings. It is kept apart
from ``collectify.core.config`` because core config stays minimal and
framework-agnostic.
"""

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    app_name: str
    debug: bool
    log_verbosity: str
    database_url: str
    cors_allow_origins: tuple[str, ...]
    shopify_api_key: str
    shopify_api_secret: str
    shopify_api_version: str
    shopify_scopes: tuple[str, ...]
    shopify_app_url: str
    shopify_request_timeout: int
    export_max_records: int
    bulk_max_rows: int


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _env_choice(name: str, default: str, *, allowed: set[str]) -> str:
    val = os.getenv(name)
    if val is None:
        return default
    normalized = val.strip().lower()
    if normalized in allowed:
        return normalized
    return default


def _env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None:
        return default
    try:
        return max(1, int(val.strip()))
    except ValueError:
        return default


def _env_list(name: str, default: str) -> tuple[str, ...]:
    return tuple(
        item.strip()
        for item in os.getenv(name, default).split(",")
        if item.strip()
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    origins = _env_list("CORS_ALLOW_ORIGINS", "*")
    return Settings(
        app_name=os.getenv("APP_NAME", "Collectify"),
        debug=_env_bool("DEBUG", default=False),
        log_verbosity=_env_choice(
            "LOG_VERBOSITY",
            default="medium",
            allowed={"low", "medium", "high", "extrahigh"},
        ),
        database_url=os.getenv("DATABASE_URL", "sqlite:///collectify.sqlite"),
        cors_allow_origins=origins or ("*",),
        shopify_api_key=os.getenv("SHOPIFY_API_KEY", ""),
        shopify_api_secret=os.getenv("SHOPIFY_API_SECRET", ""),
        shopify_api_version=os.getenv("SHOPIFY_API_VERSION", "2025-10"),
        shopify_scopes=_env_list("SHOPIFY_SCOPES", "read_products,write_products"),
        shopify_app_url=os.getenv("SHOPIFY_APP_URL", ""),
        shopify_request_timeout=_env_int("SHOPIFY_REQUEST_TIMEOUT", 30),
        export_max_records=_env_int("EXPORT_MAX_RECORDS", 1000),
        bulk_max_rows=_env_int("BULK_MAX_ROWS", 1000),
    )


__all__ = ["Settings", "get_settings"]
