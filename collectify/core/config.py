"""Core engine configuration.

Core config is side-effect free: it does not load dotenv files.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ShopifyConfig:
    api_key: str = ""
    api_secret: str = ""
    api_version: str = "2025-10"
    scopes: tuple[str, ...] = ()
    app_url: str = ""
    request_timeout: int = 30

    def graphql_url(self, shop: str) -> str:
        return f"https://{shop}/admin/api/{self.api_version}/graphql.json"

    def token_url(self, shop: str) -> str:
        return f"https://{shop}/admin/oauth/access_token"


def config_from_env() -> ShopifyConfig:
    scopes = tuple(
        scope.strip()
        for scope in os.getenv("SHOPIFY_SCOPES", "").split(",")
        if scope.strip()
    )
    try:
        timeout = int(os.getenv("SHOPIFY_REQUEST_TIMEOUT", "30"))
    except ValueError:
        timeout = 30
    return ShopifyConfig(
        api_key=os.getenv("SHOPIFY_API_KEY", ""),
        api_secret=os.getenv("SHOPIFY_API_SECRET", ""),
        api_version=os.getenv("SHOPIFY_API_VERSION", "2025-10"),
        scopes=scopes,
        app_url=os.getenv("SHOPIFY_APP_URL", ""),
        request_timeout=timeout,
    )


__all__ = ["ShopifyConfig", "config_from_env"]
