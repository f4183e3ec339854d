"""Embedded-app authentication.

The admin frontend sends an App Bridge session token (an HS256 JWT signed
with the app secret) as ``Authorization: Bearer <token>``.  The token names
the shop in ``dest``; the shop's offline access token is then loaded from the
``sessions`` table or, on first use, obtained through Shopify token exchange
and stored.  Every failure surfaces as :class:`AuthenticationError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlparse

import jwt
import requests
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.config import ShopifyConfig
from ..core.shopify.client import http_session
from ..db.models import ShopSession

logger = logging.getLogger("uvicorn.error")

TOKEN_EXCHANGE_GRANT = "urn:ietf:params:oauth:grant-type:token-exchange"
ID_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:id_token"
OFFLINE_TOKEN_TYPE = "urn:shopify:params:oauth:token-type:offline-access-token"


class AuthenticationError(Exception):
    def __init__(self, reason: str = "Authentication failed"):
        super().__init__("Authentication failed")
        self.reason = reason


@dataclass(frozen=True)
class ShopContext:
    shop: str
    access_token: str
    scope: str = ""


def offline_session_id(shop: str) -> str:
    return f"offline_{shop}"


def bearer_token(authorization: str | None) -> str:
    header = str(authorization or "").strip()
    if not header.lower().startswith("bearer "):
        raise AuthenticationError(
            "Missing Authorization header - App Bridge not configured correctly"
        )
    token = header[7:].strip()
    if not token:
        raise AuthenticationError("Empty bearer token")
    return token


def decode_session_token(token: str, config: ShopifyConfig) -> str:
    """Verify an App Bridge session token and return the shop domain."""
    if not config.api_secret:
        raise AuthenticationError("SHOPIFY_API_SECRET is not configured")
    try:
        payload = jwt.decode(
            token,
            config.api_secret,
            algorithms=["HS256"],
            audience=config.api_key or None,
            options={"verify_aud": bool(config.api_key), "require": ["exp", "dest"]},
            leeway=10,
        )
    except jwt.PyJWTError as exc:
        raise AuthenticationError(f"Invalid session token: {exc}") from exc

    dest = str(payload.get("dest") or "")
    shop = urlparse(dest).netloc or dest.replace("https://", "").split("/")[0]
    if not shop:
        raise AuthenticationError("Session token has no destination shop")
    return shop.lower()


def load_offline_session(db: Session, shop: str) -> ShopSession | None:
    return db.execute(
        select(ShopSession).where(ShopSession.id == offline_session_id(shop))
    ).scalar_one_or_none()


def store_offline_session(db: Session, shop: str, access_token: str, scope: str = "") -> ShopSession:
    record = load_offline_session(db, shop)
    if record is None:
        record = ShopSession(id=offline_session_id(shop), shop=shop, is_online=False)
        db.add(record)
    record.access_token = access_token
    record.scope = scope
    db.commit()
    return record


def exchange_token(
    shop: str,
    session_token: str,
    config: ShopifyConfig,
    *,
    http: requests.Session | None = None,
) -> dict:
    """Trade a session token for an offline access token."""
    client = http or http_session(config.request_timeout)
    try:
        response = client.post(
            config.token_url(shop),
            json={
                "client_id": config.api_key,
                "client_secret": config.api_secret,
                "grant_type": TOKEN_EXCHANGE_GRANT,
                "subject_token": session_token,
                "subject_token_type": ID_TOKEN_TYPE,
                "requested_token_type": OFFLINE_TOKEN_TYPE,
            },
            headers={"Accept": "application/json"},
            timeout=config.request_timeout,
        )
    except requests.RequestException as exc:
        raise AuthenticationError(f"Token exchange failed: {exc}") from exc
    if response.status_code >= 400:
        raise AuthenticationError(f"Token exchange failed with HTTP {response.status_code}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise AuthenticationError("Token exchange returned invalid JSON") from exc
    if not payload.get("access_token"):
        raise AuthenticationError("Token exchange returned no access token")
    return payload


def authenticate(
    db: Session,
    config: ShopifyConfig,
    authorization: str | None,
    *,
    http: requests.Session | None = None,
) -> ShopContext:
    token = bearer_token(authorization)
    shop = decode_session_token(token, config)

    record = load_offline_session(db, shop)
    if record is not None and record.access_token:
        return ShopContext(shop=shop, access_token=record.access_token, scope=record.scope or "")

    logger.info("No offline session for %s; running token exchange", shop)
    payload = exchange_token(shop, token, config, http=http)
    record = store_offline_session(db, shop, payload["access_token"], str(payload.get("scope") or ""))
    return ShopContext(shop=shop, access_token=record.access_token, scope=record.scope or "")


__all__ = [
    "AuthenticationError",
    "ShopContext",
    "authenticate",
    "bearer_token",
    "decode_session_token",
    "exchange_token",
    "load_offline_session",
    "offline_session_id",
    "store_offline_session",
]
