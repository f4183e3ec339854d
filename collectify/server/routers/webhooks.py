"""Shopify webhooks: mandatory compliance topics and subscription updates.

Every topic checks the ``X-Shopify-Hmac-Sha256`` signature first and answers
401 when it is missing or wrong.  After that the response is always 200, so
Shopify does not keep retrying a delivery that failed on our side.
"""

import base64
import hashlib
import hmac
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...core.config import ShopifyConfig
from ...core.subscriptions import apply_subscription_webhook, delete_shop_data
from ..deps import get_db, get_shopify_config

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/webhooks")

HMAC_HEADER = "x-shopify-hmac-sha256"
SHOP_HEADER = "x-shopify-shop-domain"


def compute_webhook_hmac(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_hmac(body: bytes, signature: str | None, secret: str) -> bool:
    if not signature or not secret:
        return False
    return hmac.compare_digest(compute_webhook_hmac(body, secret), signature.strip())


def _rejected(error: str) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": error})


async def _verified_body(request: Request, config: ShopifyConfig) -> bytes | None:
    body = await request.body()
    if not verify_webhook_hmac(body, request.headers.get(HMAC_HEADER), config.api_secret):
        logger.warning("Rejected webhook %s: invalid HMAC signature", request.url.path)
        return None
    return body


def _load_json(body: bytes) -> dict[str, Any]:
    payload = json.loads(body.decode("utf-8") or "{}")
    if not isinstance(payload, dict):
        raise ValueError("Webhook payload must be a JSON object")
    return payload


@router.post("/customers/data-request")
async def customers_data_request(
    request: Request,
    config: ShopifyConfig = Depends(get_shopify_config),
) -> JSONResponse:
    body = await _verified_body(request, config)
    if body is None:
        return _rejected("Invalid webhook signature")
    try:
        payload = _load_json(body)
        customer = payload.get("customer") or {}
        logger.info(
            "Customer data request for shop %s (customer %s, request %s); no customer data is stored",
            payload.get("shop_domain"),
            customer.get("id"),
            (payload.get("data_request") or {}).get("id"),
        )
    except Exception:
        logger.exception("Error processing customers/data_request webhook")
        return JSONResponse({"received": True, "error": "Internal processing error"})
    return JSONResponse({"received": True, "message": "Customer data request acknowledged"})


@router.post("/customers/redact")
async def customers_redact(
    request: Request,
    config: ShopifyConfig = Depends(get_shopify_config),
) -> JSONResponse:
    body = await _verified_body(request, config)
    if body is None:
        return _rejected("Invalid webhook signature")
    try:
        payload = _load_json(body)
        logger.info(
            "Customer redact for shop %s (customer %s); no customer data is stored",
            payload.get("shop_domain"),
            (payload.get("customer") or {}).get("id"),
        )
    except Exception:
        logger.exception("Error processing customers/redact webhook")
        return JSONResponse({"received": True, "error": "Internal processing error"})
    return JSONResponse({"received": True, "message": "Customer redaction acknowledged"})


@router.post("/shop/redact")
async def shop_redact(
    request: Request,
    config: ShopifyConfig = Depends(get_shopify_config),
    db: Session = Depends(get_db),
) -> JSONResponse:
    body = await _verified_body(request, config)
    if body is None:
        return _rejected("Invalid webhook signature")
    try:
        payload = _load_json(body)
        shop = str(payload.get("shop_domain") or request.headers.get(SHOP_HEADER) or "").strip()
        if not shop:
            raise ValueError("shop/redact payload has no shop_domain")
        deleted = await run_in_threadpool(delete_shop_data, db, shop)
        logger.info("Deleted stored data for %s: %s", shop, deleted)
    except Exception:
        await run_in_threadpool(db.rollback)
        logger.exception("Error processing shop/redact webhook")
        return JSONResponse({"received": True, "error": "Internal processing error"})
    return JSONResponse({"received": True, "message": "Shop data deleted", "deleted": deleted})


@router.post("/app-subscriptions/update")
async def app_subscriptions_update(
    request: Request,
    config: ShopifyConfig = Depends(get_shopify_config),
    db: Session = Depends(get_db),
) -> JSONResponse:
    shop = str(request.headers.get(SHOP_HEADER) or "").strip()
    if not request.headers.get(HMAC_HEADER) or not shop:
        logger.warning("Rejected subscription webhook: missing required headers")
        return _rejected("Missing required headers")
    body = await _verified_body(request, config)
    if body is None:
        return _rejected("Invalid HMAC")
    try:
        subscription = await run_in_threadpool(apply_subscription_webhook, db, shop, _load_json(body))
        logger.info(
            "Subscription for %s is now %s (%s)",
            shop,
            subscription.plan,
            subscription.status,
        )
    except Exception:
        await run_in_threadpool(db.rollback)
        logger.exception("Error processing app_subscriptions/update webhook for %s", shop)
        return JSONResponse({"success": False, "error": "Internal processing error"})
    return JSONResponse({"success": True})
