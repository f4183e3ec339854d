"""Health, usage and subscription routes."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...config import get_settings
from ...core.shopify.client import AdminClient, ShopifyAPIError
from ...core.subscriptions import fetch_subscription_history, sync_subscription_from_shopify
from ...core.usage.limiter import get_usage_stats
from ..auth import ShopContext
from ..deps import get_admin_client, get_db, get_shop_context
from ..errors import ApiError, internal_error

settings = get_settings()
logger = logging.getLogger("uvicorn.error")
router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "app": settings.app_name}


@router.get("/usage/stats")
def usage_stats(
    context: ShopContext = Depends(get_shop_context),
    db: Session = Depends(get_db),
) -> dict:
    return get_usage_stats(db, context.shop)


@router.get("/subscriptions/status")
def subscription_status(
    context: ShopContext = Depends(get_shop_context),
    client: AdminClient = Depends(get_admin_client),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return sync_subscription_from_shopify(db, context.shop, client)
    except ShopifyAPIError as exc:
        logger.exception("Subscription sync failed for %s", context.shop)
        raise ApiError(500, "Failed to fetch subscription status", details=exc.errors or str(exc)) from exc


@router.get("/subscriptions/history")
def subscription_history(
    first: str | None = Query(default=None),
    after: str | None = Query(default=None),
    client: AdminClient = Depends(get_admin_client),
) -> dict:
    try:
        page_size = int(first) if first else 20
    except ValueError:
        page_size = 20
    try:
        return fetch_subscription_history(client, first=page_size, after=after or None)
    except ShopifyAPIError as exc:
        logger.warning("Subscription history query failed for %s: %s", client.shop, exc)
        raise ApiError(502, "GraphQL error", details=exc.errors or str(exc)) from exc
    except LookupError as exc:
        raise ApiError(404, "No subscription data returned") from exc
    except Exception as exc:
        logger.exception("Subscription history failed for %s", client.shop)
        raise internal_error(exc) from exc
