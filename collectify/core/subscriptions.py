"""Per-shop subscription records and their sync with Shopify billing."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from collectify.db.models import ShopSession, Subscription, UsageRecord

from .shopify.client import AdminClient
from .shopify.queries import ACTIVE_SUBSCRIPTIONS, SUBSCRIPTION_HISTORY
from .usage.plans import FREE_PLAN, PREMIUM_PLAN, normalize_plan

logger = logging.getLogger(__name__)

BILLING_PERIOD = timedelta(days=30)
_PREMIUM_NAME_TOKENS = ("pro", "premium")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def plan_from_subscription_name(name: str | None) -> str:
    lowered = str(name or "").lower()
    if any(token in lowered for token in _PREMIUM_NAME_TOKENS):
        return PREMIUM_PLAN
    return FREE_PLAN


def status_from_shopify(status: str | None) -> str:
    return "active" if str(status or "").upper() == "ACTIVE" else "cancelled"


def get_subscription(session: Session, shop: str) -> Subscription | None:
    return session.execute(
        select(Subscription).where(Subscription.shop == shop)
    ).scalar_one_or_none()


def get_or_create_subscription(session: Session, shop: str) -> Subscription:
    """Return the shop's subscription, creating a free one on first use."""
    existing = get_subscription(session, shop)
    if existing is not None:
        return existing
    now = _utcnow()
    subscription = Subscription(
        shop=shop,
        plan=FREE_PLAN,
        status="active",
        current_period_start=now,
        current_period_end=now + BILLING_PERIOD,
    )
    session.add(subscription)
    try:
        session.commit()
    except IntegrityError:
        # Created concurrently by another request.
        session.rollback()
        existing = get_subscription(session, shop)
        if existing is None:
            raise
        return existing
    return subscription


def set_plan(
    session: Session,
    shop: str,
    plan: str,
    *,
    status: str = "active",
    shopify_subscription_id: str | None = None,
    renew_period: bool = False,
) -> Subscription:
    subscription = get_or_create_subscription(session, shop)
    subscription.plan = normalize_plan(plan)
    subscription.status = status
    subscription.shopify_subscription_id = shopify_subscription_id
    if renew_period:
        now = _utcnow()
        subscription.current_period_start = now
        subscription.current_period_end = now + BILLING_PERIOD
    session.commit()
    logger.info("Subscription for %s set to %s (%s)", shop, subscription.plan, status)
    return subscription


def upgrade_to_premium(
    session: Session,
    shop: str,
    shopify_subscription_id: str | None = None,
) -> Subscription:
    return set_plan(
        session,
        shop,
        PREMIUM_PLAN,
        shopify_subscription_id=shopify_subscription_id,
        renew_period=True,
    )


def downgrade_to_free(session: Session, shop: str) -> Subscription:
    return set_plan(session, shop, FREE_PLAN)


def apply_subscription_webhook(session: Session, shop: str, payload: dict[str, Any]) -> Subscription:
    """Apply an ``app_subscriptions/update`` webhook body."""
    app_subscription = payload.get("app_subscription") or {}
    if not isinstance(app_subscription, dict):
        raise ValueError("app_subscription must be an object")
    return set_plan(
        session,
        shop,
        plan_from_subscription_name(app_subscription.get("name")),
        status=status_from_shopify(app_subscription.get("status")),
        shopify_subscription_id=app_subscription.get("admin_graphql_api_id"),
    )


def fetch_active_subscriptions(client: AdminClient) -> list[dict[str, Any]]:
    data = client.graphql(ACTIVE_SUBSCRIPTIONS)
    installation = data.get("currentAppInstallation") or {}
    return list(installation.get("activeSubscriptions") or [])


def sync_subscription_from_shopify(session: Session, shop: str, client: AdminClient) -> dict[str, Any]:
    """Mirror Shopify's managed-pricing state into the local subscription row."""
    active = fetch_active_subscriptions(client)
    if not active:
        subscription = set_plan(session, shop, FREE_PLAN)
        return {
            "plan": subscription.plan,
            "status": subscription.status,
            "hasActiveSubscription": False,
            "shopifySubscriptionId": None,
            "subscription": None,
            "allSubscriptions": [],
        }

    current = next((sub for sub in active if sub.get("status") == "ACTIVE"), active[0])
    subscription = set_plan(
        session,
        shop,
        plan_from_subscription_name(current.get("name")),
        status=status_from_shopify(current.get("status")),
        shopify_subscription_id=current.get("id"),
    )
    return {
        "plan": subscription.plan,
        "status": subscription.status,
        "hasActiveSubscription": subscription.status == "active",
        "shopifySubscriptionId": subscription.shopify_subscription_id,
        "subscription": current,
        "allSubscriptions": active,
    }


def fetch_subscription_history(
    client: AdminClient,
    *,
    first: int = 20,
    after: str | None = None,
) -> dict[str, Any]:
    first = min(max(int(first), 1), 250)
    data = client.graphql(SUBSCRIPTION_HISTORY, {"first": first, "after": after})
    connection = (data.get("currentAppInstallation") or {}).get("allSubscriptions")
    if connection is None:
        raise LookupError("No subscription data returned from Shopify")
    edges = connection.get("edges") or []
    subscriptions = [edge.get("node") or {} for edge in edges]
    return {
        "subscriptions": subscriptions,
        "statuses": [{"id": sub.get("id"), "status": sub.get("status")} for sub in subscriptions],
        "pageInfo": connection.get("pageInfo") or {},
        "requested": {"first": first, "after": after},
    }


def delete_shop_data(session: Session, shop: str) -> dict[str, int]:
    """Remove everything stored for ``shop`` (``shop/redact``)."""
    counts = {
        "sessions": session.execute(delete(ShopSession).where(ShopSession.shop == shop)).rowcount,
        "usage": session.execute(delete(UsageRecord).where(UsageRecord.shop == shop)).rowcount,
        "subscriptions": session.execute(
            delete(Subscription).where(Subscription.shop == shop)
        ).rowcount,
    }
    session.commit()
    return counts


__all__ = [
    "apply_subscription_webhook",
    "delete_shop_data",
    "downgrade_to_free",
    "fetch_active_subscriptions",
    "fetch_subscription_history",
    "get_or_create_subscription",
    "get_subscription",
    "plan_from_subscription_name",
    "set_plan",
    "status_from_shopify",
    "sync_subscription_from_shopify",
    "upgrade_to_premium",
]
