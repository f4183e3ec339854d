"""
collectify.db.models - SQLAlchemy ORM declarations.

Tables
------
sessions       - one offline session per shop (``offline_<shop>``) holding
                 the Admin API access token.
subscriptions  - one row per shop; plan and billing status.
usage          - monthly usage buckets keyed by (shop, month, year).  Old
                 buckets are kept, a new month simply starts a new row.
usage_limits   - plan definitions; overrides the built-in plan table when
                 seeded.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class Base(DeclarativeBase):
    pass


class ShopSession(Base):
    __tablename__ = "sessions"

    id           = Column(String(255), primary_key=True)
    shop         = Column(String(255), nullable=False, index=True)
    state        = Column(String(255), default="")
    is_online    = Column(Boolean, default=False, nullable=False)
    scope        = Column(Text, default="")
    expires      = Column(DateTime, nullable=True)
    access_token = Column(Text, nullable=False)
    user_id      = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop": self.shop,
            "isOnline": bool(self.is_online),
            "scope": self.scope or "",
            "expires": _iso(self.expires),
        }


class Subscription(Base):
    __tablename__ = "subscriptions"

    id     = Column(Integer, primary_key=True, autoincrement=True)
    shop   = Column(String(255), unique=True, nullable=False, index=True)
    plan   = Column(String(20), nullable=False, default="free")
    status = Column(String(20), nullable=False, default="active")

    current_period_start    = Column(DateTime, default=_now)
    current_period_end      = Column(DateTime, nullable=True)
    shopify_subscription_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    usage = relationship("UsageRecord", back_populates="subscription")

    def to_dict(self) -> dict:
        return {
            "shop": self.shop,
            "plan": self.plan,
            "status": self.status,
            "currentPeriodStart": _iso(self.current_period_start),
            "currentPeriodEnd": _iso(self.current_period_end),
            "shopifySubscriptionId": self.shopify_subscription_id,
        }


class UsageRecord(Base):
    __tablename__ = "usage"

    id              = Column(Integer, primary_key=True, autoincrement=True)
    shop            = Column(String(255), nullable=False, index=True)
    month           = Column(Integer, nullable=False)
    year            = Column(Integer, nullable=False)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id", ondelete="SET NULL"),
                             nullable=True)

    collections_imported = Column(Integer, nullable=False, default=0)
    collections_exported = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    subscription = relationship("Subscription", back_populates="usage")

    __table_args__ = (
        UniqueConstraint("shop", "month", "year", name="uq_usage_shop_month_year"),
    )

    @property
    def total(self) -> int:
        return int(self.collections_imported or 0) + int(self.collections_exported or 0)

    def to_dict(self) -> dict:
        return {
            "collectionsImported": int(self.collections_imported or 0),
            "collectionsExported": int(self.collections_exported or 0),
            "total": self.total,
        }


class UsageLimit(Base):
    __tablename__ = "usage_limits"

    id                  = Column(Integer, primary_key=True, autoincrement=True)
    plan                = Column(String(20), unique=True, nullable=False)
    monthly_limit       = Column(Integer, nullable=False)
    per_operation_limit = Column(Integer, nullable=False)
    price               = Column(Integer, nullable=False, default=0)   # cents
    features_json       = Column(Text, nullable=False, default="[]")

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    @property
    def features(self) -> list[str]:
        try:
            value = json.loads(self.features_json or "[]")
        except ValueError:
            return []
        return [str(item) for item in value] if isinstance(value, list) else []


__all__ = ["Base", "ShopSession", "Subscription", "UsageLimit", "UsageRecord"]
