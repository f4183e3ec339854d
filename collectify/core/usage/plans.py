"""Subscription plan definitions and their usage limits."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from babel.numbers import format_currency
from sqlalchemy import select
from sqlalchemy.orm import Session

from collectify.db.models import UsageLimit

FREE_PLAN = "free"
PREMIUM_PLAN = "premium"
PLANS: tuple[str, ...] = (FREE_PLAN, PREMIUM_PLAN)


@dataclass(frozen=True)
class PlanLimits:
    plan: str
    monthly_limit: int
    per_operation_limit: int
    price: int  # cents, USD
    features: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self, *, locale: str = "en_US") -> dict:
        return {
            "plan": self.plan,
            "monthlyLimit": self.monthly_limit,
            "perOperationLimit": self.per_operation_limit,
            "price": self.price,
            "priceDisplay": price_display(self.price, locale=locale),
            "features": list(self.features),
        }


PLAN_LIMITS: dict[str, PlanLimits] = {
    FREE_PLAN: PlanLimits(
        plan=FREE_PLAN,
        monthly_limit=100,
        per_operation_limit=50,
        price=0,
        features=(
            "Basic CSV import/export",
            "100 collections per month",
            "Email support",
        ),
    ),
    PREMIUM_PLAN: PlanLimits(
        plan=PREMIUM_PLAN,
        monthly_limit=1000,
        per_operation_limit=1000,
        price=999,
        features=(
            "Unlimited collections per month",
            "Bulk operations",
            "Advanced filtering",
            "Priority support",
            "API access",
        ),
    ),
}


def price_display(cents: int, currency: str = "USD", *, locale: str = "en_US") -> str:
    return format_currency(cents / 100, currency, locale=locale)


def normalize_plan(plan: str | None) -> str:
    value = str(plan or "").strip().lower()
    return value if value in PLANS else FREE_PLAN


def resolve_plan_limits(session: Session, plan: str | None) -> PlanLimits:
    """Limits for ``plan``: the seeded ``usage_limits`` row, else the built-in table."""
    name = normalize_plan(plan)
    row = session.execute(select(UsageLimit).where(UsageLimit.plan == name)).scalar_one_or_none()
    if row is None:
        return PLAN_LIMITS[name]
    return PlanLimits(
        plan=row.plan,
        monthly_limit=int(row.monthly_limit),
        per_operation_limit=int(row.per_operation_limit),
        price=int(row.price or 0),
        features=tuple(row.features),
    )


def seed_usage_limits(session: Session) -> int:
    """Insert or refresh one ``usage_limits`` row per built-in plan."""
    written = 0
    for limits in PLAN_LIMITS.values():
        row = session.execute(
            select(UsageLimit).where(UsageLimit.plan == limits.plan)
        ).scalar_one_or_none()
        if row is None:
            row = UsageLimit(plan=limits.plan)
            session.add(row)
        row.monthly_limit = limits.monthly_limit
        row.per_operation_limit = limits.per_operation_limit
        row.price = limits.price
        row.features_json = json.dumps(list(limits.features))
        written += 1
    session.commit()
    return written


__all__ = [
    "FREE_PLAN",
    "PLANS",
    "PLAN_LIMITS",
    "PREMIUM_PLAN",
    "PlanLimits",
    "normalize_plan",
    "price_display",
    "resolve_plan_limits",
    "seed_usage_limits",
]
