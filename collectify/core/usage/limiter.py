"""Monthly usage metering against the shop's subscription plan.

Usage is counted in one bucket per (shop, month, year).  A new calendar
month starts a new bucket; old buckets are kept.

Two gating styles are offered:

* :func:`check_usage_limit` + :func:`record_usage` is a read-only check
  followed by an unconditional increment.  Concurrent callers can both pass
  the check.
* :func:`reserve_usage` claims capacity with a single conditional UPDATE, so
  the monthly cap holds under concurrency.  :func:`release_usage` hands a
  reservation back when the gated work does not complete.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from collectify.db.models import UsageRecord

from ..subscriptions import get_or_create_subscription
from .plans import FREE_PLAN, PlanLimits, resolve_plan_limits

logger = logging.getLogger(__name__)

OPERATIONS: dict[str, str] = {
    "import": "collections_imported",
    "export": "collections_exported",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def current_period(now: datetime | None = None) -> tuple[int, int]:
    dt = now or _utcnow()
    return dt.month, dt.year


def next_reset_date(now: datetime | None = None) -> datetime:
    """First instant of the next calendar month (UTC)."""
    dt = now or _utcnow()
    if dt.month == 12:
        return datetime(dt.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(dt.year, dt.month + 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class UsageCheck:
    can_proceed: bool
    remaining: int
    limit: int
    upgrade_required: bool
    plan: str = FREE_PLAN
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "canProceed": self.can_proceed,
            "remaining": self.remaining,
            "limit": self.limit,
            "upgradeRequired": self.upgrade_required,
        }


def _column(operation: str):
    try:
        return getattr(UsageRecord, OPERATIONS[operation])
    except KeyError:
        raise ValueError(f"Unknown usage operation: {operation!r}") from None


def _bucket_filter(shop: str, month: int, year: int):
    return (
        UsageRecord.shop == shop,
        UsageRecord.month == month,
        UsageRecord.year == year,
    )


def _read_counts(session: Session, shop: str, month: int, year: int) -> tuple[int, int]:
    row = session.execute(
        select(UsageRecord.collections_imported, UsageRecord.collections_exported).where(
            *_bucket_filter(shop, month, year)
        )
    ).first()
    if row is None:
        return 0, 0
    return int(row[0] or 0), int(row[1] or 0)


def _ensure_bucket(session: Session, shop: str, month: int, year: int) -> None:
    exists = session.execute(
        select(UsageRecord.id).where(*_bucket_filter(shop, month, year))
    ).first()
    if exists is not None:
        return
    subscription = get_or_create_subscription(session, shop)
    session.add(
        UsageRecord(
            shop=shop,
            month=month,
            year=year,
            subscription_id=subscription.id,
            collections_imported=0,
            collections_exported=0,
        )
    )
    try:
        session.commit()
    except IntegrityError:
        # Another request opened this month's bucket first.
        session.rollback()


def _plan_for(session: Session, shop: str) -> PlanLimits:
    subscription = get_or_create_subscription(session, shop)
    return resolve_plan_limits(session, subscription.plan)


def get_current_usage(session: Session, shop: str) -> dict[str, int]:
    month, year = current_period()
    imported, exported = _read_counts(session, shop, month, year)
    return {
        "collectionsImported": imported,
        "collectionsExported": exported,
        "total": imported + exported,
    }


def _decide(limits: PlanLimits, current_total: int, requested: int) -> UsageCheck:
    upgrade = limits.plan == FREE_PLAN
    if current_total + requested > limits.monthly_limit:
        return UsageCheck(
            can_proceed=False,
            remaining=max(0, limits.monthly_limit - current_total),
            limit=limits.monthly_limit,
            upgrade_required=upgrade,
            plan=limits.plan,
            reason="monthly",
        )
    return UsageCheck(
        can_proceed=True,
        remaining=limits.monthly_limit - (current_total + requested),
        limit=limits.monthly_limit,
        upgrade_required=False,
        plan=limits.plan,
    )


def _per_operation_rejection(limits: PlanLimits, requested: int) -> UsageCheck | None:
    if requested <= limits.per_operation_limit:
        return None
    return UsageCheck(
        can_proceed=False,
        remaining=limits.per_operation_limit,
        limit=limits.per_operation_limit,
        upgrade_required=limits.plan == FREE_PLAN,
        plan=limits.plan,
        reason="per_operation",
    )


def check_usage_limit(session: Session, shop: str, operation: str, requested: int) -> UsageCheck:
    """Decide whether ``requested`` items may be processed now.

    The per-operation cap is checked first and does not look at the month's
    usage.  Then the month's total plus ``requested`` is compared with the
    monthly cap.  Nothing is written.
    """
    _column(operation)
    limits = _plan_for(session, shop)
    rejected = _per_operation_rejection(limits, requested)
    if rejected is not None:
        return rejected
    month, year = current_period()
    imported, exported = _read_counts(session, shop, month, year)
    return _decide(limits, imported + exported, requested)


def record_usage(session: Session, shop: str, operation: str, count: int) -> dict[str, int]:
    """Add ``count`` to the operation's counter in the current bucket."""
    column = _column(operation)
    if count <= 0:
        return get_current_usage(session, shop)
    month, year = current_period()
    _ensure_bucket(session, shop, month, year)
    session.execute(
        update(UsageRecord)
        .where(*_bucket_filter(shop, month, year))
        .values({column: column + count})
        .execution_options(synchronize_session=False)
    )
    session.commit()
    logger.info("Recorded %s %s for %s (%02d/%d)", count, operation, shop, month, year)
    return get_current_usage(session, shop)


def reserve_usage(session: Session, shop: str, operation: str, count: int) -> UsageCheck:
    """Atomically claim ``count`` items of this month's capacity.

    The increment only happens when the bucket stays within the monthly cap,
    in the same UPDATE statement, so two concurrent reservations can never
    overshoot it.
    """
    column = _column(operation)
    limits = _plan_for(session, shop)
    rejected = _per_operation_rejection(limits, count)
    if rejected is not None:
        return rejected

    month, year = current_period()
    _ensure_bucket(session, shop, month, year)
    result = session.execute(
        update(UsageRecord)
        .where(
            *_bucket_filter(shop, month, year),
            UsageRecord.collections_imported + UsageRecord.collections_exported + count
            <= limits.monthly_limit,
        )
        .values({column: column + count})
        .execution_options(synchronize_session=False)
    )
    session.commit()

    imported, exported = _read_counts(session, shop, month, year)
    total = imported + exported
    if result.rowcount != 1:
        return _decide(limits, total, count)
    logger.info("Reserved %s %s for %s (%s/%s used)", count, operation, shop, total, limits.monthly_limit)
    return UsageCheck(
        can_proceed=True,
        remaining=max(0, limits.monthly_limit - total),
        limit=limits.monthly_limit,
        upgrade_required=False,
        plan=limits.plan,
    )


def release_usage(session: Session, shop: str, operation: str, count: int) -> None:
    """Return a reservation taken by :func:`reserve_usage` for work that did not happen."""
    column = _column(operation)
    if count <= 0:
        return
    month, year = current_period()
    session.execute(
        update(UsageRecord)
        .where(*_bucket_filter(shop, month, year))
        .values({column: case((column >= count, column - count), else_=0)})
        .execution_options(synchronize_session=False)
    )
    session.commit()
    logger.info("Released %s %s for %s", count, operation, shop)


def get_usage_stats(session: Session, shop: str) -> dict:
    subscription = get_or_create_subscription(session, shop)
    limits = resolve_plan_limits(session, subscription.plan)
    return {
        "current": get_current_usage(session, shop),
        "limits": limits.to_dict(),
        "plan": subscription.plan,
        "status": subscription.status,
        "resetDate": next_reset_date().isoformat(),
    }


__all__ = [
    "OPERATIONS",
    "UsageCheck",
    "check_usage_limit",
    "current_period",
    "get_current_usage",
    "get_usage_stats",
    "next_reset_date",
    "record_usage",
    "release_usage",
    "reserve_usage",
]
