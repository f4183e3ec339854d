"""Usage gate for routes that consume the monthly collection quota."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from ...core.usage.limiter import (
    UsageCheck,
    get_current_usage,
    next_reset_date,
    release_usage,
    reserve_usage,
)
from ..errors import UsageLimitExceeded

logger = logging.getLogger("uvicorn.error")

UPGRADE_URL = "/plan"


def usage_limit_body(
    session: Session,
    shop: str,
    operation: str,
    requested: int,
    check: UsageCheck,
) -> dict:
    body = {
        "error": "Usage limit exceeded",
        "details": {
            "operation": operation,
            "requested": requested,
            "remaining": check.remaining,
            "limit": check.limit,
            "upgradeRequired": check.upgrade_required,
            "currentPlan": check.plan,
            "currentUsage": get_current_usage(session, shop)["total"],
            "resetDate": next_reset_date().isoformat(),
        },
    }
    if check.upgrade_required:
        body["upgradeUrl"] = UPGRADE_URL
    return body


class UsageReservation:
    def __init__(self, session: Session, shop: str, operation: str, requested: int, check: UsageCheck):
        self.session = session
        self.shop = shop
        self.operation = operation
        self.requested = requested
        self.check = check
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        release_usage(self.session, self.shop, self.operation, self.requested)
        self.released = True


@contextmanager
def gated_usage(session: Session, shop: str, operation: str, requested: int) -> Iterator[UsageReservation]:
    """Reserve quota for the wrapped work and refund it if the work raises.

    Routes report every non-2xx outcome by raising, so leaving the block
    normally means the reservation is kept.
    """
    check = reserve_usage(session, shop, operation, requested)
    if not check.can_proceed:
        logger.info(
            "Usage limit hit for %s: %s x%s (remaining %s of %s)",
            shop,
            operation,
            requested,
            check.remaining,
            check.limit,
        )
        raise UsageLimitExceeded(usage_limit_body(session, shop, operation, requested, check))

    reservation = UsageReservation(session, shop, operation, requested, check)
    try:
        yield reservation
    except BaseException:
        session.rollback()
        reservation.release()
        raise


__all__ = ["UPGRADE_URL", "UsageReservation", "gated_usage", "usage_limit_body"]
