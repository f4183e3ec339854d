"""
collectify.db - Database layer.

Public API:
    init_db()       -> create engine + tables
    get_session()   -> new Session
    ShopSession, Subscription, UsageRecord, UsageLimit -> ORM models
"""

from collectify.db.engine import get_session, init_db, is_initialised  # noqa: F401
from collectify.db.models import (  # noqa: F401
    Base,
    ShopSession,
    Subscription,
    UsageLimit,
    UsageRecord,
)
