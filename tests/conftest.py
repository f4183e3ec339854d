from datetime import datetime, timezone
import os
import sys
from pathlib import Path

import pytest

# Ensure `import collectify` works when running `pytest` without needing PYTHONPATH hacks.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SHOPIFY_API_KEY"] = "test-api-key"
os.environ["SHOPIFY_API_SECRET"] = "test-api-secret"
os.environ.setdefault("DEBUG", "false")

FIXED_NOW = datetime(2026, 2, 8, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def db_session():
    from collectify.db.engine import get_session, init_db

    init_db("sqlite://")
    session = get_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _freeze_clock(monkeypatch) -> None:
    monkeypatch.setattr("collectify.core.exporters.utils._utcnow", lambda: FIXED_NOW)
    monkeypatch.setattr("collectify.core.usage.limiter._utcnow", lambda: FIXED_NOW)
    monkeypatch.setattr("collectify.core.collections.bulk._utcnow", lambda: FIXED_NOW)
    monkeypatch.setattr("collectify.core.subscriptions._utcnow", lambda: FIXED_NOW)
