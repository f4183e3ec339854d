import json

from fastapi.concurrency import run_in_threadpool
from fastapi.testclient import TestClient

from collectify.core.subscriptions import get_subscription, set_plan
from collectify.core.usage.limiter import get_current_usage, record_usage
from collectify.server.main import app
from collectify.server.routers import webhooks
from collectify.server.routers.webhooks import compute_webhook_hmac, verify_webhook_hmac

client = TestClient(app)

SECRET = "test-api-secret"
SHOP = "hooks.myshopify.com"


def _signed_post(path: str, payload: dict, *, shop: str | None = SHOP, signature: str | None = None):
    body = json.dumps(payload).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    headers["X-Shopify-Hmac-Sha256"] = signature if signature is not None else compute_webhook_hmac(body, SECRET)
    if shop:
        headers["X-Shopify-Shop-Domain"] = shop
    return client.post(path, content=body, headers=headers)


def test_verify_webhook_hmac_accepts_only_matching_signature() -> None:
    body = b'{"shop_domain": "hooks.myshopify.com"}'
    signature = compute_webhook_hmac(body, SECRET)

    assert verify_webhook_hmac(body, signature, SECRET) is True
    assert verify_webhook_hmac(body + b" ", signature, SECRET) is False
    assert verify_webhook_hmac(body, None, SECRET) is False
    assert verify_webhook_hmac(body, signature, "") is False


def test_compliance_webhooks_reject_bad_signature() -> None:
    for path in ("/webhooks/customers/data-request", "/webhooks/customers/redact", "/webhooks/shop/redact"):
        response = _signed_post(path, {"shop_domain": SHOP}, signature="bm9wZQ==")

        assert response.status_code == 401
        assert "error" in response.json()


def test_customer_webhooks_are_acknowledged() -> None:
    payload = {"shop_domain": SHOP, "customer": {"id": 1}, "data_request": {"id": 9}}

    data_request = _signed_post("/webhooks/customers/data-request", payload)
    redact = _signed_post("/webhooks/customers/redact", payload)

    assert data_request.status_code == 200
    assert data_request.json()["received"] is True
    assert redact.status_code == 200
    assert redact.json()["received"] is True


def test_shop_redact_deletes_shop_data(db_session) -> None:
    set_plan(db_session, SHOP, "premium")
    record_usage(db_session, SHOP, "export", 2)

    response = _signed_post("/webhooks/shop/redact", {"shop_id": 1, "shop_domain": SHOP})

    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Shop data deleted"
    assert payload["deleted"] == {"sessions": 0, "usage": 1, "subscriptions": 1}
    db_session.expire_all()
    assert get_subscription(db_session, SHOP) is None
    assert get_current_usage(db_session, SHOP)["total"] == 0


def test_shop_redact_without_shop_still_answers_200() -> None:
    response = _signed_post("/webhooks/shop/redact", {"shop_id": 1}, shop=None)

    assert response.status_code == 200
    assert response.json()["error"] == "Internal processing error"


def test_subscription_update_upgrades_plan(db_session) -> None:
    payload = {
        "app_subscription": {
            "admin_graphql_api_id": "gid://shopify/AppSubscription/3",
            "name": "Premium",
            "status": "ACTIVE",
        }
    }

    response = _signed_post("/webhooks/app-subscriptions/update", payload)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    subscription = get_subscription(db_session, SHOP)
    assert subscription.plan == "premium"
    assert subscription.shopify_subscription_id == "gid://shopify/AppSubscription/3"


def test_subscription_update_requires_headers() -> None:
    response = _signed_post("/webhooks/app-subscriptions/update", {"app_subscription": {}}, shop=None)

    assert response.status_code == 401
    assert response.json() == {"error": "Missing required headers"}


def test_subscription_update_rejects_invalid_hmac(db_session) -> None:
    response = _signed_post(
        "/webhooks/app-subscriptions/update",
        {"app_subscription": {"name": "Premium", "status": "ACTIVE"}},
        signature="bm9wZQ==",
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid HMAC"}
    assert get_subscription(db_session, SHOP) is None


def test_webhook_database_work_runs_off_the_event_loop(monkeypatch, db_session) -> None:
    offloaded = []

    async def recording_threadpool(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await run_in_threadpool(func, *args, **kwargs)

    monkeypatch.setattr(webhooks, "run_in_threadpool", recording_threadpool)
    set_plan(db_session, SHOP, "premium")

    redact = _signed_post("/webhooks/shop/redact", {"shop_domain": SHOP})
    update = _signed_post(
        "/webhooks/app-subscriptions/update",
        {"app_subscription": {"name": "Premium", "status": "ACTIVE"}},
    )

    assert redact.json()["message"] == "Shop data deleted"
    assert update.json() == {"success": True}
    assert offloaded == ["delete_shop_data", "apply_subscription_webhook"]
