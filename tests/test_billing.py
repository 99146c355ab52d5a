from __future__ import annotations

import hashlib
import hmac
import json
import time
from types import SimpleNamespace

import pytest
import stripe

from app.config import settings
from app.core.exceptions import ValidationError
from app.services import billing_service
from tests.conftest import auth_header

WEBHOOK_SECRET = "whsec_test"


def _signature(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture
def stripe_calls(monkeypatch):
    calls: list[dict] = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.test/cs_test_1")

    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    return calls


def test_plans_listing(client):
    body = client.get("/api/stripe/plans").json()

    assert [plan["id"] for plan in body["plans"]] == ["pro", "premium", "max"]
    assert body["plans"][2] == {"id": "max", "name": "Plano Max", "price": 197.0, "companyLimit": 50000}


def test_get_plan_rejects_unknown_plan():
    with pytest.raises(ValidationError):
        billing_service.get_plan("gold")


def test_affiliate_discount(monkeypatch):
    monkeypatch.setattr(settings, "AFFILIATE_DISCOUNT", 0.10)
    plan = billing_service.get_plan("PRO")

    assert billing_service.plan_price_cents(plan) == 9700
    assert billing_service.plan_price_cents(plan, "PARCEIRO") == 8730
    assert billing_service.plan_price_cents(plan, "  ") == 9700


def test_checkout_requires_login(client, offline_users, stripe_calls):
    response = client.post("/api/stripe/create-checkout-session", json={"planType": "pro"})

    assert response.status_code == 401
    assert stripe_calls == []


def test_checkout_without_stripe_key(client, offline_users):
    response = client.post(
        "/api/stripe/create-checkout-session",
        json={"planType": "pro"},
        headers=auth_header("test@test.com"),
    )

    assert response.status_code == 503
    assert response.json()["error"] == "STRIPE_NOT_CONFIGURED"


def test_checkout_session_is_created(client, offline_users, stripe_calls, monkeypatch):
    monkeypatch.setattr(settings, "FRONTEND_URL", "https://app.test/")

    response = client.post(
        "/api/stripe/create-checkout-session",
        json={"planType": "premium", "affiliateCode": "AMIGO"},
        headers=auth_header("test@test.com"),
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "url": "https://checkout.stripe.test/cs_test_1",
        "sessionId": "cs_test_1",
    }
    call = stripe_calls[0]
    assert call["api_key"] == "sk_test_123"
    assert call["mode"] == "subscription"
    assert call["customer_email"] == "test@test.com"
    price_data = call["line_items"][0]["price_data"]
    assert price_data["currency"] == "brl"
    assert price_data["unit_amount"] == 13230
    assert price_data["recurring"] == {"interval": "month"}
    assert call["success_url"].startswith("https://app.test/dashboard?checkout=success")
    assert call["metadata"] == {"planType": "premium", "userEmail": "test@test.com", "affiliateCode": "AMIGO"}


def test_checkout_with_invalid_plan(client, offline_users, stripe_calls):
    response = client.post(
        "/api/stripe/create-checkout-session",
        json={"planType": "gold"},
        headers=auth_header("test@test.com"),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Plano invalido"


def test_checkout_maps_stripe_errors(client, offline_users, monkeypatch):
    def failing_create(**kwargs):
        raise stripe.StripeError("card network down")

    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(stripe.checkout.Session, "create", failing_create)

    response = client.post(
        "/api/stripe/create-checkout-session",
        json={"planType": "pro"},
        headers=auth_header("test@test.com"),
    )

    assert response.status_code == 502
    assert response.json()["error"] == "STRIPE_ERROR"


def test_webhook_without_secret(client):
    response = client.post("/api/stripe/webhook", content=b"{}")

    assert response.status_code == 503


def test_webhook_accepts_signed_event(client, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    payload = json.dumps(
        {
            "id": "evt_1",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_test_1", "object": "checkout.session", "metadata": {"planType": "pro"}}},
        }
    ).encode()

    response = client.post("/api/stripe/webhook", content=payload, headers={"Stripe-Signature": _signature(payload)})

    assert response.status_code == 200
    assert response.json() == {"received": True, "type": "checkout.session.completed"}


def test_webhook_rejects_bad_signature(client, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    payload = b'{"id": "evt_1", "object": "event", "type": "invoice.paid", "data": {"object": {}}}'

    response = client.post(
        "/api/stripe/webhook",
        content=payload,
        headers={"Stripe-Signature": _signature(payload, secret="whsec_other")},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Assinatura de webhook invalida"
