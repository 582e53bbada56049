import hashlib
import hmac
import json
import time

SECRET = "whsec_test_secret"


def _signed(payload: str, secret: str = SECRET) -> dict:
    ts = int(time.time())
    sig = hmac.new(secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256).hexdigest()
    return {"Stripe-Signature": f"t={ts},v1={sig}", "Content-Type": "application/json"}


def test_valid_signature_is_acknowledged(client, monkeypatch):
    monkeypatch.setattr("storefront.payments.stripe_client.STRIPE_WEBHOOK_SECRET", SECRET)
    seen = []
    monkeypatch.setattr("storefront.webhooks.views.webhooks_service.reconcile", lambda event: seen.append(event) or "handled")
    payload = json.dumps({"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}})

    r = client.post("/api/v1/stripe/webhook", content=payload, headers=_signed(payload))

    assert r.status_code == 200
    assert r.json() == {"received": True}
    assert seen[0]["id"] == "evt_1"


def test_unhandled_event_type_is_acknowledged(client, monkeypatch):
    monkeypatch.setattr("storefront.payments.stripe_client.STRIPE_WEBHOOK_SECRET", SECRET)
    payload = json.dumps({"id": "evt_2", "type": "charge.refunded", "data": {"object": {}}})

    r = client.post("/api/v1/stripe/webhook", content=payload, headers=_signed(payload))

    assert r.status_code == 200
    assert r.json() == {"received": True}


def test_bad_signature_is_rejected_before_processing(client, monkeypatch):
    monkeypatch.setattr("storefront.payments.stripe_client.STRIPE_WEBHOOK_SECRET", SECRET)

    def _never(event):
        raise AssertionError("event must not be processed")

    monkeypatch.setattr("storefront.webhooks.views.webhooks_service.reconcile", _never)
    payload = json.dumps({"id": "evt_3", "type": "payment_intent.succeeded"})

    r = client.post("/api/v1/stripe/webhook", content=payload, headers=_signed(payload, "whsec_other"))
    assert r.status_code == 400
    assert r.json() == {"error": "Webhook signature verification failed."}

    r = client.post("/api/v1/stripe/webhook", content=payload)
    assert r.status_code == 400


def test_handler_failure_returns_500(client, monkeypatch):
    monkeypatch.setattr("storefront.payments.stripe_client.STRIPE_WEBHOOK_SECRET", SECRET)

    def _boom(event):
        raise RuntimeError("db down")

    monkeypatch.setattr("storefront.webhooks.views.webhooks_service.reconcile", _boom)
    payload = json.dumps({"id": "evt_4", "type": "invoice.payment_succeeded", "data": {"object": {}}})

    r = client.post("/api/v1/stripe/webhook", content=payload, headers=_signed(payload))

    assert r.status_code == 500
    assert r.json() == {"error": "Webhook handler failed"}


def test_webhook_is_exempt_from_csrf(client, monkeypatch):
    monkeypatch.setattr("storefront.payments.stripe_client.STRIPE_WEBHOOK_SECRET", SECRET)
    client.cookies.set("sb_access", "session-token")
    payload = json.dumps({"id": "evt_5", "type": "charge.refunded", "data": {"object": {}}})

    r = client.post("/api/v1/stripe/webhook", content=payload, headers=_signed(payload))

    assert r.status_code == 200
