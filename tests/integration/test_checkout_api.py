from fastapi import HTTPException

CART_BODY = {
    "items": [{"productId": 1, "productSource": "dashboard", "quantity": 2}],
    "customerEmail": "buyer@example.com",
}


def test_checkout_cart_success(client, monkeypatch):
    expected = {"isFreeOrder": False, "clientSecret": "pi_secret", "paymentIntentId": "pi_1", "totalCents": 5000, "items": []}
    monkeypatch.setattr("storefront.payments.views.payments_service.checkout_cart", lambda body: expected)

    r = client.post("/api/v1/checkout/cart", json=CART_BODY)

    assert r.status_code == 200
    assert r.json() == expected


def test_checkout_cart_business_error_uses_message(client, monkeypatch):
    def _raise(body):
        raise HTTPException(status_code=404, detail="Dashboard product not found: 1")

    monkeypatch.setattr("storefront.payments.views.payments_service.checkout_cart", _raise)

    r = client.post("/api/v1/checkout/cart", json=CART_BODY)

    assert r.status_code == 404
    assert r.json() == {"message": "Dashboard product not found: 1"}


def test_checkout_cart_unexpected_error_is_500(client, monkeypatch):
    def _boom(body):
        raise RuntimeError("stripe down")

    monkeypatch.setattr("storefront.payments.views.payments_service.checkout_cart", _boom)

    r = client.post("/api/v1/checkout/cart", json=CART_BODY)

    assert r.status_code == 500
    assert r.json() == {"message": "Failed to create checkout: stripe down"}


def test_checkout_cart_invalid_payload_is_400(client):
    r = client.post("/api/v1/checkout/cart", json={"items": [{"productSource": "dashboard"}]})
    assert r.status_code == 400
    assert "message" in r.json()

    r = client.post("/api/v1/checkout/cart", json={"items": [{"productId": 1, "productSource": "shopify"}]})
    assert r.status_code == 400


def test_checkout_cart_end_to_end_free_order(client, monkeypatch):
    from storefront.catalog.models import NotionProduct

    monkeypatch.setattr(
        "storefront.payments.service.catalog.get_notion_product",
        lambda pid: NotionProduct(id=pid, slug="free-fashion-pricing-calculator", title="Pricing Calculator"),
    )

    def _no_stripe(**kw):
        raise AssertionError("Stripe must not be called for a free order")

    monkeypatch.setattr("storefront.payments.service.stripe_client.create_payment_intent", _no_stripe)

    r = client.post("/api/v1/checkout/cart", json={
        "items": [{"productId": 9, "productSource": "notion", "quantity": 3}],
        "customerEmail": "buyer@example.com",
    })

    assert r.status_code == 200
    body = r.json()
    assert body["isFreeOrder"] is True
    assert body["totalCents"] == 0
    assert body["items"][0] == {"id": 9, "name": "Pricing Calculator", "priceInCents": 0, "quantity": 3,
                                "slug": "free-fashion-pricing-calculator", "source": "notion"}


def test_checkout_cart_unrecorded_purchase_withholds_client_secret(client, monkeypatch):
    from storefront.catalog.models import DashboardProduct, ProductType

    cancelled = []
    monkeypatch.setattr(
        "storefront.payments.service.catalog.get_dashboard_product",
        lambda pid: DashboardProduct(id=pid, name="Product A", slug="product-a", price_in_cents=2500,
                                     product_type=ProductType.ONE_TIME, stripe_price_id="price_A"),
    )
    monkeypatch.setattr("storefront.payments.service.stripe_client.create_payment_intent",
                        lambda **kw: {"id": "pi_1", "client_secret": "pi_1_secret", "currency": "usd", "customer": "cus_1"})
    monkeypatch.setattr("storefront.payments.service.stripe_client.cancel_payment_intent", cancelled.append)
    monkeypatch.setattr("storefront.payments.service.repository.create_purchase", lambda **kw: None)

    r = client.post("/api/v1/checkout/cart", json=CART_BODY)

    assert r.status_code == 500
    assert r.json() == {"message": "Could not record your order. Please try again."}
    assert "pi_1_secret" not in r.text
    assert cancelled == ["pi_1"]


def test_free_cart_completion(client, monkeypatch):
    monkeypatch.setattr("storefront.payments.views.payments_service.complete_free_cart",
                        lambda body: {"success": True, "delivered": 1, "items": []})
    r = client.post("/api/v1/checkout/cart/free", json=CART_BODY)
    assert r.status_code == 200
    assert r.json()["delivered"] == 1


def test_single_product_endpoints(client, monkeypatch):
    monkeypatch.setattr("storefront.payments.views.payments_service.create_product_payment_intent",
                        lambda body: {"clientSecret": "s", "paymentIntentId": "pi", "amount": body.product_id})
    monkeypatch.setattr("storefront.payments.views.payments_service.create_product_subscription",
                        lambda body: {"clientSecret": "s", "subscriptionId": body.billing_interval})
    monkeypatch.setattr("storefront.payments.views.payments_service.create_notion_payment_intent",
                        lambda body: {"clientSecret": "s", "paymentIntentId": "pi", "amount": 700})

    assert client.post("/api/v1/checkout/payment-intent", json={"productId": 3}).json()["amount"] == 3
    assert client.post("/api/v1/checkout/subscription",
                       json={"productId": 6, "billingInterval": "year"}).json()["subscriptionId"] == "year"
    assert client.post("/api/v1/checkout/notion-product",
                       json={"slug": "the-vision-reset-journal"}).json()["amount"] == 700


def test_subscription_rejects_unknown_interval(client):
    r = client.post("/api/v1/checkout/subscription", json={"productId": 6, "billingInterval": "week"})
    assert r.status_code == 400


def test_purchases_requires_admin(client):
    r = client.get("/api/v1/purchases")
    assert r.status_code == 401
    assert r.json() == {"message": "Unauthorized"}


def test_purchases_admin_listing(admin_client, monkeypatch):
    seen = {}

    def _list(email=None):
        seen["email"] = email
        return [{"id": 1}]

    monkeypatch.setattr("storefront.payments.views.payments_repo.list_purchases", _list)

    r = admin_client.get("/api/v1/purchases", params={"email": "buyer@example.com"})

    assert r.status_code == 200
    assert r.json() == {"purchases": [{"id": 1}], "count": 1}
    assert seen["email"] == "buyer@example.com"
