import pytest
from fastapi import HTTPException

from storefront.catalog.models import DashboardProduct, NotionProduct, ProductType
from storefront.payments import repository as payments_repo
from storefront.payments import service
from storefront.payments.models import (
    CartCheckoutRequest,
    NotionCheckoutRequest,
    PaymentIntentRequest,
    SubscriptionRequest,
)

FREE_SLUG = "free-fashion-pricing-calculator"
PAID_SLUG = "the-vision-reset-journal"
REAL_CREATE_PURCHASE = payments_repo.create_purchase


def _dashboard(pid=1, price=2500, price_id="price_A", product_type=ProductType.ONE_TIME, yearly=None):
    return DashboardProduct(
        id=pid,
        name=f"Product {pid}",
        slug=f"product-{pid}",
        price_in_cents=price,
        product_type=product_type,
        stripe_price_id=price_id,
        stripe_yearly_price_id=yearly,
        delivery_type="download",
        download_url="https://files.example/p.zip",
    )


@pytest.fixture
def catalog(monkeypatch):
    dashboard = {}
    notion = {}
    monkeypatch.setattr("storefront.payments.service.catalog.get_dashboard_product", lambda pid: dashboard.get(pid))
    monkeypatch.setattr(
        "storefront.payments.service.catalog.get_dashboard_products_by_ids",
        lambda ids: [dashboard[i] for i in ids if i in dashboard],
    )
    monkeypatch.setattr("storefront.payments.service.catalog.get_notion_product", lambda pid: notion.get(pid))
    monkeypatch.setattr(
        "storefront.payments.service.catalog.get_notion_product_by_slug",
        lambda slug: next((p for p in notion.values() if p.slug == slug), None),
    )
    return {"dashboard": dashboard, "notion": notion}


@pytest.fixture
def stripe_calls(monkeypatch):
    calls = {"intents": [], "subscriptions": [], "purchases": [], "cancelled": []}

    def _fake_intent(**kwargs):
        calls["intents"].append(kwargs)
        return {"id": "pi_123", "client_secret": "pi_123_secret", "amount": kwargs["amount_cents"],
                "currency": kwargs["currency"], "customer": "cus_1"}

    def _fake_subscription(**kwargs):
        calls["subscriptions"].append(kwargs)
        return {"id": "sub_1", "client_secret": "seti_secret", "status": "incomplete", "customer": "cus_1"}

    def _fake_purchase(**kwargs):
        calls["purchases"].append(kwargs)
        return {"id": len(calls["purchases"]), **kwargs}

    monkeypatch.setattr("storefront.payments.service.stripe_client.create_payment_intent", _fake_intent)
    monkeypatch.setattr("storefront.payments.service.stripe_client.create_subscription", _fake_subscription)
    monkeypatch.setattr("storefront.payments.service.repository.create_purchase", _fake_purchase)
    monkeypatch.setattr("storefront.payments.service.stripe_client.cancel_payment_intent", calls["cancelled"].append)
    monkeypatch.setattr("storefront.payments.service.stripe_client.cancel_subscription", calls["cancelled"].append)
    return calls


def _cart(*lines, email="buyer@example.com"):
    return CartCheckoutRequest(
        items=[{"productId": pid, "productSource": src, "quantity": qty} for pid, src, qty in lines],
        customerEmail=email,
        customerName="Buyer",
    )


def test_mixed_cart_creates_one_intent_for_total(catalog, stripe_calls):
    catalog["dashboard"][1] = _dashboard(1, 2500)
    catalog["notion"][9] = NotionProduct(id=9, slug=FREE_SLUG, title="Pricing Calculator")

    out = service.checkout_cart(_cart((1, "dashboard", 2), (9, "notion", 1)))

    assert out["isFreeOrder"] is False
    assert out["totalCents"] == 5000
    assert out["clientSecret"] == "pi_123_secret"
    assert len(out["items"]) == 2
    assert len(stripe_calls["intents"]) == 1
    md = stripe_calls["intents"][0]["metadata"]
    assert md["productIds"] == "dashboard:1,notion:9"
    assert md["quantities"] == "2,1"
    # Un seul achat pending: la ligne dashboard
    assert len(stripe_calls["purchases"]) == 1
    assert stripe_calls["purchases"][0]["amount_cents"] == 5000
    assert stripe_calls["purchases"][0]["quantity"] == 2
    assert stripe_calls["purchases"][0]["stripe_payment_intent_id"] == "pi_123"


def test_free_only_cart_skips_stripe(catalog, stripe_calls):
    catalog["notion"][9] = NotionProduct(id=9, slug=FREE_SLUG, title="Pricing Calculator")

    out = service.checkout_cart(_cart((9, "notion", 3)))

    assert out["isFreeOrder"] is True
    assert out["totalCents"] == 0
    assert out["clientSecret"] is None
    assert stripe_calls["intents"] == []


def test_paid_notion_price_comes_from_config(catalog, stripe_calls):
    catalog["notion"][4] = NotionProduct(id=4, slug=PAID_SLUG, title="Vision Reset Journal")
    out = service.checkout_cart(_cart((4, "notion", 2)))
    assert out["totalCents"] == 1400
    assert stripe_calls["purchases"] == []


def test_subscription_product_in_cart_is_rejected(catalog, stripe_calls):
    catalog["dashboard"][2] = _dashboard(2, product_type=ProductType.SUBSCRIPTION)

    with pytest.raises(HTTPException) as exc:
        service.checkout_cart(_cart((2, "dashboard", 1)))

    assert exc.value.status_code == 400
    assert "must be purchased separately" in exc.value.detail
    assert stripe_calls["intents"] == []


def test_unconfigured_notion_product_is_rejected(catalog, stripe_calls):
    catalog["notion"][7] = NotionProduct(id=7, slug="not-in-config", title="Mystery")

    with pytest.raises(HTTPException) as exc:
        service.checkout_cart(_cart((7, "notion", 1)))

    assert exc.value.status_code == 400
    assert exc.value.detail == 'Product "Mystery" is not configured for checkout.'
    assert stripe_calls["intents"] == []


def test_unsynced_and_unknown_dashboard_products(catalog, stripe_calls):
    catalog["dashboard"][3] = _dashboard(3, price_id=None)

    with pytest.raises(HTTPException) as exc:
        service.checkout_cart(_cart((3, "dashboard", 1)))
    assert exc.value.status_code == 400
    assert "is not synced to Stripe" in exc.value.detail

    with pytest.raises(HTTPException) as exc:
        service.checkout_cart(_cart((99, "dashboard", 1)))
    assert exc.value.status_code == 404
    assert exc.value.detail == "Dashboard product not found: 99"


def test_first_invalid_line_aborts_whole_cart(catalog, stripe_calls):
    catalog["dashboard"][1] = _dashboard(1)
    with pytest.raises(HTTPException):
        service.checkout_cart(_cart((1, "dashboard", 1), (42, "notion", 1)))
    assert stripe_calls["intents"] == []
    assert stripe_calls["purchases"] == []


def test_empty_cart_and_missing_email(catalog, stripe_calls):
    with pytest.raises(HTTPException) as exc:
        service.checkout_cart(CartCheckoutRequest(items=[], customerEmail="a@b.co"))
    assert exc.value.detail == "Cart items are required"

    catalog["dashboard"][1] = _dashboard(1)
    with pytest.raises(HTTPException) as exc:
        service.checkout_cart(_cart((1, "dashboard", 1), email="  "))
    assert exc.value.detail == "Customer email is required"


def test_complete_free_cart_delivers_notion_items(catalog, monkeypatch):
    catalog["notion"][9] = NotionProduct(id=9, slug=FREE_SLUG, title="Pricing Calculator")
    delivered = []
    monkeypatch.setattr(
        "storefront.payments.service.leads_service.deliver_free_product",
        lambda **kw: delivered.append(kw) or True,
    )

    out = service.complete_free_cart(_cart((9, "notion", 1)))

    assert out["success"] is True
    assert out["delivered"] == 1
    assert delivered[0]["slug"] == FREE_SLUG
    assert delivered[0]["email"] == "buyer@example.com"


def test_complete_free_cart_rejects_paid_total(catalog):
    catalog["dashboard"][1] = _dashboard(1)
    with pytest.raises(HTTPException) as exc:
        service.complete_free_cart(_cart((1, "dashboard", 1)))
    assert exc.value.status_code == 400
    assert exc.value.detail == "Cart total is not zero"


def test_product_payment_intent_with_upsells(catalog, stripe_calls):
    catalog["dashboard"][1] = _dashboard(1, 2500)
    catalog["dashboard"][2] = _dashboard(2, 1000)
    catalog["dashboard"][3] = _dashboard(3, 900, price_id=None)
    catalog["dashboard"][4] = _dashboard(4, 500, product_type=ProductType.SUBSCRIPTION)

    out = service.create_product_payment_intent(PaymentIntentRequest(
        productId=1, customerEmail="a@b.co", upsellIds=[1, 2, 3, 4],
    ))

    assert out["amount"] == 3500
    assert out["clientSecret"] == "pi_123_secret"
    assert stripe_calls["intents"][0]["metadata"]["upsellIds"] == "2"
    assert [p["product_id"] for p in stripe_calls["purchases"]] == [1, 2]


def test_product_payment_intent_rejects_subscription(catalog, stripe_calls):
    catalog["dashboard"][5] = _dashboard(5, product_type=ProductType.SUBSCRIPTION)
    with pytest.raises(HTTPException) as exc:
        service.create_product_payment_intent(PaymentIntentRequest(productId=5, customerEmail="a@b.co"))
    assert exc.value.status_code == 400
    assert stripe_calls["intents"] == []


def test_product_subscription_uses_yearly_price(catalog, stripe_calls):
    catalog["dashboard"][6] = _dashboard(6, 1900, price_id="price_m", product_type=ProductType.SUBSCRIPTION,
                                         yearly="price_y")

    out = service.create_product_subscription(SubscriptionRequest(
        productId=6, customerEmail="a@b.co", billingInterval="year",
    ))

    assert out == {"clientSecret": "seti_secret", "subscriptionId": "sub_1"}
    assert stripe_calls["subscriptions"][0]["price_id"] == "price_y"
    assert stripe_calls["purchases"][0]["billing_interval"] == "year"
    assert stripe_calls["purchases"][0]["stripe_subscription_id"] == "sub_1"


def test_product_subscription_rejects_one_time(catalog, stripe_calls):
    catalog["dashboard"][1] = _dashboard(1)
    with pytest.raises(HTTPException) as exc:
        service.create_product_subscription(SubscriptionRequest(productId=1, customerEmail="a@b.co"))
    assert exc.value.detail == "This product is not a subscription"


def test_notion_payment_intent(catalog, stripe_calls):
    catalog["notion"][4] = NotionProduct(id=4, slug=PAID_SLUG, title="Vision Reset Journal")

    out = service.create_notion_payment_intent(NotionCheckoutRequest(slug=PAID_SLUG, customerEmail="a@b.co"))

    assert out["amount"] == 700
    md = stripe_calls["intents"][0]["metadata"]
    assert md["source"] == "notion_product"
    assert md["productSlug"] == PAID_SLUG
    assert md["productTitle"] == "Vision Reset Journal"


def test_notion_payment_intent_rejects_free_product(catalog, stripe_calls):
    with pytest.raises(HTTPException) as exc:
        service.create_notion_payment_intent(NotionCheckoutRequest(slug=FREE_SLUG, customerEmail="a@b.co"))
    assert exc.value.detail == "This product is free. Use the free download form instead."
    assert stripe_calls["intents"] == []


@pytest.fixture
def purchases_down(monkeypatch):
    def _table_down():
        raise RuntimeError("db down")

    monkeypatch.setattr(payments_repo, "_table", _table_down)


def test_cart_checkout_unrecorded_purchase_cancels_intent(catalog, stripe_calls, purchases_down, monkeypatch):
    monkeypatch.setattr(payments_repo, "create_purchase", REAL_CREATE_PURCHASE)
    catalog["dashboard"][1] = _dashboard(1, 2500)

    with pytest.raises(HTTPException) as exc:
        service.checkout_cart(_cart((1, "dashboard", 2)))

    assert exc.value.status_code == 500
    assert exc.value.detail == service.PURCHASE_NOT_RECORDED
    assert stripe_calls["cancelled"] == ["pi_123"]


def test_cart_checkout_notion_only_needs_no_purchase(catalog, stripe_calls, monkeypatch):
    monkeypatch.setattr("storefront.payments.service.repository.create_purchase", lambda **kw: None)
    catalog["notion"][4] = NotionProduct(id=4, slug=PAID_SLUG, title="Vision Reset Journal")

    out = service.checkout_cart(_cart((4, "notion", 1)))

    assert out["clientSecret"] == "pi_123_secret"
    assert stripe_calls["cancelled"] == []


def test_product_payment_intent_unrecorded_purchase_is_500(catalog, stripe_calls, monkeypatch):
    monkeypatch.setattr("storefront.payments.service.repository.create_purchase", lambda **kw: None)
    catalog["dashboard"][1] = _dashboard(1, 2500)

    with pytest.raises(HTTPException) as exc:
        service.create_product_payment_intent(PaymentIntentRequest(productId=1, customerEmail="a@b.co"))

    assert exc.value.status_code == 500
    assert stripe_calls["cancelled"] == ["pi_123"]


def test_product_subscription_unrecorded_purchase_cancels_subscription(catalog, stripe_calls, monkeypatch):
    monkeypatch.setattr("storefront.payments.service.repository.create_purchase", lambda **kw: None)
    catalog["dashboard"][6] = _dashboard(6, 1900, price_id="price_m", product_type=ProductType.SUBSCRIPTION)

    with pytest.raises(HTTPException) as exc:
        service.create_product_subscription(SubscriptionRequest(productId=6, customerEmail="a@b.co"))

    assert exc.value.status_code == 500
    assert stripe_calls["cancelled"] == ["sub_1"]


def test_failed_cancel_still_returns_500(catalog, stripe_calls, monkeypatch):
    def _cancel_fails(intent_id):
        raise RuntimeError("stripe unavailable")

    monkeypatch.setattr("storefront.payments.service.repository.create_purchase", lambda **kw: None)
    monkeypatch.setattr("storefront.payments.service.stripe_client.cancel_payment_intent", _cancel_fails)
    catalog["dashboard"][1] = _dashboard(1, 2500)

    with pytest.raises(HTTPException) as exc:
        service.checkout_cart(_cart((1, "dashboard", 1)))
    assert exc.value.status_code == 500


def test_oversized_cart_is_rejected_before_stripe(catalog, stripe_calls):
    for pid in range(1000, 1045):
        catalog["notion"][pid] = NotionProduct(id=pid, slug=PAID_SLUG, title="Vision Reset Journal")

    with pytest.raises(HTTPException) as exc:
        service.checkout_cart(_cart(*[(pid, "notion", 1) for pid in range(1000, 1045)]))

    assert exc.value.status_code == 400
    assert exc.value.detail == "Cart has too many items for a single checkout. Please split your order."
    assert stripe_calls["intents"] == []


def test_unknown_product_type_is_rejected(catalog, stripe_calls):
    catalog["dashboard"][7] = _dashboard(7, product_type=None)

    with pytest.raises(HTTPException) as exc:
        service.checkout_cart(_cart((7, "dashboard", 1)))
    assert exc.value.status_code == 400
    assert exc.value.detail == 'Product "Product 7" has an unsupported product type. Please contact support.'

    with pytest.raises(HTTPException):
        service.create_product_payment_intent(PaymentIntentRequest(productId=7, customerEmail="a@b.co"))
    with pytest.raises(HTTPException):
        service.create_product_subscription(SubscriptionRequest(productId=7, customerEmail="a@b.co"))
    assert stripe_calls["intents"] == [] and stripe_calls["subscriptions"] == []
