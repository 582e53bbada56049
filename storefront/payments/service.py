"""
Cas d'usage 'payments': orchestre catalogues, Stripe, métadonnées et achats.

Validation tout-ou-rien: chaque ligne est revalidée contre son catalogue d'origine avant le
moindre appel Stripe; la première ligne invalide interrompt le checkout (HTTPException).
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from storefront.config import DEFAULT_CURRENCY
from storefront.catalog import repository as catalog
from storefront.catalog import notion_prices
from storefront.catalog.models import DashboardProduct, NotionProduct, ProductSource, ProductType
from storefront.emails import service as emails_service
from storefront.leads import service as leads_service
from . import repository
from . import stripe_client
from . import metadata as meta
from .models import (
    CartCheckoutRequest,
    CartLineInput,
    NotionCheckoutRequest,
    PaymentIntentRequest,
    SubscriptionRequest,
    ValidatedCartItem,
)

logger = logging.getLogger(__name__)

PURCHASE_NOT_RECORDED = "Could not record your order. Please try again."

def _require_email(email: Optional[str]) -> str:
    email = (email or "").strip()
    if not email:
        raise HTTPException(status_code=400, detail="Customer email is required")
    return email

def _require_known_type(product: DashboardProduct) -> None:
    if product.product_type is None:
        raise HTTPException(
            status_code=400,
            detail=f'Product "{product.name}" has an unsupported product type. Please contact support.',
        )

def _abort_unrecorded_checkout(cancel, external_id: Optional[str]) -> None:
    """
    Achat non enregistré: le paiement ne pourrait jamais être livré par le webhook.
    Annule l'objet Stripe puis lève une 500 avant que le client_secret ne parte.
    """
    logger.error("payments.service purchase not recorded, cancelling %s", external_id)
    try:
        cancel(external_id)
    except Exception:
        logger.exception("payments.service cancel failed for %s", external_id)
    raise HTTPException(status_code=500, detail=PURCHASE_NOT_RECORDED)

# module storefront.payments.service
def _resolve_dashboard_line(line: CartLineInput) -> ValidatedCartItem:
    product = catalog.get_dashboard_product(line.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Dashboard product not found: {line.product_id}")
    _require_known_type(product)
    if not product.stripe_price_id:
        raise HTTPException(
            status_code=400,
            detail=f'Product "{product.name}" is not synced to Stripe. Please contact support.',
        )
    if product.is_subscription:
        raise HTTPException(
            status_code=400,
            detail=f'Subscription product "{product.name}" must be purchased separately.',
        )
    return ValidatedCartItem(
        id=product.id,
        name=product.name,
        price_in_cents=product.price_in_cents,
        quantity=line.quantity,
        slug=product.slug,
        source=ProductSource.DASHBOARD,
        product=product,
    )

def _resolve_notion_line(line: CartLineInput) -> ValidatedCartItem:
    product = catalog.get_notion_product(line.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Notion product not found: {line.product_id}")
    paid = notion_prices.get_notion_price_config(product.slug)
    free = notion_prices.get_free_notion_config(product.slug)
    if paid is None and free is None:
        raise HTTPException(
            status_code=400,
            detail=f'Product "{product.title}" is not configured for checkout.',
        )
    return ValidatedCartItem(
        id=product.id,
        name=product.title,
        price_in_cents=paid.price_in_cents if paid else 0,
        quantity=line.quantity,
        slug=product.slug,
        source=ProductSource.NOTION,
        product=product,
    )

def resolve_cart_line(line: CartLineInput) -> ValidatedCartItem:
    """Dispatch exhaustif sur la source du produit."""
    if line.product_source is ProductSource.DASHBOARD:
        return _resolve_dashboard_line(line)
    if line.product_source is ProductSource.NOTION:
        return _resolve_notion_line(line)
    raise HTTPException(status_code=400, detail=f"Unknown product source: {line.product_source}")

def validate_cart(lines: List[CartLineInput]) -> List[ValidatedCartItem]:
    items = [resolve_cart_line(line) for line in lines]
    if not items:
        raise HTTPException(status_code=400, detail="No valid products in cart.")
    return items

def _record_cart_purchases(intent: Dict[str, Any], items: List[ValidatedCartItem], email: str, name: Optional[str]) -> int:
    # Une ligne 'purchases' par produit dashboard; les produits Notion sont livrés sans état.
    recorded = 0
    for item in items:
        if item.source is not ProductSource.DASHBOARD:
            continue
        row = repository.create_purchase(
            product_id=item.id,
            customer_email=email,
            customer_name=name,
            amount_cents=item.line_total,
            currency=intent.get("currency") or DEFAULT_CURRENCY,
            quantity=item.quantity,
            stripe_payment_intent_id=intent.get("id"),
            stripe_customer_id=intent.get("customer"),
        )
        if row:
            recorded += 1
    return recorded

def checkout_cart(req: CartCheckoutRequest) -> Dict[str, Any]:
    """
    Checkout d'un panier multi-catalogues.
    - 400 si panier vide ou email manquant; 404/400 si un produit est inconnu ou mal configuré
    - Total à 0: commande gratuite, aucun appel Stripe
    - Sinon: un PaymentIntent pour le total agrégé + achats 'pending' pour les produits dashboard
    """
    if not req.items:
        raise HTTPException(status_code=400, detail="Cart items are required")
    email = _require_email(req.customer_email)

    items = validate_cart(req.items)
    total = sum(item.line_total for item in items)
    item_dicts = [item.to_dict() for item in items]

    if total == 0:
        return {
            "isFreeOrder": True,
            "clientSecret": None,
            "paymentIntentId": None,
            "totalCents": 0,
            "items": item_dicts,
        }

    metadata = meta.make_cart_metadata(customer_email=email, customer_name=req.customer_name, lines=items)
    if meta.is_truncated(metadata):
        raise HTTPException(
            status_code=400,
            detail="Cart has too many items for a single checkout. Please split your order.",
        )
    intent = stripe_client.create_payment_intent(
        amount_cents=total,
        currency=DEFAULT_CURRENCY,
        email=email,
        metadata=metadata,
        name=req.customer_name,
    )
    expected = sum(1 for item in items if item.source is ProductSource.DASHBOARD)
    if _record_cart_purchases(intent, items, email, req.customer_name) < expected:
        _abort_unrecorded_checkout(stripe_client.cancel_payment_intent, intent.get("id"))
    logger.info("payments.checkout_cart intent=%s total=%s items=%s", intent.get("id"), total, len(items))
    return {
        "isFreeOrder": False,
        "clientSecret": intent.get("client_secret"),
        "paymentIntentId": intent.get("id"),
        "totalCents": total,
        "items": item_dicts,
    }

def complete_free_cart(req: CartCheckoutRequest) -> Dict[str, Any]:
    """
    Finalise un panier dont le total est nul (produits gratuits uniquement).
    - Revalide le panier; 400 si le total n'est pas nul
    - Notion: livraison via le chemin unique des produits gratuits (leads)
    - Dashboard à prix nul: email de confirmation
    """
    if not req.items:
        raise HTTPException(status_code=400, detail="Cart items are required")
    email = _require_email(req.customer_email)
    items = validate_cart(req.items)
    if sum(item.line_total for item in items) != 0:
        raise HTTPException(status_code=400, detail="Cart total is not zero")

    delivered = 0
    for item in items:
        if isinstance(item.product, NotionProduct):
            sent = leads_service.deliver_free_product(
                slug=item.slug, email=email, name=req.customer_name, product_name=item.name
            )
        elif isinstance(item.product, DashboardProduct):
            sent = emails_service.send_purchase_confirmation(
                to=email,
                customer_name=req.customer_name,
                product_name=item.product.name,
                product_slug=item.product.slug,
                amount_cents=0,
                currency=DEFAULT_CURRENCY,
                delivery_type=item.product.delivery_type or "email",
                download_url=item.product.download_url,
                access_instructions=item.product.access_instructions,
            ).get("success", False)
        else:
            sent = False
        delivered += 1 if sent else 0
    return {"success": True, "delivered": delivered, "items": [item.to_dict() for item in items]}

def _get_dashboard_product_or_404(product_id: int) -> DashboardProduct:
    product = catalog.get_dashboard_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

def create_product_payment_intent(req: PaymentIntentRequest) -> Dict[str, Any]:
    """
    Achat unique d'un produit dashboard (+ upsells synchronisés avec Stripe).
    - 400 pour un abonnement ou un produit non synchronisé
    - Un achat 'pending' par produit (principal et upsells), corrélé au PaymentIntent
    """
    email = _require_email(req.customer_email)
    product = _get_dashboard_product_or_404(req.product_id)
    _require_known_type(product)
    if product.is_subscription:
        raise HTTPException(status_code=400, detail="Subscription products must use the subscription checkout")
    if not product.stripe_price_id:
        raise HTTPException(
            status_code=400,
            detail=f'Product "{product.name}" is not synced to Stripe. Please contact support.',
        )

    upsells = [
        u for u in catalog.get_dashboard_products_by_ids(req.upsell_ids)
        if u.stripe_price_id and u.product_type is ProductType.ONE_TIME and u.id != product.id
    ]
    products = [product] + upsells
    total = sum(p.price_in_cents for p in products)

    metadata = {
        "productId": str(product.id),
        "productName": meta.clip(product.name),
        "customerEmail": meta.clip(email),
        "customerName": meta.clip(req.customer_name),
        "upsellIds": meta.clip(",".join(str(u.id) for u in upsells)),
    }
    intent = stripe_client.create_payment_intent(
        amount_cents=total,
        currency=DEFAULT_CURRENCY,
        email=email,
        metadata=metadata,
        name=req.customer_name,
    )
    for p in products:
        row = repository.create_purchase(
            product_id=p.id,
            customer_email=email,
            customer_name=req.customer_name,
            amount_cents=p.price_in_cents,
            currency=intent.get("currency") or DEFAULT_CURRENCY,
            stripe_payment_intent_id=intent.get("id"),
            stripe_customer_id=intent.get("customer"),
        )
        if not row:
            _abort_unrecorded_checkout(stripe_client.cancel_payment_intent, intent.get("id"))
    return {"clientSecret": intent.get("client_secret"), "paymentIntentId": intent.get("id"), "amount": total}

def create_product_subscription(req: SubscriptionRequest) -> Dict[str, Any]:
    """
    Abonnement à un produit dashboard de type 'subscription'.
    - Prix annuel si billingInterval == 'year' et qu'il existe, sinon prix mensuel
    - Achat 'pending' corrélé à l'abonnement (finalisé par invoice.payment_succeeded)
    """
    email = _require_email(req.customer_email)
    product = _get_dashboard_product_or_404(req.product_id)
    _require_known_type(product)
    if not product.is_subscription:
        raise HTTPException(status_code=400, detail="This product is not a subscription")

    use_yearly = req.billing_interval == "year" and bool(product.stripe_yearly_price_id)
    price_id = product.stripe_yearly_price_id if use_yearly else product.stripe_price_id
    if not price_id:
        raise HTTPException(
            status_code=400,
            detail=f'Product "{product.name}" is not synced to Stripe. Please contact support.',
        )
    billing_interval = "year" if use_yearly else "month"

    metadata = {
        "productId": str(product.id),
        "productName": meta.clip(product.name),
        "customerEmail": meta.clip(email),
        "customerName": meta.clip(req.customer_name),
        "billingInterval": billing_interval,
    }
    subscription = stripe_client.create_subscription(
        price_id=price_id,
        email=email,
        metadata=metadata,
        name=req.customer_name,
    )
    row = repository.create_purchase(
        product_id=product.id,
        customer_email=email,
        customer_name=req.customer_name,
        amount_cents=product.price_in_cents,
        currency=DEFAULT_CURRENCY,
        stripe_subscription_id=subscription.get("id"),
        stripe_customer_id=subscription.get("customer"),
        billing_interval=billing_interval,
    )
    if not row:
        _abort_unrecorded_checkout(stripe_client.cancel_subscription, subscription.get("id"))
    return {"clientSecret": subscription.get("client_secret"), "subscriptionId": subscription.get("id")}

def create_notion_payment_intent(req: NotionCheckoutRequest) -> Dict[str, Any]:
    """
    Achat d'un produit Notion payant (configuration statique).
    Aucun achat persisté: la livraison est faite par email depuis les métadonnées du PaymentIntent.
    """
    email = _require_email(req.customer_email)
    config = notion_prices.get_notion_price_config(req.slug)
    if config is None:
        if notion_prices.is_free_notion_product(req.slug):
            raise HTTPException(status_code=400, detail="This product is free. Use the free download form instead.")
        raise HTTPException(status_code=400, detail=f'Product "{req.slug}" is not configured for checkout.')
    product = catalog.get_notion_product_by_slug(req.slug)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Notion product not found: {req.slug}")

    metadata = {
        "source": meta.NOTION_PRODUCT_SOURCE,
        "productSlug": req.slug,
        "productTitle": meta.clip(product.title),
        "customerEmail": meta.clip(email),
        "customerName": meta.clip(req.customer_name),
        "deliveryType": config.delivery_type,
    }
    intent = stripe_client.create_payment_intent(
        amount_cents=config.price_in_cents,
        currency=DEFAULT_CURRENCY,
        email=email,
        metadata=metadata,
        name=req.customer_name,
    )
    return {
        "clientSecret": intent.get("client_secret"),
        "paymentIntentId": intent.get("id"),
        "amount": config.price_in_cents,
    }
