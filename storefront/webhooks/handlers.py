"""
Handlers de réconciliation Stripe: un handler par type d'événement, chacun isolé.

Règles communes:
- Enregistrement corrélé absent (achat, métadonnées): on journalise et on acquitte
- Échec d'envoi d'email: journalisé; le changement de statut déjà écrit n'est jamais annulé
- Email de livraison d'un achat: envoyé uniquement après réservation atomique
  (payments.repository.claim_delivery_email), libérée si l'envoi échoue
"""
import logging
from typing import Any, Dict, Optional

from storefront.catalog import repository as catalog
from storefront.catalog import notion_prices
from storefront.catalog.models import ProductSource
from storefront.emails import service as emails_service
from storefront.leads import service as leads_service
from storefront.payments import repository as purchases
from storefront.payments import stripe_client
from storefront.payments.metadata import CART_CHECKOUT_TYPE, NOTION_PRODUCT_SOURCE, is_truncated, parse_cart_lines
from storefront.studio import service as studio_service

logger = logging.getLogger(__name__)

# module storefront.webhooks.handlers
def _notion_title(slug: str) -> Optional[str]:
    try:
        product = catalog.get_notion_product_by_slug(slug)
    except Exception:
        logger.exception("Notion title lookup failed slug=%s", slug)
        return None
    return product.title if product else None

def send_notion_delivery(
    *,
    slug: str,
    email: str,
    name: Optional[str],
    title: Optional[str],
    amount_cents: int,
    currency: str,
) -> bool:
    """Email de livraison d'un produit Notion payant (sans état persisté)."""
    url = notion_prices.get_notion_delivery_url(slug)
    if not url:
        logger.error("No delivery URL configured for notion product slug=%s", slug)
        return False
    config = notion_prices.get_notion_price_config(slug)
    result = emails_service.send_purchase_confirmation(
        to=email,
        customer_name=name,
        product_name=title or _notion_title(slug) or slug,
        product_slug=slug,
        amount_cents=amount_cents,
        currency=currency,
        delivery_type=config.delivery_type if config else "email",
        download_url=url,
        access_instructions=config.access_instructions if config else None,
    )
    if not result.get("success"):
        logger.error("Notion delivery email failed slug=%s email=%s error=%s", slug, email, result.get("error"))
        return False
    return True

def _deliver_notion_intent(intent: Dict[str, Any], metadata: Dict[str, Any]) -> None:
    slug = metadata.get("productSlug")
    email = metadata.get("customerEmail")
    if not slug or not email:
        logger.warning("Notion payment %s missing productSlug or customerEmail", intent.get("id"))
        return
    send_notion_delivery(
        slug=slug,
        email=email,
        name=metadata.get("customerName") or None,
        title=metadata.get("productTitle") or None,
        amount_cents=int(intent.get("amount") or 0),
        currency=intent.get("currency") or "usd",
    )

def _deliver_cart_notion_lines(intent: Dict[str, Any], metadata: Dict[str, Any]) -> None:
    email = metadata.get("customerEmail")
    if not email:
        logger.warning("Cart payment %s missing customerEmail", intent.get("id"))
        return
    name = metadata.get("customerName") or None
    if is_truncated(metadata):
        logger.warning(
            "Cart payment %s metadata truncated: delivering %s of %s lines",
            intent.get("id"), len(parse_cart_lines(metadata)), metadata.get("itemCount"),
        )
    for line in parse_cart_lines(metadata):
        if line.source != ProductSource.NOTION.value:
            continue
        product = catalog.get_notion_product(line.product_id)
        if product is None:
            logger.warning("Cart payment %s references unknown notion product %s", intent.get("id"), line.product_id)
            continue
        paid = notion_prices.get_notion_price_config(product.slug)
        if paid:
            send_notion_delivery(
                slug=product.slug,
                email=email,
                name=name,
                title=product.title,
                amount_cents=paid.price_in_cents * line.quantity,
                currency=intent.get("currency") or "usd",
            )
        else:
            leads_service.deliver_free_product(slug=product.slug, email=email, name=name, product_name=product.title)

def _complete_and_deliver(purchase: Dict[str, Any], *, subscription_welcome: bool, amount_cents: Optional[int] = None,
                          currency: Optional[str] = None) -> None:
    purchase_id = purchase["id"]
    purchases.update_purchase_status(purchase_id, "completed")

    if not purchases.claim_delivery_email(purchase_id):
        logger.info("Delivery email already sent for purchase=%s", purchase_id)
        return

    product = catalog.get_dashboard_product(purchase.get("product_id"))
    if product is None:
        logger.warning("Product %s not found for purchase=%s", purchase.get("product_id"), purchase_id)
        purchases.release_delivery_email(purchase_id)
        return

    amount = amount_cents if amount_cents is not None else int(purchase.get("amount_paid_cents") or 0)
    currency = currency or purchase.get("currency") or "usd"
    if subscription_welcome:
        result = emails_service.send_subscription_welcome(
            to=purchase["customer_email"],
            customer_name=purchase.get("customer_name"),
            product_name=product.name,
            product_slug=product.slug,
            amount_cents=amount,
            currency=currency,
            billing_interval=purchase.get("billing_interval") or "month",
            access_instructions=product.access_instructions,
        )
    else:
        result = emails_service.send_purchase_confirmation(
            to=purchase["customer_email"],
            customer_name=purchase.get("customer_name"),
            product_name=product.name,
            product_slug=product.slug,
            amount_cents=amount,
            currency=currency,
            delivery_type=product.delivery_type or "email",
            download_url=product.download_url,
            access_instructions=product.access_instructions,
        )
    if not result.get("success"):
        logger.error("Delivery email failed purchase=%s error=%s", purchase_id, result.get("error"))
        purchases.release_delivery_email(purchase_id)

def handle_payment_intent_succeeded(intent: Dict[str, Any]) -> None:
    """
    payment_intent.succeeded:
    - Produit Notion (metadata.source == notion_product): email de livraison direct, sans achat
    - Achats corrélés au PaymentIntent: statut completed + email de confirmation (une seule fois)
    - Panier: lignes Notion livrées depuis les métadonnées, après les achats
    """
    metadata = intent.get("metadata") or {}
    if metadata.get("source") == NOTION_PRODUCT_SOURCE:
        _deliver_notion_intent(intent, metadata)
        return

    rows = purchases.get_purchases_by_payment_intent_id(intent["id"])
    if not rows:
        logger.info("No purchase found for payment intent %s", intent["id"])
    for purchase in rows:
        _complete_and_deliver(purchase, subscription_welcome=False)

    if metadata.get("type") == CART_CHECKOUT_TYPE:
        _deliver_cart_notion_lines(intent, metadata)

def invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    # Versions récentes de l'API: parent.subscription_details.subscription
    return invoice.get("subscription") or stripe_client.stripe_field(
        invoice, "parent", "subscription_details", "subscription"
    )

def handle_invoice_payment_succeeded(invoice: Dict[str, Any]) -> None:
    """
    invoice.payment_succeeded d'un abonnement suivi:
    - première facture (billing_reason == subscription_create): completed + email de bienvenue
    - renouvellement: statut completed uniquement
    """
    subscription_id = invoice_subscription_id(invoice)
    if not subscription_id:
        logger.info("Invoice %s has no subscription, ignored", invoice.get("id"))
        return
    purchase = purchases.get_purchase_by_subscription_id(subscription_id)
    if not purchase:
        logger.info("No purchase found for subscription %s", subscription_id)
        return

    if invoice.get("billing_reason") == "subscription_create":
        _complete_and_deliver(
            purchase,
            subscription_welcome=True,
            amount_cents=invoice.get("amount_paid"),
            currency=invoice.get("currency"),
        )
    else:
        purchases.update_purchase_status(purchase["id"], "completed")

def handle_checkout_session_completed(session: Dict[str, Any]) -> None:
    studio_service.handle_checkout_completed(session)

def handle_product_subscription_change(snapshot: Dict[str, Any]) -> None:
    """Abonnement hors Studio: aucun état calculé, on trace le statut Stripe."""
    purchase = purchases.get_purchase_by_subscription_id(snapshot["id"])
    if not purchase:
        logger.info("Subscription %s changed (status=%s), no tracked purchase", snapshot["id"], snapshot.get("status"))
        return
    logger.info(
        "Subscription %s for purchase=%s is now %s (cancel_at_period_end=%s)",
        snapshot["id"], purchase["id"], snapshot.get("status"), snapshot.get("cancel_at_period_end"),
    )

def handle_subscription_change(subscription: Dict[str, Any]) -> None:
    snapshot = stripe_client.subscription_snapshot(subscription)
    if studio_service.is_studio_metadata(snapshot.get("metadata")):
        studio_service.sync_subscription(snapshot)
    else:
        handle_product_subscription_change(snapshot)
